"""docstore - Document storage service.

docstore keeps opaque document blobs and their descriptive metadata under a
single key, and serves them over a small HTTP API.
"""

__version__ = "0.1.0"
__author__ = "docstore Contributors"

__all__ = ["__version__", "__author__"]
