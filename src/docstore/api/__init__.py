"""HTTP transport for docstore."""

from docstore.api.app import create_app
from docstore.api.models import DocumentResponse

__all__ = ["create_app", "DocumentResponse"]
