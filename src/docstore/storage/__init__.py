"""Storage layer for docstore.

This module provides the blob store, the metadata store, and the document
store that keeps the two consistent.
"""

from docstore.storage.blob_store import BlobStore
from docstore.storage.document_store import (
    CreateResult,
    Document,
    DocumentStore,
    KeyLocks,
    OrphanReport,
)
from docstore.storage.errors import (
    ConflictError,
    DocumentStoreError,
    EmptyInputError,
    InvalidKeyError,
    MetadataDeleteError,
    MetadataWriteError,
    NotFoundError,
    SerializationError,
    StorageIOError,
)
from docstore.storage.keys import KeyAllocator
from docstore.storage.metadata_store import DocMetadata, MetadataStore

__all__ = [
    "BlobStore",
    "MetadataStore",
    "DocMetadata",
    "DocumentStore",
    "Document",
    "CreateResult",
    "OrphanReport",
    "KeyLocks",
    "KeyAllocator",
    "DocumentStoreError",
    "NotFoundError",
    "ConflictError",
    "EmptyInputError",
    "StorageIOError",
    "SerializationError",
    "InvalidKeyError",
    "MetadataWriteError",
    "MetadataDeleteError",
]
