"""Error types shared by the docstore storage layer."""

from typing import Optional


class DocumentStoreError(Exception):
    """Base class for all storage errors.

    Attributes:
        key: Document key the failure relates to (may be empty)
    """

    def __init__(self, message: str, key: str = "") -> None:
        super().__init__(message)
        self.key = key


class NotFoundError(DocumentStoreError):
    """Raised when a key is absent in the queried store."""


class ConflictError(DocumentStoreError):
    """Raised when creating a document whose key already holds a blob."""


class EmptyInputError(DocumentStoreError):
    """Raised when an upload transfers zero bytes."""


class StorageIOError(DocumentStoreError):
    """Raised on disk or database transport failure."""


class SerializationError(DocumentStoreError):
    """Raised when a metadata record cannot be encoded or decoded."""


class InvalidKeyError(DocumentStoreError):
    """Raised when a key cannot be used as a blob file name."""


class MetadataWriteError(DocumentStoreError):
    """Blob was stored but its metadata was not; the blob is now an orphan."""

    def __init__(self, key: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(f"error saving metadata for key {key}: {cause}", key)
        self.cause = cause


class MetadataDeleteError(DocumentStoreError):
    """Blob was removed but its metadata was not; the metadata is now an orphan."""

    def __init__(self, key: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(f"error removing metadata for key {key}: {cause}", key)
        self.cause = cause
