"""Document orchestration over the blob and metadata stores.

A document is the pair (blob, metadata record) sharing one key. The two halves
live in independently failing stores, so every compound operation runs in a
fixed order and reports a partial failure instead of hiding it:

    create:  blob, then metadata   (metadata failure leaves a blob orphan)
    remove:  blob, then metadata   (metadata failure leaves a metadata orphan)

Orphans are never repaired automatically; ``find_orphans`` reports them.
"""

import logging
import threading
import time
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Protocol

from docstore.storage.blob_store import BlobSource, BlobStore
from docstore.storage.errors import (
    ConflictError,
    DocumentStoreError,
    EmptyInputError,
    MetadataDeleteError,
    MetadataWriteError,
    NotFoundError,
)
from docstore.storage.keys import KeyAllocator
from docstore.storage.metadata_store import DocMetadata, MetadataStore

logger = logging.getLogger(__name__)


class Allocator(Protocol):
    def allocate(self) -> str: ...


class CreateResult:
    """Outcome of a successful create.

    Attributes:
        key: Key the document was stored under
        size: Number of blob bytes written
    """

    def __init__(self, key: str, size: int):
        self.key = key
        self.size = size

    def __repr__(self) -> str:
        return f"CreateResult(key={self.key!r}, size={self.size})"


class Document:
    """A complete document: blob content merged with its metadata."""

    def __init__(self, key: str, content: bytes, metadata: DocMetadata):
        self.key = key
        self.content = content
        self.metadata = metadata

    def __repr__(self) -> str:
        return f"Document(key={self.key!r}, size={len(self.content)})"


class OrphanReport:
    """Keys for which exactly one half of a document exists.

    Attributes:
        blob_orphans: Keys with a blob but no metadata record
        metadata_orphans: Keys with a metadata record but no blob
    """

    def __init__(self, blob_orphans: List[str], metadata_orphans: List[str]):
        self.blob_orphans = blob_orphans
        self.metadata_orphans = metadata_orphans

    @property
    def is_clean(self) -> bool:
        return not self.blob_orphans and not self.metadata_orphans

    def to_dict(self) -> Dict[str, List[str]]:
        return {
            "blob_orphans": list(self.blob_orphans),
            "metadata_orphans": list(self.metadata_orphans),
        }


class KeyLocks:
    """Table of per-key mutexes.

    An entry exists only while at least one thread holds or waits for the
    key's lock, so the table does not grow with the number of keys seen.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}
        self._users: Dict[str, int] = {}

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            self._users[key] = self._users.get(key, 0) + 1

        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                self._users[key] -= 1
                if self._users[key] == 0:
                    del self._users[key]
                    del self._locks[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


class DocumentStore:
    """Create, fetch and remove documents across both stores.

    Args:
        blobs: Blob store for document content
        metadata: Open metadata store
        allocator: Key source for documents created without a key
            (defaults to random UUIDs)
    """

    def __init__(
        self,
        blobs: BlobStore,
        metadata: MetadataStore,
        allocator: Optional[Allocator] = None,
    ):
        self.blobs = blobs
        self.metadata = metadata
        self.allocator = allocator if allocator is not None else KeyAllocator()
        self._key_locks = KeyLocks()

    def create(
        self,
        content: BlobSource,
        key: str = "",
        content_type: str = "",
        name: str = "",
        extractor: str = "",
        title: str = "",
        creation_date: str = "",
        modification_date: str = "",
    ) -> CreateResult:
        """Store a new document. Never overwrites an existing one.

        Args:
            content: Binary file-like object or bytes
            key: Document key; an empty key is replaced by an allocated one

        Returns:
            CreateResult with the key and byte count

        Raises:
            InvalidKeyError: If key can't be stored
            ConflictError: If a document blob already exists for key
            EmptyInputError: If content is empty (no metadata is written)
            StorageIOError: If the blob write fails (partial blob is kept)
            MetadataWriteError: If the metadata write fails (blob is kept)
        """
        if not key:
            key = self.allocator.allocate()

        with self._key_locks.hold(key):
            if self.blobs.exists(key):
                raise ConflictError(f"document already exists for key {key}", key)

            try:
                size = self.blobs.create(key, content)
            except EmptyInputError:
                self.blobs.discard(key)
                raise

            record = DocMetadata(
                timestamp=int(time.time()),
                name=name,
                content_type=content_type,
                extractor=extractor,
                title=title,
                creation_date=creation_date,
                modification_date=modification_date,
            )
            try:
                self.metadata.put(key, record)
            except DocumentStoreError as e:
                logger.warning("Blob orphaned for key %s: metadata write failed: %s", key, e)
                raise MetadataWriteError(key, e) from e

        logger.debug("Created document %s (%d bytes)", key, size)
        return CreateResult(key, size)

    def fetch(self, key: str) -> Document:
        """Read a document's content and metadata.

        Raises:
            NotFoundError: If the blob is absent, or the blob exists but the
                metadata record does not
            SerializationError: If the metadata record can't be decoded
            StorageIOError: If either read fails
        """
        content = self.blobs.read(key)
        record = self.metadata.get(key)
        return Document(key, content, record)

    def remove(self, key: str) -> None:
        """Delete a document's blob and then its metadata.

        Removing a blob orphan succeeds even though no metadata record is
        found.

        Raises:
            NotFoundError: If the blob is absent (metadata is left untouched)
            StorageIOError: If the blob can't be removed
            MetadataDeleteError: If the blob was removed but the metadata
                was not
        """
        with self._key_locks.hold(key):
            self.blobs.delete(key)
            try:
                self.metadata.delete(key)
            except NotFoundError:
                logger.info("Removed orphaned blob %s (no metadata record)", key)
            except DocumentStoreError as e:
                logger.warning("Metadata orphaned for key %s: delete failed: %s", key, e)
                raise MetadataDeleteError(key, e) from e

        logger.debug("Removed document %s", key)

    def find_orphans(self) -> OrphanReport:
        """Scan both stores for keys present in only one of them.

        Concurrent creates and removes may show up as transient orphans.
        """
        blob_keys = set(self.blobs.keys())
        metadata_keys = set(self.metadata.keys())
        return OrphanReport(
            blob_orphans=sorted(blob_keys - metadata_keys),
            metadata_orphans=sorted(metadata_keys - blob_keys),
        )

    def prune_orphans(self, report: OrphanReport) -> List[str]:
        """Delete the surviving half of each orphan in report.

        Each key is re-checked under its lock, so a document that became
        complete since the scan is left alone.

        Returns:
            Keys that were pruned
        """
        pruned = []
        for key in report.blob_orphans:
            with self._key_locks.hold(key):
                if self.metadata.exists(key) or not self.blobs.exists(key):
                    continue
                self.blobs.delete(key)
            logger.info("Pruned orphaned blob %s", key)
            pruned.append(key)

        for key in report.metadata_orphans:
            with self._key_locks.hold(key):
                if self.blobs.exists(key) or not self.metadata.exists(key):
                    continue
                self.metadata.delete(key)
            logger.info("Pruned orphaned metadata %s", key)
            pruned.append(key)
        return pruned
