"""Unit tests for DocumentStore orchestration."""

import threading
import time

import pytest

from docstore.storage import (
    BlobStore,
    ConflictError,
    DocumentStore,
    EmptyInputError,
    InvalidKeyError,
    KeyAllocator,
    KeyLocks,
    MetadataDeleteError,
    MetadataStore,
    MetadataWriteError,
    NotFoundError,
    StorageIOError,
)
from docstore.storage.metadata_store import DocMetadata


class BrokenPutMetadataStore(MetadataStore):
    """Metadata store whose writes always fail."""

    def put(self, key: str, record: DocMetadata) -> None:
        raise StorageIOError("disk full", key)


class BrokenDeleteMetadataStore(MetadataStore):
    """Metadata store whose deletes always fail."""

    def delete(self, key: str) -> None:
        raise StorageIOError("database is locked", key)


class TestCreate:
    """Test document creation."""

    def test_create_with_key(self, doc_store: DocumentStore) -> None:
        result = doc_store.create(b"hello", key="my-key", content_type="text/plain")

        assert result.key == "my-key"
        assert result.size == 5
        assert doc_store.blobs.exists("my-key")
        assert doc_store.metadata.exists("my-key")

    def test_create_allocates_key(self, doc_store: DocumentStore) -> None:
        first = doc_store.create(b"a")
        second = doc_store.create(b"b")

        assert first.key == "doc-1"
        assert second.key == "doc-2"

    def test_create_records_metadata(self, doc_store: DocumentStore) -> None:
        before = int(time.time())
        doc_store.create(
            b"content",
            key="k",
            content_type="application/pdf",
            name="paper.pdf",
            extractor="tika",
            title="A Paper",
            creation_date="2020-01-01",
            modification_date="2020-02-02",
        )

        meta = doc_store.metadata.get("k")
        assert meta.timestamp >= before
        assert meta.content_type == "application/pdf"
        assert meta.name == "paper.pdf"
        assert meta.extractor == "tika"
        assert meta.title == "A Paper"
        assert meta.creation_date == "2020-01-01"
        assert meta.modification_date == "2020-02-02"

    def test_create_conflict_keeps_original(self, doc_store: DocumentStore) -> None:
        doc_store.create(b"original", key="k", title="first")

        with pytest.raises(ConflictError):
            doc_store.create(b"replacement", key="k", title="second")

        doc = doc_store.fetch("k")
        assert doc.content == b"original"
        assert doc.metadata.title == "first"

    def test_create_empty_input(self, doc_store: DocumentStore) -> None:
        with pytest.raises(EmptyInputError):
            doc_store.create(b"", key="empty")

        assert not doc_store.metadata.exists("empty")
        assert not (doc_store.blobs.root / "empty").exists()
        with pytest.raises(NotFoundError):
            doc_store.fetch("empty")

    def test_create_invalid_key(self, doc_store: DocumentStore) -> None:
        with pytest.raises(InvalidKeyError):
            doc_store.create(b"data", key="../escape")

    def test_metadata_failure_leaves_blob_orphan(
        self, blob_store: BlobStore, tmp_path
    ) -> None:
        metadata = BrokenPutMetadataStore(tmp_path / "broken.db")
        metadata.open()
        store = DocumentStore(blob_store, metadata)

        with pytest.raises(MetadataWriteError) as exc_info:
            store.create(b"data", key="orphan")

        assert exc_info.value.key == "orphan"
        assert isinstance(exc_info.value.cause, StorageIOError)
        assert blob_store.exists("orphan")
        with pytest.raises(NotFoundError):
            store.fetch("orphan")
        metadata.close()


class TestFetch:
    """Test document reads."""

    def test_fetch_round_trip(self, doc_store: DocumentStore) -> None:
        before = int(time.time())
        doc_store.create(b'{"a":1}', key="k", content_type="application/json")

        doc = doc_store.fetch("k")
        assert doc.key == "k"
        assert doc.content == b'{"a":1}'
        assert doc.metadata.content_type == "application/json"
        assert doc.metadata.timestamp >= before

    def test_fetch_missing(self, doc_store: DocumentStore) -> None:
        with pytest.raises(NotFoundError):
            doc_store.fetch("missing")

    def test_fetch_without_metadata_fails(self, doc_store: DocumentStore) -> None:
        """Test that a blob without metadata is never served as a document."""
        doc_store.blobs.create("blob-only", b"data")

        with pytest.raises(NotFoundError, match="no metadata"):
            doc_store.fetch("blob-only")


class TestRemove:
    """Test document removal."""

    def test_remove(self, doc_store: DocumentStore) -> None:
        doc_store.create(b"data", key="k")
        doc_store.remove("k")

        assert not doc_store.metadata.exists("k")
        with pytest.raises(NotFoundError):
            doc_store.fetch("k")

    def test_remove_missing(self, doc_store: DocumentStore) -> None:
        with pytest.raises(NotFoundError):
            doc_store.remove("missing")

    def test_remove_missing_blob_leaves_metadata(self, doc_store: DocumentStore) -> None:
        doc_store.metadata.put("meta-only", DocMetadata(timestamp=1))

        with pytest.raises(NotFoundError):
            doc_store.remove("meta-only")

        assert doc_store.metadata.exists("meta-only")

    def test_remove_blob_orphan(self, doc_store: DocumentStore) -> None:
        doc_store.blobs.create("blob-only", b"data")

        doc_store.remove("blob-only")
        assert not doc_store.blobs.exists("blob-only")

    def test_metadata_delete_failure_leaves_metadata_orphan(
        self, blob_store: BlobStore, tmp_path
    ) -> None:
        metadata = BrokenDeleteMetadataStore(tmp_path / "broken.db")
        metadata.open()
        store = DocumentStore(blob_store, metadata)
        store.create(b"data", key="k")

        with pytest.raises(MetadataDeleteError):
            store.remove("k")

        assert not blob_store.exists("k")
        assert metadata.exists("k")
        assert store.find_orphans().metadata_orphans == ["k"]
        metadata.close()

    def test_recreate_after_remove(self, doc_store: DocumentStore) -> None:
        doc_store.create(b"one", key="k")
        doc_store.remove("k")
        doc_store.create(b"two", key="k")

        assert doc_store.fetch("k").content == b"two"


class TestOrphans:
    """Test the orphan scan and prune."""

    def test_clean_store(self, doc_store: DocumentStore) -> None:
        doc_store.create(b"data", key="k")

        report = doc_store.find_orphans()
        assert report.is_clean
        assert report.to_dict() == {"blob_orphans": [], "metadata_orphans": []}

    def test_find_and_prune(self, doc_store: DocumentStore) -> None:
        doc_store.create(b"data", key="complete")
        doc_store.blobs.create("blob-only", b"data")
        doc_store.metadata.put("meta-only", DocMetadata(timestamp=1))

        report = doc_store.find_orphans()
        assert report.blob_orphans == ["blob-only"]
        assert report.metadata_orphans == ["meta-only"]

        pruned = doc_store.prune_orphans(report)
        assert sorted(pruned) == ["blob-only", "meta-only"]
        assert doc_store.find_orphans().is_clean
        assert doc_store.fetch("complete").content == b"data"

    def test_prune_skips_repaired_keys(self, doc_store: DocumentStore) -> None:
        doc_store.blobs.create("k", b"data")
        report = doc_store.find_orphans()

        doc_store.metadata.put("k", DocMetadata(timestamp=1))

        assert doc_store.prune_orphans(report) == []
        assert doc_store.fetch("k").content == b"data"


class TestKeyAllocation:
    """Test random key generation."""

    def test_allocated_keys_are_unique(self) -> None:
        allocator = KeyAllocator()
        keys = {allocator.allocate() for _ in range(10000)}
        assert len(keys) == 10000

    def test_allocated_key_is_uuid4(self) -> None:
        key = KeyAllocator().allocate()
        assert len(key) == 36
        assert key[14] == "4"

    def test_default_allocator(self, blob_store: BlobStore, metadata_store: MetadataStore) -> None:
        store = DocumentStore(blob_store, metadata_store)
        result = store.create(b"data")

        assert len(result.key) == 36
        assert store.fetch(result.key).content == b"data"


class TestConcurrency:
    """Test per-key serialization."""

    def test_concurrent_creates_same_key(self, doc_store: DocumentStore) -> None:
        """Test that exactly one of many racing creates wins."""
        barrier = threading.Barrier(10)
        outcomes = []
        lock = threading.Lock()

        def worker(n: int) -> None:
            barrier.wait()
            try:
                doc_store.create(f"writer-{n}".encode(), key="contested")
                result = "ok"
            except ConflictError:
                result = "conflict"
            with lock:
                outcomes.append((n, result))

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        winners = [n for n, result in outcomes if result == "ok"]
        assert len(winners) == 1
        assert [r for _, r in outcomes].count("conflict") == 9
        assert doc_store.fetch("contested").content == f"writer-{winners[0]}".encode()

    def test_concurrent_creates_distinct_keys(self, doc_store: DocumentStore) -> None:
        def worker(n: int) -> None:
            for i in range(10):
                doc_store.create(b"data", key=f"w{n}-{i}")

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(doc_store.metadata.keys()) == 50
        assert doc_store.find_orphans().is_clean

    def test_key_locks_reclaimed(self) -> None:
        locks = KeyLocks()

        with locks.hold("a"):
            with locks.hold("b"):
                assert len(locks) == 2
        assert len(locks) == 0
