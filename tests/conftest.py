"""Pytest configuration and shared fixtures."""

from pathlib import Path
from typing import Iterator

import pytest

from docstore.storage import BlobStore, DocumentStore, MetadataStore


class SequentialAllocator:
    """Deterministic key source: doc-1, doc-2, ..."""

    def __init__(self, prefix: str = "doc") -> None:
        self.prefix = prefix
        self.count = 0

    def allocate(self) -> str:
        self.count += 1
        return f"{self.prefix}-{self.count}"


@pytest.fixture
def documents_dir(tmp_path: Path) -> Path:
    """Create a temporary document root."""
    root = tmp_path / "data" / "documents"
    root.mkdir(parents=True)
    return root


@pytest.fixture
def blob_store(documents_dir: Path) -> BlobStore:
    return BlobStore(documents_dir)


@pytest.fixture
def metadata_store(tmp_path: Path) -> Iterator[MetadataStore]:
    """Open a metadata store on a temporary database."""
    store = MetadataStore(tmp_path / "data" / "doc.db")
    (tmp_path / "data").mkdir(exist_ok=True)
    store.open()
    yield store
    store.close()


@pytest.fixture
def allocator() -> SequentialAllocator:
    return SequentialAllocator()


@pytest.fixture
def doc_store(
    blob_store: BlobStore,
    metadata_store: MetadataStore,
    allocator: SequentialAllocator,
) -> DocumentStore:
    """Document store over isolated stores with deterministic keys."""
    return DocumentStore(blob_store, metadata_store, allocator=allocator)
