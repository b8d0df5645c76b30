"""File-backed blob storage for docstore.

Each document's raw bytes live in a single regular file directly under the
document root, named exactly by the document key. A zero-size file models a
failed or rejected write and reads as absent.
"""

import io
import os
from pathlib import Path
from typing import BinaryIO, List, Union

from docstore.constants import COPY_CHUNK_SIZE
from docstore.storage.errors import (
    ConflictError,
    EmptyInputError,
    InvalidKeyError,
    NotFoundError,
    StorageIOError,
)

BlobSource = Union[bytes, bytearray, memoryview, BinaryIO]


class BlobStore:
    """Key-addressed storage for document blobs.

    Storage layout:
        <root>/<key>      # Raw document bytes

    The store itself does not serialize writers: ``create`` checks for an
    existing blob and then writes, so callers that may race on a key must
    hold a per-key lock around the pair (see ``DocumentStore``).

    Attributes:
        root: Path to the document root directory

    Example:
        >>> store = BlobStore(Path("data/documents"))
        >>> store.create("report-1", b"hello")
        5
        >>> store.read("report-1")
        b'hello'
    """

    def __init__(self, root: Path) -> None:
        """Initialize the blob store.

        Args:
            root: Path to the document root directory

        Raises:
            ValueError: If root doesn't exist
        """
        self.root = Path(root)

        if not self.root.is_dir():
            raise ValueError(f"Document root not found: {root}")

    def exists(self, key: str) -> bool:
        """Check if a non-empty blob exists for key.

        Args:
            key: Document key

        Returns:
            True if the blob file exists and has non-zero size
        """
        try:
            self._validate_key(key)
        except InvalidKeyError:
            return False

        try:
            return self._get_blob_path(key).stat().st_size > 0
        except OSError:
            return False

    def create(self, key: str, content: BlobSource) -> int:
        """Create the blob for key by streaming content into it.

        Never overwrites a non-empty blob. A leftover zero-size file is
        treated as absent and truncated.

        Args:
            key: Document key
            content: Binary file-like object (anything with ``read``) or bytes

        Returns:
            Number of bytes written

        Raises:
            InvalidKeyError: If key can't be used as a file name
            ConflictError: If a non-empty blob already exists for key
            EmptyInputError: If no bytes were transferred (an empty file
                stays behind)
            StorageIOError: If the file can't be created or the copy fails
                (partially written bytes stay behind)
        """
        self._validate_key(key)

        if self.exists(key):
            raise ConflictError(f"file already exists for key {key}", key)

        reader: BinaryIO
        if isinstance(content, (bytes, bytearray, memoryview)):
            reader = io.BytesIO(content)
        else:
            reader = content

        blob_path = self._get_blob_path(key)
        try:
            f = open(blob_path, "wb")
        except OSError as e:
            raise StorageIOError(f"error creating file for key {key}: {e}", key) from e

        size = 0
        with f:
            try:
                while True:
                    chunk = reader.read(COPY_CHUNK_SIZE)
                    if not chunk:
                        break
                    f.write(chunk)
                    size += len(chunk)
                f.flush()
                os.fsync(f.fileno())
            except OSError as e:
                raise StorageIOError(
                    f"error copying body to file for key {key}: {e}", key
                ) from e

        if size == 0:
            raise EmptyInputError("no data uploaded", key)

        return size

    def read(self, key: str) -> bytes:
        """Read the blob for key.

        Args:
            key: Document key

        Returns:
            Raw document bytes

        Raises:
            InvalidKeyError: If key can't be used as a file name
            NotFoundError: If the blob is absent or empty
            StorageIOError: If the file can't be read
        """
        self._validate_key(key)

        if not self.exists(key):
            raise NotFoundError(f"key not found: {key}", key)

        try:
            with open(self._get_blob_path(key), "rb") as f:
                return f.read()
        except FileNotFoundError as e:
            # Removed between the check and the open
            raise NotFoundError(f"key not found: {key}", key) from e
        except OSError as e:
            raise StorageIOError(f"error reading file for key {key}: {e}", key) from e

    def delete(self, key: str) -> None:
        """Permanently remove the blob for key.

        Raises:
            InvalidKeyError: If key can't be used as a file name
            NotFoundError: If the blob is absent or empty
            StorageIOError: If the file can't be removed
        """
        self._validate_key(key)

        if not self.exists(key):
            raise NotFoundError(f"key not found: {key}", key)

        try:
            os.remove(self._get_blob_path(key))
        except FileNotFoundError as e:
            raise NotFoundError(f"key not found: {key}", key) from e
        except OSError as e:
            raise StorageIOError(f"error removing file for key {key}: {e}", key) from e

    def discard(self, key: str) -> bool:
        """Remove a zero-size placeholder left by a rejected upload.

        Returns:
            True if a placeholder was removed
        """
        self._validate_key(key)

        blob_path = self._get_blob_path(key)
        try:
            if blob_path.stat().st_size > 0:
                return False
            blob_path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageIOError(f"error removing file for key {key}: {e}", key) from e
        return True

    def keys(self) -> List[str]:
        """List the keys of all non-empty blobs, sorted."""
        try:
            entries = list(os.scandir(self.root))
        except OSError as e:
            raise StorageIOError(f"error listing document root {self.root}: {e}") from e

        found = []
        for entry in entries:
            try:
                if entry.is_file(follow_symlinks=False) and entry.stat().st_size > 0:
                    found.append(entry.name)
            except OSError:
                continue  # vanished while scanning
        return sorted(found)

    def _get_blob_path(self, key: str) -> Path:
        return self.root / key

    def _validate_key(self, key: str) -> None:
        """Validate that a key names a single file under the root.

        Raises:
            InvalidKeyError: If key is empty, a dot entry, or contains a
                path separator or NUL
        """
        if not isinstance(key, str):
            raise InvalidKeyError(f"Key must be string, got {type(key)}")

        if key in ("", ".", ".."):
            raise InvalidKeyError(f"Invalid document key: {key!r}", key)

        if "/" in key or "\\" in key or "\x00" in key:
            raise InvalidKeyError(
                f"Document key must not contain path separators: {key!r}", key
            )
