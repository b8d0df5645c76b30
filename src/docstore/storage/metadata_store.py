"""SQLite metadata store for docstore.

Document metadata records live in a single key-value table (the
``DocMetadata`` partition) of an embedded SQLite database, one row per
document key. Values are JSON-encoded records; the encoding never leaves
this module.
"""

import json
import sqlite3
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

from docstore.constants import DB_LOCK_TIMEOUT, METADATA_PARTITION
from docstore.storage.errors import (
    NotFoundError,
    SerializationError,
    StorageIOError,
)


class DocMetadata:
    """Descriptive metadata stored alongside a document blob.

    Attributes:
        timestamp: Creation time in integer seconds since the epoch
        name: Display name supplied by the uploader
        content_type: MIME type of the blob
        extractor: Tag of the tool that extracted the content
        title: Document title (dc:title)
        creation_date: Source creation date (dcterms:created)
        modification_date: Source modification date (dcterms:modified)
    """

    FIELDS = (
        "timestamp",
        "name",
        "content_type",
        "extractor",
        "title",
        "creation_date",
        "modification_date",
    )

    def __init__(
        self,
        timestamp: int,
        name: str = "",
        content_type: str = "",
        extractor: str = "",
        title: str = "",
        creation_date: str = "",
        modification_date: str = "",
    ):
        self.timestamp = timestamp
        self.name = name
        self.content_type = content_type
        self.extractor = extractor
        self.title = title
        self.creation_date = creation_date
        self.modification_date = modification_date

    def __repr__(self) -> str:
        return f"DocMetadata(timestamp={self.timestamp}, name={self.name!r}, content_type={self.content_type!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DocMetadata):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {field: getattr(self, field) for field in self.FIELDS}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DocMetadata":
        """Build a record from its dictionary representation.

        Raises:
            SerializationError: If the timestamp is missing or a field has
                the wrong type
        """
        if not isinstance(data, dict) or not isinstance(data.get("timestamp"), int):
            raise SerializationError(f"Malformed metadata record: {data!r}")

        values = {}
        for field in cls.FIELDS[1:]:
            value = data.get(field, "")
            if not isinstance(value, str):
                raise SerializationError(f"Metadata field {field} must be a string")
            values[field] = value
        return cls(timestamp=data["timestamp"], **values)


class MetadataStore:
    """Transactional per-key metadata storage.

    One SQLite connection is shared by all threads; a lock serializes access
    so every put, get and delete runs as its own transaction and readers never
    observe a partial write. No operation spans two keys.

    Attributes:
        db_path: Path to the SQLite database file
        partition: Name of the table holding the records
        conn: Active database connection (if open)

    Example:
        >>> with MetadataStore(Path("data/doc.db")) as store:
        ...     store.put("report-1", DocMetadata(timestamp=1700000000))
        ...     store.get("report-1").timestamp
        1700000000
    """

    def __init__(self, db_path: Path, partition: str = METADATA_PARTITION) -> None:
        """Initialize the metadata store.

        Args:
            db_path: Path to the SQLite database file
            partition: Table name for the metadata partition
        """
        self.db_path = Path(db_path)
        self.partition = partition
        self.conn: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()

    def open(self) -> None:
        """Open the database connection and create the partition.

        Raises:
            StorageIOError: If the database can't be opened
        """
        with self._lock:
            if self.conn is not None:
                return  # Already open

            try:
                self.conn = sqlite3.connect(
                    str(self.db_path),
                    timeout=DB_LOCK_TIMEOUT,
                    check_same_thread=False,
                )
            except sqlite3.Error as e:
                raise StorageIOError(
                    f"Unable to open the metadata database {self.db_path}: {e}"
                ) from e

            self.init_schema()

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self.conn is not None:
                self.conn.close()
                self.conn = None

    def __enter__(self) -> "MetadataStore":
        self.open()
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def init_schema(self) -> None:
        """Create the partition table. Safe to call on an existing database.

        Raises:
            StorageIOError: If the table can't be created
        """
        conn = self._connection()
        with self._lock:
            try:
                conn.execute(
                    f'CREATE TABLE IF NOT EXISTS "{self.partition}" '
                    "(key TEXT PRIMARY KEY, value BLOB NOT NULL)"
                )
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                raise StorageIOError(
                    f"Unable to create the metadata partition {self.partition}: {e}"
                ) from e

    def put(self, key: str, record: DocMetadata) -> None:
        """Store the record for key, replacing any previous value.

        Raises:
            SerializationError: If the record can't be encoded
            StorageIOError: If the write fails
        """
        value = self._encode(record)
        conn = self._connection()
        with self._lock:
            try:
                conn.execute(
                    f'INSERT OR REPLACE INTO "{self.partition}" (key, value) VALUES (?, ?)',
                    (key, value),
                )
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                raise StorageIOError(f"Failed to save metadata for key {key}: {e}", key) from e

    def get(self, key: str) -> DocMetadata:
        """Read the record for key.

        Raises:
            NotFoundError: If no record exists for key
            SerializationError: If the stored value can't be decoded
            StorageIOError: If the read fails
        """
        conn = self._connection()
        with self._lock:
            try:
                row = conn.execute(
                    f'SELECT value FROM "{self.partition}" WHERE key = ?',
                    (key,),
                ).fetchone()
            except sqlite3.Error as e:
                raise StorageIOError(f"Failed to read metadata for key {key}: {e}", key) from e

        if row is None:
            raise NotFoundError(f"no metadata for key {key}", key)

        return self._decode(key, row[0])

    def delete(self, key: str) -> None:
        """Remove the record for key.

        Raises:
            NotFoundError: If no record exists for key
            StorageIOError: If the delete fails
        """
        conn = self._connection()
        with self._lock:
            try:
                cursor = conn.execute(
                    f'DELETE FROM "{self.partition}" WHERE key = ?',
                    (key,),
                )
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                raise StorageIOError(f"Failed to delete metadata for key {key}: {e}", key) from e

        if cursor.rowcount == 0:
            raise NotFoundError(f"no metadata for key {key}", key)

    def exists(self, key: str) -> bool:
        conn = self._connection()
        with self._lock:
            try:
                row = conn.execute(
                    f'SELECT 1 FROM "{self.partition}" WHERE key = ?',
                    (key,),
                ).fetchone()
            except sqlite3.Error as e:
                raise StorageIOError(f"Failed to query metadata for key {key}: {e}", key) from e
        return row is not None

    def keys(self) -> List[str]:
        """List every key with a metadata record, sorted."""
        conn = self._connection()
        with self._lock:
            try:
                rows = conn.execute(
                    f'SELECT key FROM "{self.partition}" ORDER BY key'
                ).fetchall()
            except sqlite3.Error as e:
                raise StorageIOError(f"Failed to list metadata keys: {e}") from e
        return [row[0] for row in rows]

    def _connection(self) -> sqlite3.Connection:
        if self.conn is None:
            raise StorageIOError("Database not open")
        return self.conn

    @staticmethod
    def _encode(record: DocMetadata) -> bytes:
        try:
            return json.dumps(record.to_dict(), sort_keys=True).encode("utf-8")
        except (TypeError, ValueError, AttributeError) as e:
            raise SerializationError(f"Unable to encode metadata record: {e}") from e

    @staticmethod
    def _decode(key: str, value: bytes) -> DocMetadata:
        try:
            data = json.loads(bytes(value).decode("utf-8"))
        except (TypeError, ValueError) as e:
            raise SerializationError(f"Unable to decode metadata for key {key}: {e}", key) from e
        return DocMetadata.from_dict(data)
