"""Service configuration: resolves on-disk locations and opens the stores."""

from pathlib import Path

from docstore.constants import DATA_DIR, DEFAULT_PORT, DOCUMENTS_DIR, METADATA_DB
from docstore.storage import BlobStore, DocumentStore, MetadataStore


class ServiceConfig:
    """Resolved settings for one docstore instance.

    Attributes:
        data_dir: Directory holding the document root and the database
        port: HTTP port to listen on
        verbose: Enable debug logging
        use_gzip: Compress HTTP responses

    Example:
        >>> config = ServiceConfig(Path("data"))
        >>> store = config.open_store()
    """

    def __init__(
        self,
        data_dir: Path = Path(DATA_DIR),
        port: int = DEFAULT_PORT,
        verbose: bool = False,
        use_gzip: bool = False,
    ):
        self.data_dir = Path(data_dir)
        self.port = port
        self.verbose = verbose
        self.use_gzip = use_gzip

    @property
    def documents_dir(self) -> Path:
        return self.data_dir / DOCUMENTS_DIR

    @property
    def db_path(self) -> Path:
        return self.data_dir / METADATA_DB

    def ensure_dirs(self) -> None:
        """Create the data directory and document root if missing.

        Raises:
            OSError: If the directories can't be created
        """
        self.documents_dir.mkdir(parents=True, exist_ok=True)

    def open_store(self) -> DocumentStore:
        """Create directories, open the metadata database and wire the stores.

        The caller owns the returned store's metadata connection and should
        close it with ``store.metadata.close()``.
        """
        self.ensure_dirs()
        metadata = MetadataStore(self.db_path)
        metadata.open()
        return DocumentStore(BlobStore(self.documents_dir), metadata)
