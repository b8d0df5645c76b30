"""Constants used throughout docstore."""

# Version
VERSION = "0.1.0"

# Directory names
DATA_DIR = "data"
DOCUMENTS_DIR = "documents"

# File names
METADATA_DB = "doc.db"

# Metadata partition (SQLite table) name
METADATA_PARTITION = "DocMetadata"

# Server defaults
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8000
DOCUMENT_ROUTE = "/document"

# HTTP status codes
STATUS_OK = 200
STATUS_ERROR = 500
STATUS_FILE_EXISTS = 515  # Custom code for an auto-key collision

# Streaming copy chunk size (bytes)
COPY_CHUNK_SIZE = 64 * 1024

# Seconds to wait for the SQLite write lock
DB_LOCK_TIMEOUT = 1.0

# Exit codes
EXIT_SUCCESS = 0
EXIT_USER_ERROR = 1
EXIT_SYSTEM_ERROR = 2

# Request bodies larger than this are spooled to a temporary file
SPOOL_MAX_MEMORY = 1024 * 1024
