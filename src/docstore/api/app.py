"""HTTP API for docstore.

Routes (all under ``/document``):

    GET    /document/{key}   fetch a document and its metadata
    POST   /document         create a document under a new random key
    POST   /document/{key}   create a document under the given key
    DELETE /document/{key}   remove a document

Every response is a JSON envelope (see ``DocumentResponse``). Failures use
status 500, except a key collision on the random-key route which uses 515.
Metadata for a new document comes from the ``Content-Type`` header and the
``name``, ``extractor``, ``dc:title``, ``dcterms:created`` and
``dcterms:modified`` query parameters.
"""

import logging
import tempfile

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.middleware.gzip import GZipMiddleware

from docstore import __version__
from docstore.api.middleware import AccessLogMiddleware, CatchAllExceptionMiddleware
from docstore.api.models import DocumentResponse
from docstore.constants import (
    DOCUMENT_ROUTE,
    SPOOL_MAX_MEMORY,
    STATUS_ERROR,
    STATUS_FILE_EXISTS,
    STATUS_OK,
)
from docstore.storage import (
    ConflictError,
    DocumentStore,
    DocumentStoreError,
    EmptyInputError,
    InvalidKeyError,
    MetadataDeleteError,
    MetadataWriteError,
    NotFoundError,
    SerializationError,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix=DOCUMENT_ROUTE)


def create_app(store: DocumentStore, use_gzip: bool = False) -> FastAPI:
    """Build the FastAPI application serving store.

    Args:
        store: Document store the routes operate on
        use_gzip: Compress responses for clients that accept gzip
    """
    app = FastAPI(title="docstore", version=__version__)
    app.state.store = store

    app.add_middleware(CatchAllExceptionMiddleware)
    if use_gzip:
        app.add_middleware(GZipMiddleware, minimum_size=500, compresslevel=5)
    app.add_middleware(AccessLogMiddleware)

    app.include_router(router)
    return app


def _store(request: Request) -> DocumentStore:
    return request.app.state.store


def _respond(status: int, body: DocumentResponse) -> JSONResponse:
    return JSONResponse(status_code=status, content=body.to_json())


@router.get("/{key}")
async def get_document(key: str, request: Request) -> JSONResponse:
    """Get a document by key. Contents are returned in the ``document`` field."""
    try:
        doc = await run_in_threadpool(_store(request).fetch, key)
    except (NotFoundError, InvalidKeyError) as e:
        return _respond(STATUS_ERROR, DocumentResponse.failure(key, "key not found", e))
    except SerializationError as e:
        return _respond(STATUS_ERROR, DocumentResponse.failure(key, "error reading metadata", e))
    except DocumentStoreError as e:
        return _respond(STATUS_ERROR, DocumentResponse.failure(key, "error reading data", e))

    return _respond(STATUS_OK, DocumentResponse.from_document(doc))


@router.post("")
@router.post("/", include_in_schema=False)
async def new_document(request: Request) -> JSONResponse:
    """Add a new document under a randomly assigned key."""
    status, body = await _save_document(request, "")
    if status != STATUS_OK and body.message == "file exists":
        status = STATUS_FILE_EXISTS
    return _respond(status, body)


@router.post("/{key}")
async def new_document_with_key(key: str, request: Request) -> JSONResponse:
    """Add a new document under the given key."""
    status, body = await _save_document(request, key)
    return _respond(status, body)


@router.delete("/{key}")
async def delete_document(key: str, request: Request) -> JSONResponse:
    """Remove a document's content and metadata."""
    try:
        await run_in_threadpool(_store(request).remove, key)
    except MetadataDeleteError as e:
        return _respond(STATUS_ERROR, DocumentResponse.failure(key, "error removing metadata", e))
    except DocumentStoreError as e:
        return _respond(STATUS_ERROR, DocumentResponse.failure(key, "error removing document", e))

    return _respond(STATUS_OK, DocumentResponse.success(key, "removed document"))


async def _save_document(request: Request, key: str):
    """Spool the request body and store it with its metadata.

    Returns:
        Tuple of (status code, response envelope)
    """
    params = request.query_params
    with tempfile.SpooledTemporaryFile(max_size=SPOOL_MAX_MEMORY) as body:
        async for chunk in request.stream():
            body.write(chunk)
        body.seek(0)

        try:
            result = await run_in_threadpool(
                _store(request).create,
                body,
                key=key,
                content_type=request.headers.get("content-type", ""),
                name=params.get("name", ""),
                extractor=params.get("extractor", ""),
                title=params.get("dc:title", ""),
                creation_date=params.get("dcterms:created", ""),
                modification_date=params.get("dcterms:modified", ""),
            )
        except ConflictError as e:
            return STATUS_ERROR, DocumentResponse.failure(e.key, "file exists", e)
        except EmptyInputError as e:
            return STATUS_ERROR, DocumentResponse.failure("", "input error", e)
        except InvalidKeyError as e:
            return STATUS_ERROR, DocumentResponse.failure(key, "invalid key", e)
        except MetadataWriteError as e:
            return STATUS_ERROR, DocumentResponse.failure(e.key, "file metadata write error", e)
        except DocumentStoreError as e:
            return STATUS_ERROR, DocumentResponse.failure(e.key or key, "file write error", e)

    return STATUS_OK, DocumentResponse.success(
        result.key, f"document saved ({result.size} bytes)"
    )
