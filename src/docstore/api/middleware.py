import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from docstore.constants import STATUS_ERROR

logger = logging.getLogger(__name__)


class CatchAllExceptionMiddleware(BaseHTTPMiddleware):
    """Turn any unhandled handler exception into a 500 error envelope."""

    async def dispatch(self, request, call_next):
        try:
            return await call_next(request)
        except Exception as exc:
            logger.error(f"{type(exc).__name__} on {request.url.path} ({STATUS_ERROR}): {exc}", exc_info=True)
            return JSONResponse(
                status_code=STATUS_ERROR,
                content={
                    "ok": False,
                    "message": "internal error",
                    "error": f"{type(exc).__name__}: {exc}",
                },
            )


class AccessLogMiddleware(BaseHTTPMiddleware):
    """Log one line per request with status and latency."""

    async def dispatch(self, request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "%s %s %d %.1fms",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )
        return response
