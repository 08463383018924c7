"""
Structured Error Handler Middleware
====================================
Returns consistent JSON errors with request IDs.
Catches unhandled exceptions that would otherwise return raw 500s.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from pixelcore.errors import InvalidBufferError

logger = logging.getLogger(__name__)


def _timestamp() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


async def invalid_buffer_handler(request: Request, exc: InvalidBufferError) -> JSONResponse:
    """InvalidBufferError -> 422 with the offending dimensions."""
    return JSONResponse(
        status_code=422,
        content={
            "error": "invalid_buffer",
            "message": str(exc),
            "width": exc.width,
            "height": exc.height,
            "length": exc.length,
            "request_id": getattr(request.state, "request_id", "unknown"),
            "path": request.url.path,
            "timestamp": _timestamp(),
        },
    )


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Catches unhandled exceptions -> structured JSON error response."""

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as exc:
            request_id = getattr(request.state, "request_id", "unknown")
            logger.exception("%s %s %s failed: %s", request_id, request.method, request.url.path, exc)

            return JSONResponse(
                status_code=500,
                content={
                    "error": "internal_server_error",
                    "message": str(exc)[:500],
                    "request_id": request_id,
                    "path": request.url.path,
                    "timestamp": _timestamp(),
                },
            )
