from __future__ import annotations

import logging
import time

from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)


def _declared_length(request: Request) -> int | None:
    raw = request.headers.get("content-length")
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.debug(
            "%s %s -> %d (%.1f ms)",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )
        return response


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """Reject schedule payloads whose declared body exceeds the configured limit."""

    def __init__(self, app, *, max_bytes: int) -> None:
        super().__init__(app)
        self.max_bytes = max(1, max_bytes)

    async def dispatch(self, request: Request, call_next) -> Response:
        length = _declared_length(request)
        if length is None or length <= self.max_bytes:
            return await call_next(request)

        logger.warning("Rejected %s %s: body of %d bytes", request.method, request.url.path, length)
        return JSONResponse(
            status_code=413,
            content={
                "message": f"Payload of {length} bytes exceeds the {self.max_bytes} byte limit",
                "details": {"limit": self.max_bytes, "received": length},
            },
        )
