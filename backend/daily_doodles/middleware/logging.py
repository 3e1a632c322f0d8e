"""
Daily Doodles Backend — Request Logging Middleware
====================================================

What:  One access-log line per HTTP request: method, path, status,
       duration, request id, client address.
How:   Level follows the status class (5xx ERROR, 4xx WARNING, else INFO)
       so alerting can key on severity. `/health` is skipped.

Privacy:
    Request bodies are never logged; they carry passwords and journal text.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from daily_doodles.middleware.request_id import request_id_var

logger = logging.getLogger("daily_doodles.access")

QUIET_PATHS = {"/health"}


def _level_for(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Typical durations:
        GET  /api/session      < 5ms
        GET  /api/dashboard    ~1-3s (entries and Gemini prompt in parallel)
        POST /api/editor/save  ~1-4s when an analysis runs first
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in QUIET_PATHS:
            return await call_next(request)

        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000

        client_ip = request.client.host if request.client else "unknown"
        rid = request_id_var.get("")
        logger.log(
            _level_for(response.status_code),
            "%s %s %d %.1fms [%s] from %s",
            request.method,
            path,
            response.status_code,
            duration_ms,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": response.status_code,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )
        return response
