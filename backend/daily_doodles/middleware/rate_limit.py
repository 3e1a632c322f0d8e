"""
Daily Doodles Backend — Rate Limiting Middleware
==================================================

What:  Per-IP sliding-window request limit.
How:   Each client IP keeps the timestamps of its requests inside the last
       RATE_LIMIT_WINDOW seconds. A request arriving when RATE_LIMIT_REQUESTS
       timestamps are already in the window is answered with 429 and a
       Retry-After header, built from RateLimitExceededError.

Limits:
    State is in process memory, so the limit is per worker. The dashboard
    calls Gemini on every load, which is what this protects.
"""

import logging
import time
from collections import defaultdict, deque
from typing import Deque, Dict

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from daily_doodles.config import settings
from daily_doodles.exceptions import RateLimitExceededError

logger = logging.getLogger(__name__)

# Sweep idle IPs after this many admitted requests
CLEANUP_EVERY = 1000


class RateLimitMiddleware(BaseHTTPMiddleware):
    EXCLUDED_PATHS = {"/health", "/docs", "/openapi.json", "/redoc"}

    def __init__(self, app, **kwargs):
        super().__init__(app, **kwargs)
        self._requests: Dict[str, Deque[float]] = defaultdict(deque)
        self._admitted = 0

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        now = time.time()
        window_start = now - settings.rate_limit_window

        timestamps = self._requests[client_ip]
        while timestamps and timestamps[0] <= window_start:
            timestamps.popleft()

        if len(timestamps) >= settings.rate_limit_requests:
            retry_after = int(timestamps[0] + settings.rate_limit_window - now) + 1
            error = RateLimitExceededError(retry_after=retry_after)
            logger.warning(
                "Rate limit exceeded for %s: %d requests in %ds",
                client_ip,
                len(timestamps),
                settings.rate_limit_window,
            )
            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limit_exceeded",
                    "message": error.message,
                    "details": error.context,
                },
                headers={"Retry-After": str(error.retry_after)},
            )

        timestamps.append(now)
        self._admitted += 1
        if self._admitted % CLEANUP_EVERY == 0:
            self._cleanup(window_start)

        return await call_next(request)

    def _cleanup(self, window_start: float) -> None:
        idle = [ip for ip, ts in self._requests.items() if not ts or ts[-1] <= window_start]
        for ip in idle:
            del self._requests[ip]
        if idle:
            logger.debug("Dropped rate-limit state for %d idle clients", len(idle))
