import time
from collections.abc import Callable

import structlog
from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from .metrics import RATE_LIMITED_TOTAL

logger = structlog.get_logger(__name__)

_EXEMPT_PATHS = frozenset({"/metrics"})


class FixedWindowCounter:
    """In-memory request counter keyed by client identifier and time bucket."""

    def __init__(self, max_requests: int, window_seconds: int, clock: Callable[[], float] = time.time) -> None:
        self.max_requests = max_requests
        self.window = max(window_seconds, 1)
        self._clock = clock
        self._counts: dict[str, tuple[int, int]] = {}

    def hit(self, identifier: str) -> tuple[bool, int, int]:
        """Register one request; returns (allowed, remaining, retry_after_seconds)."""
        now = int(self._clock())
        bucket = now // self.window
        current_bucket, count = self._counts.get(identifier, (bucket, 0))
        if current_bucket != bucket:
            count = 0
        count += 1
        self._counts[identifier] = (bucket, count)
        if len(self._counts) > 10_000:
            self._evict(bucket)

        retry_after = max(bucket * self.window + self.window - now, 1)
        return count <= self.max_requests, max(self.max_requests - count, 0), retry_after

    def _evict(self, bucket: int) -> None:
        for key in [k for k, (b, _) in self._counts.items() if b != bucket]:
            self._counts.pop(key, None)


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, *, max_requests: int, window_seconds: int) -> None:
        super().__init__(app)
        self.counter = FixedWindowCounter(max_requests, window_seconds)

    async def dispatch(self, request: Request, call_next):
        if request.method.upper() == "OPTIONS" or request.url.path in _EXEMPT_PATHS:
            return await call_next(request)

        client_host = request.client.host if request.client else None
        identifier = f"ip:{client_host or 'unknown'}"
        allowed, remaining, retry_after = self.counter.hit(identifier)

        if not allowed:
            RATE_LIMITED_TOTAL.inc()
            logger.warning("rate_limit_exceeded", client=identifier, path=request.url.path)
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={
                    "error": "Too many requests",
                    "message": "Too many requests from this IP, please try again later.",
                },
                headers={"Retry-After": str(retry_after)},
            )

        response = await call_next(request)
        response.headers["RateLimit-Limit"] = str(self.counter.max_requests)
        response.headers["RateLimit-Remaining"] = str(remaining)
        return response
