"""Fixed-window rate limiting middleware.

Counters live in a process-local ``MemoryRateLimitStore`` unless Redis is
configured, in which case ``RedisRateLimitStore`` shares them across
instances. The memory store gives no cross-instance guarantee.
"""

import time
from collections.abc import Callable
from typing import Any, Protocol

import structlog
from cachetools import LRUCache
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from academy.redis_client import get_redis, redis_available

logger = structlog.get_logger()

# Paths exempt from rate limiting
_EXEMPT_PATHS = frozenset({"/health", "/ready", "/version"})
_EXEMPT_PREFIXES = ("/api/cron/",)


class RateLimitStore(Protocol):
    async def hit(self, key: str, window_seconds: int) -> int:
        """Increment ``key`` and return the count within the current window."""
        ...


class MemoryRateLimitStore:
    """In-process counters keyed by (client, path group).

    Held in a ``cachetools.LRUCache`` so the least recently seen clients are
    dropped once ``max_keys`` is reached.
    """

    def __init__(self, max_keys: int = 10_000, clock: Callable[[], float] = time.monotonic) -> None:
        self._counts = LRUCache(maxsize=max_keys)
        self._clock = clock

    async def hit(self, key: str, window_seconds: int) -> int:
        now = self._clock()
        count, expires_at = self._counts.get(key, (0, 0.0))
        if expires_at <= now:
            count, expires_at = 0, now + window_seconds
        count += 1
        self._counts[key] = (count, expires_at)
        return count

    def __len__(self) -> int:
        return len(self._counts)

    def clear(self) -> None:
        self._counts.clear()


class RedisRateLimitStore:
    """Shared counters via INCR + EXPIRE in one pipeline."""

    async def hit(self, key: str, window_seconds: int) -> int:
        window = int(time.time()) // window_seconds
        rate_key = f"ratelimit:{key}:{window}"
        pipe = get_redis().pipeline()
        pipe.incr(rate_key)
        pipe.expire(rate_key, window_seconds + 1)
        results: list[Any] = await pipe.execute()
        return int(results[0])


def path_group(path: str, limits: dict[str, int]) -> str:
    """Longest configured prefix matching ``path``, or ``"default"``."""
    best = "default"
    for prefix in limits:
        if (path == prefix or path.startswith(prefix + "/")) and (best == "default" or len(prefix) > len(best)):
            best = prefix
    return best


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Rate limit requests per client IP and path group."""

    def __init__(
        self,
        app: Any,  # noqa: ANN401
        requests_per_window: int = 100,
        window_seconds: int = 60,
        path_limits: dict[str, int] | None = None,
        store: RateLimitStore | None = None,
    ) -> None:
        super().__init__(app)
        self.requests_per_window = requests_per_window
        self.window_seconds = window_seconds
        self.path_limits = path_limits or {}
        self.memory_store = store or MemoryRateLimitStore()

    def _store(self) -> RateLimitStore:
        if redis_available():
            return RedisRateLimitStore()
        return self.memory_store

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        """Check the rate limit, return 429 if exceeded."""
        path = request.url.path
        if path in _EXEMPT_PATHS or path.startswith(_EXEMPT_PREFIXES) or request.method == "OPTIONS":
            return await call_next(request)

        group = path_group(path, self.path_limits)
        limit = self.path_limits.get(group, self.requests_per_window)
        client_ip = request.client.host if request.client else "unknown"
        key = f"{client_ip}:{group}"

        try:
            current_count = await self._store().hit(key, self.window_seconds)
        except RedisError:
            logger.warning("rate_limit_store_unavailable", exc_info=True)
            current_count = await self.memory_store.hit(key, self.window_seconds)

        if current_count > limit:
            return JSONResponse(
                status_code=429,
                content={"detail": "Too many requests. Please try again later."},
                headers={
                    "Retry-After": str(self.window_seconds),
                    "X-RateLimit-Remaining": "0",
                    "X-RateLimit-Limit": str(limit),
                },
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Remaining"] = str(max(0, limit - current_count))
        response.headers["X-RateLimit-Limit"] = str(limit)
        return response
