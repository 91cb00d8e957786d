"""Rate limit storage backends.

Both backends count requests per bucket key in a fixed window of
``window_seconds`` that starts with the first request of the bucket.
The ceiling is passed per call because it depends on the caller
(premium subjects get a higher one under the same policy).

A fixed window can admit up to twice the ceiling in a short span that
straddles a reset: a full window ending just before the boundary plus a
full one starting at it.
"""

import asyncio
import math
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from typing import Any, Callable, Optional

import redis
import redis.asyncio as aioredis

from catalog.app.core.logging import get_logger
from catalog.app.middleware.rate_limit.models import RateLimitEntry, RateLimitResult

logger = get_logger(__name__)


class RateLimitBackend(ABC):
    """Abstract base class for rate limit backends."""

    def __init__(self, window_seconds: int = 60):
        self.window_seconds = window_seconds

    @abstractmethod
    async def is_allowed(self, key: str, limit: int) -> RateLimitResult:
        """Count a request against ``key`` and decide whether it is allowed.

        Args:
            key: Bucket key (policy name + subject key)
            limit: Maximum requests allowed in the window

        Returns:
            RateLimitResult with allowed status and metadata
        """

    async def cleanup(self) -> None:
        """Clean up expired entries."""

    async def close(self) -> None:
        """Release backend resources."""


class InMemoryRateLimiter(RateLimitBackend):
    """In-memory fixed-window rate limiter.

    Suitable for single-instance deployments. The bucket table is an
    OrderedDict kept in LRU order and bounded by ``max_entries``.
    """

    DEFAULT_MAX_ENTRIES = 10000

    def __init__(
        self,
        window_seconds: int = 60,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.time,
    ):
        super().__init__(window_seconds)
        self._max_entries = max_entries
        self._clock = clock
        self._storage: OrderedDict[str, RateLimitEntry] = OrderedDict()
        self._lock = asyncio.Lock()

    def _enforce_lru_limit(self) -> None:
        """Evict the least recently used 20% once the table is full."""
        if len(self._storage) >= self._max_entries:
            remove_count = max(1, int(self._max_entries * 0.2))
            for _ in range(min(remove_count, len(self._storage))):
                self._storage.popitem(last=False)

    async def is_allowed(self, key: str, limit: int) -> RateLimitResult:
        async with self._lock:
            now = self._clock()

            entry = self._storage.get(key)
            if entry is None or now - entry.window_start >= self.window_seconds:
                if entry is None:
                    self._enforce_lru_limit()
                entry = RateLimitEntry(requests=0, window_start=now)
                self._storage[key] = entry
            self._storage.move_to_end(key)

            reset_time = int(entry.window_start + self.window_seconds)

            if entry.requests >= limit:
                elapsed = now - entry.window_start
                return RateLimitResult(
                    allowed=False,
                    limit=limit,
                    remaining=0,
                    reset_time=reset_time,
                    retry_after=max(1, math.ceil(self.window_seconds - elapsed)),
                )

            entry.requests += 1
            return RateLimitResult(
                allowed=True,
                limit=limit,
                remaining=limit - entry.requests,
                reset_time=reset_time,
            )

    async def cleanup(self) -> None:
        async with self._lock:
            now = self._clock()
            expired = [
                key for key, entry in self._storage.items()
                if now - entry.window_start >= self.window_seconds
            ]
            for key in expired:
                del self._storage[key]


class RedisRateLimiter(RateLimitBackend):
    """Redis-based distributed rate limiter.

    ``INCR`` is atomic per key, so concurrent requests across instances
    never over-count the window. The first increment of a window sets the
    key expiry (``EXPIRE ... NX``), which also marks the window end.
    """

    def __init__(
        self,
        redis_client: Optional[Any] = None,
        redis_url: str = "redis://localhost:6379/0",
        window_seconds: int = 60,
    ):
        super().__init__(window_seconds)
        self._redis_url = redis_url
        self._redis = redis_client

    def _get_redis(self) -> Any:
        if self._redis is None:
            self._redis = aioredis.from_url(self._redis_url)
        return self._redis

    async def is_allowed(self, key: str, limit: int) -> RateLimitResult:
        try:
            pipe = self._get_redis().pipeline()
            pipe.incr(key)
            pipe.expire(key, self.window_seconds, nx=True)
            pipe.ttl(key)
            count, _, ttl = await pipe.execute()
        except redis.RedisError as e:
            logger.error(f"Redis rate limit check failed: {e}")
            raise

        ttl = ttl if ttl and ttl > 0 else self.window_seconds
        reset_time = int(time.time() + ttl)

        if count > limit:
            return RateLimitResult(
                allowed=False,
                limit=limit,
                remaining=0,
                reset_time=reset_time,
                retry_after=ttl,
            )

        return RateLimitResult(
            allowed=True,
            limit=limit,
            remaining=max(0, limit - count),
            reset_time=reset_time,
        )

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
