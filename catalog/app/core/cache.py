"""Key/value cache with per-entry expiry.

Values are opaque bytes and every write carries a TTL in seconds; an entry
is absent from the moment its TTL elapses. The backend is chosen by
``build_cache`` and lives on ``app.state`` for the lifetime of the app.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable

import redis.asyncio as aioredis

from catalog.app.core.config import Settings


@dataclass
class _CacheEntry:
    """A stored value and the instant it stops being served."""

    value: bytes
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class CacheBackend(ABC):
    """Interface shared by the in-process and Redis caches."""

    @abstractmethod
    async def get(self, key: str) -> bytes | None:
        """Return the value under ``key``, or ``None`` when missing or expired."""

    @abstractmethod
    async def set(self, key: str, value: bytes, ttl: int) -> None:
        """Store ``value`` under ``key`` for ``ttl`` seconds, replacing any entry."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Drop ``key``. Missing keys are ignored."""

    async def exists(self, key: str) -> bool:
        return await self.get(key) is not None

    async def close(self) -> None:
        """Release connections held by the backend."""


class InMemoryCache(CacheBackend):
    """Process-local cache.

    Expired entries are removed when read, or in bulk by
    ``cleanup_expired``. The table is kept in LRU order and holds at most
    ``max_entries`` keys; a write past the bound evicts the least recently
    used key. Contents are not shared between workers.

    Args:
        max_entries: Upper bound on stored keys.
        clock: Returns the current time in seconds. Tests pass a fake one.
    """

    DEFAULT_MAX_ENTRIES = 1000

    def __init__(
        self,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if max_entries < 1:
            raise ValueError(f"max_entries must be at least 1, got {max_entries}")
        self._max_entries = max_entries
        self._entries: OrderedDict[str, _CacheEntry] = OrderedDict()
        self._lock = asyncio.Lock()
        self._clock = clock

    async def get(self, key: str) -> bytes | None:
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired(self._clock()):
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return entry.value

    async def set(self, key: str, value: bytes, ttl: int) -> None:
        if ttl < 1:
            raise ValueError(f"ttl must be at least 1 second, got {ttl}")
        async with self._lock:
            self._entries[key] = _CacheEntry(value, self._clock() + ttl)
            self._entries.move_to_end(key)
            while len(self._entries) > self._max_entries:
                self._entries.popitem(last=False)

    async def delete(self, key: str) -> None:
        async with self._lock:
            self._entries.pop(key, None)

    async def cleanup_expired(self) -> int:
        """Drop every expired entry and return how many were dropped."""
        async with self._lock:
            now = self._clock()
            stale = [k for k, entry in self._entries.items() if entry.is_expired(now)]
            for key in stale:
                del self._entries[key]
            return len(stale)

    def __len__(self) -> int:
        return len(self._entries)


class RedisCache(CacheBackend):
    """Cache shared by every worker through Redis.

    Writes use ``SETEX`` so Redis itself enforces the TTL. Connection
    errors are not caught here; they reach the request as a 500.
    """

    def __init__(self, redis_url: str, client: Any | None = None) -> None:
        self.redis_url = redis_url
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = aioredis.from_url(self.redis_url)
        return self._client

    async def get(self, key: str) -> bytes | None:
        return await self.client.get(key)

    async def set(self, key: str, value: bytes, ttl: int) -> None:
        await self.client.setex(key, ttl, value)

    async def delete(self, key: str) -> None:
        await self.client.delete(key)

    async def exists(self, key: str) -> bool:
        return bool(await self.client.exists(key))

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


def build_cache(config: Settings) -> CacheBackend:
    """Redis when ``redis_enabled`` is set, otherwise a process-local cache."""
    if config.redis_enabled:
        return RedisCache(config.redis_url)
    return InMemoryCache(max_entries=config.product_cache_max_entries)
