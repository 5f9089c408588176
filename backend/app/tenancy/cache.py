"""Process-wide cache for tenant-scoped list reads.

Keys always come from ``namespaced_cache_key``; this module never builds
keys itself. Values are JSON-compatible so the in-memory and Redis backends
are interchangeable.
"""

import copy
import json
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

import redis.asyncio as redis_asyncio

from backend.app.config import get_settings

logger = logging.getLogger(__name__)


class TenantCache(Protocol):
    """Cache interface."""

    async def get(self, key: str) -> Any | None:
        """Cached value if fresh, None otherwise."""
        ...

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        ...

    async def delete(self, key: str) -> None:
        ...


@dataclass
class CacheEntry:
    """Cached value with metadata."""

    value: Any
    cached_at: float
    ttl_seconds: int

    def is_fresh(self, now: float) -> bool:
        """Check if cache entry is still valid."""
        return (now - self.cached_at) < self.ttl_seconds


class InMemoryTenantCache:
    """In-memory TTL cache.

    Values are deep-copied on the way in and out so callers can never mutate
    another request's cached list.
    """

    def __init__(self, clock: Callable[[], float] | None = None) -> None:
        self._cache: dict[str, CacheEntry] = {}
        self._clock = clock or time.monotonic

    async def get(self, key: str) -> Any | None:
        entry = self._cache.get(key)
        if entry and entry.is_fresh(self._clock()):
            return copy.deepcopy(entry.value)
        elif entry:
            # Expired - remove
            del self._cache[key]
        return None

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        if ttl_seconds <= 0:
            return
        self._cache[key] = CacheEntry(
            value=copy.deepcopy(value), cached_at=self._clock(), ttl_seconds=ttl_seconds
        )

    async def delete(self, key: str) -> None:
        self._cache.pop(key, None)

    def clear(self) -> None:
        self._cache.clear()


class RedisTenantCache:
    """Redis-backed cache storing JSON strings with SET EX."""

    def __init__(self, client: redis_asyncio.Redis, prefix: str = "tenant-cache") -> None:
        self._redis = client
        self._prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self._prefix}:{key}"

    async def get(self, key: str) -> Any | None:
        raw = await self._redis.get(self._key(key))
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(
                "Discarding undecodable cache entry", extra={"structured": {"key": key}}
            )
            await self._redis.delete(self._key(key))
            return None

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        if ttl_seconds <= 0:
            return
        await self._redis.set(self._key(key), json.dumps(value), ex=ttl_seconds)

    async def delete(self, key: str) -> None:
        await self._redis.delete(self._key(key))


_cache: TenantCache | None = None


def get_cache() -> TenantCache:
    """Get the global cache: Redis when REDIS_URL is set, in-memory otherwise."""
    global _cache
    if _cache is None:
        settings = get_settings()
        if settings.redis_url:
            _cache = RedisTenantCache(
                redis_asyncio.from_url(settings.redis_url, decode_responses=True)
            )
        else:
            _cache = InMemoryTenantCache()
    return _cache
