"""Rate limiting utilities."""

from datetime import datetime

import redis.asyncio as redis_asyncio

from backend.app.config import get_settings
from backend.app.db.context import RequestContext
from backend.app.db.inmemory import InMemoryRateLimiter
from backend.app.db.repositories import RateLimiter, RetryAfter
from backend.app.tenancy.guard import namespaced_cache_key


def make_rate_limit_key(ctx: RequestContext, bucket: str) -> str:
    """Create rate limit key from context and bucket.

    Args:
        ctx: Request context
        bucket: Bucket name (e.g., "records", "organizations")

    Returns:
        Rate limit key, one per (bucket, user, organization)
    """
    return namespaced_cache_key(bucket, ctx.user_id, ctx.organization_id)


class RedisRateLimiter:
    """Redis-based rate limiter using INCR + EXPIRE pattern."""

    def __init__(
        self, redis_client: redis_asyncio.Redis, max_requests: int, window_seconds: int = 60
    ) -> None:
        """Initialize rate limiter.

        Args:
            redis_client: Async Redis client
            max_requests: Maximum requests per window
            window_seconds: Window size in seconds (default 60)
        """
        self._redis = redis_client
        self._max_requests = max_requests
        self._window_seconds = window_seconds

    async def check_quota(self, key: str, now: datetime) -> RetryAfter | None:
        """Check if quota is available.

        Uses Redis INCR + EXPIRE for atomic counting.
        """
        # Use a window-aligned key
        window_start = int(now.timestamp() / self._window_seconds) * self._window_seconds
        redis_key = f"ratelimit:{key}:{window_start}"

        count = await self._redis.incr(redis_key)

        # Set expiry on first request
        if count == 1:
            await self._redis.expire(redis_key, self._window_seconds)

        if count > self._max_requests:
            ttl = await self._redis.ttl(redis_key)
            return RetryAfter(seconds=max(1, ttl))

        return None


_limiter: RateLimiter | None = None


def get_rate_limiter() -> RateLimiter:
    """Get the global rate limiter: Redis when REDIS_URL is set, in-memory otherwise."""
    global _limiter
    if _limiter is None:
        settings = get_settings()
        if settings.redis_url:
            _limiter = RedisRateLimiter(
                redis_asyncio.from_url(settings.redis_url), settings.rate_limit_per_minute
            )
        else:
            _limiter = InMemoryRateLimiter(settings.rate_limit_per_minute)
    return _limiter
