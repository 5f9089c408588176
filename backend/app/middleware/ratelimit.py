"""Rate limiting for tenant routes."""

from datetime import UTC, datetime

from backend.app.api.errors import RateLimitError
from backend.app.db.context import RequestContext
from backend.app.db.repositories import RateLimiter
from backend.app.ratelimit import make_rate_limit_key


class RateLimitMiddleware:
    """Maps request paths to buckets and enforces rate limits.

    Runs after context resolution, so every bucket is counted per
    (user, organization) pair.
    """

    def __init__(self, limiter: RateLimiter, bucket_map: dict[str, str]) -> None:
        """Initialize rate limit middleware.

        Args:
            limiter: Rate limiter implementation
            bucket_map: Mapping from path prefixes to bucket names
        """
        self._limiter = limiter
        self._bucket_map = bucket_map

    async def check_rate_limit(
        self, path: str, ctx: RequestContext, now: datetime | None = None
    ) -> tuple[bool, int]:
        """Check if request is allowed under rate limit.

        Args:
            path: Request path
            ctx: Request context
            now: Current time (for testing)

        Returns:
            Tuple of (allowed, retry_after_seconds)
        """
        if now is None:
            now = datetime.now(UTC)

        bucket = self._get_bucket(path)
        if bucket is None:
            # No rate limit for this path
            return (True, 0)

        key = make_rate_limit_key(ctx, bucket)
        retry_after = await self._limiter.check_quota(key, now)

        if retry_after is None:
            return (True, 0)

        return (False, retry_after.seconds)

    async def enforce(self, path: str, ctx: RequestContext, now: datetime | None = None) -> None:
        """Raise RateLimitError when the request is over quota."""
        allowed, retry_after = await self.check_rate_limit(path, ctx, now)
        if not allowed:
            raise RateLimitError(retry_after)

    def _get_bucket(self, path: str) -> str | None:
        for prefix, bucket in self._bucket_map.items():
            if path.startswith(prefix):
                return bucket

        return None


def create_default_bucket_map() -> dict[str, str]:
    """Create default bucket mapping.

    Returns:
        Dictionary mapping path prefixes to bucket names
    """
    return {
        "/platforms": "records",
        "/conversations": "records",
        "/knowledge-base": "records",
        "/organizations": "organizations",
    }
