"""Rate limiting middleware."""

from datetime import UTC, datetime

from backend.app.ai.context import QueryContext
from backend.app.ratelimit import (
    AI_CHAT_BUCKET,
    AI_QUERY_BUCKET,
    RateLimiter,
    make_rate_limit_key,
)


class RateLimitMiddleware:
    """Per-caller rate limiting for the AI endpoints.

    Maps request paths to buckets; each bucket has its own limiter so chat
    and direct query quotas are counted separately.
    """

    def __init__(self, limiters: dict[str, RateLimiter], bucket_map: dict[str, str]) -> None:
        """Initialize rate limit middleware.

        Args:
            limiters: Limiter per bucket name
            bucket_map: Mapping from path patterns to bucket names
        """
        self._limiters = limiters
        self._bucket_map = bucket_map

    def check_rate_limit(
        self, path: str, context: QueryContext, now: datetime | None = None
    ) -> tuple[bool, int]:
        """Check if request is allowed under rate limit.

        Args:
            path: Request path
            context: Resolved caller scope
            now: Current time (for testing)

        Returns:
            Tuple of (allowed, retry_after_seconds)
        """
        if now is None:
            now = datetime.now(UTC)

        bucket = self._get_bucket(path)
        limiter = self._limiters.get(bucket) if bucket else None

        if bucket is None or limiter is None:
            # No rate limit for this path
            return (True, 0)

        retry_after = limiter.check_quota(make_rate_limit_key(context, bucket), now)

        if retry_after is None:
            return (True, 0)

        return (False, retry_after.seconds)

    def _get_bucket(self, path: str) -> str | None:
        for pattern, bucket in self._bucket_map.items():
            if pattern in path:
                return bucket

        return None


def create_default_bucket_map() -> dict[str, str]:
    """Create default bucket mapping.

    Returns:
        Dictionary mapping path patterns to bucket names
    """
    return {
        "/ai/chat": AI_CHAT_BUCKET,
        "/ai/query": AI_QUERY_BUCKET,
    }
