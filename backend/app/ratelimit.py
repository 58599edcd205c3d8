"""Rate limiting utilities."""

import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Protocol

import redis

from backend.app.ai.context import QueryContext
from backend.app.config import Settings

AI_CHAT_BUCKET = "ai_chat"
AI_QUERY_BUCKET = "ai_query"


@dataclass
class RetryAfter:
    """Rate limit exceeded, retry after N seconds."""

    seconds: int


class RateLimiter(Protocol):
    """Protocol for fixed-window rate limiters."""

    def check_quota(self, key: str, now: datetime) -> RetryAfter | None:
        """Count one request against `key`.

        Returns:
            RetryAfter if over quota, None if allowed
        """
        ...


def make_rate_limit_key(context: QueryContext, bucket: str) -> str:
    """Create rate limit key from caller context and bucket.

    Args:
        context: Resolved caller scope
        bucket: Bucket name (e.g., "ai_chat", "ai_query")

    Returns:
        Rate limit key
    """
    return f"{context.scope.value}:{context.caller_id}:{bucket}"


class InMemoryRateLimiter:
    """In-memory implementation of RateLimiter using fixed window."""

    def __init__(self, max_requests: int, window_seconds: int = 60) -> None:
        """Initialize rate limiter.

        Args:
            max_requests: Maximum requests per window
            window_seconds: Window size in seconds (default 60)
        """
        self._max_requests = max_requests
        self._window_seconds = window_seconds
        self._windows: dict[str, tuple[datetime, int]] = {}
        self._lock = threading.Lock()

    def check_quota(self, key: str, now: datetime) -> RetryAfter | None:
        """Check if quota is available.

        Called from threadpool workers, so the window map is guarded by a lock.
        """
        window = timedelta(seconds=self._window_seconds)

        with self._lock:
            if key not in self._windows or now >= self._windows[key][0] + window:
                self._prune(now - window)
                self._windows[key] = (now, 1)
                return None

            window_start, count = self._windows[key]
            if count >= self._max_requests:
                seconds_remaining = int((window_start + window - now).total_seconds())
                return RetryAfter(seconds=max(1, seconds_remaining))

            self._windows[key] = (window_start, count + 1)
            return None

    def _prune(self, cutoff: datetime) -> None:
        """Drop windows that started at or before `cutoff`."""
        expired = [k for k, (start, _) in self._windows.items() if start <= cutoff]
        for k in expired:
            del self._windows[k]


class RedisRateLimiter:
    """Redis-based rate limiter using INCR + EXPIRE pattern."""

    def __init__(
        self,
        redis_client: redis.Redis,
        max_requests: int,
        window_seconds: int = 60,
        *,
        namespace: str = "ratelimit",
    ) -> None:
        """Initialize rate limiter.

        Args:
            redis_client: Redis client
            max_requests: Maximum requests per window
            window_seconds: Window size in seconds (default 60)
            namespace: Key prefix, one per bucket so limits stay independent
        """
        self._redis = redis_client
        self._max_requests = max_requests
        self._window_seconds = window_seconds
        self._namespace = namespace

    def check_quota(self, key: str, now: datetime) -> RetryAfter | None:
        """Check if quota is available.

        Uses Redis INCR + EXPIRE for atomic counting.
        """
        # Window-aligned key
        window_start = int(now.timestamp() / self._window_seconds) * self._window_seconds
        redis_key = f"{self._namespace}:{key}:{window_start}"

        count = self._redis.incr(redis_key)

        # Set expiry on first request
        if count == 1:
            self._redis.expire(redis_key, self._window_seconds)

        if count > self._max_requests:
            ttl = self._redis.ttl(redis_key)
            return RetryAfter(seconds=max(1, ttl))

        return None


def build_rate_limiters(settings: Settings) -> dict[str, RateLimiter]:
    """Build one limiter per AI bucket.

    Uses Redis when REDIS_URL is configured, in-process windows otherwise.
    """
    limits = {
        AI_CHAT_BUCKET: settings.ai_chat_per_min,
        AI_QUERY_BUCKET: settings.ai_query_per_min,
    }

    if settings.redis_url:
        client = redis.from_url(settings.redis_url, decode_responses=True)  # type: ignore[no-untyped-call]
        return {
            bucket: RedisRateLimiter(client, limit, namespace=f"ratelimit:{bucket}")
            for bucket, limit in limits.items()
        }

    return {bucket: InMemoryRateLimiter(limit) for bucket, limit in limits.items()}
