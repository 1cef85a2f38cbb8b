"""Fixed-window write throttling.

Counters live in redis when ``REDIS_URL`` is configured so several workers
share one budget; otherwise they are kept in process.
"""

from __future__ import annotations

import logging
import time
from threading import Lock

import redis

from noisegarden.core.errors import RateLimited
from noisegarden.core.settings import settings

logger = logging.getLogger(__name__)

_WINDOWS = (("minute", 60), ("hour", 3600))


class RateLimiter:
    """Counts writes per identity and action over minute and hour windows."""

    def __init__(
        self,
        per_minute: int | None = None,
        per_hour: int | None = None,
        redis_url: str | None = None,
        enabled: bool | None = None,
    ) -> None:
        self.per_minute = per_minute if per_minute is not None else settings.rate_limit_per_minute
        self.per_hour = per_hour if per_hour is not None else settings.rate_limit_per_hour
        self.enabled = settings.rate_limit_enabled if enabled is None else enabled
        url = settings.redis_url if redis_url is None else redis_url
        self._redis: redis.Redis | None = redis.Redis.from_url(url) if url else None
        # One (bucket, count) pair per action, user and window; a new bucket
        # replaces the old one.
        self._counts: dict[tuple[str, int, str], tuple[int, int]] = {}
        self._lock = Lock()

    def _limit_for(self, window: str) -> int:
        return self.per_minute if window == "minute" else self.per_hour

    def _incr_local(self, scope: tuple[str, int, str], bucket: int) -> int:
        with self._lock:
            current, count = self._counts.get(scope, (bucket, 0))
            count = count + 1 if current == bucket else 1
            self._counts[scope] = (bucket, count)
            return count

    def _incr(self, scope: tuple[str, int, str], bucket: int, ttl: int) -> int:
        if self._redis is not None:
            action, user_id, window = scope
            key = f"ratelimit:{action}:{user_id}:{window}:{bucket}"
            try:
                pipe = self._redis.pipeline()
                pipe.incr(key)
                pipe.expire(key, ttl)
                count, _ = pipe.execute()
                return int(count)
            except redis.RedisError as exc:
                logger.warning("Rate limit store unavailable, counting in process: %s", exc)
                self._redis = None
        return self._incr_local(scope, bucket)

    def hit(self, user_id: int, action: str, now: float | None = None) -> None:
        """Record one ``action`` by ``user_id``.

        Raises:
            RateLimited: If either window's budget is exhausted.
        """
        if not self.enabled:
            return
        now = time.time() if now is None else now
        for window, seconds in _WINDOWS:
            bucket = int(now // seconds)
            if self._incr((action, user_id, window), bucket, seconds) > self._limit_for(window):
                logger.info("Rate limit hit for user %s on %s (%s)", user_id, action, window)
                raise RateLimited(f"Too many {action} requests this {window}")

    def reset(self) -> None:
        with self._lock:
            self._counts.clear()


_rate_limiter: RateLimiter | None = None


def get_rate_limiter() -> RateLimiter:
    """Return the process-wide limiter."""
    global _rate_limiter
    if _rate_limiter is None:
        _rate_limiter = RateLimiter()
    return _rate_limiter
