"""Tests for the fixed-window rate limiter."""

import pytest
import redis

from noisegarden.core.errors import RateLimited
from noisegarden.services.rate_limit import RateLimiter


@pytest.fixture()
def limiter() -> RateLimiter:
    return RateLimiter(per_minute=2, per_hour=3, redis_url="", enabled=True)


def test_minute_window_rolls_over(limiter: RateLimiter) -> None:
    limiter.hit(1, "flag", now=0.0)
    limiter.hit(1, "flag", now=10.0)
    with pytest.raises(RateLimited):
        limiter.hit(1, "flag", now=20.0)

    limiter.hit(1, "flag", now=61.0)


def test_hour_window_caps_total(limiter: RateLimiter) -> None:
    limiter.hit(1, "vote", now=0.0)
    limiter.hit(1, "vote", now=61.0)
    limiter.hit(1, "vote", now=122.0)

    with pytest.raises(RateLimited):
        limiter.hit(1, "vote", now=183.0)


def test_budgets_are_per_user_and_action(limiter: RateLimiter) -> None:
    for user_id, action in ((1, "content"), (1, "content"), (2, "content"), (1, "flag")):
        limiter.hit(user_id, action, now=5.0)


def test_disabled_limiter_never_refuses() -> None:
    limiter = RateLimiter(per_minute=1, per_hour=1, redis_url="", enabled=False)

    for _ in range(5):
        limiter.hit(1, "content", now=1.0)


def test_reset_clears_counters(limiter: RateLimiter) -> None:
    limiter.hit(1, "flag", now=0.0)
    limiter.hit(1, "flag", now=0.0)
    limiter.reset()

    limiter.hit(1, "flag", now=0.0)


def test_redis_outage_falls_back_to_local_counts(limiter: RateLimiter, mocker) -> None:
    broken = mocker.Mock()
    broken.pipeline.return_value.execute.side_effect = redis.ConnectionError("down")
    limiter._redis = broken

    limiter.hit(1, "flag", now=0.0)

    assert limiter._redis is None
    limiter.hit(1, "flag", now=0.0)
    with pytest.raises(RateLimited):
        limiter.hit(1, "flag", now=0.0)


def test_redis_counts_are_used_when_available(limiter: RateLimiter, mocker) -> None:
    store = mocker.Mock()
    store.pipeline.return_value.execute.return_value = [99, True]
    limiter._redis = store

    with pytest.raises(RateLimited):
        limiter.hit(7, "content", now=0.0)
    store.pipeline.return_value.incr.assert_called_with("ratelimit:content:7:minute:0")


def test_local_counters_keep_one_window_per_scope() -> None:
    limiter = RateLimiter(per_minute=1, per_hour=1, redis_url="", enabled=True)

    for hour in range(5000):
        limiter.hit(1, "content", now=hour * 3600.0)
    limiter.hit(2, "content", now=0.0)

    assert len(limiter._counts) == 4
