"""Tests for kra_connect/rate_limiter.py"""

import pytest

from kra_connect.exceptions import RateLimitError
from kra_connect.rate_limiter import RateLimiter


class FakeClock:
    """Monotonic clock whose sleep() advances time instead of blocking."""

    def __init__(self) -> None:
        self.now = 50.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def limiter(clock) -> RateLimiter:
    return RateLimiter(max_requests_per_second=2, clock=clock, sleep=clock.sleep)


# ---------------------------------------------------------------------------
# acquire / try_acquire
# ---------------------------------------------------------------------------

def test_bucket_starts_full(limiter):
    assert limiter.available_tokens == 2.0
    assert limiter.has_available_token


def test_acquire_consumes_tokens(limiter):
    limiter.acquire()
    assert limiter.available_tokens == 1.0


def test_acquire_raises_when_empty(limiter):
    limiter.acquire()
    limiter.acquire()
    with pytest.raises(RateLimitError) as exc_info:
        limiter.acquire()
    assert exc_info.value.retry_after == pytest.approx(0.51)
    assert exc_info.value.limit == 2


def test_try_acquire_returns_false_when_empty(limiter):
    assert limiter.try_acquire()
    assert limiter.try_acquire()
    assert not limiter.try_acquire()


def test_tokens_refill_over_time(limiter, clock):
    limiter.acquire()
    limiter.acquire()
    clock.now += 0.5
    assert limiter.available_tokens == pytest.approx(1.0)
    limiter.acquire()


def test_refill_is_capped_at_capacity(limiter, clock):
    limiter.acquire()
    clock.now += 60
    assert limiter.available_tokens == 2.0


# ---------------------------------------------------------------------------
# wait_and_acquire / estimate_wait
# ---------------------------------------------------------------------------

def test_wait_and_acquire_does_not_sleep_when_token_available(limiter, clock):
    limiter.wait_and_acquire()
    assert clock.sleeps == []


def test_wait_and_acquire_sleeps_until_token(limiter, clock):
    limiter.acquire()
    limiter.acquire()
    limiter.wait_and_acquire()
    assert clock.sleeps == [pytest.approx(0.51)]
    assert limiter.available_tokens < 1.0


def test_estimate_wait(limiter):
    assert limiter.estimate_wait() == 0.0
    limiter.acquire()
    limiter.acquire()
    assert limiter.estimate_wait() == pytest.approx(0.51)


# ---------------------------------------------------------------------------
# Disabled limiter, reset, stats
# ---------------------------------------------------------------------------

def test_disabled_limiter_always_grants(clock):
    limiter = RateLimiter(max_requests_per_second=1, enabled=False, clock=clock, sleep=clock.sleep)
    for _ in range(10):
        limiter.acquire()
        assert limiter.try_acquire()
        limiter.wait_and_acquire()
    assert limiter.estimate_wait() == 0.0
    assert clock.sleeps == []


def test_reset_refills_bucket(limiter):
    limiter.acquire()
    limiter.acquire()
    limiter.reset()
    assert limiter.available_tokens == 2.0


def test_stats(limiter):
    limiter.acquire()
    stats = limiter.stats()
    assert stats["enabled"] is True
    assert stats["max_requests_per_second"] == 2
    assert stats["available_tokens"] == "1.00"
    assert stats["utilization"] == "50.00"
    assert stats["has_available_token"] is True
    assert stats["estimated_wait_ms"] == 0
