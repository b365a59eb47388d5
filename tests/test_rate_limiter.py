"""Tests for request pacing and retry policy."""

from __future__ import annotations

import time

import pytest

from ntrn.exceptions import ProviderAPIError
from ntrn.providers.rate_limiter import (
    MAX_BACKOFF,
    MIN_BACKOFF,
    RateLimiter,
    backoff_delay,
    is_overload_error,
    is_quota_error,
    is_rate_limit_error,
    rate_limit_delay,
)


class FakeClock:
    """Monotonic clock that only moves when the limiter sleeps or the test advances it."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


# ── backoff ──


class TestBackoff:
    def test_exponential(self):
        assert [backoff_delay(a) for a in (1, 2, 3, 4)] == [2.0, 4.0, 8.0, 16.0]

    def test_clamped(self):
        assert backoff_delay(10) == MAX_BACKOFF
        assert backoff_delay(0) == MIN_BACKOFF
        assert backoff_delay(1, base=0.1) == MIN_BACKOFF

    def test_rate_limit_delay(self):
        assert [rate_limit_delay(a) for a in (1, 2, 3, 4)] == [10.0, 20.0, 30.0, 30.0]


class TestErrorClassification:
    def test_rate_limit_by_status(self):
        assert is_rate_limit_error(ProviderAPIError("Mistral", "slow down", status_code=429))

    def test_rate_limit_by_text(self):
        assert is_rate_limit_error(RuntimeError("HTTP 429 Too Many Requests"))
        assert is_rate_limit_error(RuntimeError("Rate limit exceeded"))
        assert not is_rate_limit_error(RuntimeError("HTTP 500"))

    def test_quota(self):
        assert is_quota_error(ProviderAPIError("Gemini", "quota exceeded", status_code=429))
        assert not is_quota_error(ProviderAPIError("Gemini", "too fast", status_code=429))

    def test_overload(self):
        assert is_overload_error(ProviderAPIError("Gemini", "busy", status_code=503))
        assert is_overload_error(RuntimeError("model is overloaded"))
        assert not is_overload_error(RuntimeError("bad request"))


# ── limiter ──


class TestRateLimiter:
    @pytest.mark.anyio
    async def test_first_request_not_delayed(self):
        clock = FakeClock()
        limiter = RateLimiter(rps=1, clock=clock, sleep=clock.sleep)
        assert await limiter.acquire() == 0.0
        assert clock.sleeps == []

    @pytest.mark.anyio
    async def test_consecutive_calls_spaced_by_min_interval(self):
        clock = FakeClock()
        limiter = RateLimiter(rps=1, clock=clock, sleep=clock.sleep)
        stamps = []
        for _ in range(3):
            await limiter.acquire()
            stamps.append(clock.now)
        gaps = [b - a for a, b in zip(stamps, stamps[1:])]
        assert all(gap >= limiter.min_interval for gap in gaps)
        assert limiter.min_interval == 1.0

    @pytest.mark.anyio
    async def test_only_remaining_interval_is_waited(self):
        clock = FakeClock()
        limiter = RateLimiter(rps=2, clock=clock, sleep=clock.sleep)
        await limiter.acquire()
        clock.now += 0.2
        waited = await limiter.acquire()
        assert waited == pytest.approx(0.3)

    @pytest.mark.anyio
    async def test_no_wait_after_idle(self):
        clock = FakeClock()
        limiter = RateLimiter(rps=1, clock=clock, sleep=clock.sleep)
        await limiter.acquire()
        clock.now += 5
        assert await limiter.acquire() == 0.0

    @pytest.mark.anyio
    async def test_per_minute_cap(self):
        clock = FakeClock()
        limiter = RateLimiter(rps=10, rpm=3, clock=clock, sleep=clock.sleep)
        for _ in range(3):
            await limiter.acquire()
        start = clock.now
        await limiter.acquire()
        assert clock.sleeps[-1] > 50
        assert clock.now - 1000.0 >= 59.99
        assert clock.now > start

    @pytest.mark.anyio
    async def test_real_clock_spacing(self):
        limiter = RateLimiter(rps=20)
        await limiter.acquire()
        before = time.monotonic()
        await limiter.acquire()
        assert time.monotonic() - before >= limiter.min_interval * 0.9

    def test_rejects_non_positive_rps(self):
        with pytest.raises(ValueError):
            RateLimiter(rps=0)
