"""Request pacing and retry policy for AI provider calls."""

from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable

import structlog

log = structlog.get_logger("ntrn.providers")

MIN_BACKOFF = 2.0  # seconds
MAX_BACKOFF = 30.0  # seconds
RATE_LIMIT_WAIT_STEP = 10.0  # seconds per attempt after a 429

_WINDOW = 60.0


def backoff_delay(attempt: int, base: float = MIN_BACKOFF, cap: float = MAX_BACKOFF) -> float:
    """Exponential delay before retry *attempt* (1-based): 2, 4, 8 … capped at 30."""
    delay = base * (2 ** max(attempt - 1, 0))
    return max(MIN_BACKOFF, min(delay, cap))


def rate_limit_delay(attempt: int) -> float:
    """Longer wait used after a rate-limit response: 10, 20, 30 seconds."""
    return max(MIN_BACKOFF, min(RATE_LIMIT_WAIT_STEP * attempt, MAX_BACKOFF))


def is_rate_limit_error(exc: BaseException) -> bool:
    if getattr(exc, "status_code", None) == 429:
        return True
    message = str(exc).lower()
    return "429" in message or "rate limit" in message


def is_quota_error(exc: BaseException) -> bool:
    """A 429 caused by an exhausted quota; waiting will not help."""
    message = str(exc).lower()
    return is_rate_limit_error(exc) and "quota" in message


def is_overload_error(exc: BaseException) -> bool:
    if getattr(exc, "status_code", None) == 503:
        return True
    message = str(exc).lower()
    return "503" in message or "overloaded" in message


class RateLimiter:
    """Space requests at least ``1 / rps`` seconds apart and cap them per minute.

    The limiter sleeps the caller; it never rejects a request.
    """

    def __init__(
        self,
        rps: float,
        rpm: int | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if rps <= 0:
            raise ValueError("rps must be positive")
        self.min_interval = 1.0 / rps
        self.rpm = rpm
        self._clock = clock
        self._sleep = sleep
        self._last_request: float | None = None
        self._window_start: float | None = None
        self._window_count = 0

    async def acquire(self) -> float:
        """Wait until the next request may be sent. Returns the seconds slept."""
        waited = 0.0
        now = self._clock()

        if self._last_request is not None:
            gap = now - self._last_request
            if gap < self.min_interval:
                wait = self.min_interval - gap
                log.debug("rate_limiter.spacing", wait_seconds=round(wait, 3))
                await self._sleep(wait)
                waited += wait
                now = self._clock()

        if self._window_start is None or now - self._window_start >= _WINDOW:
            self._window_start = now
            self._window_count = 0
        elif self.rpm and self._window_count >= self.rpm:
            wait = _WINDOW - (now - self._window_start)
            log.warning("rate_limiter.minute_cap", wait_seconds=round(wait, 1), rpm=self.rpm)
            await self._sleep(wait)
            waited += wait
            now = self._clock()
            self._window_start = now
            self._window_count = 0

        self._window_count += 1
        self._last_request = now
        return waited
