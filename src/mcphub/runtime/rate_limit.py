"""Token-bucket rate limiting for tool categories.

Refill is lazy: tokens are recomputed from elapsed time whenever the bucket is
read or consumed, so no background timer is needed.  The limiter is owned by
the event loop thread and is not safe to share across OS threads.
"""

from __future__ import annotations

import math
import time
from typing import Callable

from pydantic import BaseModel, Field

BROWSER_CATEGORY = "browser"


class RateLimitConfig(BaseModel):
    """Bucket size and the window over which it fully refills."""

    max_calls: int = Field(gt=0)
    window_ms: int = Field(gt=0)


BROWSER_RATE_LIMIT = RateLimitConfig(max_calls=100, window_ms=60_000)


class RateLimitStatus(BaseModel):
    """Read-only snapshot returned by ``MCPClient.get_rate_limit_status``."""

    tokens: int
    max_tokens: int


class RateLimiter:
    """Token bucket holding at most *max_tokens*, refilled over *window_ms*.

    Usage::

        limiter = RateLimiter(max_tokens=100, window_ms=60_000)
        if not limiter.try_consume():
            wait_ms = limiter.time_until_available()
    """

    def __init__(
        self,
        max_tokens: int,
        window_ms: float,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_tokens <= 0 or window_ms <= 0:
            msg = "max_tokens and window_ms must be positive"
            raise ValueError(msg)
        self._max_tokens = max_tokens
        self._refill_rate = max_tokens / window_ms  # tokens per ms
        self._clock = clock
        self._tokens = float(max_tokens)
        self._last_refill = self._now_ms()

    @classmethod
    def from_config(
        cls, config: RateLimitConfig, *, clock: Callable[[], float] = time.monotonic
    ) -> RateLimiter:
        return cls(config.max_calls, config.window_ms, clock=clock)

    @property
    def capacity(self) -> int:
        return self._max_tokens

    @property
    def refill_rate(self) -> float:
        """Tokens regained per millisecond."""
        return self._refill_rate

    @property
    def tokens(self) -> int:
        """Whole tokens currently available."""
        self._refill()
        return math.floor(self._tokens)

    def try_consume(self, count: int = 1) -> bool:
        """Deduct *count* tokens if available; leave the bucket untouched otherwise."""
        self._refill()
        if self._tokens >= count:
            self._tokens -= count
            return True
        return False

    def time_until_available(self) -> int:
        """Milliseconds until one token is available (``0`` if one already is)."""
        self._refill()
        if self._tokens >= 1:
            return 0
        return math.ceil((1 - self._tokens) / self._refill_rate)

    def status(self) -> RateLimitStatus:
        return RateLimitStatus(tokens=self.tokens, max_tokens=self._max_tokens)

    def reset(self) -> None:
        self._tokens = float(self._max_tokens)
        self._last_refill = self._now_ms()

    def _refill(self) -> None:
        now = self._now_ms()
        elapsed = max(0.0, now - self._last_refill)
        self._tokens = min(float(self._max_tokens), self._tokens + elapsed * self._refill_rate)
        self._last_refill = now

    def _now_ms(self) -> float:
        return self._clock() * 1000.0


def create_browser_rate_limiter(*, clock: Callable[[], float] = time.monotonic) -> RateLimiter:
    """Return a limiter sized for built-in browser actions (100 per minute)."""
    return RateLimiter.from_config(BROWSER_RATE_LIMIT, clock=clock)
