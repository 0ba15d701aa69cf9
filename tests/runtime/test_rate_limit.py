"""Tests for the token-bucket rate limiter."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from mcphub.runtime.rate_limit import (
    BROWSER_RATE_LIMIT,
    RateLimitConfig,
    RateLimiter,
    RateLimitStatus,
    create_browser_rate_limiter,
)


class FakeClock:
    """Monotonic clock in seconds, advanced by hand."""

    def __init__(self, start: float = 100.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance_ms(self, ms: float) -> None:
        self.now += ms / 1000


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


class TestTryConsume:
    def test_starts_full(self, clock: FakeClock) -> None:
        limiter = RateLimiter(5, 1000, clock=clock)
        assert limiter.tokens == 5
        assert limiter.capacity == 5

    def test_exhaustion(self, clock: FakeClock) -> None:
        limiter = RateLimiter(2, 1000, clock=clock)
        assert limiter.try_consume()
        assert limiter.try_consume()
        assert not limiter.try_consume()
        assert limiter.tokens == 0

    def test_failed_consume_does_not_mutate(self, clock: FakeClock) -> None:
        limiter = RateLimiter(3, 1000, clock=clock)
        assert limiter.try_consume(2)
        assert not limiter.try_consume(2)
        assert limiter.tokens == 1

    def test_refill_over_time(self, clock: FakeClock) -> None:
        limiter = RateLimiter(2, 1000, clock=clock)
        limiter.try_consume(2)
        clock.advance_ms(600)
        assert limiter.tokens == 1
        assert limiter.try_consume()
        assert not limiter.try_consume()

    def test_never_exceeds_capacity(self, clock: FakeClock) -> None:
        limiter = RateLimiter(4, 1000, clock=clock)
        limiter.try_consume()
        clock.advance_ms(60_000)
        assert limiter.tokens == 4

    def test_clock_going_backwards_never_removes_tokens(self, clock: FakeClock) -> None:
        limiter = RateLimiter(4, 1000, clock=clock)
        limiter.try_consume()
        clock.advance_ms(-5000)
        assert limiter.tokens == 3


class TestTimeUntilAvailable:
    def test_zero_when_available(self, clock: FakeClock) -> None:
        assert RateLimiter(1, 1000, clock=clock).time_until_available() == 0

    def test_ceiling_of_time_to_one_token(self, clock: FakeClock) -> None:
        limiter = RateLimiter(3, 1000, clock=clock)
        limiter.try_consume(3)
        assert limiter.time_until_available() == 334

    def test_partial_refill_shortens_wait(self, clock: FakeClock) -> None:
        limiter = RateLimiter(2, 1000, clock=clock)
        limiter.try_consume(2)
        clock.advance_ms(250)
        assert limiter.time_until_available() == 250

    def test_never_exceeds_window(self, clock: FakeClock) -> None:
        limiter = RateLimiter(2, 1000, clock=clock)
        limiter.try_consume(2)
        assert 0 < limiter.time_until_available() <= 1000


class TestResetAndStatus:
    def test_reset_refills(self, clock: FakeClock) -> None:
        limiter = RateLimiter(5, 1000, clock=clock)
        limiter.try_consume(5)
        limiter.reset()
        assert limiter.tokens == 5

    def test_status(self, clock: FakeClock) -> None:
        limiter = RateLimiter(5, 1000, clock=clock)
        limiter.try_consume(2)
        assert limiter.status() == RateLimitStatus(tokens=3, max_tokens=5)

    def test_refill_rate(self, clock: FakeClock) -> None:
        assert RateLimiter(100, 60_000, clock=clock).refill_rate == pytest.approx(100 / 60_000)


class TestConfig:
    def test_browser_defaults(self, clock: FakeClock) -> None:
        assert BROWSER_RATE_LIMIT == RateLimitConfig(max_calls=100, window_ms=60_000)
        limiter = create_browser_rate_limiter(clock=clock)
        assert limiter.capacity == 100
        assert limiter.tokens == 100

    def test_from_config(self, clock: FakeClock) -> None:
        limiter = RateLimiter.from_config(RateLimitConfig(max_calls=2, window_ms=500), clock=clock)
        assert limiter.capacity == 2

    @pytest.mark.parametrize(("max_calls", "window_ms"), [(0, 1000), (5, 0), (-1, 10)])
    def test_config_rejects_non_positive(self, max_calls: int, window_ms: int) -> None:
        with pytest.raises(ValidationError):
            RateLimitConfig(max_calls=max_calls, window_ms=window_ms)

    def test_limiter_rejects_non_positive(self) -> None:
        with pytest.raises(ValueError, match="positive"):
            RateLimiter(0, 1000)
