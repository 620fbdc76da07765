from __future__ import annotations

import pytest

from tests.helpers import FakeClock
from wordwise.ai.analysis.rate_limit import RateLimiter


def test_requests_beyond_limit_are_refused(clock: FakeClock) -> None:
    limiter = RateLimiter(max_requests=3, window_seconds=60, clock=clock)

    assert [limiter.check("1.2.3.4") for _ in range(4)] == [True, True, True, False]
    assert limiter.remaining("1.2.3.4") == 0


def test_window_resets_after_expiry(clock: FakeClock) -> None:
    limiter = RateLimiter(max_requests=1, window_seconds=60, clock=clock)
    limiter.check("client")

    clock.advance(60)
    assert limiter.check("client") is False

    clock.advance(0.5)
    assert limiter.check("client") is True


def test_clients_are_limited_independently(clock: FakeClock) -> None:
    limiter = RateLimiter(max_requests=1, window_seconds=60, clock=clock)

    assert limiter.check("a") is True
    assert limiter.check("b") is True
    assert limiter.check("a") is False


def test_retry_after_counts_down(clock: FakeClock) -> None:
    limiter = RateLimiter(max_requests=1, window_seconds=60, clock=clock)
    assert limiter.retry_after("a") == 0.0

    limiter.check("a")
    clock.advance(15)

    assert limiter.retry_after("a") == pytest.approx(45.0)


def test_prune_drops_expired_windows(clock: FakeClock) -> None:
    limiter = RateLimiter(max_requests=5, window_seconds=10, clock=clock)
    limiter.check("a")
    clock.advance(11)
    limiter.check("b")

    assert limiter.prune() == 1
    assert limiter.remaining("b") == 4


def test_check_sweeps_expired_windows_past_threshold(clock: FakeClock) -> None:
    limiter = RateLimiter(max_requests=5, window_seconds=10, sweep_threshold=2, clock=clock)
    limiter.check("a")
    limiter.check("b")
    clock.advance(11)

    limiter.check("c")

    assert len(limiter) == 1
    assert limiter.remaining("c") == 4


def test_live_windows_survive_the_sweep(clock: FakeClock) -> None:
    limiter = RateLimiter(max_requests=5, window_seconds=10, sweep_threshold=2, clock=clock)
    for key in ("a", "b", "c", "d"):
        limiter.check(key)

    assert len(limiter) == 4
    assert limiter.remaining("a") == 4
