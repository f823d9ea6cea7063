"""Tests for guildgate.core.ratelimit."""

from __future__ import annotations

from guildgate.core.ratelimit import FixedWindowRateLimiter


class FakeClock:
    def __init__(self, now: float = 1_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_allows_up_to_max_then_rejects():
    clock = FakeClock()
    limiter = FixedWindowRateLimiter(max_requests=3, window_ms=1000, clock=clock)

    remaining = [limiter.hit("1.2.3.4").remaining for _ in range(3)]
    assert remaining == [2, 1, 0]

    clock.now += 0.5
    decision = limiter.hit("1.2.3.4")
    assert not decision.allowed
    assert decision.remaining == 0
    assert decision.retry_after == 1
    assert limiter.get("1.2.3.4").count == 3


def test_window_reset_starts_new_count():
    clock = FakeClock()
    limiter = FixedWindowRateLimiter(max_requests=3, window_ms=1000, clock=clock)
    for _ in range(4):
        limiter.hit("k")

    clock.now += 1.0
    decision = limiter.hit("k")
    assert decision.allowed
    assert limiter.get("k").count == 1
    assert decision.remaining == 2


def test_keys_are_independent():
    limiter = FixedWindowRateLimiter(max_requests=1, window_ms=1000, clock=FakeClock())
    assert limiter.hit("a").allowed
    assert not limiter.hit("a").allowed
    assert limiter.hit("b").allowed


def test_expired_records_are_dropped_lazily():
    clock = FakeClock()
    limiter = FixedWindowRateLimiter(max_requests=5, window_ms=1000, clock=clock)
    limiter.hit("a")
    limiter.hit("b")
    assert len(limiter) == 2

    clock.now += 2.0
    limiter.hit("c")
    assert limiter.get("a") is None
    assert limiter.get("b") is None
    assert len(limiter) == 1


def test_retry_after_counts_whole_seconds():
    clock = FakeClock()
    limiter = FixedWindowRateLimiter(max_requests=1, window_ms=60_000, clock=clock)
    limiter.hit("k")
    clock.now += 10.2
    assert limiter.hit("k").retry_after == 50
