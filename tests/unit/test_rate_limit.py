# ============================================================================
# tests/unit/test_rate_limit.py
# ============================================================================
"""
Tests for the sliding-window rate limiter
"""

import pytest

from health_vault.utils.rate_limit import RateLimiter


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


class TestWindow:

    def test_allows_up_to_limit(self, clock):
        limiter = RateLimiter(interval=60, clock=clock)

        results = [limiter.check(5, "1.2.3.4") for _ in range(6)]

        assert [r.allowed for r in results] == [True] * 5 + [False]
        assert [r.remaining for r in results[:5]] == [4, 3, 2, 1, 0]

    def test_keys_are_independent(self, clock):
        limiter = RateLimiter(interval=60, clock=clock)
        assert limiter.check(1, "a").allowed
        assert limiter.check(1, "b").allowed
        assert not limiter.check(1, "a").allowed

    def test_window_slides(self, clock):
        limiter = RateLimiter(interval=60, clock=clock)
        limiter.check(2, "a")
        clock.advance(30)
        limiter.check(2, "a")

        rejected = limiter.check(2, "a")
        assert not rejected.allowed
        assert rejected.retry_after == pytest.approx(30)

        clock.advance(30)
        assert limiter.check(2, "a").allowed

    def test_rejections_are_not_recorded(self, clock):
        limiter = RateLimiter(interval=60, clock=clock)
        limiter.check(1, "a")
        for _ in range(10):
            clock.advance(5)
            limiter.check(1, "a")

        clock.advance(10)
        assert limiter.check(1, "a").allowed


class TestEviction:

    def test_lru_eviction(self, clock):
        limiter = RateLimiter(interval=60, max_keys=2, clock=clock)
        limiter.check(1, "a")
        limiter.check(1, "b")
        limiter.check(1, "a")  # a is now most recently seen
        limiter.check(1, "c")

        assert len(limiter) == 2
        # b was evicted and starts fresh
        assert limiter.check(1, "b").allowed
        assert limiter.get_statistics()["evictions"] >= 1

    def test_cleanup_expired(self, clock):
        limiter = RateLimiter(interval=60, clock=clock)
        limiter.check(1, "a")
        limiter.check(1, "b")
        clock.advance(61)

        assert limiter.cleanup_expired() == 2
        assert len(limiter) == 0

    def test_reset(self, clock):
        limiter = RateLimiter(interval=60, clock=clock)
        limiter.check(1, "a")

        assert limiter.reset("a") is True
        assert limiter.reset("a") is False
        assert limiter.check(1, "a").allowed

    def test_statistics(self, clock):
        limiter = RateLimiter(interval=60, max_keys=10, clock=clock)
        limiter.check(1, "a")
        limiter.check(1, "a")

        stats = limiter.get_statistics()
        assert stats["allowed"] == 1
        assert stats["rejected"] == 1
        assert stats["tracked_keys"] == 1
        assert stats["max_keys"] == 10
