"""
Tests for per-actor movement rate limiting.
"""

from __future__ import annotations

import pytest

from geowalk.engine.rate_limit import MovementRateLimiter

# =============================================================================
# Fixtures
# =============================================================================


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def limiter(clock: FakeClock) -> MovementRateLimiter:
    return MovementRateLimiter(
        max_requests=2,
        window_seconds=1.0,
        retention_seconds=10.0,
        sweep_interval_seconds=5.0,
        clock=clock,
    )


# =============================================================================
# Window behaviour
# =============================================================================


class TestMovementRateLimiter:
    """Tests for the fixed window."""

    def test_first_check_allowed(self, limiter: MovementRateLimiter) -> None:
        decision = limiter.check("alice")
        assert decision.allowed is True
        assert decision.remaining == 2

    def test_check_does_not_consume(self, limiter: MovementRateLimiter) -> None:
        for _ in range(5):
            assert limiter.check("alice").allowed is True

    def test_blocks_after_max_successes(self, limiter: MovementRateLimiter) -> None:
        limiter.check("alice")
        limiter.record_success("alice")
        limiter.check("alice")
        limiter.record_success("alice")

        decision = limiter.check("alice")
        assert decision.allowed is False
        assert decision.remaining == 0
        assert 0 < decision.reset_in_seconds <= 1.0

    def test_window_resets(self, limiter: MovementRateLimiter, clock: FakeClock) -> None:
        limiter.record_success("alice")
        limiter.record_success("alice")
        assert limiter.check("alice").allowed is False

        clock.advance(1.1)
        decision = limiter.check("alice")
        assert decision.allowed is True
        assert decision.remaining == 2

    def test_actors_are_independent(self, limiter: MovementRateLimiter) -> None:
        limiter.record_success("alice")
        limiter.record_success("alice")
        assert limiter.check("alice").allowed is False
        assert limiter.check("bob").allowed is True

    def test_reset_in_counts_down(self, limiter: MovementRateLimiter, clock: FakeClock) -> None:
        limiter.check("alice")
        clock.advance(0.4)
        assert limiter.check("alice").reset_in_seconds == pytest.approx(0.6)

    def test_invalid_config(self) -> None:
        with pytest.raises(ValueError):
            MovementRateLimiter(max_requests=0)
        with pytest.raises(ValueError):
            MovementRateLimiter(window_seconds=0)


class TestSweep:
    """Tests for idle-actor eviction."""

    def test_sweep_evicts_idle(self, limiter: MovementRateLimiter, clock: FakeClock) -> None:
        limiter.check("alice")
        limiter.check("bob")
        clock.advance(8)
        limiter.check("bob")
        clock.advance(3)

        assert limiter.sweep() == 1
        assert len(limiter) == 1

    def test_check_sweeps_opportunistically(
        self, limiter: MovementRateLimiter, clock: FakeClock
    ) -> None:
        limiter.check("alice")
        clock.advance(11)
        limiter.check("bob")
        assert len(limiter) == 1

    def test_nothing_to_sweep(self, limiter: MovementRateLimiter) -> None:
        limiter.check("alice")
        assert limiter.sweep() == 0


class TestStats:
    """Tests for monitoring output."""

    def test_known_actor(self, limiter: MovementRateLimiter, clock: FakeClock) -> None:
        limiter.record_success("alice")
        clock.advance(0.5)
        stats = limiter.stats("alice")
        assert stats["actor_id"] == "alice"
        assert stats["count"] == 1
        assert stats["max_requests"] == 2
        assert stats["idle_seconds"] == pytest.approx(0.5)

    def test_unknown_actor(self, limiter: MovementRateLimiter) -> None:
        assert limiter.stats("nobody") == {"actor_id": "nobody"}
