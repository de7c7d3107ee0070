"""
Per-actor movement rate limiting for geowalk.

Fixed window per actor: at most ``max_requests`` successful movements per
``window_seconds``. ``check`` never counts; only ``record_success`` does,
so unparseable text does not consume quota. Throttling raw request volume
belongs to a coarser limiter in front of the pipeline.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel


@dataclass
class RateLimitState:
    """Window state for one actor."""

    count: int
    window_start: float
    window_seconds: float
    max_requests: int
    last_seen: float

    def expired(self, now: float) -> bool:
        return now - self.window_start > self.window_seconds


class RateLimitDecision(BaseModel):
    """Outcome of a rate-limit check."""

    allowed: bool
    remaining: int
    reset_in_seconds: float


class MovementRateLimiter:
    """
    Fixed-window movement limiter, one window per actor.

    The actor map is guarded by a single lock. Idle actors are evicted by
    ``sweep``, which also runs opportunistically from ``check`` at most once
    per ``sweep_interval_seconds``.
    """

    def __init__(
        self,
        max_requests: int = 10,
        window_seconds: float = 60.0,
        retention_seconds: float = 600.0,
        sweep_interval_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")

        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.retention_seconds = retention_seconds
        self.sweep_interval_seconds = sweep_interval_seconds
        self._clock = clock

        self._states: dict[str, RateLimitState] = {}
        self._lock = threading.Lock()
        self._last_sweep = clock()

    def check(self, actor_id: str) -> RateLimitDecision:
        """
        Check whether the actor may move now.

        Creates the actor's window on first sight and restarts it once
        expired. Does not consume quota.
        """
        now = self._clock()
        with self._lock:
            if now - self._last_sweep > self.sweep_interval_seconds:
                self._sweep_locked(now)

            state = self._states.get(actor_id)
            if state is None:
                state = RateLimitState(
                    count=0,
                    window_start=now,
                    window_seconds=self.window_seconds,
                    max_requests=self.max_requests,
                    last_seen=now,
                )
                self._states[actor_id] = state
            elif state.expired(now):
                state.count = 0
                state.window_start = now

            state.last_seen = now
            return RateLimitDecision(
                allowed=state.count < state.max_requests,
                remaining=max(state.max_requests - state.count, 0),
                reset_in_seconds=max(state.window_start + state.window_seconds - now, 0.0),
            )

    def record_success(self, actor_id: str) -> None:
        """Count one executed movement against the actor's window."""
        now = self._clock()
        with self._lock:
            state = self._states.get(actor_id)
            if state is None:
                state = RateLimitState(
                    count=0,
                    window_start=now,
                    window_seconds=self.window_seconds,
                    max_requests=self.max_requests,
                    last_seen=now,
                )
                self._states[actor_id] = state
            elif state.expired(now):
                state.count = 0
                state.window_start = now
            state.count += 1
            state.last_seen = now

    def sweep(self) -> int:
        """Evict actors idle beyond the retention horizon. Returns how many."""
        with self._lock:
            return self._sweep_locked(self._clock())

    def _sweep_locked(self, now: float) -> int:
        stale = [
            actor_id
            for actor_id, state in self._states.items()
            if now - state.last_seen > self.retention_seconds
        ]
        for actor_id in stale:
            del self._states[actor_id]
        self._last_sweep = now
        return len(stale)

    def stats(self, actor_id: str) -> dict[str, Any]:
        """Movement statistics for monitoring."""
        stats: dict[str, Any] = {"actor_id": actor_id}
        with self._lock:
            state = self._states.get(actor_id)
            if state is not None:
                stats["count"] = state.count
                stats["window_seconds"] = state.window_seconds
                stats["max_requests"] = state.max_requests
                stats["idle_seconds"] = self._clock() - state.last_seen
        return stats

    def __len__(self) -> int:
        with self._lock:
            return len(self._states)
