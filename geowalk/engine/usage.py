"""
Daily AI-usage quota for geowalk.

A separate policy from the movement rate limiter: it bounds how often an
actor may trigger LLM narrative generation per day. Counters reset at
local midnight and a warning is raised once ``warning_ratio`` of the
quota is consumed.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, time, timedelta

from pydantic import BaseModel

# Actors idle this long are forgotten.
IDLE_EVICTION = timedelta(days=7)


def _next_midnight(now: datetime) -> datetime:
    return datetime.combine(now.date() + timedelta(days=1), time.min, tzinfo=now.tzinfo)


class UsageDecision(BaseModel):
    """Outcome of consuming (or inspecting) the daily quota."""

    allowed: bool
    used: int
    remaining: int
    limit: int
    resets_at: datetime
    should_warn: bool = False


@dataclass
class _DailyUsage:
    count: int
    day_started: datetime
    last_seen: datetime


class DailyUsageQuota:
    """Per-actor daily counter with a warning threshold."""

    def __init__(
        self,
        daily_limit: int = 15,
        warning_ratio: float = 0.8,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        if daily_limit < 1:
            raise ValueError("daily_limit must be at least 1")
        self.daily_limit = daily_limit
        self.warning_ratio = warning_ratio
        self._clock = clock
        self._usage: dict[str, _DailyUsage] = {}
        self._lock = threading.Lock()

    def consume(self, actor_id: str) -> UsageDecision:
        """Use one unit of the actor's quota if any is left."""
        now = self._clock()
        with self._lock:
            usage = self._current(actor_id, now)
            usage.last_seen = now

            if usage.count >= self.daily_limit:
                return self._decision(usage, now, allowed=False)

            usage.count += 1
            return self._decision(usage, now, allowed=True)

    def usage(self, actor_id: str) -> UsageDecision:
        """Inspect the actor's quota without consuming it."""
        now = self._clock()
        with self._lock:
            usage = self._usage.get(actor_id)
            if usage is None or usage.day_started.date() != now.date():
                return UsageDecision(
                    allowed=True,
                    used=0,
                    remaining=self.daily_limit,
                    limit=self.daily_limit,
                    resets_at=_next_midnight(now),
                )
            return self._decision(usage, now, allowed=usage.count < self.daily_limit)

    def evict_idle(self) -> int:
        """Forget actors idle for more than a week. Returns how many."""
        now = self._clock()
        with self._lock:
            stale = [a for a, u in self._usage.items() if now - u.last_seen > IDLE_EVICTION]
            for actor_id in stale:
                del self._usage[actor_id]
            return len(stale)

    def _current(self, actor_id: str, now: datetime) -> _DailyUsage:
        usage = self._usage.get(actor_id)
        if usage is None:
            usage = _DailyUsage(count=0, day_started=now, last_seen=now)
            self._usage[actor_id] = usage
        elif usage.day_started.date() != now.date():
            usage.count = 0
            usage.day_started = now
        return usage

    def _decision(self, usage: _DailyUsage, now: datetime, allowed: bool) -> UsageDecision:
        return UsageDecision(
            allowed=allowed,
            used=usage.count,
            remaining=max(self.daily_limit - usage.count, 0),
            limit=self.daily_limit,
            resets_at=_next_midnight(now),
            should_warn=usage.count / self.daily_limit >= self.warning_ratio,
        )


def format_usage_warning(decision: UsageDecision, now: datetime | None = None) -> str:
    """
    Friendly reminder about the remaining daily quota.

    Returns an empty string when no reminder is needed.
    """
    if decision.remaining == 0:
        now = now or datetime.now(decision.resets_at.tzinfo)
        left = max(decision.resets_at - now, timedelta(0))
        hours, rest = divmod(int(left.total_seconds()), 3600)
        return f"Daily AI quota used up; resets in {hours}h {rest // 60}m."
    if decision.remaining <= 3:
        return f"Heads up: {decision.remaining} AI responses left today."
    if decision.should_warn or decision.remaining <= 5:
        return f"Reminder: {decision.remaining} AI responses left today."
    return ""
