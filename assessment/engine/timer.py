"""
Timer / expiry monitor for timed attempts.

Pure functions of wall-clock time and session start time. Only
``remaining <= 0`` gates a transition; warning thresholds are informational.
Timestamps are naive UTC throughout (the ORM stores them that way).
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timezone

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Current time as naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def elapsed_seconds(started_at: datetime, now: datetime) -> int:
    """Whole seconds since ``started_at`` (never negative)."""
    delta = (now - started_at).total_seconds()
    return max(0, math.floor(delta))


def remaining_seconds(started_at: datetime, duration_seconds: int, now: datetime) -> int:
    return max(0, duration_seconds - elapsed_seconds(started_at, now))


def is_expired(started_at: datetime, duration_seconds: int, now: datetime) -> bool:
    return remaining_seconds(started_at, duration_seconds, now) <= 0


def crossed_warnings(remaining: int, thresholds: Iterable[int]) -> list[int]:
    """Thresholds (seconds) that the remaining time has already dropped to or below."""
    return sorted((t for t in thresholds if remaining <= t), reverse=True)


@dataclass(frozen=True)
class TimeBudget:
    """Snapshot of a timed attempt's clock."""

    started_at: datetime
    duration_seconds: int
    now: datetime

    @property
    def elapsed(self) -> int:
        return elapsed_seconds(self.started_at, self.now)

    @property
    def remaining(self) -> int:
        return remaining_seconds(self.started_at, self.duration_seconds, self.now)

    @property
    def expired(self) -> bool:
        return self.remaining <= 0
