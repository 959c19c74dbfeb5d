"""General utility helpers shared across modules."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Default clock: timezone-aware current time."""

    return datetime.now(timezone.utc)


class ManualClock:
    """Clock that only moves when told to.

    Used for deterministic dwell and age checks (tests and track replay).
    """

    def __init__(self, start: Optional[datetime] = None) -> None:
        self._now = start or datetime(2025, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self._now

    def advance(self, seconds: float) -> datetime:
        self._now = self._now + timedelta(seconds=seconds)
        return self._now

    def set(self, moment: datetime) -> None:
        self._now = moment


def seconds_between(earlier: Optional[datetime], later: datetime) -> float:
    """Elapsed seconds, 0 when ``earlier`` is unknown or in the future."""

    if earlier is None:
        return 0.0
    return max((later - earlier).total_seconds(), 0.0)
