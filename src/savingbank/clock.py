"""Host clock: source of the timestamps driving maturity and cooldown.

Timestamps are integer Unix seconds. The host clock is monotonic but not
precise to the second; day-granularity comparisons are what the engine
relies on.
"""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Optional, Protocol

SECONDS_PER_DAY = 86_400


class Clock(Protocol):
    def now(self) -> int:
        ...


class SystemClock:
    """Wall-clock time."""

    def now(self) -> int:
        return int(time.time())


class ManualClock:
    """A clock that only moves when told to.

    Usage:
        clock = ManualClock(start=1_767_225_600)
        clock.advance_days(90)
    """

    def __init__(self, start: Optional[int] = None) -> None:
        self._now = int(time.time()) if start is None else int(start)

    def now(self) -> int:
        return self._now

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError("ManualClock cannot move backwards")
        self._now += seconds
        return self._now

    def advance_days(self, days: int) -> int:
        return self.advance(days * SECONDS_PER_DAY)

    def set(self, timestamp: int) -> int:
        if timestamp < self._now:
            raise ValueError("ManualClock cannot move backwards")
        self._now = int(timestamp)
        return self._now


def to_datetime(timestamp: int) -> datetime:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)
