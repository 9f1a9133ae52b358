"""Time source for status evaluation.

Every evaluation reads "now" once and truncates it to a date, so both sides
of each date comparison use the same day boundary.
"""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime: ...

    def today(self) -> date: ...


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(UTC)

    def today(self) -> date:
        return self.now().date()


class FixedClock:
    """Clock frozen at a given instant; used by tests and replays."""

    def __init__(self, instant: datetime | date) -> None:
        if not isinstance(instant, datetime):
            instant = datetime(instant.year, instant.month, instant.day, 12, 0, tzinfo=UTC)
        elif instant.tzinfo is None:
            instant = instant.replace(tzinfo=UTC)
        self._instant = instant

    def now(self) -> datetime:
        return self._instant

    def today(self) -> date:
        return self._instant.date()

    def advance(self, days: int = 0, **kwargs) -> None:
        self._instant = self._instant + timedelta(days=days, **kwargs)


system_clock = SystemClock()
