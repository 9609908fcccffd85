"""
Injectable time source.

Services take a ``Clock`` rather than calling ``datetime.now()`` or
``date.today()``.  Depreciation windows, document-number years and approval
timestamps all come from it, so month-end behaviour can be tested on any
day of the year.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone

MONTH_END_NOON = datetime(2024, 1, 31, 12, 0, 0, tzinfo=timezone.utc)


class Clock(ABC):
    @abstractmethod
    def now(self) -> datetime:
        """Timezone-aware current instant."""

    def today(self) -> date:
        return self.now().date()


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """Frozen clock for tests; moves only through ``advance`` and ``set_*``."""

    def __init__(self, fixed_time: datetime | None = None):
        self._now = fixed_time or MONTH_END_NOON

    def now(self) -> datetime:
        return self._now

    def set_time(self, time: datetime) -> None:
        self._now = time

    def set_date(self, day: date) -> None:
        """Noon UTC on ``day``."""
        self._now = datetime.combine(day, MONTH_END_NOON.timetz())

    def advance(self, seconds: int = 1) -> None:
        self._now += timedelta(seconds=seconds)
