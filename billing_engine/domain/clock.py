"""Injectable clock so schedule defaults and due/upcoming checks are reproducible"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone


class Clock(ABC):
    """
    Source of the current date.

    Domain code never calls ``date.today()`` directly; callers pass a Clock so
    that identical inputs and clock value always produce identical output.
    """

    @abstractmethod
    def now(self) -> datetime:
        """Current timezone-aware UTC time"""
        ...

    def today(self) -> date:
        return self.now().date()


class SystemClock(Clock):
    """Production clock backed by the system time (UTC)"""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock(Clock):
    """Clock frozen at a given day, for tests and replays"""

    def __init__(self, today: date | None = None):
        self._today = today or date(2024, 1, 1)

    def now(self) -> datetime:
        return datetime(self._today.year, self._today.month, self._today.day, 12, 0, tzinfo=timezone.utc)

    def advance(self, days: int = 1) -> None:
        self._today = self._today + timedelta(days=days)
