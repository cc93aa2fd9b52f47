"""
Civil (wall-clock) time in the deployment's fixed timezone.

Attendance timestamps are persisted as *naive* datetimes whose fields equal
the UTC+7 wall clock, independent of the host timezone. Anything read back
from the ``attendance`` or ``activity_logs`` tables is already civil time and
must not be shifted again.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone


def _system_utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CivilClock:
    def __init__(
        self,
        offset_hours: int = 7,
        utc_now: Callable[[], datetime] | None = None,
    ) -> None:
        self.offset = timedelta(hours=offset_hours)
        self._utc_now = utc_now or _system_utc_now

    def now(self) -> datetime:
        """Current civil wall-clock time, whole seconds, no tzinfo."""
        utc = self._utc_now()
        if utc.tzinfo is not None:
            utc = utc.astimezone(timezone.utc).replace(tzinfo=None)
        return (utc + self.offset).replace(microsecond=0)

    def today(self) -> datetime:
        """Civil midnight of the current day (dedup key for attendance rows)."""
        return self.day_of(self.now())

    @staticmethod
    def day_of(instant: datetime) -> datetime:
        return instant.replace(hour=0, minute=0, second=0, microsecond=0)

    @staticmethod
    def month_start(instant: datetime) -> datetime:
        return instant.replace(day=1, hour=0, minute=0, second=0, microsecond=0)

    @staticmethod
    def format_clock(instant: datetime) -> str:
        return instant.strftime("%H:%M")
