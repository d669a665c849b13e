"""
Clock collaborator.

Timestamps are stored in UTC; "today" is the calendar date on the school's
wall clock, which is what teachers mean by the day's chamada.
"""

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from app.core.config import settings


class SystemClock:
    def __init__(self, tz_name: str | None = None):
        self.tz = ZoneInfo(tz_name or settings.SCHOOL_TIMEZONE)

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def today(self) -> date:
        return self.now().astimezone(self.tz).date()

    def local_time(self, moment: datetime) -> str:
        """HH:MM on the school's wall clock, used in lock messages."""
        return moment.astimezone(self.tz).strftime("%H:%M")


def get_clock() -> SystemClock:
    return SystemClock()
