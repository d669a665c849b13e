from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable, Optional

from app.core.config import settings
from app.schemas.attendance import AttendanceRecord, LockInfo

LOCK_WINDOW = timedelta(minutes=settings.LOCK_WINDOW_MINUTES)


def format_window(window: timedelta) -> str:
    """60 minutes -> "1h", 90 minutes -> "90 min"."""
    minutes = int(window.total_seconds() // 60)
    if minutes and minutes % 60 == 0:
        return f"{minutes // 60}h"
    return f"{minutes} min"


def get_lock_info(
    records: Iterable[AttendanceRecord],
    now: datetime,
    window: Optional[timedelta] = None,
) -> LockInfo:
    """
    The first write of the day opens a fixed edit window.

    lock_at = earliest registrado_em + window; locked once now is past it.
    """
    window = LOCK_WINDOW if window is None else window
    times = [r.registrado_em for r in records if r.registrado_em]
    if not times:
        return LockInfo(locked=False, lock_at=None)
    lock_at = min(times) + window
    return LockInfo(locked=now > lock_at, lock_at=lock_at)
