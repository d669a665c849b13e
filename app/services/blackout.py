"""
Blackout resolution: is a (date, turma) pair open for attendance?

Weekends are always blocked. Otherwise the first calendar event whose range
covers the date and whose scope reaches the class blocks it.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Iterable, Optional

from app.core.errors import DataStoreError
from app.schemas.calendar import BlockedReason, CalendarEvent

logger = logging.getLogger(__name__)

WEEKEND_MESSAGE = "Chamada bloqueada: finais de semana."
CALENDAR_UNAVAILABLE_MESSAGE = "Chamada bloqueada: não foi possível consultar o calendário escolar."
CALENDAR_UNAVAILABLE_WARNING = "Aviso: não foi possível verificar o calendário para esta data."


def format_date_br(day: date) -> str:
    return day.strftime("%d/%m/%Y")


def weekend_reason(day: date) -> Optional[BlockedReason]:
    if day.weekday() >= 5:
        return BlockedReason(kind="weekend", message=WEEKEND_MESSAGE)
    return None


def find_event_for_date(
    events: Iterable[CalendarEvent],
    day: date,
    turma_id: Optional[int],
) -> Optional[CalendarEvent]:
    for event in events:
        if event.covers(day) and event.applies_to(turma_id):
            return event
    return None


def event_reason(event: CalendarEvent) -> BlockedReason:
    return BlockedReason(
        kind="calendar_event",
        message=f'Chamada bloqueada: Data registrada no calendário como "{event.label}".',
        event=event,
    )


def event_warning(event: CalendarEvent) -> str:
    period = ""
    if event.data_fim and event.data_fim != event.data:
        period = f" (de {format_date_br(event.data)} a {format_date_br(event.end)})"
    return f'Aviso: Esta data está marcada no calendário como "{event.label}"{period}.'


class BlackoutResolver:
    def __init__(self, store):
        self._store = store

    def find_event(self, day: date, turma_id: Optional[int]) -> Optional[CalendarEvent]:
        return find_event_for_date(self._store.list_calendar_events(), day, turma_id)

    def is_date_blocked(self, day: date, turma_id: Optional[int]) -> Optional[BlockedReason]:
        reason = weekend_reason(day)
        if reason:
            return reason
        try:
            event = self.find_event(day, turma_id)
        except DataStoreError as e:
            # Fail closed: an unreadable calendar must not open a blacked-out day
            logger.error("Calendar lookup failed for %s turma=%s: %s", day, turma_id, e.message)
            return BlockedReason(kind="calendar_unavailable", message=CALENDAR_UNAVAILABLE_MESSAGE)
        return event_reason(event) if event else None

    def calendar_warning(self, day: date, turma_id: Optional[int]) -> Optional[str]:
        """Advisory text for corrections; never blocks."""
        try:
            event = self.find_event(day, turma_id)
        except DataStoreError as e:
            logger.error("Calendar lookup failed for %s turma=%s: %s", day, turma_id, e.message)
            return CALENDAR_UNAVAILABLE_WARNING
        return event_warning(event) if event else None
