"""
Client-side view-model owning the session a user is currently looking at.

The HTTP routers are stateless and never use it. It is meant for a client
that embeds AttendanceService directly, such as a desktop or kiosk front
end, where one screen switches between classes and dates.

Every load takes a fresh token; a response is only installed when its token
is still the newest, so a slow earlier load can never overwrite a later one.
"""

from __future__ import annotations

import itertools
import logging
from datetime import date
from typing import Optional

from fastapi.concurrency import run_in_threadpool

from app.core.errors import ValidationError
from app.schemas.attendance import AttendanceRecord, AttendanceSession

logger = logging.getLogger(__name__)


class ChamadaController:
    def __init__(self, service):
        self._service = service
        self._tokens = itertools.count(1)
        self._latest = 0
        self.session: Optional[AttendanceSession] = None

    def begin_load(self) -> int:
        self._latest = next(self._tokens)
        return self._latest

    def is_current(self, token: int) -> bool:
        return token == self._latest

    def apply(self, token: int, session: AttendanceSession) -> bool:
        if not self.is_current(token):
            logger.debug("Discarding stale session load (token %d, latest %d)", token, self._latest)
            return False
        self.session = session
        return True

    async def load(self, turma_id: int, day: Optional[date] = None) -> Optional[AttendanceSession]:
        token = self.begin_load()
        session = await run_in_threadpool(self._service.load_session, turma_id, day)
        return session if self.apply(token, session) else None

    async def load_correction(self, turma_id: int, day: date) -> Optional[AttendanceSession]:
        token = self.begin_load()
        session = await run_in_threadpool(self._service.load_correction_session, turma_id, day)
        return session if self.apply(token, session) else None

    def _require_session(self) -> AttendanceSession:
        if self.session is None:
            raise ValidationError("Selecione uma turma e uma data.")
        return self.session

    def set_status(self, aluno_id: int, status, justificativa: Optional[str] = None) -> bool:
        return self._require_session().set_status(aluno_id, status, justificativa)

    def mark_all_present(self) -> None:
        self._require_session().mark_all_present()

    async def save(self, user_uid: str) -> list[AttendanceRecord]:
        session = self._require_session()
        return await run_in_threadpool(self._service.save_session, session, user_uid)
