"""
Attendance sessions: the teacher's same-day chamada and the administrator's
retroactive correction.

Teacher path: blackout and the one-hour lock gate both load and save.
Correction path: the calendar only produces an advisory warning and the lock
never applies.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Iterable, Optional

from app.core.audit import get_audit_log
from app.core.clock import get_clock
from app.core.errors import AttendanceBlockedError, AttendanceLockedError, ValidationError
from app.schemas.attendance import (
    AttendanceRecord,
    AttendanceSession,
    ChamadaEntry,
    ChamadaMark,
    LockInfo,
)
from app.services.blackout import BlackoutResolver
from app.services.lock import LOCK_WINDOW, format_window, get_lock_info
from app.services.store import AttendanceStore, SupabaseAttendanceStore

logger = logging.getLogger(__name__)

NO_STUDENTS_MESSAGE = "Nenhum aluno ativo encontrado."
EDITABLE_MESSAGE = "Marque as faltas e informe a justificativa."
ONLY_TODAY_MESSAGE = "Apenas a chamada do dia atual pode ser editada."


class AttendanceService:
    def __init__(
        self,
        store: AttendanceStore,
        clock,
        audit,
        *,
        lock_window: Optional[timedelta] = None,
    ):
        self._store = store
        self._clock = clock
        self._audit = audit
        self._lock_window = LOCK_WINDOW if lock_window is None else lock_window
        self.blackout = BlackoutResolver(store)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------
    def _build_session(
        self,
        turma_id: int,
        day: date,
        mode: str,
    ) -> tuple[AttendanceSession, dict[int, AttendanceRecord]]:
        students = self._store.list_active_students(turma_id)
        existing = {r.aluno_id: r for r in self._store.list_attendance(turma_id, day)}

        session = AttendanceSession(turma_id=turma_id, data=day, mode=mode)
        for student in students:
            record = existing.get(student.id)
            entry = ChamadaEntry(aluno_id=student.id, nome_completo=student.nome_completo)
            if record:
                entry.status = record.status
                entry.justificativa = record.justificativa
                entry.registrado_em = record.registrado_em
            session.entries[student.id] = entry
        return session, existing

    def lock_info(self, records: Iterable[AttendanceRecord]) -> LockInfo:
        return get_lock_info(records, self._clock.now(), self._lock_window)

    def load_session(self, turma_id: int, day: Optional[date] = None) -> AttendanceSession:
        day = day or self._clock.today()
        session, existing = self._build_session(turma_id, day, "chamada")

        session.blocked_reason = self.blackout.is_date_blocked(day, turma_id)
        session.lock = self.lock_info(existing.values())

        editable = session.editable
        for entry in session.entries.values():
            entry.editable = editable

        if not session.entries:
            session.status_message = NO_STUDENTS_MESSAGE
        elif session.blocked_reason:
            session.status_message = session.blocked_reason.message
        elif session.lock.locked:
            limit = self._clock.local_time(session.lock.lock_at)
            window = format_window(self._lock_window)
            session.status_message = f"Chamada encerrada. Alterações bloqueadas após {window} (limite: {limit})."
        else:
            session.status_message = EDITABLE_MESSAGE
        return session

    def _load_correction(
        self,
        turma_id: int,
        day: date,
    ) -> tuple[AttendanceSession, dict[int, AttendanceRecord]]:
        if day > self._clock.today():
            raise ValidationError("A data da correção não pode estar no futuro.")
        session, existing = self._build_session(turma_id, day, "correcao")
        session.warning = self.blackout.calendar_warning(day, turma_id)
        session.status_message = NO_STUDENTS_MESSAGE if not session.entries else (session.warning or "")
        return session, existing

    def load_correction_session(self, turma_id: int, day: date) -> AttendanceSession:
        return self._load_correction(turma_id, day)[0]

    # ------------------------------------------------------------------
    # Saving
    # ------------------------------------------------------------------
    def save_session(self, session: AttendanceSession, user_uid: str) -> list[AttendanceRecord]:
        """Persist a teacher's chamada after re-checking blackout and lock."""
        if session.mode != "chamada":
            raise ValidationError("Use a correção de chamada para datas anteriores.")
        if session.data != self._clock.today():
            raise ValidationError(ONLY_TODAY_MESSAGE)

        reason = self.blackout.is_date_blocked(session.data, session.turma_id)
        if reason:
            raise AttendanceBlockedError(reason.message, reason.kind)

        existing = {r.aluno_id: r for r in self._store.list_attendance(session.turma_id, session.data)}
        lock = self.lock_info(existing.values())
        if lock.locked or session.lock.locked:
            raise AttendanceLockedError(
                lock.lock_at or session.lock.lock_at,
                format_window(self._lock_window),
            )

        return self._persist(session, user_uid, existing, "attendance_save")

    def submit_correction(
        self,
        turma_id: int,
        day: date,
        marks: Iterable[ChamadaMark],
        user_uid: str,
    ) -> list[AttendanceRecord]:
        session, existing = self._load_correction(turma_id, day)
        for mark in marks:
            session.set_status(mark.aluno_id, mark.status, mark.justificativa)
        return self._persist(session, user_uid, existing, "attendance_correction")

    def _persist(
        self,
        session: AttendanceSession,
        user_uid: str,
        existing: dict[int, AttendanceRecord],
        action: str,
    ) -> list[AttendanceRecord]:
        if not session.entries:
            raise ValidationError(NO_STUDENTS_MESSAGE)

        now = self._clock.now()
        records = session.to_records(user_uid, now, existing)
        self._store.upsert_attendance(records)
        logger.info(
            "%s: turma=%s data=%s total=%d by=%s",
            action, session.turma_id, session.data, len(records), user_uid,
        )

        self._audit.log(user_uid, action, "presencas", None, {
            "turma_id": session.turma_id,
            "data": session.data.isoformat(),
            "total": len(records),
        })

        for record in records:
            session.entries[record.aluno_id].registrado_em = record.registrado_em
        if session.mode == "chamada":
            session.lock = self.lock_info(records)
        return records


def get_attendance_service() -> AttendanceService:
    return AttendanceService(SupabaseAttendanceStore(), get_clock(), get_audit_log())
