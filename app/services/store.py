"""
Data-store collaborator for the attendance core.

The protocol lists the four calls the core makes; the Supabase
implementation validates every row it reads into a typed model.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Protocol, Sequence, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from app.core.database import get_supabase, safe_query
from app.core.errors import DataStoreError
from app.schemas.attendance import AttendanceRecord, Student
from app.schemas.calendar import CalendarEvent

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def parse_rows(model: Type[ModelT], rows, table: str) -> list[ModelT]:
    """A row that does not fit the model is a store failure, never a silent skip."""
    parsed = []
    for row in rows or []:
        try:
            parsed.append(model.model_validate(row))
        except PydanticValidationError as e:
            logger.error("Unreadable %s row id=%s: %s", table, row.get("id"), e)
            raise DataStoreError(f"Operação falhou: registro inválido em {table}.") from e
    return parsed


class AttendanceStore(Protocol):
    def list_active_students(self, turma_id: int) -> Sequence[Student]:
        raise NotImplementedError

    def list_attendance(self, turma_id: int, data: date) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_calendar_events(self) -> Sequence[CalendarEvent]:
        raise NotImplementedError

    def upsert_attendance(self, records: Sequence[AttendanceRecord]) -> None:
        raise NotImplementedError


class SupabaseAttendanceStore:
    def __init__(self, client=None):
        self._client = client

    @property
    def db(self):
        return self._client or get_supabase()

    def list_active_students(self, turma_id: int) -> list[Student]:
        result = safe_query(
            self.db.table("alunos")
            .select("id, nome_completo, turma_id, status")
            .eq("turma_id", turma_id)
            .eq("status", "ativo")
            .order("nome_completo")
        )
        return parse_rows(Student, result.data, "alunos")

    def list_attendance(self, turma_id: int, data: date) -> list[AttendanceRecord]:
        result = safe_query(
            self.db.table("presencas")
            .select("aluno_id, turma_id, data, status, justificativa, registrado_por_uid, registrado_em")
            .eq("turma_id", turma_id)
            .eq("data", data.isoformat())
        )
        return parse_rows(AttendanceRecord, result.data, "presencas")

    def list_calendar_events(self) -> list[CalendarEvent]:
        # Broad read: the [data, data_fim] OR null-end range is filtered client-side
        result = safe_query(
            self.db.table("eventos").select("id, data, data_fim, descricao, abrangencia, turmas_ids")
        )
        return parse_rows(CalendarEvent, result.data, "eventos")

    def upsert_attendance(self, records: Sequence[AttendanceRecord]) -> None:
        safe_query(
            self.db.table("presencas").upsert(
                [r.to_row() for r in records],
                on_conflict="aluno_id,data",
            )
        )
