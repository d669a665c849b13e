"""
Pydantic schemas for attendance records and the chamada session.

The session keeps one entry per active student keyed by aluno_id; rendering
is a projection of that map.
"""

from datetime import date, datetime, timezone
from enum import Enum
from typing import Dict, List, Literal, Optional

from dateutil import parser
from pydantic import BaseModel, Field, computed_field, field_validator

from app.core.errors import ValidationError
from app.schemas.calendar import BlockedReason

FALTA_JUSTIFICADA = "Falta justificada"
FALTA_INJUSTIFICADA = "Falta injustificada"
OUTROS = "Outros"

# Same-day chamada only offers the two fixed reasons; corrections accept free text
TEACHER_JUSTIFICATIONS = (FALTA_JUSTIFICADA, FALTA_INJUSTIFICADA)


class AttendanceStatus(str, Enum):
    PRESENTE = "presente"
    FALTA = "falta"


def parse_timestamp(value):
    if value is None or value == "":
        return None
    if isinstance(value, str):
        value = parser.isoparse(value)
    if isinstance(value, datetime) and value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


# ---- Store rows ----
class Student(BaseModel):
    id: int
    nome_completo: str
    turma_id: Optional[int] = None
    status: str = "ativo"


class AttendanceRecord(BaseModel):
    aluno_id: int
    turma_id: Optional[int] = None
    data: date
    status: AttendanceStatus
    justificativa: Optional[str] = None
    registrado_por_uid: Optional[str] = None
    registrado_em: Optional[datetime] = None

    @field_validator("registrado_em", mode="before")
    @classmethod
    def _parse_registrado_em(cls, v):
        return parse_timestamp(v)

    def to_row(self) -> dict:
        return self.model_dump(mode="json")


class LockInfo(BaseModel):
    locked: bool = False
    lock_at: Optional[datetime] = None


# ---- Session ----
class ChamadaEntry(BaseModel):
    aluno_id: int
    nome_completo: str
    status: AttendanceStatus = AttendanceStatus.PRESENTE
    justificativa: Optional[str] = None
    editable: bool = True
    registrado_em: Optional[datetime] = None


class AttendanceSession(BaseModel):
    turma_id: int
    data: date
    mode: Literal["chamada", "correcao"] = "chamada"
    entries: Dict[int, ChamadaEntry] = Field(default_factory=dict)
    blocked_reason: Optional[BlockedReason] = None
    lock: LockInfo = Field(default_factory=LockInfo)
    warning: Optional[str] = None
    status_message: str = ""

    @computed_field
    @property
    def editable(self) -> bool:
        return self.blocked_reason is None and not self.lock.locked

    def entry(self, aluno_id: int) -> ChamadaEntry:
        entry = self.entries.get(int(aluno_id))
        if entry is None:
            raise ValidationError(f"Aluno {aluno_id} não pertence a esta chamada.")
        return entry

    def set_status(
        self,
        aluno_id: int,
        status: AttendanceStatus | str,
        justificativa: Optional[str] = None,
    ) -> bool:
        """Toggle one student. Returns False when the row is read-only."""
        entry = self.entry(aluno_id)
        if not entry.editable:
            return False

        status = AttendanceStatus(status)
        if status == AttendanceStatus.PRESENTE:
            entry.status = status
            entry.justificativa = None
            return True

        entry.justificativa = self._resolve_justification(entry, justificativa)
        entry.status = status
        return True

    def _resolve_justification(self, entry: ChamadaEntry, justificativa: Optional[str]) -> str:
        if justificativa is None:
            if entry.status == AttendanceStatus.FALTA and entry.justificativa:
                return entry.justificativa
            return FALTA_INJUSTIFICADA

        text = justificativa.strip()
        if self.mode == "chamada":
            if text not in TEACHER_JUSTIFICATIONS:
                raise ValidationError(
                    f"Justificativa inválida: '{justificativa}'. Use '{FALTA_JUSTIFICADA}' ou '{FALTA_INJUSTIFICADA}'."
                )
            return text
        return text or OUTROS

    def mark_all_present(self) -> None:
        for entry in self.entries.values():
            if entry.editable:
                entry.status = AttendanceStatus.PRESENTE
                entry.justificativa = None

    def absent_entries(self) -> List[ChamadaEntry]:
        return [e for e in self.entries.values() if e.status == AttendanceStatus.FALTA]

    def summary(self) -> dict:
        faltas = len(self.absent_entries())
        return {
            "total": len(self.entries),
            "presentes": len(self.entries) - faltas,
            "faltas": faltas,
        }

    def to_records(
        self,
        registrado_por_uid: str,
        now: datetime,
        existing: Dict[int, AttendanceRecord],
    ) -> List[AttendanceRecord]:
        """One record per student; the first registrado_em of the day is preserved."""
        records = []
        for entry in self.entries.values():
            justificativa = None
            if entry.status == AttendanceStatus.FALTA:
                justificativa = entry.justificativa or FALTA_INJUSTIFICADA
            previous = existing.get(entry.aluno_id)
            records.append(AttendanceRecord(
                aluno_id=entry.aluno_id,
                turma_id=self.turma_id,
                data=self.data,
                status=entry.status,
                justificativa=justificativa,
                registrado_por_uid=registrado_por_uid,
                registrado_em=(previous.registrado_em if previous and previous.registrado_em else now),
            ))
        return records


# ---- API input ----
class ChamadaMark(BaseModel):
    aluno_id: int
    status: AttendanceStatus
    justificativa: Optional[str] = None


class ChamadaSave(BaseModel):
    entries: List[ChamadaMark] = Field(default_factory=list)
    mark_all_present: bool = False


class CorrecaoSubmit(BaseModel):
    data: date
    entries: List[ChamadaMark] = Field(default_factory=list)
