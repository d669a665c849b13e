"""
Pydantic schemas for calendar events (eventos) and blackout reasons.
"""

from datetime import date
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class Abrangencia(str, Enum):
    GLOBAL = "global"
    TURMAS = "turmas"


def normalize_turmas_ids(value) -> list[int]:
    """Accept a JSON list or a Postgres array literal like "{1,2}"."""
    if not value:
        return []
    if isinstance(value, str):
        value = value.replace("{", "").replace("}", "").split(",")
    ids = []
    for v in value:
        try:
            ids.append(int(str(v).strip()))
        except ValueError:
            continue
    return ids


# ---- Stored event ----
class CalendarEvent(BaseModel):
    id: Optional[int] = None
    data: date
    data_fim: Optional[date] = None
    descricao: str = ""
    abrangencia: str = Abrangencia.GLOBAL.value
    turmas_ids: List[int] = Field(default_factory=list)

    @field_validator("turmas_ids", mode="before")
    @classmethod
    def _normalize_ids(cls, v):
        return normalize_turmas_ids(v)

    @field_validator("abrangencia", mode="before")
    @classmethod
    def _default_scope(cls, v):
        return v or Abrangencia.GLOBAL.value

    @field_validator("descricao", mode="before")
    @classmethod
    def _blank_description(cls, v):
        return v or ""

    @property
    def label(self) -> str:
        return self.descricao or "Evento"

    @property
    def end(self) -> date:
        return self.data_fim or self.data

    @property
    def is_specific(self) -> bool:
        return self.abrangencia != Abrangencia.GLOBAL.value or bool(self.turmas_ids)

    def covers(self, day: date) -> bool:
        return self.data <= day <= self.end

    def applies_to(self, turma_id: Optional[int]) -> bool:
        # A specific event with an empty class list applies to nobody
        if not self.is_specific:
            return True
        if turma_id is None:
            return False
        return int(turma_id) in self.turmas_ids


class BlockedReason(BaseModel):
    kind: Literal["weekend", "calendar_event", "calendar_unavailable"]
    message: str
    event: Optional[CalendarEvent] = None


# ---- Admin input ----
class EventoCreate(BaseModel):
    descricao: str = Field(min_length=1)
    data: date
    data_fim: Optional[date] = None
    abrangencia: Abrangencia = Abrangencia.GLOBAL
    turmas_ids: List[int] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_scope(self):
        if self.abrangencia == Abrangencia.TURMAS and not self.turmas_ids:
            raise ValueError("Selecione ao menos uma turma para a exceção.")
        if self.data_fim and self.data_fim < self.data:
            raise ValueError("A data final não pode ser anterior à data inicial.")
        return self

    def to_row(self) -> dict:
        return {
            "descricao": self.descricao,
            "data": self.data.isoformat(),
            "data_fim": self.data_fim.isoformat() if self.data_fim else None,
            "abrangencia": self.abrangencia.value,
            "turmas_ids": self.turmas_ids if self.abrangencia == Abrangencia.TURMAS else None,
        }
