"""
Pydantic schemas for school structure: classes, students, teachers, promotion,
APOIA referrals and the configuration singleton.
"""

from pydantic import BaseModel, Field
from typing import List, Literal, Optional


# ---- Turma ----
class TurmaCreate(BaseModel):
    nome_turma: str = Field(min_length=1)
    ano_letivo: int
    professores: List[str] = Field(default_factory=list)  # auth user uids


class TurmaUpdate(BaseModel):
    nome_turma: Optional[str] = None
    ano_letivo: Optional[int] = None
    professores: Optional[List[str]] = None


class PromocaoTurmas(BaseModel):
    turma_ids: List[int] = Field(min_length=1)
    ano_destino: int
    promover_professores_efetivos: bool = False


# ---- Aluno ----
class AlunoCreate(BaseModel):
    nome_completo: str = Field(min_length=1)
    matricula: Optional[str] = None
    turma_id: Optional[int] = None
    nome_responsavel: Optional[str] = None
    telefone: Optional[str] = None
    status: Literal["ativo", "inativo"] = "ativo"


class AlunoUpdate(BaseModel):
    nome_completo: Optional[str] = None
    matricula: Optional[str] = None
    turma_id: Optional[int] = None
    nome_responsavel: Optional[str] = None
    telefone: Optional[str] = None
    status: Optional[Literal["ativo", "inativo"]] = None


# ---- Configurações ----
class Configuracao(BaseModel):
    faltas_consecutivas: Optional[int] = None
    faltas_intercaladas: Optional[int] = None
    faltas_dias: Optional[int] = None
    alerta_horario: Optional[str] = None
    alerta_faltas_ativo: bool = False
    alerta_chamada_ativo: bool = False

    @classmethod
    def from_row(cls, row: dict) -> "Configuracao":
        """Read current columns, falling back to the legacy *_limite names."""
        def pick(*keys):
            for k in keys:
                if row.get(k) is not None:
                    return row[k]
            return None

        return cls(
            faltas_consecutivas=pick("faltas_consecutivas", "faltas_consecutivas_limite"),
            faltas_intercaladas=pick("faltas_intercaladas", "faltas_intercaladas_limite"),
            faltas_dias=pick("faltas_dias", "faltas_intercaladas_dias"),
            alerta_horario=row.get("alerta_horario") or None,
            alerta_faltas_ativo=bool(row.get("alerta_faltas_ativo")),
            alerta_chamada_ativo=bool(pick("alerta_chamada_ativo", "alerta_chamada_nao_feita_ativo")),
        )

    def to_row(self) -> dict:
        """Write both the current and the legacy columns."""
        return {
            "faltas_consecutivas": self.faltas_consecutivas,
            "faltas_consecutivas_limite": self.faltas_consecutivas,
            "faltas_intercaladas": self.faltas_intercaladas,
            "faltas_intercaladas_limite": self.faltas_intercaladas,
            "faltas_dias": self.faltas_dias,
            "faltas_intercaladas_dias": self.faltas_dias,
            "alerta_horario": self.alerta_horario or None,
            "alerta_faltas_ativo": self.alerta_faltas_ativo,
            "alerta_chamada_ativo": self.alerta_chamada_ativo,
            "alerta_chamada_nao_feita_ativo": self.alerta_chamada_ativo,
        }


# ---- Professor ----
class ProfessorUpdate(BaseModel):
    nome: Optional[str] = Field(default=None, min_length=1)
    email: Optional[str] = None
    status: Optional[Literal["ativo", "inativo"]] = None
    vinculo: Optional[Literal["efetivo", "act"]] = None


# ---- APOIA (acompanhamento) ----
EM_ANDAMENTO = "Em andamento"


class AcompanhamentoCreate(BaseModel):
    aluno_id: int
    motivo: str = Field(min_length=1)
    status: str = EM_ANDAMENTO
    observacoes: Optional[str] = None


class AcompanhamentoUpdate(BaseModel):
    motivo: Optional[str] = Field(default=None, min_length=1)
    status: Optional[str] = None
    observacoes: Optional[str] = None
