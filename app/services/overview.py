"""
Administrative read models built from raw Supabase rows: the daily absence
summary, data consistency checks, a student's attendance history and the
absence alerts that feed APOIA referrals.
"""

from __future__ import annotations

import math
from collections import Counter, defaultdict
from datetime import date, timedelta
from typing import Iterable, Optional

from app.schemas.school import Configuracao
from app.utils.sorting import natural_key

SEM_JUSTIFICATIVA = "Sem justificativa"
CONSISTENCY_LIST_LIMIT = 50


def _day(value) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _name(row: dict) -> str:
    return (row.get("nome_completo") or row.get("nome") or "").casefold()


# ---------------------------------------------------------------------------
# Daily summary
# ---------------------------------------------------------------------------
def daily_summary(rows: Iterable[dict]) -> dict:
    """Present/absent counts for one day plus who was absent and why."""
    presentes = faltas = 0
    ausentes = []
    for row in rows:
        if row.get("status") == "presente":
            presentes += 1
        elif row.get("status") == "falta":
            faltas += 1
            aluno = row.get("alunos") or {}
            turma = row.get("turmas") or {}
            ausentes.append({
                "aluno_id": aluno.get("id"),
                "nome_completo": aluno.get("nome_completo") or "",
                "turma": turma.get("nome_turma") or "",
                "justificativa": row.get("justificativa") or SEM_JUSTIFICATIVA,
            })
    ausentes.sort(key=lambda a: (natural_key(a["turma"]), a["nome_completo"].casefold()))
    return {"presentes": presentes, "faltas": faltas, "ausentes": ausentes}


# ---------------------------------------------------------------------------
# Consistency
# ---------------------------------------------------------------------------
def _bucket(items: list, limit: int) -> dict:
    return {"total": len(items), "itens": items[:limit]}


def consistency_report(
    alunos: list[dict],
    professores: list[dict],
    vinculos: list[dict],
    turmas: list[dict],
    limit: int = CONSISTENCY_LIST_LIMIT,
) -> dict:
    turma_ids = {t["id"] for t in turmas}
    linked = {v.get("professor_id") for v in vinculos}

    sem_turma = sorted(
        (a for a in alunos if a.get("status") == "ativo" and a.get("turma_id") is None),
        key=_name,
    )
    orfaos = sorted(
        (a for a in alunos if a.get("turma_id") is not None and a["turma_id"] not in turma_ids),
        key=_name,
    )
    professores_sem_turma = sorted(
        (p for p in professores if p.get("user_uid") not in linked),
        key=_name,
    )

    counts = Counter((t.get("nome_turma"), t.get("ano_letivo")) for t in turmas)
    duplicadas = [
        {"nome_turma": nome, "ano_letivo": ano, "count": count}
        for (nome, ano), count in counts.items()
        if count > 1
    ]
    duplicadas.sort(key=lambda d: (-d["count"], natural_key(d["nome_turma"])))

    return {
        "alunos_sem_turma": _bucket(sem_turma, limit),
        "professores_sem_turma": _bucket(professores_sem_turma, limit),
        "turmas_duplicadas": _bucket(duplicadas, limit),
        "alunos_orfaos": _bucket(orfaos, limit),
    }


# ---------------------------------------------------------------------------
# Student history
# ---------------------------------------------------------------------------
def student_history(rows: list[dict]) -> dict:
    presencas = sum(1 for r in rows if r.get("status") == "presente")
    faltas = sum(1 for r in rows if r.get("status") == "falta")
    total = presencas + faltas
    # Half rounds up
    assiduidade = math.floor(presencas * 100 / total + 0.5) if total else 0
    return {
        "registros": rows,
        "presencas": presencas,
        "faltas": faltas,
        "assiduidade": assiduidade,
    }


# ---------------------------------------------------------------------------
# Absence alerts
# ---------------------------------------------------------------------------
def _consecutive_absences(records: list[dict]) -> int:
    """Absences since the student's last recorded presence, records newest first."""
    streak = 0
    for record in records:
        if record.get("status") != "falta":
            break
        streak += 1
    return streak


def absence_alerts(
    rows: Iterable[dict],
    config: Configuracao,
    today: date,
    acompanhados: Optional[set] = None,
) -> list[dict]:
    """
    Students whose absences reach the configured thresholds.

    faltas_consecutivas counts back from the newest recorded day;
    faltas_intercaladas counts every absence in the last faltas_dias days
    (all loaded rows when faltas_dias is unset).
    """
    acompanhados = acompanhados or set()
    since = today - timedelta(days=config.faltas_dias) if config.faltas_dias else None

    by_student: dict[int, list[dict]] = defaultdict(list)
    for row in rows:
        by_student[row["aluno_id"]].append(row)

    alerts = []
    for aluno_id, records in by_student.items():
        records.sort(key=lambda r: _day(r["data"]), reverse=True)
        motivos = []

        streak = _consecutive_absences(records)
        if config.faltas_consecutivas and streak >= config.faltas_consecutivas:
            motivos.append(f"{streak} faltas consecutivas")

        if config.faltas_intercaladas:
            window = [
                r for r in records
                if r.get("status") == "falta" and (since is None or _day(r["data"]) >= since)
            ]
            if len(window) >= config.faltas_intercaladas:
                period = f" nos últimos {config.faltas_dias} dias" if since else ""
                motivos.append(f"{len(window)} faltas{period}")

        if motivos:
            aluno = records[0].get("alunos") or {}
            turma = aluno.get("turmas") or {}
            alerts.append({
                "aluno_id": aluno_id,
                "nome_completo": aluno.get("nome_completo") or "",
                "turma": turma.get("nome_turma") or "",
                "motivos": motivos,
                "em_acompanhamento": aluno_id in acompanhados,
            })

    alerts.sort(key=lambda a: a["nome_completo"].casefold())
    return alerts
