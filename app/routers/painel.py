"""
Dashboard router — the administrator's daily overview and data checks.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from app.core.clock import get_clock
from app.core.database import get_supabase, safe_query
from app.core.security import require_role
from app.schemas.school import EM_ANDAMENTO
from app.services.overview import consistency_report, daily_summary
from app.utils.response import success_response

router = APIRouter(prefix="/api/admin/painel", tags=["Painel"])


@router.get("/resumo")
async def resumo_diario(
    data: Optional[date] = Query(None),
    user: dict = Depends(require_role(["admin"])),
    clock=Depends(get_clock),
):
    """Present/absent counts for the day, the absent list and open referrals."""
    day = data or clock.today()
    db = get_supabase()
    result = safe_query(
        db.table("presencas")
        .select("status, justificativa, alunos(id, nome_completo), turmas(nome_turma)")
        .eq("data", day.isoformat())
    )
    summary = daily_summary(result.data or [])

    abertos = safe_query(
        db.table("apoia_encaminhamentos").select("id", count="exact").eq("status", EM_ANDAMENTO)
    )
    summary["em_acompanhamento"] = abertos.count or 0
    summary["data"] = day.isoformat()
    return success_response(data=summary)


@router.get("/consistencia")
async def consistencia(
    user: dict = Depends(require_role(["admin"])),
):
    db = get_supabase()
    alunos = safe_query(db.table("alunos").select("id, nome_completo, matricula, turma_id, status"))
    professores = safe_query(
        db.table("usuarios").select("id, user_uid, nome, email").eq("papel", "professor").order("nome")
    )
    vinculos = safe_query(db.table("professores_turmas").select("professor_id"))
    turmas = safe_query(db.table("turmas").select("id, nome_turma, ano_letivo"))

    report = consistency_report(
        alunos.data or [],
        professores.data or [],
        vinculos.data or [],
        turmas.data or [],
    )
    return success_response(data=report)
