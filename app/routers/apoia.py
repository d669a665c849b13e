"""
APOIA router — students referred for absence follow-up (apoia_encaminhamentos).

Administrators can:
- List referrals (open ones first, newest first) with status and date filters
- Create/edit/delete referrals
- See which students currently reach the absence-alert thresholds
"""

from datetime import date, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Query
from app.core.audit import log_audit
from app.core.clock import get_clock
from app.core.database import get_supabase, safe_query
from app.core.errors import NotFoundError, ValidationError
from app.core.security import require_role
from app.schemas.school import EM_ANDAMENTO, AcompanhamentoCreate, AcompanhamentoUpdate, Configuracao
from app.services.overview import absence_alerts
from app.utils.response import paginated_response, success_response

router = APIRouter(prefix="/api/admin/apoia", tags=["APOIA"])

ALERT_LOOKBACK_DAYS = 60


@router.get("")
async def list_acompanhamentos(
    status: Optional[str] = Query(None),
    data_inicio: Optional[date] = Query(None),
    data_fim: Optional[date] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=200),
    user: dict = Depends(require_role(["admin"])),
):
    db = get_supabase()
    query = db.table("apoia_encaminhamentos").select("*, alunos(nome_completo)", count="exact")
    if status:
        query = query.eq("status", status)
    if data_inicio:
        query = query.gte("data_encaminhamento", data_inicio.isoformat())
    if data_fim:
        query = query.lte("data_encaminhamento", data_fim.isoformat())

    start = (page - 1) * page_size
    result = safe_query(
        query.order("status")
        .order("data_encaminhamento", desc=True)
        .range(start, start + page_size - 1)
    )
    return paginated_response(result.data or [], page, page_size, result.count)


@router.get("/alertas")
async def list_alertas(
    user: dict = Depends(require_role(["admin"])),
    clock=Depends(get_clock),
):
    """Students at or over the configured absence thresholds."""
    db = get_supabase()
    row = safe_query(db.table("configuracoes").select("*").limit(1).maybe_single())
    config = Configuracao.from_row(row.data if row and row.data else {})
    if not config.alerta_faltas_ativo:
        return success_response(data=[], message="Alertas de faltas desativados.")

    today = clock.today()
    since = today - timedelta(days=max(config.faltas_dias or 0, ALERT_LOOKBACK_DAYS))
    presencas = safe_query(
        db.table("presencas")
        .select("aluno_id, data, status, alunos(nome_completo, turmas(nome_turma))")
        .gte("data", since.isoformat())
        .lte("data", today.isoformat())
    )
    abertos = safe_query(
        db.table("apoia_encaminhamentos").select("aluno_id").eq("status", EM_ANDAMENTO)
    )
    acompanhados = {r["aluno_id"] for r in abertos.data or []}

    alerts = absence_alerts(presencas.data or [], config, today, acompanhados)
    return success_response(data=alerts)


@router.get("/{acompanhamento_id}")
async def get_acompanhamento(
    acompanhamento_id: int,
    user: dict = Depends(require_role(["admin"])),
):
    db = get_supabase()
    result = safe_query(
        db.table("apoia_encaminhamentos")
        .select("*, alunos(nome_completo)")
        .eq("id", acompanhamento_id)
        .maybe_single()
    )
    if not result or not result.data:
        raise NotFoundError("Acompanhamento não encontrado.")
    return success_response(data=result.data)


@router.post("")
async def create_acompanhamento(
    body: AcompanhamentoCreate,
    user: dict = Depends(require_role(["admin"])),
    clock=Depends(get_clock),
):
    db = get_supabase()
    acompanhamento_data = body.model_dump()
    acompanhamento_data["data_encaminhamento"] = clock.today().isoformat()

    result = safe_query(db.table("apoia_encaminhamentos").insert(acompanhamento_data))
    created = result.data[0] if result.data else None
    log_audit(
        user["user_uid"], "create", "apoia_encaminhamento",
        created.get("id") if created else None, {"acompanhamentoData": acompanhamento_data},
    )
    return success_response(data=created, message="Acompanhamento salvo com sucesso!")


@router.patch("/{acompanhamento_id}")
async def update_acompanhamento(
    acompanhamento_id: int,
    body: AcompanhamentoUpdate,
    user: dict = Depends(require_role(["admin"])),
):
    update_data = body.model_dump(exclude_unset=True)
    if not update_data:
        raise ValidationError("Nenhum campo para atualizar.")

    db = get_supabase()
    result = safe_query(
        db.table("apoia_encaminhamentos").update(update_data).eq("id", acompanhamento_id)
    )
    if not result.data:
        raise NotFoundError("Acompanhamento não encontrado.")
    log_audit(user["user_uid"], "update", "apoia_encaminhamento", acompanhamento_id, {"acompanhamentoData": update_data})
    return success_response(data=result.data[0], message="Acompanhamento salvo com sucesso!")


@router.delete("/{acompanhamento_id}")
async def delete_acompanhamento(
    acompanhamento_id: int,
    user: dict = Depends(require_role(["admin"])),
):
    db = get_supabase()
    safe_query(db.table("apoia_encaminhamentos").delete().eq("id", acompanhamento_id))
    log_audit(user["user_uid"], "delete", "apoia_encaminhamento", acompanhamento_id)
    return success_response(message="Acompanhamento excluído")
