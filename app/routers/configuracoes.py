"""
Configuration router — absence-alert thresholds and the alert time.

A single row in `configuracoes`; PUT updates it or creates it on first save.
"""

from fastapi import APIRouter, Depends
from app.core.audit import log_audit
from app.core.database import get_supabase, safe_query
from app.core.security import require_role
from app.schemas.school import Configuracao
from app.utils.response import success_response

router = APIRouter(prefix="/api/admin/configuracoes", tags=["Configurações"])


@router.get("")
async def get_configuracoes(
    user: dict = Depends(require_role(["admin"])),
):
    db = get_supabase()
    result = safe_query(db.table("configuracoes").select("*").limit(1).maybe_single())
    row = result.data if result and result.data else {}
    return success_response(data=Configuracao.from_row(row).model_dump())


@router.put("")
async def save_configuracoes(
    body: Configuracao,
    user: dict = Depends(require_role(["admin"])),
):
    db = get_supabase()
    config_data = body.to_row()

    existing = safe_query(db.table("configuracoes").select("id").limit(1).maybe_single())
    if existing and existing.data and existing.data.get("id"):
        safe_query(db.table("configuracoes").update(config_data).eq("id", existing.data["id"]))
    else:
        safe_query(db.table("configuracoes").insert(config_data))

    log_audit(user["user_uid"], "update", "configuracoes", None, {"configData": config_data})
    return success_response(data=body.model_dump(), message="Configurações salvas com sucesso!")
