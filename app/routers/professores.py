"""
Teachers router — teacher profiles (usuarios with papel = 'professor').

Administrators can:
- List teachers (efetivo before ACT, then by name) with a name/email search
- Edit name, email, status and employment bond (vinculo)
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from app.core.audit import log_audit
from app.core.database import get_supabase, safe_query
from app.core.errors import NotFoundError, ValidationError
from app.core.security import require_role
from app.schemas.school import ProfessorUpdate
from app.utils.response import success_response

router = APIRouter(prefix="/api/admin/professores", tags=["Professores"])

PROFESSOR_COLUMNS = "id, user_uid, nome, email, status, email_confirmado, vinculo"
VINCULO_ORDER = {"efetivo": 0, "act": 1}


def _sort_key(professor: dict):
    return (
        VINCULO_ORDER.get(professor.get("vinculo"), 2),
        (professor.get("nome") or "").casefold(),
    )


@router.get("")
async def list_professores(
    busca: Optional[str] = Query(None),
    user: dict = Depends(require_role(["admin"])),
):
    db = get_supabase()
    result = safe_query(db.table("usuarios").select(PROFESSOR_COLUMNS).eq("papel", "professor"))
    professores = result.data or []

    termo = (busca or "").strip().casefold()
    if termo:
        professores = [
            p for p in professores
            if termo in (p.get("nome") or "").casefold() or termo in (p.get("email") or "").casefold()
        ]
    return success_response(data=sorted(professores, key=_sort_key))


@router.get("/{professor_id}")
async def get_professor(
    professor_id: int,
    user: dict = Depends(require_role(["admin"])),
):
    db = get_supabase()
    result = safe_query(
        db.table("usuarios")
        .select(PROFESSOR_COLUMNS)
        .eq("id", professor_id)
        .eq("papel", "professor")
        .maybe_single()
    )
    if not result or not result.data:
        raise NotFoundError("Professor não encontrado.")
    return success_response(data=result.data)


@router.patch("/{professor_id}")
async def update_professor(
    professor_id: int,
    body: ProfessorUpdate,
    user: dict = Depends(require_role(["admin"])),
):
    update_data = body.model_dump(exclude_unset=True)
    if not update_data:
        raise ValidationError("Nenhum campo para atualizar.")

    db = get_supabase()
    result = safe_query(
        db.table("usuarios")
        .update(update_data)
        .eq("id", professor_id)
        .eq("papel", "professor")
    )
    if not result.data:
        raise NotFoundError("Professor não encontrado.")

    log_audit(user["user_uid"], "update", "professor", professor_id, update_data)
    return success_response(data=result.data[0], message="Professor salvo com sucesso!")
