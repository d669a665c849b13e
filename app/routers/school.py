"""
School router — classes (turmas), students (alunos) and end-of-year promotion.

Administrators can:
- Create/edit classes and assign their teachers
- Create/edit/deactivate students and read their attendance history
- Promote classes to the next academic year (server-side RPC)
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from app.core.audit import log_audit
from app.core.database import get_supabase, safe_query
from app.core.errors import DataStoreError, NotFoundError
from app.core.security import require_role
from app.schemas.school import AlunoCreate, AlunoUpdate, PromocaoTurmas, TurmaCreate, TurmaUpdate
from app.services.overview import student_history
from app.utils.response import paginated_response, success_response
from app.utils.sorting import natural_key

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["Escola"])


# ═══════════════════════════════════════════════════════════
# TURMAS
# ═══════════════════════════════════════════════════════════

def _replace_professores(db, turma_id: int, professores: list[str]):
    safe_query(db.table("professores_turmas").delete().eq("turma_id", turma_id))
    if professores:
        safe_query(db.table("professores_turmas").insert([
            {"turma_id": turma_id, "professor_id": uid} for uid in professores
        ]))


@router.get("/turmas")
async def list_turmas(
    ano_letivo: Optional[int] = Query(None),
    user: dict = Depends(require_role(["admin"])),
):
    db = get_supabase()
    query = db.table("turmas").select("id, nome_turma, ano_letivo, professores_turmas(professor_id)")
    if ano_letivo is not None:
        query = query.eq("ano_letivo", ano_letivo)
    result = safe_query(query)
    turmas = sorted(result.data or [], key=lambda t: natural_key(t.get("nome_turma")))
    return success_response(data=turmas)


@router.post("/turmas")
async def create_turma(
    body: TurmaCreate,
    user: dict = Depends(require_role(["admin"])),
):
    db = get_supabase()
    result = safe_query(
        db.table("turmas").insert({"nome_turma": body.nome_turma, "ano_letivo": body.ano_letivo})
    )
    created = result.data[0] if result.data else None
    if created and body.professores:
        _replace_professores(db, created["id"], body.professores)

    log_audit(user["user_uid"], "create", "turma", created["id"] if created else None, body.model_dump())
    return success_response(data=created, message="Turma criada com sucesso!")


@router.patch("/turmas/{turma_id}")
async def update_turma(
    turma_id: int,
    body: TurmaUpdate,
    user: dict = Depends(require_role(["admin"])),
):
    db = get_supabase()
    update_data = {k: v for k, v in body.model_dump(exclude={"professores"}).items() if v is not None}
    if update_data:
        result = safe_query(db.table("turmas").update(update_data).eq("id", turma_id))
        if not result.data:
            raise NotFoundError("Turma não encontrada.")

    # None leaves the links alone; an empty list removes every teacher
    if body.professores is not None:
        _replace_professores(db, turma_id, body.professores)

    log_audit(user["user_uid"], "update", "turma", turma_id, body.model_dump())
    return success_response(message="Turma atualizada com sucesso!")


@router.delete("/turmas/{turma_id}")
async def delete_turma(
    turma_id: int,
    user: dict = Depends(require_role(["admin"])),
):
    """Unlink teachers, detach students, then drop the class."""
    db = get_supabase()
    safe_query(db.table("professores_turmas").delete().eq("turma_id", turma_id))
    safe_query(db.table("alunos").update({"turma_id": None}).eq("turma_id", turma_id))
    safe_query(db.table("turmas").delete().eq("id", turma_id))
    log_audit(user["user_uid"], "delete", "turma", turma_id)
    return success_response(message="Turma excluída")


@router.post("/turmas/promover")
async def promover_turmas(
    body: PromocaoTurmas,
    user: dict = Depends(require_role(["admin"])),
):
    """Promote every student of the chosen classes, then deactivate ACT teachers."""
    db = get_supabase()
    params = {
        "origem_turma_ids": body.turma_ids,
        "ano_destino": body.ano_destino,
    }
    if body.promover_professores_efetivos:
        params["promover_professores_efetivos"] = True

    safe_query(db.rpc("promover_turmas_em_massa", params))

    act_inativados = True
    message = "Turmas promovidas com sucesso!"
    try:
        safe_query(
            db.table("usuarios")
            .update({"status": "inativo"})
            .eq("papel", "professor")
            .eq("vinculo", "act")
            .eq("status", "ativo")
        )
    except DataStoreError as e:
        logger.error("Promotion done but ACT teachers were not deactivated: %s", e.message)
        act_inativados = False
        message = f"Turmas promovidas, mas houve erro ao inativar professores ACT: {e.message}"

    log_audit(user["user_uid"], "promote", "turmas", None, {
        "turmaIds": body.turma_ids,
        "ano_destino": body.ano_destino,
        "promover_professores_efetivos": body.promover_professores_efetivos,
        "act_inativados": act_inativados,
    })
    return success_response(data={"act_inativados": act_inativados}, message=message)


# ═══════════════════════════════════════════════════════════
# ALUNOS
# ═══════════════════════════════════════════════════════════

@router.get("/alunos")
async def list_alunos(
    turma_id: Optional[int] = Query(None),
    status: Optional[str] = Query("ativo"),
    busca: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=500),
    user: dict = Depends(require_role(["admin"])),
):
    db = get_supabase()
    query = db.table("alunos").select("*, turmas(nome_turma)", count="exact")
    if turma_id is not None:
        query = query.eq("turma_id", turma_id)
    if status:
        query = query.eq("status", status)
    if busca:
        query = query.ilike("nome_completo", f"%{busca}%")

    start = (page - 1) * page_size
    result = safe_query(query.order("nome_completo").range(start, start + page_size - 1))
    return paginated_response(result.data or [], page, page_size, result.count)


@router.post("/alunos")
async def create_aluno(
    body: AlunoCreate,
    user: dict = Depends(require_role(["admin"])),
):
    db = get_supabase()
    data = body.model_dump()
    result = safe_query(db.table("alunos").insert(data))
    created = result.data[0] if result.data else None
    log_audit(user["user_uid"], "create", "aluno", created.get("id") if created else None, {"alunoData": data})
    return success_response(data=created, message="Aluno salvo com sucesso!")


@router.patch("/alunos/{aluno_id}")
async def update_aluno(
    aluno_id: int,
    body: AlunoUpdate,
    user: dict = Depends(require_role(["admin"])),
):
    db = get_supabase()
    update_data = body.model_dump(exclude_unset=True)
    result = safe_query(db.table("alunos").update(update_data).eq("id", aluno_id))
    if not result.data:
        raise NotFoundError("Aluno não encontrado.")
    log_audit(user["user_uid"], "update", "aluno", aluno_id, {"alunoData": update_data})
    return success_response(data=result.data[0], message="Aluno salvo com sucesso!")


@router.delete("/alunos/{aluno_id}")
async def delete_aluno(
    aluno_id: int,
    user: dict = Depends(require_role(["admin"])),
):
    """Hard delete; students with attendance history are deactivated instead."""
    db = get_supabase()
    try:
        safe_query(db.table("alunos").delete().eq("id", aluno_id))
        message = "Aluno excluído"
    except DataStoreError:
        safe_query(db.table("alunos").update({"status": "inativo"}).eq("id", aluno_id))
        message = "Aluno possui histórico e foi inativado"
    log_audit(user["user_uid"], "delete", "aluno", aluno_id)
    return success_response(message=message)


@router.get("/alunos/{aluno_id}/historico")
async def historico_aluno(
    aluno_id: int,
    user: dict = Depends(require_role(["admin"])),
):
    """Every attendance row of one student, newest first, with totals."""
    db = get_supabase()
    aluno = safe_query(db.table("alunos").select("id, nome_completo").eq("id", aluno_id).maybe_single())
    if not aluno or not aluno.data:
        raise NotFoundError("Aluno não encontrado.")

    result = safe_query(
        db.table("presencas")
        .select("data, registrado_em, status, justificativa")
        .eq("aluno_id", aluno_id)
        .order("data", desc=True)
    )
    historico = student_history(result.data or [])
    historico["aluno"] = aluno.data
    return success_response(data=historico)
