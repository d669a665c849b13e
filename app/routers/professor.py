"""
Professor router — today's chamada for the teacher's own classes.

Loading and saving both go through AttendanceService, which enforces the
calendar blackout and the one-hour edit window.
"""

from fastapi import APIRouter, Depends
from app.core.security import require_role, ensure_turma_access, get_professor_turma_ids
from app.core.database import get_supabase, safe_query
from app.schemas.attendance import ChamadaSave
from app.services.attendance import AttendanceService, get_attendance_service
from app.utils.response import success_response
from app.utils.sorting import natural_key

router = APIRouter(prefix="/api/professor", tags=["Professor"])


@router.get("/turmas")
async def get_my_turmas(
    user: dict = Depends(require_role(["professor"])),
):
    """Classes linked to this teacher, natural-sorted by name."""
    turma_ids = get_professor_turma_ids(user["user_uid"])
    if not turma_ids:
        return success_response(data=[])

    db = get_supabase()
    result = safe_query(
        db.table("turmas").select("id, nome_turma, ano_letivo").in_("id", turma_ids)
    )
    turmas = sorted(result.data or [], key=lambda t: natural_key(t.get("nome_turma")))
    return success_response(data=turmas)


@router.get("/chamada/{turma_id}")
async def load_chamada(
    turma_id: int,
    user: dict = Depends(require_role(["professor"])),
    service: AttendanceService = Depends(get_attendance_service),
):
    ensure_turma_access(user, turma_id)
    session = service.load_session(turma_id)
    return success_response(
        data={**session.model_dump(mode="json"), "summary": session.summary()},
        message=session.status_message,
    )


@router.post("/chamada/{turma_id}")
async def save_chamada(
    turma_id: int,
    body: ChamadaSave,
    user: dict = Depends(require_role(["professor"])),
    service: AttendanceService = Depends(get_attendance_service),
):
    """Apply the teacher's marks to a fresh session and upsert the whole sheet."""
    ensure_turma_access(user, turma_id)
    session = service.load_session(turma_id)

    if body.mark_all_present:
        session.mark_all_present()
    for mark in body.entries:
        session.set_status(mark.aluno_id, mark.status, mark.justificativa)

    records = service.save_session(session, user["user_uid"])
    return success_response(
        data={
            "count": len(records),
            "summary": session.summary(),
            "lock_at": session.lock.lock_at.isoformat() if session.lock.lock_at else None,
        },
        message="Chamada salva com sucesso!",
    )
