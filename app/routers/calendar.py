"""
Calendar router — school calendar events (eventos).

Events feed the chamada blackout rules: a global event blocks every class in
its range, a 'turmas' event only the classes it lists.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from app.core.audit import log_audit
from app.core.database import get_supabase, safe_query
from app.core.errors import NotFoundError
from app.core.security import require_role
from app.schemas.calendar import CalendarEvent, EventoCreate
from app.services.attendance import AttendanceService, get_attendance_service
from app.services.store import parse_rows
from app.utils.response import success_response

router = APIRouter(prefix="/api/admin/eventos", tags=["Calendário"])


@router.get("")
async def list_eventos(
    user: dict = Depends(require_role(["admin"])),
):
    db = get_supabase()
    result = safe_query(db.table("eventos").select("*").order("data"))
    eventos = parse_rows(CalendarEvent, result.data, "eventos")
    return success_response(data=[e.model_dump(mode="json") for e in eventos])


@router.get("/bloqueio")
async def check_bloqueio(
    data: date = Query(...),
    turma_id: Optional[int] = Query(None),
    user: dict = Depends(require_role(["admin", "professor"])),
    service: AttendanceService = Depends(get_attendance_service),
):
    """Would a chamada on this date be blocked for this class?"""
    reason = service.blackout.is_date_blocked(data, turma_id)
    return success_response(data={
        "blocked": reason is not None,
        "reason": reason.model_dump(mode="json") if reason else None,
    })


@router.get("/{evento_id}")
async def get_evento(
    evento_id: int,
    user: dict = Depends(require_role(["admin"])),
):
    db = get_supabase()
    result = safe_query(db.table("eventos").select("*").eq("id", evento_id).maybe_single())
    if not result or not result.data:
        raise NotFoundError("Evento não encontrado.")
    return success_response(data=CalendarEvent.model_validate(result.data).model_dump(mode="json"))


@router.post("")
async def create_evento(
    body: EventoCreate,
    user: dict = Depends(require_role(["admin"])),
):
    db = get_supabase()
    row = body.to_row()
    result = safe_query(db.table("eventos").insert(row))
    created = result.data[0] if result.data else None
    log_audit(user["user_uid"], "create", "evento", created.get("id") if created else None, {"eventoData": row})
    return success_response(data=created, message="Evento salvo com sucesso!")


@router.put("/{evento_id}")
async def update_evento(
    evento_id: int,
    body: EventoCreate,
    user: dict = Depends(require_role(["admin"])),
):
    db = get_supabase()
    row = body.to_row()
    result = safe_query(db.table("eventos").update(row).eq("id", evento_id))
    if not result.data:
        raise NotFoundError("Evento não encontrado.")
    log_audit(user["user_uid"], "update", "evento", evento_id, {"eventoData": row})
    return success_response(data=result.data[0], message="Evento salvo com sucesso!")


@router.delete("/{evento_id}")
async def delete_evento(
    evento_id: int,
    user: dict = Depends(require_role(["admin"])),
):
    db = get_supabase()
    safe_query(db.table("eventos").delete().eq("id", evento_id))
    log_audit(user["user_uid"], "delete", "evento", evento_id)
    return success_response(message="Evento excluído")
