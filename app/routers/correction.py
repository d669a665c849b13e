"""
Correction router — administrators fix attendance for any past date.

Calendar events only produce a warning here; the one-hour lock never applies.
"""

from datetime import date

from fastapi import APIRouter, Depends, Query
from app.core.security import require_role
from app.schemas.attendance import CorrecaoSubmit
from app.services.attendance import AttendanceService, get_attendance_service
from app.utils.response import success_response

router = APIRouter(prefix="/api/admin/correcao", tags=["Correção de chamada"])


@router.get("/{turma_id}")
async def load_correcao(
    turma_id: int,
    data: date = Query(...),
    user: dict = Depends(require_role(["admin"])),
    service: AttendanceService = Depends(get_attendance_service),
):
    session = service.load_correction_session(turma_id, data)
    return success_response(
        data={**session.model_dump(mode="json"), "summary": session.summary()},
        message=session.status_message or "Success",
    )


@router.post("/{turma_id}")
async def submit_correcao(
    turma_id: int,
    body: CorrecaoSubmit,
    user: dict = Depends(require_role(["admin"])),
    service: AttendanceService = Depends(get_attendance_service),
):
    records = service.submit_correction(turma_id, body.data, body.entries, user["user_uid"])
    return success_response(
        data={"count": len(records)},
        message="Chamada corrigida com sucesso!",
    )
