"""
Domain exceptions and their HTTP mapping.

Services raise these; the handlers registered in app.main turn them into the
standard {success, data, message} envelope.
"""

from datetime import datetime
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.utils.response import error_response


class ChamadaError(Exception):
    """Base exception for business rule violations."""

    status_code = 400

    def __init__(self, message: str, data: Any = None):
        super().__init__(message)
        self.message = message
        self.data = data


class ValidationError(ChamadaError):
    """Input data is invalid or violates a domain rule."""


class NotFoundError(ChamadaError):
    status_code = 404


class AttendanceBlockedError(ChamadaError):
    """The date is a blackout for the class (weekend or calendar event)."""

    status_code = 409

    def __init__(self, message: str, kind: str):
        super().__init__(message, data={"kind": kind})
        self.kind = kind


class AttendanceLockedError(ChamadaError):
    """The edit window for the day's sheet has elapsed."""

    status_code = 409

    def __init__(self, lock_at: Optional[datetime], window_text: str = "1h"):
        super().__init__(
            f"Chamada encerrada. Alterações bloqueadas após {window_text}.",
            data={"lock_at": lock_at.isoformat() if lock_at else None},
        )
        self.lock_at = lock_at


class DataStoreError(ChamadaError):
    """A remote read or write failed. Never retried."""

    status_code = 502


class SessionExpiredError(ChamadaError):
    """Token-related failure; the client must sign the user out."""

    status_code = 401

    def __init__(self, message: str = "Sua sessão expirou por segurança. Por favor, faça o login novamente."):
        super().__init__(message, data={"force_sign_out": True})


async def chamada_error_handler(request: Request, exc: ChamadaError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, SessionExpiredError) else None
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(message=exc.message, data=exc.data),
        headers=headers,
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ChamadaError, chamada_error_handler)
