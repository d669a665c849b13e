import logging

from postgrest.exceptions import APIError
from supabase import create_client, Client

from app.core.config import settings
from app.core.errors import DataStoreError, SessionExpiredError

logger = logging.getLogger(__name__)

_supabase_client: Client | None = None

AUTH_ERROR_CODES = {"401", "PGRST301", "PGRST302"}


def get_supabase() -> Client:
    global _supabase_client
    if _supabase_client is None:
        _supabase_client = create_client(
            settings.SUPABASE_URL,
            settings.SUPABASE_SERVICE_KEY or settings.SUPABASE_KEY,
        )
    return _supabase_client


def is_auth_error(exc: APIError) -> bool:
    """True when the failure comes from an expired or revoked token."""
    message = getattr(exc, "message", None) or ""
    details = getattr(exc, "details", None) or ""
    code = str(getattr(exc, "code", "") or "")
    return (
        "JWT" in message
        or code in AUTH_ERROR_CODES
        or "revoked" in str(details)
    )


def safe_query(query):
    """
    Execute a supabase query builder.

    Token failures raise SessionExpiredError so the caller can force a
    sign-out; every other PostgREST error raises DataStoreError.
    """
    try:
        return query.execute()
    except APIError as exc:
        if is_auth_error(exc):
            logger.warning("Supabase rejected the session token: %s", exc.message)
            raise SessionExpiredError() from exc
        logger.error("Supabase error: %s (code=%s)", exc.message, exc.code)
        raise DataStoreError(f"Operação falhou: {exc.message}") from exc
