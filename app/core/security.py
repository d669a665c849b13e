"""
Security module — Supabase Auth token verification + Mock auth + Role guard.

Auth Flow:
1. User signs in through Supabase Auth on the client → gets an access token
2. Frontend sends the token as a Bearer header
3. Backend asks Supabase Auth who the token belongs to
4. Backend fetches the profile from `usuarios` (by user_uid)
5. Backend checks: profile exists and status == 'ativo'
6. Backend injects: user_uid, papel, nome

Tokens Supabase Auth rejects raise SessionExpiredError, which the client
handles by signing the user out. An Auth outage is a DataStoreError.
"""

import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from supabase import AuthApiError

from app.core.config import settings
from app.core.database import get_supabase, safe_query
from app.core.errors import DataStoreError, SessionExpiredError

logger = logging.getLogger(__name__)

security_scheme = HTTPBearer()

ROLES = ("admin", "professor")

# ---------------------------------------------------------------------------
# Mock users (local development without a Supabase Auth project)
# ---------------------------------------------------------------------------
MOCK_USERS = {
    "admin-token": {
        "user_uid": "00000000-0000-0000-0000-00000000a001",
        "email": "admin@escola.local",
        "nome": "Administração",
        "papel": "admin",
    },
    "professor-token": {
        "user_uid": "00000000-0000-0000-0000-00000000b001",
        "email": "professor@escola.local",
        "nome": "Professor Demo",
        "papel": "professor",
    },
}


def _profile_to_user(profile: dict, email: str = "") -> dict:
    if profile.get("status") != "ativo":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Seu perfil de usuário não está ativo. Contate o suporte.",
        )
    if profile.get("papel") not in ROLES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Papel de usuário desconhecido.",
        )
    return {
        "user_uid": profile["user_uid"],
        "email": profile.get("email") or email,
        "nome": profile.get("nome") or email,
        "papel": profile["papel"],
    }


def _fetch_profile(column: str, value: str) -> dict | None:
    db = get_supabase()
    result = safe_query(
        db.table("usuarios")
        .select("*")
        .eq(column, value)
        .maybe_single()
    )
    if not result or not result.data:
        return None
    return result.data


# ---------------------------------------------------------------------------
# Token verification
# ---------------------------------------------------------------------------
async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security_scheme),
) -> dict:
    """Validate the Bearer token and return the caller's profile dict."""
    token = credentials.credentials

    if settings.AUTH_MODE == "mock":
        return _mock_auth(token)

    return _supabase_auth(token)


def _mock_auth(token: str) -> dict:
    user = MOCK_USERS.get(token)
    if user:
        return user

    # Email-based token: "mock-email@example.com"
    if token.startswith("mock-"):
        email = token[5:]
        profile = _fetch_profile("email", email)
        if profile:
            return _profile_to_user(profile, email)

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Token inválido.",
    )


def is_token_rejection(exc: AuthApiError) -> bool:
    """Supabase Auth answers a bad, expired or revoked token with 401/403."""
    message = getattr(exc, "message", None) or str(exc)
    return getattr(exc, "status", None) in (401, 403) or "JWT" in message.upper()


def _supabase_auth(token: str) -> dict:
    db = get_supabase()
    try:
        response = db.auth.get_user(token)
    except AuthApiError as e:
        if is_token_rejection(e):
            logger.info("Supabase Auth rejected token: %s", e)
            raise SessionExpiredError() from e
        logger.error("Supabase Auth error: %s", e)
        raise DataStoreError(f"Operação falhou: {e}") from e
    except Exception as e:
        logger.error("Supabase Auth unreachable: %s", e)
        raise DataStoreError(f"Operação falhou: {e}") from e

    auth_user = getattr(response, "user", None)
    if auth_user is None:
        raise SessionExpiredError()

    profile = _fetch_profile("user_uid", auth_user.id)
    if not profile:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Seu usuário foi autenticado, mas não possui um perfil no sistema. Contate o suporte.",
        )
    return _profile_to_user(profile, auth_user.email or "")


# ---------------------------------------------------------------------------
# Role guard dependency
# ---------------------------------------------------------------------------
def require_role(allowed_roles: list[str]):
    """
    Usage:
        @router.get("/admin-only")
        async def endpoint(user=Depends(require_role(["admin"]))):
    """

    async def role_checker(
        user: dict = Depends(get_current_user),
    ) -> dict:
        if user["papel"] not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Papel '{user['papel']}' não autorizado. Requer: {allowed_roles}",
            )
        return user

    return role_checker


def get_professor_turma_ids(professor_uid: str) -> list[int]:
    db = get_supabase()
    result = safe_query(
        db.table("professores_turmas").select("turma_id").eq("professor_id", professor_uid)
    )
    return [int(r["turma_id"]) for r in (result.data or [])]


def ensure_turma_access(user: dict, turma_id: int) -> None:
    """Teachers may only work on classes linked to them; admins on any."""
    if user["papel"] == "admin":
        return
    if turma_id not in get_professor_turma_ids(user["user_uid"]):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Você não está vinculado a esta turma.",
        )
