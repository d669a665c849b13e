import logging
from typing import Any, Optional

from app.core.database import get_supabase

logger = logging.getLogger(__name__)


class SupabaseAuditLog:
    """
    Audit collaborator writing to the audit_logs table.

    Failures are logged and swallowed: an audit problem must never fail the
    operation that triggered it.
    """

    def __init__(self, client=None):
        self._client = client

    @property
    def client(self):
        return self._client or get_supabase()

    def log(
        self,
        actor: Optional[str],
        action: str,
        entity: str,
        entity_id: Any = None,
        details: Optional[dict] = None,
    ) -> None:
        payload = {
            "user_uid": actor,
            "action": action,
            "entity": entity,
            "entity_id": str(entity_id) if entity_id is not None else None,
            "details": details,
        }
        try:
            self.client.table("audit_logs").insert(payload).execute()
        except Exception as e:
            logger.warning("Audit log error (%s %s): %s", action, entity, e)


def get_audit_log() -> SupabaseAuditLog:
    return SupabaseAuditLog()


def log_audit(actor, action, entity, entity_id=None, details=None) -> None:
    get_audit_log().log(actor, action, entity, entity_id, details)
