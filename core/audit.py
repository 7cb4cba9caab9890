# core/audit.py

"""
RBAC audit trail.

Permission checks and role changes are written to rbac_audit_logs on a
best-effort basis: a failed audit write is logged and never changes the
outcome of the request that produced it.
"""

from datetime import datetime, timezone
from typing import Optional

from fastapi import Request
from supabase import Client

from core.config import settings
from core.errors import extract_supabase_error
from core.logging_config import logger
from core.supabase_client import AUDIT_LOG_TABLE, ScopedTableClient
from models.enums import AuditResult


# ============================================================
# Client information
# ============================================================
def get_client_ip(request: Request) -> Optional[str]:
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    return None


def get_user_agent(request: Request) -> Optional[str]:
    return request.headers.get("user-agent")


# ============================================================
# Audit logger
# ============================================================
class AuditLogger:
    def __init__(self, client: Optional[Client], enabled: bool = True):
        self._db = ScopedTableClient(client, {AUDIT_LOG_TABLE}) if client is not None else None
        self.enabled = enabled and self._db is not None

    def _write(self, row: dict):
        if not self.enabled:
            return
        row.setdefault("created_at", datetime.now(timezone.utc).isoformat())
        try:
            self._db.table(AUDIT_LOG_TABLE).insert(row).execute()
        except Exception as e:
            logger.warning(f"🔐 RBAC: Failed to write audit record: {extract_supabase_error(e)}")

    def log_permission_check(
        self,
        principal_id: Optional[str],
        permission: str,
        result: AuditResult,
        path: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ):
        self._write({
            "event_type": "permission_check",
            "user_id": principal_id,
            "permission": permission,
            "result": AuditResult(result).value,
            "path": path or "unknown",
            "ip_address": ip_address,
            "user_agent": user_agent,
        })

    def log_role_change(
        self,
        actor_id: str,
        target_id: str,
        scope: str,
        old_role: Optional[str],
        new_role: Optional[str],
        company_id: Optional[str] = None,
    ):
        self._write({
            "event_type": "role_change",
            "user_id": actor_id,
            "target_user_id": target_id,
            "company_id": company_id,
            "scope": scope,
            "old_role": old_role,
            "new_role": new_role,
        })


def build_audit_logger(client: Optional[Client]) -> AuditLogger:
    return AuditLogger(client, enabled=settings.RBAC_AUDIT_ENABLED)
