# core/supabase_client.py

from typing import FrozenSet, Iterable

from supabase import create_client, Client
from core.config import settings
from core.errors import ConfigurationError
from core.logging_config import logger


# Tables the RBAC core reads or writes
USERS_TABLE = "users"
COMPANY_MEMBERS_TABLE = "company_members"
PLATFORM_ROLE_ASSIGNMENTS_TABLE = "platform_role_assignments"
AUDIT_LOG_TABLE = "rbac_audit_logs"


# ============================================================
# Supabase Client Factory (service role)
# ============================================================

def get_supabase_client() -> Client:
    """
    Creates a Supabase client using the SERVICE ROLE KEY.
    REQUIRED for:
        - auth.get_user (token validation)
        - reading role facts regardless of RLS

    Route code never receives this client directly for writes; it goes
    through a ScopedTableClient (see below).
    """
    try:
        supabase_url = settings.SUPABASE_URL
        supabase_key = settings.SUPABASE_SERVICE_ROLE_KEY

        if not supabase_url or not supabase_key:
            logger.error("Missing Supabase credentials")
            logger.error(f"   URL: {supabase_url}")
            logger.error(f"   SERVICE ROLE KEY: {'SET' if supabase_key else 'MISSING'}")
            return None

        return create_client(supabase_url, supabase_key)

    except Exception as e:
        logger.error(f"Supabase Init Error: {e}", exc_info=True)
        return None


# ============================================================
# Table-scoped client
# ============================================================

class ScopedTableClient:
    """
    Wraps a Supabase client and only hands out query builders for an
    explicit set of tables. Anything else raises before a request is built.
    """

    def __init__(self, client: Client, allowed_tables: Iterable[str]):
        if client is None:
            raise ConfigurationError("Supabase client not configured")
        self._client = client
        self._allowed: FrozenSet[str] = frozenset(allowed_tables)

    @property
    def allowed_tables(self) -> FrozenSet[str]:
        return self._allowed

    def table(self, name: str):
        if name not in self._allowed:
            raise ConfigurationError(
                f"Table '{name}' is outside this client's scope ({', '.join(sorted(self._allowed))})"
            )
        return self._client.table(name)


# ============================================================
# Ping Supabase for health checks
# ============================================================

def ping_supabase() -> dict:
    """
    Simple connectivity check against the role-fact tables.
    Does NOT query auth tables.
    """
    try:
        client = get_supabase_client()
        if client is None:
            return {"service": "Supabase", "status": "not_configured"}

        tables = [USERS_TABLE, COMPANY_MEMBERS_TABLE, PLATFORM_ROLE_ASSIGNMENTS_TABLE]
        results = {}

        for t in tables:
            try:
                res = client.table(t).select("*").limit(1).execute()
                results[t] = {
                    "status": "ok",
                    "rows_found": len(res.data or [])
                }
            except Exception as err:
                results[t] = {"status": "error", "detail": str(err)}

        overall = "ok" if all(r["status"] == "ok" for r in results.values()) else "degraded"
        return {
            "service": "Supabase",
            "status": overall,
            "tables": results,
        }

    except Exception as e:
        logger.error(f"Supabase Ping Error: {e}", exc_info=True)
        return {"service": "Supabase", "status": "error", "detail": str(e)}
