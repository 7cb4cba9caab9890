# routers/health.py

from fastapi import APIRouter

from core.config import settings
from core.config_validator import get_enforcement_mode
from core.errors import ConfigurationError
from core.permissions import CATALOG_VERSION
from core.supabase_client import ping_supabase

router = APIRouter(
    prefix="/health",
    tags=["Health"],
)


# -----------------------------------------------------
# GET /health/db
# Checks that the role-fact tables are reachable
# No auth required
# -----------------------------------------------------
@router.get("/db", summary="Role store health check")
async def health_db():
    """
    Verifies Supabase connectivity for the three role-fact sources
    (users, company_members, platform_role_assignments).

    Safe for external health monitors (no auth required).
    """
    try:
        status = ping_supabase()
        return {
            "service": "Supabase",
            "status": status.get("status", "unknown"),
            "details": status,
        }

    except Exception as e:
        return {
            "service": "Supabase",
            "status": "error",
            "error": str(e),
        }


# -----------------------------------------------------
# GET /health/app
# -----------------------------------------------------
@router.get("/app", summary="App health check")
async def health_app():
    """
    Lightweight health check for uptime monitors.
    """
    try:
        enforcement = get_enforcement_mode().value
    except ConfigurationError as e:
        enforcement = f"invalid: {e.reason}"

    return {
        "service": settings.PROJECT_NAME,
        "status": "ok",
        "rbac_enforcement": enforcement,
        "catalog_version": CATALOG_VERSION,
    }
