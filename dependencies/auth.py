from typing import List, Optional

from fastapi import Depends, Request
from supabase import Client

from core.audit import AuditLogger, build_audit_logger
from core.guard import (
    MATCH_ALL,
    MATCH_ANY,
    MATCH_SINGLE,
    GuardServices,
    authorize,
    build_guard_services,
    resolve_company_context,
    resolve_principal,
    validate_permissions,
)
from core.errors import ConfigurationError
from core.role_store import PlatformRoleWriter, TenantRoleWriter
from core.supabase_client import get_supabase_client
from models.rbac import AccessContext, Principal


# ============================================================
# Collaborators (overridable in tests via app.dependency_overrides)
# ============================================================
def get_guard_services() -> GuardServices:
    return build_guard_services()


def _client() -> Client:
    client = get_supabase_client()
    if client is None:
        raise ConfigurationError("Supabase client not configured")
    return client


def get_tenant_role_writer() -> TenantRoleWriter:
    return TenantRoleWriter(_client())


def get_platform_role_writer() -> PlatformRoleWriter:
    return PlatformRoleWriter(_client())


def get_audit_logger() -> AuditLogger:
    return build_audit_logger(get_supabase_client())


# ============================================================
# Authentication only (no permission required)
# ============================================================
async def get_current_principal(
    request: Request,
    services: GuardServices = Depends(get_guard_services),
) -> Principal:
    return await resolve_principal(request, services)


def get_company_context(request: Request) -> Optional[str]:
    return resolve_company_context(request)


# ============================================================
# PERMISSION GUARDS
# ============================================================
def requires_permission(permission: str):
    """
    Usage:
        @router.get("/", dependencies=[Depends(requires_permission("contract:read:own"))])

    or, to get the AccessContext in the route:
        access: AccessContext = Depends(requires_permission("member:manage:organization"))
    """
    required = validate_permissions([permission])

    async def dependency(
        request: Request,
        services: GuardServices = Depends(get_guard_services),
    ) -> AccessContext:
        return await authorize(request, required, services, MATCH_SINGLE)

    return dependency


def requires_any_permission(permissions: List[str]):
    required = validate_permissions(permissions)

    async def dependency(
        request: Request,
        services: GuardServices = Depends(get_guard_services),
    ) -> AccessContext:
        return await authorize(request, required, services, MATCH_ANY)

    return dependency


def requires_all_permissions(permissions: List[str]):
    required = validate_permissions(permissions)

    async def dependency(
        request: Request,
        services: GuardServices = Depends(get_guard_services),
    ) -> AccessContext:
        return await authorize(request, required, services, MATCH_ALL)

    return dependency
