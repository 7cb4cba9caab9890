# routers/rbac.py

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request

from core.evaluator import effective_permission_strings, evaluate
from core.guard import GuardServices, effective_grants
from core.permissions import CATALOG_VERSION, catalog_as_dict, is_known_permission
from core.roles import ROLE_ALIASES, role_catalog_as_dict
from dependencies.auth import get_company_context, get_current_principal, get_guard_services
from models.access import (
    EffectivePermissionsRead,
    PermissionCheckRequest,
    PermissionCheckResponse,
)
from models.rbac import Principal

router = APIRouter(
    prefix="/rbac",
    tags=["Access Control"],
)


# -----------------------------------------------------
# GET /rbac/permissions
# Static, versioned catalog shared with the UI
# No auth required
# -----------------------------------------------------
@router.get("/permissions", summary="Permission catalog")
def list_permissions():
    return catalog_as_dict()


# -----------------------------------------------------
# GET /rbac/roles
# -----------------------------------------------------
@router.get("/roles", summary="Role catalog")
def list_roles(principal: Principal = Depends(get_current_principal)):
    return {
        "version": CATALOG_VERSION,
        "roles": role_catalog_as_dict(),
        "aliases": dict(ROLE_ALIASES),
    }


# -----------------------------------------------------
# GET /rbac/me
# Effective permissions of the caller for the selected company
# -----------------------------------------------------
@router.get("/me", response_model=EffectivePermissionsRead, summary="My effective permissions")
async def my_permissions(
    request: Request,
    principal: Principal = Depends(get_current_principal),
    company_id: Optional[str] = Depends(get_company_context),
    services: GuardServices = Depends(get_guard_services),
):
    grants = await effective_grants(request, services, principal, company_id)
    return EffectivePermissionsRead(
        user_id=principal.id,
        company_id=company_id,
        permissions=effective_permission_strings(grants, company_id),
        catalog_version=CATALOG_VERSION,
    )


# -----------------------------------------------------
# POST /rbac/check
# Batch check for UI gating; never raises 403
# -----------------------------------------------------
@router.post("/check", response_model=PermissionCheckResponse, summary="Check permissions")
async def check_permissions(
    payload: PermissionCheckRequest,
    request: Request,
    principal: Principal = Depends(get_current_principal),
    header_company_id: Optional[str] = Depends(get_company_context),
    services: GuardServices = Depends(get_guard_services),
):
    unknown = [p for p in payload.permissions if not is_known_permission(p)]
    if unknown:
        raise HTTPException(400, f"Unknown permission(s): {', '.join(unknown)}")

    company_id = payload.company_id or header_company_id
    grants = await effective_grants(request, services, principal, company_id)

    return PermissionCheckResponse(
        company_id=company_id,
        results={p: evaluate(grants, p, company_id).allowed for p in payload.permissions},
    )
