# routers/admin.py

from typing import List

from fastapi import APIRouter, Depends, HTTPException

from core.audit import AuditLogger
from core.config_validator import get_enforcement_mode
from core.errors import RBACError, handle_supabase_error
from core.guard import GuardServices
from core.logging_config import logger
from core.permissions import CATALOG_VERSION, PERMISSION_CATALOG
from core.role_store import PlatformGrantAuthority, PlatformRoleWriter
from core.roles import PLATFORM_ASSIGNABLE_ROLES, ROLE_GRANTS, TENANT_ASSIGNABLE_ROLES
from dependencies.auth import (
    get_audit_logger,
    get_guard_services,
    get_platform_role_writer,
    requires_permission,
)
from models.access import PlatformAssignmentCreate, PlatformAssignmentRead
from models.rbac import AccessContext


router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
)


# -----------------------------------------------------
# GET /admin/overview
# Platform admins only
# -----------------------------------------------------
@router.get("/overview", summary="Platform access-control overview")
def admin_overview(
    access: AccessContext = Depends(requires_permission("admin:access:all")),
):
    return {
        "catalog_version": CATALOG_VERSION,
        "enforcement": get_enforcement_mode().value,
        "permission_count": len(PERMISSION_CATALOG),
        "roles": sorted(ROLE_GRANTS.keys()),
        "tenant_assignable_roles": sorted(TENANT_ASSIGNABLE_ROLES),
        "platform_assignable_roles": sorted(PLATFORM_ASSIGNABLE_ROLES),
        "requested_by": access.principal.id,
    }


# -----------------------------------------------------
# GET /admin/role-assignments/{user_id}
# -----------------------------------------------------
@router.get(
    "/role-assignments/{user_id}",
    response_model=List[PlatformAssignmentRead],
    summary="List a user's platform role assignments",
)
def list_role_assignments(
    user_id: str,
    access: AccessContext = Depends(requires_permission("role:read:all")),
    services: GuardServices = Depends(get_guard_services),
):
    try:
        assignments = services.reader.get_platform_assignments(user_id)
    except RBACError:
        raise
    except Exception as e:
        raise handle_supabase_error(e, "Failed to load role assignments")

    return [
        PlatformAssignmentRead(
            user_id=a.user_id,
            role=a.role,
            granted_by=a.granted_by,
            granted_at=a.granted_at,
        )
        for a in assignments
    ]


# -----------------------------------------------------
# POST /admin/role-assignments
# Only a platform-wide grant can mint the authority the writer demands
# -----------------------------------------------------
@router.post(
    "/role-assignments",
    response_model=PlatformAssignmentRead,
    summary="Grant a platform role",
)
def create_role_assignment(
    payload: PlatformAssignmentCreate,
    access: AccessContext = Depends(requires_permission("role:assign:all")),
    writer: PlatformRoleWriter = Depends(get_platform_role_writer),
    audit: AuditLogger = Depends(get_audit_logger),
):
    authority = PlatformGrantAuthority.from_access(access, "role:assign:all")

    try:
        assignment = writer.assign(authority, payload.user_id, payload.role)
    except RBACError:
        raise
    except Exception as e:
        raise handle_supabase_error(e, "Failed to assign platform role")

    logger.info(f"🛡️ Platform role '{assignment.role}' granted to {payload.user_id} by {authority.actor_id}")
    audit.log_role_change(
        actor_id=authority.actor_id,
        target_id=payload.user_id,
        scope="platform",
        old_role=None,
        new_role=assignment.role,
    )

    return PlatformAssignmentRead(
        user_id=assignment.user_id,
        role=assignment.role,
        granted_by=assignment.granted_by,
        granted_at=assignment.granted_at,
    )


# -----------------------------------------------------
# DELETE /admin/role-assignments/{user_id}/{role}
# -----------------------------------------------------
@router.delete(
    "/role-assignments/{user_id}/{role}",
    summary="Revoke a platform role",
)
def delete_role_assignment(
    user_id: str,
    role: str,
    access: AccessContext = Depends(requires_permission("role:revoke:all")),
    writer: PlatformRoleWriter = Depends(get_platform_role_writer),
    audit: AuditLogger = Depends(get_audit_logger),
):
    authority = PlatformGrantAuthority.from_access(access, "role:revoke:all")

    try:
        removed = writer.revoke(authority, user_id, role)
    except RBACError:
        raise
    except Exception as e:
        raise handle_supabase_error(e, "Failed to revoke platform role")

    if not removed:
        raise HTTPException(404, "Role assignment not found")

    logger.info(f"🛡️ Platform role '{role}' revoked from {user_id} by {authority.actor_id}")
    audit.log_role_change(
        actor_id=authority.actor_id,
        target_id=user_id,
        scope="platform",
        old_role=role,
        new_role=None,
    )
    return {"success": True, "user_id": user_id, "role": role}
