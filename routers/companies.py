# routers/companies.py

"""
Tenant-scoped membership management.

Every write here is authorized by an organization-scoped permission and
goes through TenantRoleWriter, which can only address company_members.
Nothing in this module can reach platform_role_assignments.
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException

from core.audit import AuditLogger
from core.errors import RBACError, handle_supabase_error
from core.logging_config import logger
from core.role_store import TenantRoleWriter
from dependencies.auth import (
    get_audit_logger,
    get_tenant_role_writer,
    requires_permission,
)
from models.access import MemberRead, MemberRoleUpdate, MemberStatusUpdate
from models.rbac import AccessContext

router = APIRouter(
    prefix="/companies",
    tags=["Company Members"],
)


def _member_read(member) -> MemberRead:
    return MemberRead(
        user_id=member.user_id,
        company_id=member.company_id,
        role=member.role,
        status=member.status,
    )


# ============================================================
# List members
# ============================================================
@router.get(
    "/{company_id}/members",
    response_model=List[MemberRead],
    summary="List company members",
)
def list_members(
    company_id: str,
    access: AccessContext = Depends(requires_permission("member:read:organization")),
    writer: TenantRoleWriter = Depends(get_tenant_role_writer),
):
    try:
        members = writer.list_members(company_id)
    except RBACError:
        raise
    except Exception as e:
        raise handle_supabase_error(e, "Failed to list company members")

    return [_member_read(m) for m in members]


# ============================================================
# Update a member's tenant role
# ============================================================
@router.put(
    "/{company_id}/members/{user_id}/role",
    response_model=MemberRead,
    summary="Change a member's role inside the company",
)
def update_member_role(
    company_id: str,
    user_id: str,
    payload: MemberRoleUpdate,
    access: AccessContext = Depends(requires_permission("member:manage:organization")),
    writer: TenantRoleWriter = Depends(get_tenant_role_writer),
    audit: AuditLogger = Depends(get_audit_logger),
):
    try:
        old_role, member = writer.set_tenant_role(user_id, company_id, payload.role)
    except RBACError:
        raise
    except Exception as e:
        raise handle_supabase_error(e, "Failed to update member role")

    logger.info(
        f"Tenant role for {user_id} in {company_id}: {old_role} → {member.role} "
        f"(by {access.principal.id})"
    )
    audit.log_role_change(
        actor_id=access.principal.id,
        target_id=user_id,
        scope="tenant",
        old_role=old_role,
        new_role=member.role,
        company_id=company_id,
    )
    return _member_read(member)


# ============================================================
# Activate / suspend
# ============================================================
@router.patch(
    "/{company_id}/members/{user_id}/status",
    response_model=MemberRead,
    summary="Activate, invite or suspend a member",
)
def update_member_status(
    company_id: str,
    user_id: str,
    payload: MemberStatusUpdate,
    access: AccessContext = Depends(requires_permission("member:manage:organization")),
    writer: TenantRoleWriter = Depends(get_tenant_role_writer),
):
    try:
        member = writer.set_tenant_status(user_id, company_id, payload.status)
    except RBACError:
        raise
    except Exception as e:
        raise handle_supabase_error(e, "Failed to update member status")

    if member is None:
        raise HTTPException(404, "Member not found")

    logger.info(
        f"Membership of {user_id} in {company_id} set to {member.status} (by {access.principal.id})"
    )
    return _member_read(member)


# ============================================================
# Remove a member
# ============================================================
@router.delete(
    "/{company_id}/members/{user_id}",
    summary="Remove a member from the company",
)
def remove_member(
    company_id: str,
    user_id: str,
    access: AccessContext = Depends(requires_permission("member:manage:organization")),
    writer: TenantRoleWriter = Depends(get_tenant_role_writer),
    audit: AuditLogger = Depends(get_audit_logger),
):
    try:
        existing = writer.get_member(user_id, company_id)
        if existing is None:
            raise HTTPException(404, "Member not found")
        writer.remove_member(user_id, company_id)
    except (RBACError, HTTPException):
        raise
    except Exception as e:
        raise handle_supabase_error(e, "Failed to remove member")

    audit.log_role_change(
        actor_id=access.principal.id,
        target_id=user_id,
        scope="tenant",
        old_role=existing.role,
        new_role=None,
        company_id=company_id,
    )
    return {"success": True, "user_id": user_id, "company_id": company_id}
