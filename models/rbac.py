from typing import List, Optional
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from core.permissions import Permission
from models.enums import MembershipStatus, RoleSource, Scope


# -----------------------------------------------------
# PRINCIPAL
# -----------------------------------------------------
class Principal(BaseModel):
    """Authenticated caller. `id` is the Supabase auth UID."""

    model_config = ConfigDict(frozen=True)

    id: str
    email: Optional[str] = None
    is_system: bool = False


# -----------------------------------------------------
# ROLE FACTS (one row per source)
# -----------------------------------------------------
class TenantRole(BaseModel):
    user_id: str
    company_id: str
    role: str
    status: MembershipStatus = MembershipStatus.active

    @property
    def is_effective(self) -> bool:
        return self.status == MembershipStatus.active


class PlatformRoleAssignment(BaseModel):
    user_id: str
    role: str
    granted_by: Optional[str] = None
    granted_at: Optional[datetime] = None


class RoleFacts(BaseModel):
    """Raw facts for one principal, before merging."""

    principal_id: str
    global_role: Optional[str] = None
    tenant_role: Optional[TenantRole] = None
    platform_assignments: List[PlatformRoleAssignment] = Field(default_factory=list)

    # Sources whose lookup failed (degraded, contribute nothing)
    failed_sources: List[RoleSource] = Field(default_factory=list)


# -----------------------------------------------------
# EFFECTIVE GRANT
# -----------------------------------------------------
class RoleGrant(BaseModel):
    """
    One permission held through one role from one source.
    Organization-scoped grants are bound to `company_id`.
    """

    model_config = ConfigDict(frozen=True)

    permission: Permission
    role: str
    source: RoleSource
    company_id: Optional[str] = None

    @property
    def scope(self) -> Scope:
        return self.permission.scope


# -----------------------------------------------------
# DECISION
# -----------------------------------------------------
class Decision(BaseModel):
    allowed: bool
    reason: str
    permission: str

    # Set only on allow: the grant that satisfied the request
    role: Optional[str] = None
    source: Optional[RoleSource] = None
    scope: Optional[Scope] = None


class AccessContext(BaseModel):
    """What a guard hands to the route once it lets a request through."""

    principal: Principal
    company_id: Optional[str] = None
    decision: Decision
    grants: List[RoleGrant] = Field(default_factory=list)
