# -------------------------
# Enums
# -------------------------
from .enums import (
    AuditResult,
    EnforcementMode,
    MembershipStatus,
    RoleSource,
    Scope,
)

# -------------------------
# API payloads
# -------------------------
from .access import (
    EffectivePermissionsRead,
    MemberRead,
    MemberRoleUpdate,
    MemberStatusUpdate,
    PermissionCheckRequest,
    PermissionCheckResponse,
    PlatformAssignmentCreate,
    PlatformAssignmentRead,
)

__all__ = [
    # enums
    "AuditResult",
    "EnforcementMode",
    "MembershipStatus",
    "RoleSource",
    "Scope",

    # payloads
    "EffectivePermissionsRead",
    "MemberRead",
    "MemberRoleUpdate",
    "MemberStatusUpdate",
    "PermissionCheckRequest",
    "PermissionCheckResponse",
    "PlatformAssignmentCreate",
    "PlatformAssignmentRead",
]
