# ============================================
# CENTRALIZED ROLE → PERMISSIONS MAP
# ============================================
from typing import Dict, FrozenSet, List

from core.errors import ConfigurationError
from core.permissions import PERMISSION_CATALOG, Permission


ROLE_PERMISSIONS: Dict[str, List[str]] = {

    # =====================================================
    # SYSTEM - explicit, audited service principal only
    # =====================================================
    "system": ["*"],


    # =====================================================
    # PLATFORM ADMIN
    # =====================================================
    "admin": [
        "contract:read:all", "contract:create:all", "contract:update:all",
        "contract:delete:all", "contract:approve:all",
        "promoter:read:all", "promoter:manage:all",
        "party:read:all", "party:manage:all",
        "company:read:all", "company:manage:all",
        "member:read:all", "member:manage:all",
        "leave:approve:all",
        "approval:decide:all",
        "analytics:read:all",
        "user:read:all", "user:manage:all",
        "role:read:all", "role:assign:all", "role:revoke:all",
        "audit:read:all",
        "admin:access:all", "admin:manage:all",

        # Self-service
        "notification:read:own", "notification:manage:own",
        "profile:read:own", "profile:update:own",
    ],


    # =====================================================
    # MANAGER (company owner) - runs one tenant
    # =====================================================
    "manager": [
        "contract:read:organization", "contract:create:organization",
        "contract:update:organization", "contract:delete:organization",
        "contract:approve:organization", "contract:generate:organization",
        "promoter:read:organization", "promoter:manage:organization",
        "party:read:organization", "party:manage:organization",
        "company:read:organization", "company:manage:organization",
        "member:read:organization", "member:manage:organization",
        "leave:read:organization", "leave:approve:organization",
        "attendance:read:organization", "attendance:manage:organization",
        "approval:read:organization", "approval:decide:organization",
        "analytics:read:organization",
        "audit:read:organization",

        "notification:read:own", "notification:manage:own",
        "profile:read:own", "profile:update:own",
        "user:read:own",
    ],


    # =====================================================
    # HR - people operations inside a tenant
    # =====================================================
    "hr": [
        "contract:read:organization", "contract:generate:organization",
        "promoter:read:organization", "promoter:manage:organization",
        "member:read:organization",
        "leave:read:organization", "leave:approve:organization",
        "attendance:read:organization", "attendance:manage:organization",
        "approval:read:organization",
        "analytics:read:organization",

        "leave:request:own",
        "notification:read:own", "notification:manage:own",
        "profile:read:own", "profile:update:own",
        "user:read:own",
    ],


    # =====================================================
    # PROVIDER - supplies promoters / services
    # =====================================================
    "provider": [
        "contract:read:own", "contract:generate:own",
        "promoter:read:own", "promoter:manage:own",
        "party:read:organization",
        "analytics:read:own",

        "notification:read:own", "notification:manage:own",
        "profile:read:own", "profile:update:own",
        "user:read:own",
    ],


    # =====================================================
    # USER (client / employee) - own records only
    # =====================================================
    "user": [
        "contract:read:own", "contract:create:own",
        "promoter:read:own",
        "leave:request:own", "leave:read:own",
        "attendance:record:own", "attendance:read:own",
        "analytics:read:own",

        "notification:read:own", "notification:manage:own",
        "profile:read:own", "profile:update:own",
        "user:read:own",
    ],


    # =====================================================
    # VIEWER - read-only access to own records
    # =====================================================
    "viewer": [
        "contract:read:own",
        "leave:read:own", "attendance:read:own",
        "notification:read:own",
        "profile:read:own",
        "user:read:own",
    ],
}


# Legacy names still stored in users.role and company_members.role
ROLE_ALIASES: Dict[str, str] = {
    "owner": "manager",
    "client": "user",
    "member": "user",
    "super_admin": "admin",
}


# Roles a tenant manager may hand out inside a company
TENANT_ASSIGNABLE_ROLES: FrozenSet[str] = frozenset(
    {"owner", "manager", "hr", "provider", "member", "user", "viewer"}
)

# Roles that only a platform-privileged actor may grant
PLATFORM_ASSIGNABLE_ROLES: FrozenSet[str] = frozenset({"admin"})


def canonical_role(role: str) -> str:
    return ROLE_ALIASES.get(role, role)


# -----------------------------------------------------
# Resolution (validated once, at import)
# -----------------------------------------------------
def _resolve_role_grants() -> Dict[str, FrozenSet[Permission]]:
    resolved: Dict[str, FrozenSet[Permission]] = {}

    for role, entries in ROLE_PERMISSIONS.items():
        grants = set()
        for entry in entries:
            if entry == "*":
                grants.update(PERMISSION_CATALOG.values())
                continue
            permission = PERMISSION_CATALOG.get(entry)
            if permission is None:
                raise ConfigurationError(
                    f"Role '{role}' references undefined permission '{entry}'"
                )
            grants.add(permission)
        resolved[role] = frozenset(grants)

    for alias, target in ROLE_ALIASES.items():
        if alias in resolved:
            raise ConfigurationError(f"Role alias '{alias}' shadows a defined role")
        if target not in resolved:
            raise ConfigurationError(f"Role alias '{alias}' points at undefined role '{target}'")

    for role in TENANT_ASSIGNABLE_ROLES | PLATFORM_ASSIGNABLE_ROLES:
        if canonical_role(role) not in resolved:
            raise ConfigurationError(f"Assignable role '{role}' is not defined")

    return resolved


ROLE_GRANTS: Dict[str, FrozenSet[Permission]] = _resolve_role_grants()


def is_known_role(role: str) -> bool:
    return canonical_role(role) in ROLE_GRANTS


def get_role_grants(role: str) -> FrozenSet[Permission]:
    """Permissions granted by a role or alias; unknown roles grant nothing."""
    return ROLE_GRANTS.get(canonical_role(role), frozenset())


def role_catalog_as_dict() -> dict:
    return {
        role: {
            "permissions": sorted(p.key for p in grants),
            "tenant_assignable": role in TENANT_ASSIGNABLE_ROLES,
            "platform_assignable": role in PLATFORM_ASSIGNABLE_ROLES,
        }
        for role, grants in ROLE_GRANTS.items()
    }
