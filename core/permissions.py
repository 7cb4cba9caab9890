# core/permissions.py

"""
Closed permission catalog.

Every permission is `resource:action:scope`. The catalog is the single list
that server-side guards and client-side UI gating both read (see
GET /rbac/permissions), so bump CATALOG_VERSION whenever it changes.
"""

from typing import Dict, Union

from pydantic import BaseModel, ConfigDict

from core.errors import ConfigurationError
from models.enums import Scope


CATALOG_VERSION = "2024.11.1"


class Permission(BaseModel):
    """Immutable permission value; hashable so it can live in sets."""

    model_config = ConfigDict(frozen=True)

    resource: str
    action: str
    scope: Scope

    @property
    def key(self) -> str:
        return f"{self.resource}:{self.action}:{self.scope.value}"

    def __str__(self) -> str:
        return self.key

    def at_scope(self, scope: Scope) -> "Permission":
        return Permission(resource=self.resource, action=self.action, scope=scope)


# ============================================
# PERMISSION CATALOG
# ============================================
PERMISSION_STRINGS = [

    # =====================================================
    # CONTRACTS
    # =====================================================
    "contract:read:own", "contract:read:organization", "contract:read:all",
    "contract:create:own", "contract:create:organization", "contract:create:all",
    "contract:update:own", "contract:update:organization", "contract:update:all",
    "contract:delete:organization", "contract:delete:all",
    "contract:approve:organization", "contract:approve:all",
    "contract:generate:own", "contract:generate:organization",

    # =====================================================
    # PROMOTERS & PARTIES
    # =====================================================
    "promoter:read:own", "promoter:read:organization", "promoter:read:all",
    "promoter:manage:own", "promoter:manage:organization", "promoter:manage:all",
    "party:read:organization", "party:read:all",
    "party:manage:organization", "party:manage:all",

    # =====================================================
    # COMPANIES & MEMBERSHIP
    # =====================================================
    "company:read:organization", "company:read:all",
    "company:manage:organization", "company:manage:all",
    "member:read:organization", "member:read:all",
    "member:manage:organization", "member:manage:all",

    # =====================================================
    # HR - LEAVE & ATTENDANCE
    # =====================================================
    "leave:request:own",
    "leave:read:own", "leave:read:organization",
    "leave:approve:organization", "leave:approve:all",
    "attendance:record:own",
    "attendance:read:own", "attendance:read:organization",
    "attendance:manage:organization",

    # =====================================================
    # APPROVALS & ANALYTICS
    # =====================================================
    "approval:read:organization", "approval:decide:organization", "approval:decide:all",
    "analytics:read:own", "analytics:read:organization", "analytics:read:all",

    # =====================================================
    # SELF-SERVICE
    # =====================================================
    "notification:read:own", "notification:manage:own",
    "profile:read:own", "profile:update:own",
    "user:read:own", "user:read:all", "user:manage:all",

    # =====================================================
    # PLATFORM ADMINISTRATION
    # =====================================================
    "role:read:all", "role:assign:all", "role:revoke:all",
    "audit:read:organization", "audit:read:all",
    "admin:access:all", "admin:manage:all",
]


def _parse(raw: str) -> Permission:
    parts = raw.split(":")
    if len(parts) != 3 or not all(parts):
        raise ConfigurationError(f"Invalid permission format: {raw!r}")
    resource, action, scope = parts
    try:
        return Permission(resource=resource, action=action, scope=Scope(scope))
    except ValueError:
        raise ConfigurationError(f"Invalid permission scope in {raw!r}")


def _build_catalog() -> Dict[str, Permission]:
    catalog: Dict[str, Permission] = {}
    for raw in PERMISSION_STRINGS:
        if raw in catalog:
            raise ConfigurationError(f"Duplicate permission in catalog: {raw}")
        catalog[raw] = _parse(raw)
    return catalog


PERMISSION_CATALOG: Dict[str, Permission] = _build_catalog()


# -----------------------------------------------------
# Lookup
# -----------------------------------------------------
def get_permission(value: Union[str, Permission]) -> Permission:
    """
    Resolve a permission string against the catalog.
    Unknown permissions are a deploy defect, so this raises instead of denying.
    """
    if isinstance(value, Permission):
        key = value.key
    else:
        key = value

    permission = PERMISSION_CATALOG.get(key)
    if permission is None:
        raise ConfigurationError(f"Unknown permission: {key!r}")
    return permission


def is_known_permission(value: str) -> bool:
    return value in PERMISSION_CATALOG


def catalog_as_dict() -> dict:
    """Versioned, JSON-ready catalog for UI gating."""
    return {
        "version": CATALOG_VERSION,
        "permissions": {
            key: {
                "resource": perm.resource,
                "action": perm.action,
                "scope": perm.scope.value,
            }
            for key, perm in PERMISSION_CATALOG.items()
        },
    }
