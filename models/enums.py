from enum import Enum


class BaseStrEnum(str, Enum):
    """
    Base enum that serializes cleanly to a string
    and provides a .list() method for UI dropdowns.
    """

    def __str__(self):
        return str(self.value)

    @classmethod
    def list(cls):
        return [item.value for item in cls]


# -----------------------------------------------------
# PERMISSION SCOPE
# -----------------------------------------------------
class Scope(BaseStrEnum):
    """
    Breadth of a permission grant.
    Totally ordered: own < organization < all.
    """

    own = "own"
    organization = "organization"
    all = "all"

    @property
    def rank(self) -> int:
        return _SCOPE_RANK[self]

    def covers(self, requested: "Scope") -> bool:
        """True when a grant at this scope satisfies a request at `requested`."""
        return self.rank >= Scope(requested).rank


_SCOPE_RANK = {
    Scope.own: 1,
    Scope.organization: 2,
    Scope.all: 3,
}


# -----------------------------------------------------
# TENANT MEMBERSHIP STATUS
# -----------------------------------------------------
class MembershipStatus(BaseStrEnum):
    """Only active memberships contribute grants."""

    active = "active"
    invited = "invited"
    suspended = "suspended"


# -----------------------------------------------------
# ROLE FACT SOURCE
# -----------------------------------------------------
class RoleSource(BaseStrEnum):
    """Where a role grant came from."""

    global_role = "global"      # users.role (legacy column)
    tenant = "tenant"           # company_members
    platform = "platform"       # platform_role_assignments
    system = "system"           # explicit system principal


# -----------------------------------------------------
# RBAC ENFORCEMENT MODE
# -----------------------------------------------------
class EnforcementMode(BaseStrEnum):
    enforce = "enforce"
    dry_run = "dry-run"
    disabled = "disabled"


# -----------------------------------------------------
# AUDIT RESULT
# -----------------------------------------------------
class AuditResult(BaseStrEnum):
    allow = "ALLOW"
    deny = "DENY"
    would_block = "WOULD_BLOCK"
