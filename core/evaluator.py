# core/evaluator.py

"""
Pure permission evaluation.

No I/O and no hidden state: the same (grants, permission, company_id) always
yields the same decision, whatever order the grants arrive in.
"""

from typing import Iterable, List, Optional, Sequence, Union

from core.errors import ConfigurationError
from core.permissions import Permission, get_permission, is_known_permission
from models.enums import Scope
from models.rbac import Decision, RoleGrant


# Decision reasons
EXACT_MATCH = "EXACT_MATCH"
BROADER_SCOPE = "BROADER_SCOPE"
NO_ROLES = "NO_ROLES"
NO_MATCHING_GRANT = "NO_MATCHING_GRANT"
NO_MATCHING_PERMISSION = "NO_MATCHING_PERMISSION"
MISSING_PERMISSIONS = "MISSING_PERMISSIONS"


def grant_satisfies(grant: RoleGrant, required: Permission, company_id: Optional[str] = None) -> bool:
    held = grant.permission

    if held.resource != required.resource or held.action != required.action:
        return False

    if not held.scope.covers(required.scope):
        return False

    # Organization grants only reach the tenant they were issued for
    if held.scope == Scope.organization:
        return grant.company_id is not None and grant.company_id == company_id

    return True


def evaluate(
    grants: Sequence[RoleGrant],
    required: Union[str, Permission],
    company_id: Optional[str] = None,
) -> Decision:
    permission = get_permission(required)

    if not grants:
        return Decision(allowed=False, reason=NO_ROLES, permission=permission.key)

    for grant in grants:
        if grant_satisfies(grant, permission, company_id):
            reason = EXACT_MATCH if grant.scope == permission.scope else BROADER_SCOPE
            return Decision(
                allowed=True,
                reason=reason,
                permission=permission.key,
                role=grant.role,
                source=grant.source,
                scope=grant.scope,
            )

    return Decision(allowed=False, reason=NO_MATCHING_GRANT, permission=permission.key)


def _checked(permissions: Iterable[Union[str, Permission]]) -> List[Permission]:
    resolved = [get_permission(p) for p in permissions]
    if not resolved:
        raise ConfigurationError("At least one permission is required")
    return resolved


def evaluate_any(
    grants: Sequence[RoleGrant],
    permissions: Iterable[Union[str, Permission]],
    company_id: Optional[str] = None,
) -> Decision:
    """Allow when any listed permission is satisfied."""
    required = _checked(permissions)

    for permission in required:
        decision = evaluate(grants, permission, company_id)
        if decision.allowed:
            return decision

    return Decision(
        allowed=False,
        reason=NO_ROLES if not grants else NO_MATCHING_PERMISSION,
        permission=" OR ".join(p.key for p in required),
    )


def evaluate_all(
    grants: Sequence[RoleGrant],
    permissions: Iterable[Union[str, Permission]],
    company_id: Optional[str] = None,
) -> Decision:
    """Allow only when every listed permission is satisfied."""
    required = _checked(permissions)

    last: Optional[Decision] = None
    for permission in required:
        decision = evaluate(grants, permission, company_id)
        if not decision.allowed:
            return Decision(
                allowed=False,
                reason=NO_ROLES if not grants else MISSING_PERMISSIONS,
                permission=permission.key,
            )
        last = decision

    return Decision(
        allowed=True,
        reason=last.reason,
        permission=" AND ".join(p.key for p in required),
        role=last.role,
        source=last.source,
        scope=last.scope,
    )


def effective_permission_strings(
    grants: Sequence[RoleGrant],
    company_id: Optional[str] = None,
    resource: Optional[str] = None,
) -> List[str]:
    """
    Canonical permission strings the caller can actually use in this tenant
    context, optionally narrowed to one resource. Sorted for stable output.
    """
    usable = set()
    for grant in grants:
        held = grant.permission
        if resource is not None and held.resource != resource:
            continue
        if held.scope == Scope.organization and grant.company_id != company_id:
            continue
        # Clamped tenant grants may name strings the catalog does not publish
        if not is_known_permission(held.key):
            continue
        usable.add(held.key)
    return sorted(usable)
