# core/role_store.py

"""
Role fact store.

Three independent fact sources decide which roles a principal holds:

    users.role                  legacy global role (account-wide)
    company_members             tenant role, per (user, company), gated by status
    platform_role_assignments   audited platform-wide grants

They are read concurrently and merged by one pure function. Writes go
through two separate handles: TenantRoleWriter can only reach
company_members, PlatformRoleWriter can only reach platform_role_assignments
and demands a PlatformGrantAuthority.
"""

import asyncio
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

from supabase import Client

from core.config import settings
from core.errors import (
    ConfigurationError,
    InvalidRoleError,
    StoreUnavailable,
    Unauthorized,
    extract_supabase_error,
)
from core.evaluator import evaluate
from core.logging_config import logger
from core.permissions import Permission, get_permission
from core.roles import (
    PLATFORM_ASSIGNABLE_ROLES,
    TENANT_ASSIGNABLE_ROLES,
    get_role_grants,
    is_known_role,
)
from core.supabase_client import (
    COMPANY_MEMBERS_TABLE,
    PLATFORM_ROLE_ASSIGNMENTS_TABLE,
    USERS_TABLE,
    ScopedTableClient,
)
from models.enums import MembershipStatus, RoleSource, Scope
from models.rbac import (
    AccessContext,
    PlatformRoleAssignment,
    Principal,
    RoleFacts,
    RoleGrant,
    TenantRole,
)


SYSTEM_ROLE = "system"


def _tenant_role_from_row(row: dict) -> TenantRole:
    raw_status = row.get("status") or MembershipStatus.active.value
    try:
        status = MembershipStatus(raw_status)
    except ValueError:
        logger.warning(
            f"Unknown membership status '{raw_status}' for user {row.get('user_id')} "
            f"in company {row.get('company_id')}; treating as suspended"
        )
        status = MembershipStatus.suspended

    return TenantRole(
        user_id=row["user_id"],
        company_id=row["company_id"],
        role=row["role"],
        status=status,
    )


# ============================================================
# READ SIDE
# ============================================================
class SupabaseRoleFactReader:
    """Synchronous reads of the three role-fact tables."""

    def __init__(self, client: Client):
        self._db = ScopedTableClient(
            client,
            {USERS_TABLE, COMPANY_MEMBERS_TABLE, PLATFORM_ROLE_ASSIGNMENTS_TABLE},
        )

    def get_global_role(self, principal_id: str) -> Optional[str]:
        result = (
            self._db.table(USERS_TABLE)
            .select("role")
            .eq("id", principal_id)
            .limit(1)
            .execute()
        )
        rows = result.data or []
        if not rows:
            return None
        return rows[0].get("role")

    def get_tenant_role(self, principal_id: str, company_id: str) -> Optional[TenantRole]:
        result = (
            self._db.table(COMPANY_MEMBERS_TABLE)
            .select("user_id, company_id, role, status")
            .eq("user_id", principal_id)
            .eq("company_id", company_id)
            .limit(1)
            .execute()
        )
        rows = result.data or []
        if not rows:
            return None
        return _tenant_role_from_row(rows[0])

    def get_platform_assignments(self, principal_id: str) -> List[PlatformRoleAssignment]:
        result = (
            self._db.table(PLATFORM_ROLE_ASSIGNMENTS_TABLE)
            .select("user_id, role, granted_by, granted_at")
            .eq("user_id", principal_id)
            .execute()
        )
        return [PlatformRoleAssignment(**row) for row in (result.data or [])]


# ============================================================
# MERGE (pure)
# ============================================================
def _grants_for(role: str, source: RoleSource, company_id: Optional[str] = None) -> List[RoleGrant]:
    if not is_known_role(role):
        logger.warning(f"Ignoring unknown {source.value} role '{role}'")
        return []

    grants = []
    for permission in get_role_grants(role):
        if source == RoleSource.tenant and permission.scope == Scope.all:
            # A tenant can never hand out platform-wide reach
            permission = permission.at_scope(Scope.organization)
        grants.append(
            RoleGrant(permission=permission, role=role, source=source, company_id=company_id)
        )
    return grants


def merge_role_facts(facts: RoleFacts) -> List[RoleGrant]:
    """
    Union of all three sources. No source suppresses another; an inactive
    tenant membership contributes nothing.
    """
    merged: List[RoleGrant] = []

    if facts.global_role:
        merged.extend(_grants_for(facts.global_role, RoleSource.global_role))

    tenant = facts.tenant_role
    if tenant is not None and tenant.is_effective:
        merged.extend(_grants_for(tenant.role, RoleSource.tenant, company_id=tenant.company_id))

    for assignment in facts.platform_assignments:
        merged.extend(_grants_for(assignment.role, RoleSource.platform))

    # Stable de-duplication
    return list(dict.fromkeys(merged))


def system_grants() -> List[RoleGrant]:
    return _grants_for(SYSTEM_ROLE, RoleSource.system)


# ============================================================
# LOAD (concurrent fan-out, join-all)
# ============================================================
async def _lookup(func: Callable, *args, timeout: float):
    return await asyncio.wait_for(asyncio.to_thread(func, *args), timeout=timeout)


async def load_role_facts(
    reader,
    principal: Principal,
    company_id: Optional[str] = None,
    timeout: Optional[float] = None,
) -> RoleFacts:
    timeout = timeout if timeout is not None else settings.ROLE_FACT_TIMEOUT_SECONDS

    lookups: Dict[RoleSource, Awaitable] = {
        RoleSource.global_role: _lookup(reader.get_global_role, principal.id, timeout=timeout),
        RoleSource.platform: _lookup(reader.get_platform_assignments, principal.id, timeout=timeout),
    }
    if company_id:
        lookups[RoleSource.tenant] = _lookup(
            reader.get_tenant_role, principal.id, company_id, timeout=timeout
        )

    # Cancelling the caller cancels every pending lookup with it
    results = await asyncio.gather(*lookups.values(), return_exceptions=True)
    outcome = dict(zip(lookups.keys(), results))

    failed = []
    for source, result in outcome.items():
        if isinstance(result, BaseException):
            detail = "timed out" if isinstance(result, asyncio.TimeoutError) else extract_supabase_error(result)
            logger.warning(
                f"Role fact lookup failed for {principal.id} ({source.value}): {detail}"
            )
            failed.append(source)

    if len(failed) == len(outcome):
        logger.error(f"All role fact sources unavailable for {principal.id}")
        raise StoreUnavailable()

    def value(source: RoleSource, default=None):
        result = outcome.get(source, default)
        return default if isinstance(result, BaseException) else result

    return RoleFacts(
        principal_id=principal.id,
        global_role=value(RoleSource.global_role),
        tenant_role=value(RoleSource.tenant),
        platform_assignments=value(RoleSource.platform, []) or [],
        failed_sources=failed,
    )


async def load_effective_roles(
    reader,
    principal: Principal,
    company_id: Optional[str] = None,
    timeout: Optional[float] = None,
) -> List[RoleGrant]:
    """Effective grants for one request. Never cached across requests."""
    if principal.is_system:
        return system_grants()

    facts = await load_role_facts(reader, principal, company_id, timeout)
    return merge_role_facts(facts)


# ============================================================
# WRITE SIDE - tenant scope
# ============================================================
class TenantRoleWriter:
    """
    The only handle tenant-authorized routes get. It is built on a client
    that cannot address any table but company_members.
    """

    def __init__(self, client: Client):
        self._db = ScopedTableClient(client, {COMPANY_MEMBERS_TABLE})

    def _members(self):
        return self._db.table(COMPANY_MEMBERS_TABLE)

    def get_member(self, user_id: str, company_id: str) -> Optional[TenantRole]:
        result = (
            self._members()
            .select("user_id, company_id, role, status")
            .eq("user_id", user_id)
            .eq("company_id", company_id)
            .limit(1)
            .execute()
        )
        rows = result.data or []
        return _tenant_role_from_row(rows[0]) if rows else None

    def list_members(self, company_id: str) -> List[TenantRole]:
        result = (
            self._members()
            .select("user_id, company_id, role, status")
            .eq("company_id", company_id)
            .execute()
        )
        return [_tenant_role_from_row(row) for row in (result.data or [])]

    def set_tenant_role(self, user_id: str, company_id: str, role: str) -> Tuple[Optional[str], TenantRole]:
        """
        Create or update one membership row. Returns (previous_role, new_row).
        """
        if role not in TENANT_ASSIGNABLE_ROLES:
            raise InvalidRoleError(
                f"Role '{role}' cannot be assigned inside a company "
                f"(allowed: {', '.join(sorted(TENANT_ASSIGNABLE_ROLES))})"
            )

        existing = self.get_member(user_id, company_id)
        row = {
            "user_id": user_id,
            "company_id": company_id,
            "role": role,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        result = (
            self._members()
            .upsert(row, on_conflict="user_id,company_id")
            .execute()
        )
        saved = (result.data or [row])[0]
        return (existing.role if existing else None), _tenant_role_from_row(saved)

    def set_tenant_status(self, user_id: str, company_id: str, status: MembershipStatus) -> Optional[TenantRole]:
        result = (
            self._members()
            .update({
                "status": MembershipStatus(status).value,
                "updated_at": datetime.now(timezone.utc).isoformat(),
            })
            .eq("user_id", user_id)
            .eq("company_id", company_id)
            .execute()
        )
        rows = result.data or []
        return _tenant_role_from_row(rows[0]) if rows else None

    def remove_member(self, user_id: str, company_id: str) -> bool:
        result = (
            self._members()
            .delete()
            .eq("user_id", user_id)
            .eq("company_id", company_id)
            .execute()
        )
        return bool(result.data)


# ============================================================
# WRITE SIDE - platform scope
# ============================================================
_AUTHORITY_SEAL = object()


class PlatformGrantAuthority:
    """
    Proof that the current request was allowed by a platform-wide grant.
    Only from_access() can mint one, and tenant grants never qualify.
    """

    __slots__ = ("actor_id", "permission")

    def __init__(self, actor_id: str, permission: str, _seal=None):
        if _seal is not _AUTHORITY_SEAL:
            raise ConfigurationError("PlatformGrantAuthority must be obtained via from_access()")
        self.actor_id = actor_id
        self.permission = permission

    @classmethod
    def from_access(cls, access: AccessContext, required: str) -> "PlatformGrantAuthority":
        decision = evaluate(access.grants, required, access.company_id)

        if (
            not decision.allowed
            or decision.scope != Scope.all
            or decision.source == RoleSource.tenant
        ):
            logger.warning(
                f"Platform authority refused for {access.principal.id} on {required}"
            )
            raise Unauthorized(required, reason="PLATFORM_AUTHORITY_REQUIRED")

        return cls(access.principal.id, decision.permission, _seal=_AUTHORITY_SEAL)


class PlatformRoleWriter:
    def __init__(self, client: Client):
        self._db = ScopedTableClient(client, {PLATFORM_ROLE_ASSIGNMENTS_TABLE})

    def _assignments(self):
        return self._db.table(PLATFORM_ROLE_ASSIGNMENTS_TABLE)

    @staticmethod
    def _require(authority: PlatformGrantAuthority, permission: Permission):
        if not isinstance(authority, PlatformGrantAuthority):
            raise ConfigurationError("Platform role writes require a PlatformGrantAuthority")
        if authority.permission != permission.key:
            raise ConfigurationError(
                f"Authority for '{authority.permission}' cannot be used for '{permission.key}'"
            )

    def assign(self, authority: PlatformGrantAuthority, user_id: str, role: str) -> PlatformRoleAssignment:
        self._require(authority, get_permission("role:assign:all"))
        if role not in PLATFORM_ASSIGNABLE_ROLES:
            raise InvalidRoleError(
                f"Role '{role}' is not a platform role "
                f"(allowed: {', '.join(sorted(PLATFORM_ASSIGNABLE_ROLES))})"
            )

        row = {
            "user_id": user_id,
            "role": role,
            "granted_by": authority.actor_id,
            "granted_at": datetime.now(timezone.utc).isoformat(),
        }
        result = (
            self._assignments()
            .upsert(row, on_conflict="user_id,role")
            .execute()
        )
        return PlatformRoleAssignment(**(result.data or [row])[0])

    def revoke(self, authority: PlatformGrantAuthority, user_id: str, role: str) -> bool:
        self._require(authority, get_permission("role:revoke:all"))
        result = (
            self._assignments()
            .delete()
            .eq("user_id", user_id)
            .eq("role", role)
            .execute()
        )
        return bool(result.data)
