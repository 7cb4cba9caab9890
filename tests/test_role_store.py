# tests/test_role_store.py

"""
Tests for role-fact loading, merging and the table-scoped client.
"""

import asyncio
import time

import pytest

from core.errors import ConfigurationError, StoreUnavailable
from core.role_store import (
    SupabaseRoleFactReader,
    _tenant_role_from_row,
    load_effective_roles,
    load_role_facts,
    merge_role_facts,
    system_grants,
)
from core.identity import SYSTEM_PRINCIPAL
from core.permissions import PERMISSION_CATALOG
from core.supabase_client import ScopedTableClient
from models.enums import MembershipStatus, RoleSource, Scope
from models.rbac import PlatformRoleAssignment, RoleFacts, TenantRole

from fakes import ADMIN, EMPLOYEE, HR_A, FakeRoleReader, FakeSupabase


# ============================================================
# Merge
# ============================================================
def test_merge_is_union_of_all_sources():
    facts = RoleFacts(
        principal_id="p-1",
        global_role="user",
        tenant_role=TenantRole(user_id="p-1", company_id="c1", role="hr"),
        platform_assignments=[PlatformRoleAssignment(user_id="p-1", role="admin")],
    )
    grants = merge_role_facts(facts)
    sources = {g.source for g in grants}
    assert sources == {RoleSource.global_role, RoleSource.tenant, RoleSource.platform}


def test_merge_binds_tenant_grants_to_company():
    facts = RoleFacts(
        principal_id="p-1",
        tenant_role=TenantRole(user_id="p-1", company_id="c1", role="manager"),
    )
    for g in merge_role_facts(facts):
        assert g.company_id == "c1"


def test_tenant_all_scope_is_clamped_to_organization():
    # A tenant row naming a platform role still cannot reach beyond its company
    facts = RoleFacts(
        principal_id="p-1",
        tenant_role=TenantRole(user_id="p-1", company_id="c1", role="admin"),
    )
    grants = merge_role_facts(facts)
    assert grants
    assert all(g.scope != Scope.all for g in grants)
    assert not any(g.permission.key == "role:assign:all" for g in grants)


def test_merge_deduplicates():
    facts = RoleFacts(
        principal_id="p-1",
        platform_assignments=[
            PlatformRoleAssignment(user_id="p-1", role="admin"),
            PlatformRoleAssignment(user_id="p-1", role="admin"),
        ],
    )
    grants = merge_role_facts(facts)
    assert len(grants) == len(set(grants))


def test_unknown_roles_contribute_nothing():
    facts = RoleFacts(principal_id="p-1", global_role="wizard")
    assert merge_role_facts(facts) == []


def test_system_grants_cover_catalog():
    assert {g.permission.key for g in system_grants()} == set(PERMISSION_CATALOG)
    assert all(g.source == RoleSource.system for g in system_grants())


def test_unknown_membership_status_is_suspended():
    row = {"user_id": "u", "company_id": "c", "role": "hr", "status": "archived"}
    assert _tenant_role_from_row(row).status == MembershipStatus.suspended


def test_missing_membership_status_is_active():
    row = {"user_id": "u", "company_id": "c", "role": "hr", "status": None}
    assert _tenant_role_from_row(row).status == MembershipStatus.active


# ============================================================
# Concurrent load
# ============================================================
def test_load_reads_all_sources(reader):
    facts = asyncio.run(load_role_facts(reader, EMPLOYEE, "company-a"))
    assert facts.global_role == "user"
    assert facts.tenant_role.role == "user"
    assert facts.failed_sources == []
    assert sorted(reader.calls) == ["get_global_role", "get_platform_assignments", "get_tenant_role"]


def test_tenant_lookup_skipped_without_company(reader):
    facts = asyncio.run(load_role_facts(reader, HR_A, None))
    assert facts.tenant_role is None
    assert "get_tenant_role" not in reader.calls


def test_partial_failure_degrades(reader):
    reader.failing.add("get_global_role")
    facts = asyncio.run(load_role_facts(reader, EMPLOYEE, "company-a"))
    assert facts.failed_sources == [RoleSource.global_role]
    assert facts.global_role is None
    assert facts.tenant_role.role == "user"


def test_total_failure_is_store_unavailable(reader):
    reader.failing.update({"get_global_role", "get_tenant_role", "get_platform_assignments"})
    with pytest.raises(StoreUnavailable):
        asyncio.run(load_role_facts(reader, EMPLOYEE, "company-a"))


def test_slow_lookup_times_out_as_failure():
    class SlowReader(FakeRoleReader):
        def get_global_role(self, principal_id):
            time.sleep(0.5)
            return "admin"

    reader = SlowReader()
    reader.add_platform(ADMIN.id, "admin")
    facts = asyncio.run(load_role_facts(reader, ADMIN, None, timeout=0.05))
    assert RoleSource.global_role in facts.failed_sources
    assert len(facts.platform_assignments) == 1


def test_system_principal_skips_store():
    reader = FakeRoleReader()
    grants = asyncio.run(load_effective_roles(reader, SYSTEM_PRINCIPAL))
    assert reader.calls == []
    assert grants == system_grants()


# ============================================================
# Supabase reader / scoped client
# ============================================================
def test_supabase_reader_maps_rows():
    client = FakeSupabase({
        "users": [[{"role": "manager"}]],
        "company_members": [[{"user_id": "u", "company_id": "c", "role": "hr", "status": "active"}]],
        "platform_role_assignments": [[{"user_id": "u", "role": "admin", "granted_by": "x", "granted_at": None}]],
    })
    reader = SupabaseRoleFactReader(client)

    assert reader.get_global_role("u") == "manager"
    assert reader.get_tenant_role("u", "c").role == "hr"
    assert reader.get_platform_assignments("u")[0].role == "admin"
    assert ("eq", ("company_id", "c"), {}) in client.queries[1].ops


def test_supabase_reader_missing_rows():
    reader = SupabaseRoleFactReader(FakeSupabase())
    assert reader.get_global_role("u") is None
    assert reader.get_tenant_role("u", "c") is None
    assert reader.get_platform_assignments("u") == []


def test_scoped_client_refuses_other_tables():
    client = FakeSupabase()
    scoped = ScopedTableClient(client, {"company_members"})
    scoped.table("company_members")
    with pytest.raises(ConfigurationError):
        scoped.table("platform_role_assignments")
    assert client.tables_touched == ["company_members"]


def test_scoped_client_requires_client():
    with pytest.raises(ConfigurationError):
        ScopedTableClient(None, {"users"})
