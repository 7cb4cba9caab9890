# tests/test_evaluator.py

"""
Tests for pure permission evaluation.
"""

import random

import pytest

from core.errors import ConfigurationError
from core.evaluator import (
    BROADER_SCOPE,
    EXACT_MATCH,
    MISSING_PERMISSIONS,
    NO_MATCHING_GRANT,
    NO_MATCHING_PERMISSION,
    NO_ROLES,
    effective_permission_strings,
    evaluate,
    evaluate_all,
    evaluate_any,
    grant_satisfies,
)
from core.permissions import PERMISSION_CATALOG, get_permission
from core.role_store import merge_role_facts
from models.enums import MembershipStatus, RoleSource, Scope
from models.rbac import RoleFacts, RoleGrant, TenantRole


def grant(permission, source=RoleSource.tenant, company_id=None, role="test"):
    return RoleGrant(
        permission=get_permission(permission),
        role=role,
        source=source,
        company_id=company_id,
    )


def tenant_grants(role, company_id, status=MembershipStatus.active):
    return merge_role_facts(RoleFacts(
        principal_id="p-1",
        tenant_role=TenantRole(user_id="p-1", company_id=company_id, role=role, status=status),
    ))


# ============================================================
# Scope coverage
# ============================================================
def test_scope_order():
    assert Scope.own.covers(Scope.own)
    assert Scope.organization.covers(Scope.own)
    assert Scope.all.covers(Scope.organization)
    assert not Scope.own.covers(Scope.organization)
    assert not Scope.organization.covers(Scope.all)


def test_exact_match_reason():
    decision = evaluate([grant("contract:read:own")], "contract:read:own")
    assert decision.allowed
    assert decision.reason == EXACT_MATCH
    assert decision.scope == Scope.own


def test_broader_scope_reason():
    decision = evaluate(
        [grant("contract:read:organization", company_id="c1")], "contract:read:own", "c1"
    )
    assert decision.allowed
    assert decision.reason == BROADER_SCOPE


def test_narrower_grant_does_not_satisfy_broader_request():
    decision = evaluate([grant("contract:read:own")], "contract:read:organization", "c1")
    assert not decision.allowed
    assert decision.reason == NO_MATCHING_GRANT


def test_resource_and_action_must_match():
    grants = [grant("contract:read:all", source=RoleSource.platform)]
    assert not evaluate(grants, "contract:update:own").allowed
    assert not evaluate(grants, "promoter:read:own").allowed


def test_all_scope_ignores_company_context():
    g = grant("member:read:all", source=RoleSource.platform)
    assert grant_satisfies(g, get_permission("member:read:organization"), "any-company")
    assert grant_satisfies(g, get_permission("member:read:organization"), None)


def test_organization_grant_without_company_never_matches():
    g = grant("member:read:organization", source=RoleSource.global_role, company_id=None)
    assert not grant_satisfies(g, get_permission("member:read:organization"), "c1")
    assert not grant_satisfies(g, get_permission("member:read:organization"), None)


def test_unknown_permission_raises():
    with pytest.raises(ConfigurationError):
        evaluate([grant("contract:read:own")], "contract:fly:own")


# ============================================================
# Properties
# ============================================================
@pytest.mark.parametrize(
    "organization_key",
    [k for k, p in PERMISSION_CATALOG.items() if p.scope == Scope.organization],
)
def test_broader_scope_covers_narrower(organization_key):
    org = get_permission(organization_key)
    own_key = org.at_scope(Scope.own).key
    g = grant(organization_key, company_id="c1")

    assert evaluate([g], organization_key, "c1").allowed
    if own_key in PERMISSION_CATALOG:
        assert evaluate([g], own_key, "c1").allowed


@pytest.mark.parametrize(
    "organization_key",
    [k for k, p in PERMISSION_CATALOG.items() if p.scope == Scope.organization],
)
def test_grant_for_one_company_never_reaches_another(organization_key):
    g = grant(organization_key, company_id="company-a")
    assert not evaluate([g], organization_key, "company-b").allowed
    assert not evaluate([g], organization_key, None).allowed


@pytest.mark.parametrize("key", list(PERMISSION_CATALOG.keys()))
def test_no_roles_denies_everything(key):
    decision = evaluate([], key, "c1")
    assert not decision.allowed
    assert decision.reason == NO_ROLES


def test_evaluation_is_repeatable_and_order_independent():
    grants = tenant_grants("manager", "c1") + [grant("admin:access:all", source=RoleSource.platform)]
    shuffled = list(grants)
    random.Random(7).shuffle(shuffled)

    for key in PERMISSION_CATALOG:
        first = evaluate(grants, key, "c1")
        assert evaluate(grants, key, "c1").allowed == first.allowed
        assert evaluate(shuffled, key, "c1").allowed == first.allowed


# ============================================================
# Scenarios
# ============================================================
def test_global_user_reads_own_contracts_only():
    grants = merge_role_facts(RoleFacts(principal_id="p-1", global_role="user"))
    assert evaluate(grants, "contract:read:own").allowed
    assert not evaluate(grants, "contract:read:all").allowed


def test_hr_approves_leave_only_in_own_company():
    grants = tenant_grants("hr", "C1")
    assert evaluate(grants, "leave:approve:organization", "C1").allowed
    assert not evaluate(grants, "leave:approve:organization", "C2").allowed


@pytest.mark.parametrize("status", [MembershipStatus.suspended, MembershipStatus.invited])
def test_inactive_membership_is_same_as_no_membership(status):
    grants = tenant_grants("hr", "C1", status=status)
    assert grants == []
    decision = evaluate(grants, "leave:approve:organization", "C1")
    assert not decision.allowed
    assert decision.reason == NO_ROLES


# ============================================================
# Any / all
# ============================================================
def test_evaluate_any():
    grants = tenant_grants("user", "c1")
    decision = evaluate_any(grants, ["contract:approve:organization", "contract:read:own"], "c1")
    assert decision.allowed
    assert decision.permission == "contract:read:own"

    denied = evaluate_any(grants, ["contract:approve:organization", "admin:access:all"], "c1")
    assert not denied.allowed
    assert denied.reason == NO_MATCHING_PERMISSION
    assert denied.permission == "contract:approve:organization OR admin:access:all"


def test_evaluate_all_reports_first_unmet():
    grants = tenant_grants("hr", "c1")
    decision = evaluate_all(
        grants,
        ["leave:read:organization", "member:manage:organization", "admin:access:all"],
        "c1",
    )
    assert not decision.allowed
    assert decision.reason == MISSING_PERMISSIONS
    assert decision.permission == "member:manage:organization"

    allowed = evaluate_all(grants, ["leave:read:organization", "member:read:organization"], "c1")
    assert allowed.allowed
    assert allowed.permission == "leave:read:organization AND member:read:organization"


def test_empty_permission_list_is_configuration_error():
    with pytest.raises(ConfigurationError):
        evaluate_any([], [])
    with pytest.raises(ConfigurationError):
        evaluate_all([], [])


# ============================================================
# Effective permission strings
# ============================================================
def test_effective_permissions_hide_other_tenants():
    grants = tenant_grants("manager", "c1")
    in_c1 = effective_permission_strings(grants, "c1")
    in_c2 = effective_permission_strings(grants, "c2")

    assert "member:manage:organization" in in_c1
    assert "member:manage:organization" not in in_c2
    assert "profile:read:own" in in_c2
    assert in_c1 == sorted(in_c1)


def test_effective_permissions_by_resource():
    grants = tenant_grants("manager", "c1")
    leave = effective_permission_strings(grants, "c1", resource="leave")
    assert leave == ["leave:approve:organization", "leave:read:organization"]


# ============================================================
# Legacy role names
# ============================================================
def test_legacy_client_reads_own_contracts():
    grants = merge_role_facts(RoleFacts(principal_id="p-1", global_role="client"))
    assert grants
    assert evaluate(grants, "contract:read:own").allowed


def test_company_owner_manages_members_of_own_company():
    grants = tenant_grants("owner", "C1")
    assert evaluate(grants, "member:manage:organization", "C1").allowed
    assert not evaluate(grants, "member:manage:organization", "C2").allowed


def test_tenant_super_admin_row_is_clamped():
    grants = tenant_grants("super_admin", "C1")
    assert not evaluate(grants, "admin:access:all", "C1").allowed
    assert all(g.scope != Scope.all for g in grants)


def test_effective_permissions_stay_inside_catalog():
    grants = tenant_grants("admin", "C1")
    published = effective_permission_strings(grants, "C1")
    assert published
    assert all(key in PERMISSION_CATALOG for key in published)
    assert "admin:access:organization" not in published
