# tests/conftest.py

"""
Pytest configuration and shared fixtures for testing.
"""

from typing import Generator
from unittest.mock import Mock, patch

import pytest
from fastapi.testclient import TestClient

from core.audit import AuditLogger
from core.config import settings
from core.guard import GuardServices
from core.rate_limiter import reset_rate_limits
from core.role_store import PlatformRoleWriter, TenantRoleWriter
from dependencies.auth import (
    get_audit_logger,
    get_guard_services,
    get_platform_role_writer,
    get_tenant_role_writer,
)
from main import create_app

from fakes import (
    ADMIN,
    EMPLOYEE,
    HR_A,
    MANAGER_A,
    MANAGER_B,
    FakeIdentityResolver,
    FakeRoleReader,
    FakeSupabase,
)


# -----------------------------------------------------
# Fixtures
# -----------------------------------------------------
@pytest.fixture(autouse=True)
def rbac_settings():
    """Deterministic RBAC settings for every test."""
    with patch.object(settings, "ENV", "development"), \
         patch.object(settings, "RBAC_ENFORCEMENT", "enforce"), \
         patch.object(settings, "RBAC_RATE_LIMIT_PER_MINUTE", 0), \
         patch.object(settings, "RBAC_SYSTEM_TOKEN", None):
        yield settings


@pytest.fixture(autouse=True)
def reset_limits():
    """Reset rate limits before each test."""
    reset_rate_limits()
    yield
    reset_rate_limits()


@pytest.fixture
def reader() -> FakeRoleReader:
    r = FakeRoleReader()
    r.set_global(ADMIN.id, "admin")
    r.add_member(MANAGER_A.id, "company-a", "manager")
    r.add_member(MANAGER_B.id, "company-b", "manager")
    r.add_member(HR_A.id, "company-a", "hr")
    r.set_global(EMPLOYEE.id, "user")
    r.add_member(EMPLOYEE.id, "company-a", "user")
    return r


@pytest.fixture
def identity() -> FakeIdentityResolver:
    return FakeIdentityResolver()


@pytest.fixture
def audit():
    return Mock(spec=AuditLogger)


@pytest.fixture
def services(identity, reader, audit) -> GuardServices:
    return GuardServices(identity=identity, reader=reader, audit=audit)


@pytest.fixture
def supabase() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture(scope="function")
def app(services, audit, supabase):
    """Create a test FastAPI application instance wired to the fakes."""
    application = create_app()
    application.dependency_overrides[get_guard_services] = lambda: services
    application.dependency_overrides[get_audit_logger] = lambda: audit
    application.dependency_overrides[get_tenant_role_writer] = lambda: TenantRoleWriter(supabase)
    application.dependency_overrides[get_platform_role_writer] = lambda: PlatformRoleWriter(supabase)
    return application


@pytest.fixture(scope="function")
def client(app) -> Generator[TestClient, None, None]:
    """Create a test client for the FastAPI application."""
    with TestClient(app) as test_client:
        yield test_client
