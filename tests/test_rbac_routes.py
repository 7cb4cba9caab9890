# tests/test_rbac_routes.py

"""
Tests for the self-inspection endpoints and health checks.
"""

from unittest.mock import patch

from fastapi.testclient import TestClient

from core.permissions import CATALOG_VERSION
from main import create_app

from fakes import bearer


def test_me_lists_effective_permissions_for_company(client):
    response = client.get("/rbac/me", headers={**bearer("hr-a-token"), "X-Company-Id": "company-a"})
    assert response.status_code == 200
    data = response.json()
    assert data["user_id"] == "hr-a"
    assert data["company_id"] == "company-a"
    assert data["catalog_version"] == CATALOG_VERSION
    assert "leave:approve:organization" in data["permissions"]


def test_me_without_company_hides_tenant_permissions(client):
    response = client.get("/rbac/me", headers=bearer("hr-a-token"))
    assert response.status_code == 200
    assert response.json()["permissions"] == []


def test_me_requires_authentication(client):
    assert client.get("/rbac/me").status_code == 401


def test_check_batch(client):
    response = client.post(
        "/rbac/check",
        json={
            "permissions": ["leave:approve:organization", "admin:access:all"],
            "company_id": "company-a",
        },
        headers=bearer("hr-a-token"),
    )
    assert response.status_code == 200
    assert response.json() == {
        "company_id": "company-a",
        "results": {
            "leave:approve:organization": True,
            "admin:access:all": False,
        },
    }


def test_check_body_company_overrides_header(client):
    response = client.post(
        "/rbac/check",
        json={"permissions": ["leave:approve:organization"], "company_id": "company-b"},
        headers={**bearer("hr-a-token"), "X-Company-Id": "company-a"},
    )
    assert response.json()["results"]["leave:approve:organization"] is False


def test_check_rejects_unknown_permissions(client):
    response = client.post(
        "/rbac/check",
        json={"permissions": ["leave:teleport:own"]},
        headers=bearer("hr-a-token"),
    )
    assert response.status_code == 400


def test_check_requires_at_least_one_permission(client):
    response = client.post("/rbac/check", json={"permissions": []}, headers=bearer("hr-a-token"))
    assert response.status_code == 422


def test_health_app(client):
    response = client.get("/health/app")
    assert response.status_code == 200
    assert response.json()["rbac_enforcement"] == "enforce"


def test_health_db_not_configured(client):
    with patch("core.supabase_client.get_supabase_client", return_value=None):
        response = client.get("/health/db")
    assert response.status_code == 200
    assert response.json()["status"] == "not_configured"


def test_app_starts_without_overrides():
    # startup walks every registered route, included routers among them
    with TestClient(create_app()) as test_client:
        response = test_client.get("/health/app")
    assert response.status_code == 200
