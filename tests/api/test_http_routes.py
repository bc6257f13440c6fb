from __future__ import annotations

from datetime import timedelta

import pytest

from core_service.auth.tokens import issue_token
from core_service.core.enums import Role
from core_service.main import create_app

SECRET = "test-jwt-secret"

SQUARE = {"type": "Polygon", "coordinates": [[[106, -7], [107, -7], [107, -6], [106, -6], [106, -7]]]}


def _headers(user_id: str, role: Role, **kwargs) -> dict:
    return {"Authorization": f"Bearer {issue_token(user_id=user_id, role=role, secret=SECRET, **kwargs)}"}


@pytest.fixture
def client(container):
    app = create_app(container, settings_module="core_service.config.testing")
    return app.test_client()


@pytest.fixture
def admin():
    return _headers("admin", Role.ADMIN)


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.get_json()["status"] == "ok"
    assert resp.get_json()["service"] == "core-service"


def test_authentication_and_roles(client):
    assert client.get("/api/branches").status_code == 401
    assert client.get("/api/branches", headers={"Authorization": "Bearer not-a-token"}).status_code == 401

    expired = _headers("admin", Role.ADMIN, expires_in=timedelta(seconds=-5))
    assert client.get("/api/branches", headers=expired).status_code == 401

    resp = client.get("/api/branches", headers=_headers("emp-user", Role.EMPLOYEE))
    assert resp.status_code == 403
    assert resp.get_json() == {"success": False, "message": "Insufficient permissions"}


def test_branch_create_and_list(client, admin):
    resp = client.post("/api/branches", json={"code": "hq", "name": "Head Office", "type": "head_office"}, headers=admin)
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["data"]["code"] == "HQ"
    assert body["data"]["type"] == "HEAD_OFFICE"

    dup = client.post("/api/branches", json={"code": "HQ", "name": "Again", "type": "branch"}, headers=admin)
    assert dup.status_code == 400
    assert dup.get_json()["success"] is False

    listing = client.get("/api/branches?limit=5", headers=_headers("hr1", Role.HR)).get_json()
    assert listing["pagination"] == {"total": 1, "page": 1, "limit": 5, "pages": 1}

    assert client.get("/api/branches/999", headers=admin).status_code == 404


def test_employee_self_service(client, employee):
    me = _headers("emp-user", Role.EMPLOYEE)

    resp = client.get("/api/employees/me", headers=me)
    assert resp.status_code == 200
    assert resp.get_json()["data"]["employee_id"] == "EMP001"

    stranger = client.get("/api/employees/me", headers=_headers("nobody", Role.EMPLOYEE))
    assert stranger.status_code == 404


def test_leave_balance_endpoints(client, employee):
    hr = _headers("hr1", Role.HR)
    resp = client.post("/api/leaves/balance/initialize", json={"employee_id": employee.employee_ref, "year": 2024}, headers=hr)
    assert resp.status_code == 201
    assert resp.get_json()["data"]["balances"]["ANNUAL"]["available"] == 12

    again = client.post("/api/leaves/balance/initialize", json={"employee_id": employee.employee_ref, "year": 2024}, headers=hr)
    assert again.status_code == 409

    mine = client.get("/api/leaves/balance/me?year=2024", headers=_headers("emp-user", Role.EMPLOYEE))
    assert mine.status_code == 200
    assert mine.get_json()["data"]["year"] == 2024


def test_service_area_routes(client, admin):
    created = client.post(
        "/api/service-areas", json={"code": "JKT", "name": "Jakarta", "level": "city", "geometry": SQUARE}, headers=admin
    )
    assert created.status_code == 201
    area_id = created.get_json()["data"]["area_id"]

    found = client.get(
        "/api/service-areas/find-by-point?longitude=106.5&latitude=-6.5", headers=_headers("emp-user", Role.EMPLOYEE)
    )
    assert [a["code"] for a in found.get_json()["data"]] == ["JKT"]

    pricing = client.post(
        "/api/service-area-pricing",
        json={"area_id": area_id, "service_type": "regular", "base_price": 9000, "price_per_km": 1000},
        headers=admin,
    )
    assert pricing.status_code == 201

    quote = client.post(
        "/api/service-area-pricing/calculate",
        json={"area_id": area_id, "service_type": "regular", "distance_km": 3},
        headers=_headers("emp-user", Role.EMPLOYEE),
    )
    assert quote.get_json()["data"]["total"] == 12000

    assert client.delete(f"/api/service-areas/{area_id}", headers=admin).status_code == 400
    assert client.delete(f"/api/service-areas/{area_id}?force=true", headers=admin).status_code == 200
    assert client.get(f"/api/service-areas/{area_id}", headers=admin).status_code == 404
