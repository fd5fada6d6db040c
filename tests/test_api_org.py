"""
tests/test_api_org.py -- Integration tests for cities, branches and departments.

Coverage:
  - Reads are public; writes need an employee admin (staff -> 401, none -> 403)
  - POST stamps createdBy with the acting admin's employee number
  - PATCH appends {updatedAt, updatedBy} to the update history
  - GET /branches/count and GET /departments/count
  - Field rules (lengths, 11-digit contact) -> 400
  - Missing ids -> 404, including ids past the 64-bit integer range
"""

from __future__ import annotations

from fastapi.testclient import TestClient

from auth.models import PrincipalKind
from conftest import employee_payload

BRANCH = {
    "title": "Main Branch",
    "address": "1 Mall Road, Lahore",
    "cityId": 1,
    "contact": "04212345678",
    "email": "main@example.com",
}


def test_city_lifecycle(api_client: TestClient, admin_headers: dict) -> None:
    created = api_client.post("/api/v1/cities", json={"city": "Lahore", "country": "Pakistan"}, headers=admin_headers)
    assert created.status_code == 201
    city = created.json()
    assert city["createdBy"] == "EMP-000001"
    assert city["updates"] == []

    listing = api_client.get("/api/v1/cities")
    assert listing.status_code == 200
    assert [c["city"] for c in listing.json()] == ["Lahore"]

    patched = api_client.patch(f"/api/v1/cities/{city['id']}", json={"country": "PK!"}, headers=admin_headers)
    assert patched.status_code == 200
    assert patched.json()["country"] == "PK!"
    assert len(patched.json()["updates"]) == 1
    assert patched.json()["updates"][0]["updatedBy"] == "EMP-000001"

    again = api_client.patch(f"/api/v1/cities/{city['id']}", json={"city": "Lahore City"}, headers=admin_headers)
    assert len(again.json()["updates"]) == 2

    assert api_client.delete(f"/api/v1/cities/{city['id']}", headers=admin_headers).status_code == 200
    assert api_client.get(f"/api/v1/cities/{city['id']}").status_code == 404
    assert api_client.delete(f"/api/v1/cities/{city['id']}", headers=admin_headers).status_code == 404


def test_writes_need_admin(api_client: TestClient, register, token_for) -> None:
    assert api_client.post("/api/v1/cities", json={"city": "Lahore", "country": "Pakistan"}).status_code == 403
    staff = register(PrincipalKind.employee, employee_payload())
    resp = api_client.post("/api/v1/cities", json={"city": "Lahore", "country": "Pakistan"}, headers=token_for(staff))
    assert resp.status_code == 401


def test_city_field_lengths(api_client: TestClient, admin_headers: dict) -> None:
    resp = api_client.post("/api/v1/cities", json={"city": "LA", "country": "Pakistan"}, headers=admin_headers)
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "validation_error"


def test_branches_and_count(api_client: TestClient, admin_headers: dict) -> None:
    assert api_client.get("/api/v1/branches/count").json() == {"count": 0}
    first = api_client.post("/api/v1/branches", json=BRANCH, headers=admin_headers)
    assert first.status_code == 201
    assert first.json()["cityId"] == 1
    api_client.post("/api/v1/branches", json=BRANCH | {"title": "Second Branch"}, headers=admin_headers)
    assert api_client.get("/api/v1/branches/count").json() == {"count": 2}
    assert api_client.get(f"/api/v1/branches/{first.json()['id']}").json()["title"] == "Main Branch"


def test_branch_contact_must_be_eleven_digits(api_client: TestClient, admin_headers: dict) -> None:
    resp = api_client.post("/api/v1/branches", json=BRANCH | {"contact": "12345"}, headers=admin_headers)
    assert resp.status_code == 400


def test_departments(api_client: TestClient, admin_headers: dict) -> None:
    body = {"title": "Accounts", "cityId": 1, "branchId": 1, "contact": "04212345679", "email": "acc@example.com"}
    assert api_client.get("/api/v1/departments/count").json() == {"count": 0}
    created = api_client.post("/api/v1/departments", json=body, headers=admin_headers)
    assert created.status_code == 201
    dept_id = created.json()["id"]

    patched = api_client.patch(f"/api/v1/departments/{dept_id}", json={"title": "Finance"}, headers=admin_headers)
    assert patched.json()["title"] == "Finance"
    assert patched.json()["updates"][0]["updatedAt"]

    assert api_client.patch(f"/api/v1/departments/{dept_id}", json={}, headers=admin_headers).status_code == 400
    assert api_client.patch("/api/v1/departments/999", json={"title": "Nope"}, headers=admin_headers).status_code == 404
    assert [d["title"] for d in api_client.get("/api/v1/departments").json()] == ["Finance"]
    assert api_client.get("/api/v1/departments/count").json() == {"count": 1}


def test_ids_beyond_integer_range_are_404(api_client: TestClient, admin_headers: dict) -> None:
    huge = "99999999999999999999"
    for plural in ("cities", "branches", "departments"):
        assert api_client.get(f"/api/v1/{plural}/{huge}").status_code == 404
        assert api_client.delete(f"/api/v1/{plural}/{huge}", headers=admin_headers).status_code == 404
    patched = api_client.patch(f"/api/v1/cities/{huge}", json={"country": "Pakistan"}, headers=admin_headers)
    assert patched.status_code == 404
