import pytest
from fastapi.testclient import TestClient

from backend.app.core.cache import read_cache
from backend.app.db.base import Base
from backend.app.db.session import engine
from backend.app.main import app

client = TestClient(app)


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    read_cache.flush()
    yield


def register(email: str, name: str = "Member"):
    resp = client.post("/register", json={"name": name, "email": email, "password": "password123"})
    assert resp.status_code == 201
    data = resp.json()["data"]
    return data["token"], data["user"]["id"]


def auth_headers(token: str):
    return {"Authorization": f"Bearer {token}"}


def test_admin_creates_and_lists_users():
    admin_token, _ = register("admin@example.com", "Admin")

    resp = client.post(
        "/users",
        json={
            "name": "Blog Writer",
            "email": "writer@example.com",
            "password": "password123",
            "role": "blog_manager",
        },
        headers=auth_headers(admin_token),
    )
    assert resp.status_code == 201
    assert resp.json()["data"]["role"] == "blog_manager"

    listing = client.get("/users", params={"role": "blog_manager"}, headers=auth_headers(admin_token))
    assert listing.status_code == 200
    page = listing.json()["data"]
    assert page["total"] == 1
    assert page["items"][0]["email"] == "writer@example.com"
    assert page["page"] == 1 and page["last_page"] == 1


def test_members_cannot_manage_users():
    register("admin@example.com")
    member_token, member_id = register("member@example.com")

    resp = client.put(f"/users/{member_id}", json={"role": "admin"}, headers=auth_headers(member_token))
    assert resp.status_code == 403
    assert resp.json()["success"] is False


def test_last_admin_cannot_be_demoted_deactivated_or_deleted():
    admin_token, admin_id = register("admin@example.com")

    demote = client.put(f"/users/{admin_id}", json={"role": "member"}, headers=auth_headers(admin_token))
    assert demote.status_code == 422
    deactivate = client.put(f"/users/{admin_id}/status", json={"status": "inactive"}, headers=auth_headers(admin_token))
    assert deactivate.status_code == 422
    delete = client.delete(f"/users/{admin_id}", headers=auth_headers(admin_token))
    assert delete.status_code == 422


def test_deleted_user_is_hidden_and_token_revoked():
    admin_token, _ = register("admin@example.com")
    member_token, member_id = register("member@example.com")

    resp = client.delete(f"/users/{member_id}", headers=auth_headers(admin_token))
    assert resp.status_code == 200

    assert client.get(f"/users/{member_id}", headers=auth_headers(admin_token)).status_code == 404
    assert client.get("/user", headers=auth_headers(member_token)).status_code == 401


def test_invalid_sort_field_is_rejected():
    admin_token, _ = register("admin@example.com")
    resp = client.get("/users", params={"sort_by": "hashed_password"}, headers=auth_headers(admin_token))
    assert resp.status_code == 400
    assert resp.json()["message"] == "Invalid sort_by value"


def test_public_members_directory_hides_contact_details():
    register("admin@example.com", "Alice")
    register("bob@example.com", "Bob")

    resp = client.get("/public/members")
    assert resp.status_code == 200
    items = resp.json()["data"]["items"]
    assert [item["name"] for item in items] == ["Alice", "Bob"]
    assert "email" not in items[0]


def test_committee_chairperson_cannot_be_deleted():
    admin_token, _ = register("admin@example.com")
    _, chair_id = register("chair@example.com")
    committee = client.post(
        "/committees", json={"name": "Youth Service", "chairperson_id": chair_id}, headers=auth_headers(admin_token)
    )
    assert committee.status_code == 201

    resp = client.delete(f"/users/{chair_id}", headers=auth_headers(admin_token))
    assert resp.status_code == 422
    assert resp.json()["success"] is False
    assert client.get(f"/users/{chair_id}", headers=auth_headers(admin_token)).status_code == 200

    committee_id = committee.json()["data"]["id"]
    assert client.delete(f"/committees/{committee_id}", headers=auth_headers(admin_token)).status_code == 200
    assert client.delete(f"/users/{chair_id}", headers=auth_headers(admin_token)).status_code == 200
