from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from backend.app.core.cache import read_cache
from backend.app.core.time import utc_today
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


def register(email: str):
    resp = client.post("/register", json={"name": "Member", "email": email, "password": "password123"})
    assert resp.status_code == 201
    data = resp.json()["data"]
    return data["token"], data["user"]["id"]


def auth_headers(token: str):
    return {"Authorization": f"Bearer {token}"}


def create_project(token: str, **extra):
    today = utc_today()
    payload = {
        "name": "Clean Water",
        "start_date": (today - timedelta(days=10)).isoformat(),
        "end_date": (today + timedelta(days=10)).isoformat(),
        "budget": "1000.00",
    }
    payload.update(extra)
    resp = client.post("/projects", json=payload, headers=auth_headers(token))
    assert resp.status_code == 201, resp.json()
    return resp.json()["data"]


def test_creator_becomes_project_manager():
    token, user_id = register("admin@example.com")
    _, member_id = register("member@example.com")

    project = create_project(token, member_ids=[member_id])
    assert project["status"] == "planning"
    assert project["created_by"] == user_id
    assert project["days_remaining"] == 10
    assert project["is_overdue"] is False
    assert {m["user_id"]: m["role"] for m in project["members"]} == {user_id: "manager", member_id: "member"}


def test_end_date_must_not_precede_start_date():
    token, _ = register("admin@example.com")
    today = utc_today()
    resp = client.post(
        "/projects",
        json={"name": "Backwards", "start_date": today.isoformat(), "end_date": (today - timedelta(days=1)).isoformat()},
        headers=auth_headers(token),
    )
    assert resp.status_code == 422
    assert "end_date" in resp.json()["errors"]


def test_progress_is_clamped_and_drives_status():
    token, _ = register("admin@example.com")
    project = create_project(token, status="in_progress")

    done = client.put(f"/projects/{project['id']}/progress", json={"progress": 150}, headers=auth_headers(token))
    assert done.status_code == 200
    assert done.json()["data"]["progress"] == 100
    assert done.json()["data"]["status"] == "completed"

    reopened = client.put(f"/projects/{project['id']}/progress", json={"progress": 80}, headers=auth_headers(token))
    assert reopened.json()["data"]["progress"] == 80
    assert reopened.json()["data"]["status"] == "in_progress"

    floor = client.put(f"/projects/{project['id']}/progress", json={"progress": -5}, headers=auth_headers(token))
    assert floor.json()["data"]["progress"] == 0


def test_complete_project_twice_is_rejected():
    token, _ = register("admin@example.com")
    project = create_project(token)

    first = client.post(f"/projects/{project['id']}/complete", headers=auth_headers(token))
    assert first.status_code == 200
    assert first.json()["data"]["progress"] == 100
    assert first.json()["data"]["members"][0]["completed_on"] == utc_today().isoformat()

    second = client.post(f"/projects/{project['id']}/complete", headers=auth_headers(token))
    assert second.status_code == 422


def test_only_creator_or_admin_can_change_project():
    admin_token, _ = register("admin@example.com")
    member_token, _ = register("member@example.com")
    other_token, _ = register("other@example.com")
    project = create_project(member_token)

    assert client.put(
        f"/projects/{project['id']}", json={"name": "Hijacked"}, headers=auth_headers(other_token)
    ).status_code == 403
    assert client.put(
        f"/projects/{project['id']}", json={"name": "Renamed"}, headers=auth_headers(member_token)
    ).status_code == 200
    assert client.put(
        f"/projects/{project['id']}", json={"priority": "high"}, headers=auth_headers(admin_token)
    ).status_code == 200


def test_project_members_add_and_remove():
    token, _ = register("admin@example.com")
    _, member_id = register("member@example.com")
    project = create_project(token)

    added = client.post(
        f"/projects/{project['id']}/members",
        json={"user_ids": [member_id], "role": "contributor", "responsibilities": "Logistics"},
        headers=auth_headers(token),
    )
    assert added.status_code == 200
    link = [m for m in added.json()["data"]["members"] if m["user_id"] == member_id][0]
    assert link["role"] == "contributor"
    assert link["responsibilities"] == "Logistics"

    removed = client.request(
        "DELETE", f"/projects/{project['id']}/members", json={"user_ids": [member_id]}, headers=auth_headers(token)
    )
    assert member_id not in [m["user_id"] for m in removed.json()["data"]["members"]]


def test_project_with_quotations_cannot_be_deleted():
    token, _ = register("admin@example.com")
    project = create_project(token)
    today = utc_today()
    quotation = client.post(
        "/quotations",
        json={
            "project_id": project["id"],
            "vendor_name": "Acme",
            "issue_date": today.isoformat(),
            "expiry_date": (today + timedelta(days=5)).isoformat(),
            "items": [{"description": "Pipes", "quantity": "1", "unit_price": "10.00"}],
        },
        headers=auth_headers(token),
    )
    assert quotation.status_code == 201

    assert client.delete(f"/projects/{project['id']}", headers=auth_headers(token)).status_code == 422


def test_project_statistics():
    token, _ = register("admin@example.com")
    project = create_project(token, amount_spent="400.00", progress=60)

    stats = client.get(f"/projects/{project['id']}/statistics", headers=auth_headers(token)).json()["data"]
    assert stats["total_members"] == 1
    assert stats["budget_utilization"] == 40.0
    assert stats["days_elapsed"] == 10
    assert stats["time_elapsed_percentage"] == 50.0
    assert stats["is_on_track"] is True


def test_list_projects_filters():
    token, _ = register("admin@example.com")
    create_project(token, name="Alpha", priority="high")
    create_project(token, name="Beta", priority="low")

    resp = client.get("/projects", params={"priority": "high"}, headers=auth_headers(token))
    assert [p["name"] for p in resp.json()["data"]["items"]] == ["Alpha"]

    resp = client.get("/projects", params={"search": "bet"}, headers=auth_headers(token))
    assert [p["name"] for p in resp.json()["data"]["items"]] == ["Beta"]
