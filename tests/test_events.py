from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from backend.app.core.cache import read_cache
from backend.app.core.time import utc_now
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
    return resp.json()["data"]["token"]


def auth_headers(token: str):
    return {"Authorization": f"Bearer {token}"}


def create_event(token: str, days_ahead: int = 7, **extra):
    start = utc_now() + timedelta(days=days_ahead)
    payload = {
        "title": "Fellowship Dinner",
        "description": "Monthly fellowship.",
        "type": "social",
        "category": "club_service",
        "start_date": start.isoformat(),
        "end_date": (start + timedelta(hours=3)).isoformat(),
        "status": "published",
        "visibility": "public",
    }
    payload.update(extra)
    resp = client.post("/events", json=payload, headers=auth_headers(token))
    assert resp.status_code == 201, resp.json()
    return resp.json()["data"]


def test_create_event_generates_slug_and_flags():
    token = register("admin@example.com")
    event = create_event(token)
    assert event["slug"] == "fellowship-dinner"
    assert event["is_upcoming"] is True
    assert event["is_past"] is False
    assert event["registration_status"] == "not_required"

    again = create_event(token)
    assert again["slug"] == "fellowship-dinner-2"


def test_schedule_validation():
    token = register("admin@example.com")
    start = utc_now() + timedelta(days=3)
    resp = client.post(
        "/events",
        json={
            "title": "Backwards",
            "description": "x",
            "type": "meeting",
            "category": "club_service",
            "start_date": start.isoformat(),
            "end_date": (start - timedelta(hours=1)).isoformat(),
        },
        headers=auth_headers(token),
    )
    assert resp.status_code == 422
    assert "end_date" in resp.json()["errors"]

    resp = client.post(
        "/events",
        json={
            "title": "Late registration",
            "description": "x",
            "type": "meeting",
            "category": "club_service",
            "start_date": start.isoformat(),
            "registration_deadline": (start + timedelta(days=1)).isoformat(),
        },
        headers=auth_headers(token),
    )
    assert resp.status_code == 422
    assert "registration_deadline" in resp.json()["errors"]


def test_registration_status_follows_deadline():
    token = register("admin@example.com")
    event = create_event(
        token,
        requires_registration=True,
        registration_deadline=(utc_now() + timedelta(days=2)).isoformat(),
    )
    assert event["registration_status"] == "open"

    closed = create_event(
        token,
        title="Closed",
        requires_registration=True,
        registration_deadline=(utc_now() - timedelta(days=1)).isoformat(),
    )
    assert closed["registration_status"] == "closed"


def test_members_cannot_create_events():
    register("admin@example.com")
    member_token = register("member@example.com")
    resp = client.post(
        "/events",
        json={
            "title": "Party",
            "description": "x",
            "type": "social",
            "category": "club_service",
            "start_date": utc_now().isoformat(),
        },
        headers=auth_headers(member_token),
    )
    assert resp.status_code == 403


def test_members_see_published_non_private_events_only():
    admin_token = register("admin@example.com")
    member_token = register("member@example.com")
    visible = create_event(admin_token, title="Open Meeting", visibility="members_only")
    draft = create_event(admin_token, title="Planning", status="draft")
    private = create_event(admin_token, title="Board Only", visibility="private")

    listing = client.get("/events", headers=auth_headers(member_token)).json()["data"]
    assert [e["id"] for e in listing["items"]] == [visible["id"]]
    assert client.get(f"/events/{draft['id']}", headers=auth_headers(member_token)).status_code == 403
    assert client.get(f"/events/{private['id']}", headers=auth_headers(member_token)).status_code == 403

    admin_listing = client.get("/events", headers=auth_headers(admin_token)).json()["data"]
    assert admin_listing["total"] == 3


def test_public_events_and_slug_lookup():
    token = register("admin@example.com")
    public = create_event(token, title="Charity Run")
    create_event(token, title="Members Mixer", visibility="members_only")
    create_event(token, title="Unpublished", status="draft")

    listing = client.get("/public/events").json()["data"]
    assert [e["title"] for e in listing["items"]] == ["Charity Run"]
    assert client.get(f"/public/events/{public['slug']}").status_code == 200
    assert client.get("/public/events/members-mixer").status_code == 404


def test_timeframe_filters():
    token = register("admin@example.com")
    future = create_event(token, title="Future", days_ahead=5)
    past = create_event(token, title="Past", days_ahead=-5)

    upcoming = client.get("/events", params={"timeframe": "upcoming"}, headers=auth_headers(token)).json()["data"]
    assert [e["id"] for e in upcoming["items"]] == [future["id"]]
    gone = client.get("/public/events", params={"timeframe": "past"}).json()["data"]
    assert [e["id"] for e in gone["items"]] == [past["id"]]
    assert past["is_past"] is True


def test_featured_events_are_upcoming_public_and_limited():
    token = register("admin@example.com")
    for offset in range(1, 8):
        create_event(token, title=f"Featured {offset}", days_ahead=offset, is_featured=True)
    create_event(token, title="Old featured", days_ahead=-3, is_featured=True)

    featured = client.get("/public/events/featured").json()["data"]
    assert [e["title"] for e in featured] == [f"Featured {n}" for n in range(1, 6)]


def test_update_and_delete_event():
    token = register("admin@example.com")
    event = create_event(token)

    resp = client.put(f"/events/{event['id']}", json={"title": "Gala Night"}, headers=auth_headers(token))
    assert resp.status_code == 200
    assert resp.json()["data"]["slug"] == "gala-night"

    assert client.delete(f"/events/{event['id']}", headers=auth_headers(token)).status_code == 200
    assert client.get(f"/events/{event['id']}", headers=auth_headers(token)).status_code == 404


def test_event_statistics():
    token = register("admin@example.com")
    create_event(token)
    create_event(token, title="Draft", status="draft", type="meeting")

    stats = client.get("/statistics/events", headers=auth_headers(token)).json()["data"]
    assert stats["total"] == 2
    assert stats["published"] == 1
    assert stats["draft"] == 1
    assert stats["upcoming"] == 2
    assert stats["by_type"] == {"social": 1, "meeting": 1}
