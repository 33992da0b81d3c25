from datetime import timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from backend.app.core import mailer
from backend.app.core.cache import read_cache
from backend.app.core.settings import get_settings
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


def create_due(token: str, user_id: int, amount: str = "100.00", days_from_now: int = 30, **extra):
    payload = {
        "user_id": user_id,
        "amount": amount,
        "type": "annual",
        "due_date": (utc_today() + timedelta(days=days_from_now)).isoformat(),
    }
    payload.update(extra)
    resp = client.post("/dues", json=payload, headers=auth_headers(token))
    assert resp.status_code == 201, resp.json()
    return resp.json()["data"]


def test_create_due_starts_pending():
    admin_token, _ = register("admin@example.com")
    _, member_id = register("member@example.com")

    due = create_due(admin_token, member_id)
    assert due["status"] == "pending"
    assert due["effective_status"] == "pending"
    assert Decimal(due["amount"]) == Decimal("100.00")
    assert due["user"]["email"] == "member@example.com"


def test_create_due_rejects_unknown_user():
    admin_token, _ = register("admin@example.com")

    resp = client.post(
        "/dues",
        json={"user_id": 999, "amount": "10.00", "type": "annual", "due_date": utc_today().isoformat()},
        headers=auth_headers(admin_token),
    )
    assert resp.status_code == 422
    assert "user_id" in resp.json()["errors"]


def test_mark_as_paid_twice_replaces_payment_details():
    admin_token, _ = register("admin@example.com")
    _, member_id = register("member@example.com")
    due = create_due(admin_token, member_id)

    first = client.post(
        f"/dues/{due['id']}/pay",
        json={"payment_method": "mpesa", "transaction_id": "TX1"},
        headers=auth_headers(admin_token),
    )
    assert first.status_code == 200
    assert first.json()["data"]["status"] == "paid"
    assert first.json()["data"]["paid_at"] is not None

    second = client.post(
        f"/dues/{due['id']}/pay",
        json={"payment_method": "cash", "notes": "corrected"},
        headers=auth_headers(admin_token),
    )
    assert second.status_code == 200
    data = second.json()["data"]
    assert data["payment_method"] == "cash"
    assert data["transaction_id"] is None
    assert "via mpesa (transaction TX1)" in data["notes"]
    assert data["notes"].endswith("via cash. corrected")


def test_waive_appends_note_and_blocks_payment():
    admin_token, admin_id = register("admin@example.com")
    _, member_id = register("member@example.com")
    due = create_due(admin_token, member_id, notes="Initial note")

    resp = client.post(f"/dues/{due['id']}/waive", json={"reason": "Hardship"}, headers=auth_headers(admin_token))
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["status"] == "waived"
    first, second = data["notes"].split("\n\n")
    assert first == "Initial note"
    assert second.startswith("Waived on: ")
    assert second.endswith(f"by user {admin_id}. Reason: Hardship")

    pay = client.post(f"/dues/{due['id']}/pay", json={"payment_method": "cash"}, headers=auth_headers(admin_token))
    assert pay.status_code == 422

    again = client.post(f"/dues/{due['id']}/waive", json={"reason": "Twice"}, headers=auth_headers(admin_token))
    assert again.status_code == 422


def test_overdue_is_derived_from_due_date():
    admin_token, _ = register("admin@example.com")
    _, member_id = register("member@example.com")
    late = create_due(admin_token, member_id, days_from_now=-5)
    create_due(admin_token, member_id, days_from_now=5)

    assert late["status"] == "pending"
    assert late["effective_status"] == "overdue"
    assert late["is_overdue"] is True

    overdue = client.get("/dues/overdue", headers=auth_headers(admin_token))
    assert overdue.status_code == 200
    assert [d["id"] for d in overdue.json()["data"]] == [late["id"]]

    listed = client.get("/dues", params={"status": "overdue"}, headers=auth_headers(admin_token)).json()["data"]
    assert listed["total"] == 1
    pending = client.get("/dues", params={"status": "pending"}, headers=auth_headers(admin_token)).json()["data"]
    assert pending["total"] == 1
    assert pending["items"][0]["id"] != late["id"]


def test_reminder_rejected_for_paid_due():
    admin_token, _ = register("admin@example.com")
    _, member_id = register("member@example.com")
    due = create_due(admin_token, member_id)

    ok = client.post(f"/dues/{due['id']}/remind", headers=auth_headers(admin_token))
    assert ok.status_code == 200

    client.post(f"/dues/{due['id']}/pay", json={"payment_method": "cash"}, headers=auth_headers(admin_token))
    resp = client.post(f"/dues/{due['id']}/remind", headers=auth_headers(admin_token))
    assert resp.status_code == 422


def test_members_only_see_their_own_dues():
    admin_token, admin_id = register("admin@example.com")
    member_token, member_id = register("member@example.com")
    own = create_due(admin_token, member_id)
    other = create_due(admin_token, admin_id)

    listed = client.get("/dues", params={"user_id": admin_id}, headers=auth_headers(member_token)).json()["data"]
    assert [d["id"] for d in listed["items"]] == [own["id"]]

    assert client.get(f"/dues/{own['id']}", headers=auth_headers(member_token)).status_code == 200
    assert client.get(f"/dues/{other['id']}", headers=auth_headers(member_token)).status_code == 403
    assert client.post(
        f"/dues/{own['id']}/pay", json={"payment_method": "cash"}, headers=auth_headers(member_token)
    ).status_code == 403
    assert client.get("/dues/statistics", headers=auth_headers(member_token)).status_code == 403


def test_yearly_summary_totals_and_progress():
    admin_token, _ = register("admin@example.com")
    member_token, member_id = register("member@example.com")
    year = utc_today().year
    paid = create_due(admin_token, member_id, amount="100.00", due_date=f"{year}-01-15")
    waived = create_due(admin_token, member_id, amount="50.00", due_date=f"{year}-02-15")
    create_due(admin_token, member_id, amount="100.00", due_date=f"{year}-12-31")

    client.post(f"/dues/{paid['id']}/pay", json={"payment_method": "cash"}, headers=auth_headers(admin_token))
    client.post(f"/dues/{waived['id']}/waive", json={"reason": "Honorary"}, headers=auth_headers(admin_token))

    resp = client.get(f"/users/{member_id}/dues/summary", params={"year": year}, headers=auth_headers(member_token))
    assert resp.status_code == 200
    summary = resp.json()["data"]
    assert summary["year"] == year
    assert summary["total_dues"] == 250.0
    assert summary["total_paid"] == 100.0
    assert summary["total_waived"] == 50.0
    assert summary["total_pending"] + summary["total_overdue"] == 100.0
    assert summary["payment_progress"] == 50.0
    assert len(summary["monthly"]) == 12
    assert summary["monthly"][0]["paid"] == 100.0
    assert len(summary["dues"]) == 3


def test_summary_without_dues_reports_full_progress():
    admin_token, admin_id = register("admin@example.com")
    resp = client.get(f"/users/{admin_id}/dues/summary", headers=auth_headers(admin_token))
    assert resp.status_code == 200
    assert resp.json()["data"]["payment_progress"] == 100.0
    assert resp.json()["data"]["total_dues"] == 0.0


def test_due_statistics_collection_rate():
    admin_token, _ = register("admin@example.com")
    _, member_id = register("member@example.com")
    first = create_due(admin_token, member_id, amount="100.00")
    create_due(admin_token, member_id, amount="300.00")
    client.post(f"/dues/{first['id']}/pay", json={"payment_method": "cash"}, headers=auth_headers(admin_token))

    stats = client.get("/dues/statistics", headers=auth_headers(admin_token)).json()["data"]
    assert stats["total_dues"] == 400.0
    assert stats["total_paid"] == 100.0
    assert stats["collection_rate"] == 25.0
    assert stats["type_breakdown"] == [{"type": "annual", "count": 2, "total_amount": 400.0}]


def test_overdue_cannot_be_stored_directly():
    admin_token, _ = register("admin@example.com")
    _, member_id = register("member@example.com")
    due = create_due(admin_token, member_id)

    resp = client.put(f"/dues/{due['id']}", json={"status": "overdue"}, headers=auth_headers(admin_token))
    assert resp.status_code == 422
    assert "status" in resp.json()["errors"]


def test_reminder_mail_goes_to_the_payer(monkeypatch):
    monkeypatch.setattr(get_settings(), "smtp_host", "smtp.example.com")
    sent = []
    monkeypatch.setattr(mailer, "send_mail", lambda to, subject, body: sent.append((to, subject, body)))
    admin_token, _ = register("admin@example.com")
    _, member_id = register("member@example.com")
    due = create_due(admin_token, member_id, amount="250.00")

    resp = client.post(f"/dues/{due['id']}/remind", headers=auth_headers(admin_token))

    assert resp.status_code == 200
    assert resp.json()["data"]["id"] == due["id"]
    assert len(sent) == 1
    to, subject, body = sent[0]
    assert to == ["member@example.com"]
    assert subject == "Rotary club dues reminder"
    assert "250.00" in body
