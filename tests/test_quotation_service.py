from datetime import timedelta
from decimal import Decimal

import pytest

from backend.app.core.cache import read_cache
from backend.app.core import mailer
from backend.app.core.errors import ConflictError, InvalidStateError, ValidationError
from backend.app.core.settings import get_settings
from backend.app.core.time import utc_today
from backend.app.db.base import Base
from backend.app.db.session import SessionLocal, engine
from backend.app.models.user import User
from backend.app.schemas.quotation import QuotationCreate, QuotationItemCreate
from backend.app.services import quotations as quotation_service


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    read_cache.flush()
    yield


def make_user(db) -> User:
    user = User(name="Treasurer", email="treasurer@example.com", hashed_password="x", role="admin")
    db.add(user)
    db.commit()
    return user


def payload(**overrides) -> QuotationCreate:
    today = utc_today()
    data = {
        "vendor_name": "Acme",
        "issue_date": today,
        "expiry_date": today + timedelta(days=14),
        "items": [QuotationItemCreate(description="Chairs", quantity=Decimal("3"), unit_price=Decimal("19.99"), tax_rate=Decimal("16"))],
    }
    data.update(overrides)
    return QuotationCreate(**data)


def test_compute_item_amounts_rounds_half_up():
    tax, total = quotation_service.compute_item_amounts(Decimal("3"), Decimal("19.99"), Decimal("16"))
    assert tax == Decimal("9.60")
    assert total == Decimal("69.57")

    tax, total = quotation_service.compute_item_amounts(1, "0.125", 0)
    assert tax == Decimal("0.00")
    assert total == Decimal("0.13")


def test_next_quotation_number_counts_per_year():
    db = SessionLocal()
    try:
        assert quotation_service.next_quotation_number(db, 2031) == "QT-2031-1001"
        user = make_user(db)
        quotation_service.create_quotation(db, user, payload())
        year = utc_today().year
        assert quotation_service.next_quotation_number(db, year) == f"QT-{year}-1002"
        assert quotation_service.next_quotation_number(db, year + 1) == f"QT-{year + 1}-1001"
    finally:
        db.close()


def test_explicit_item_amounts_are_kept_until_the_item_changes():
    db = SessionLocal()
    try:
        user = make_user(db)
        item = QuotationItemCreate(
            description="Negotiated",
            quantity=Decimal("1"),
            unit_price=Decimal("100"),
            tax_rate=Decimal("16"),
            tax_amount=Decimal("10"),
            total_amount=Decimal("110"),
        )
        quotation = quotation_service.create_quotation(db, user, payload(items=[item]))
        assert quotation.tax_amount == Decimal("10.00")
        assert quotation.total_amount == Decimal("110.00")
    finally:
        db.close()


def test_transition_rules():
    db = SessionLocal()
    try:
        user = make_user(db)
        quotation = quotation_service.create_quotation(db, user, payload())

        with pytest.raises(ValidationError):
            quotation_service.transition(db, quotation.id, "archive", user)
        with pytest.raises(ValidationError):
            quotation_service.transition(db, quotation.id, "reject", user, reason="  ")

        quotation_service.transition(db, quotation.id, "send", user)
        with pytest.raises(InvalidStateError):
            quotation_service.transition(db, quotation.id, "send", user)

        rejected = quotation_service.transition(db, quotation.id, "reject", user, reason="Over budget")
        assert rejected.status == "rejected"
        assert rejected.rejected_by == user.id
        with pytest.raises(InvalidStateError):
            quotation_service.transition(db, quotation.id, "accept", user)
    finally:
        db.close()


def test_statistics_are_cached_until_a_write():
    db = SessionLocal()
    try:
        user = make_user(db)
        quotation_service.create_quotation(db, user, payload())
        first = quotation_service.quotation_statistics(db)
        assert first["total_quotations"] == 1
        assert quotation_service.quotation_statistics(db) is first

        quotation_service.create_quotation(db, user, payload())
        assert quotation_service.quotation_statistics(db)["total_quotations"] == 2
    finally:
        db.close()


def test_number_collision_is_retried_with_a_fresh_number(monkeypatch):
    db = SessionLocal()
    try:
        user = make_user(db)
        first = quotation_service.create_quotation(db, user, payload())
        taken = first.quotation_number
        real_next = quotation_service.next_quotation_number
        numbers = iter([taken])
        monkeypatch.setattr(
            quotation_service, "next_quotation_number", lambda session: next(numbers, None) or real_next(session)
        )

        second = quotation_service.create_quotation(db, user, payload())
        assert second.quotation_number != taken
        assert second.quotation_number.endswith("-1002")
    finally:
        db.close()


def test_repeated_number_collisions_raise_conflict(monkeypatch):
    db = SessionLocal()
    try:
        user = make_user(db)
        first = quotation_service.create_quotation(db, user, payload())
        monkeypatch.setattr(quotation_service, "next_quotation_number", lambda session: first.quotation_number)

        with pytest.raises(ConflictError):
            quotation_service.duplicate_quotation(db, first.id, user)
        assert db.query(quotation_service.Quotation).count() == 1
    finally:
        db.close()


def test_transition_does_not_deliver_mail_itself(monkeypatch):
    monkeypatch.setattr(get_settings(), "smtp_host", "smtp.example.com")
    sent = []
    monkeypatch.setattr(mailer, "send_mail", lambda *args: sent.append(args))
    db = SessionLocal()
    try:
        user = make_user(db)
        quotation = quotation_service.create_quotation(db, user, payload(vendor_email="vendor@example.com"))
        sent_quotation = quotation_service.transition(db, quotation.id, "send", user)
        assert sent == []

        notice = quotation_service.transition_notice(sent_quotation, "send")
        assert notice.to_addr == "vendor@example.com"
        assert sent_quotation.quotation_number in notice.subject
        assert quotation_service.transition_notice(sent_quotation, "reject") is None
    finally:
        db.close()


def test_item_values_are_stored_in_cents():
    db = SessionLocal()
    try:
        user = make_user(db)
        item = QuotationItemCreate.model_construct(
            description="Sand", details=None, quantity=Decimal("0.333"), unit=None, unit_price=Decimal("3"),
            tax_rate=Decimal("0"), tax_amount=None, total_amount=None,
        )
        quotation = quotation_service.create_quotation(db, user, payload(items=[item]))
        db.expire_all()
        stored = quotation.items[0]
        assert stored.quantity == Decimal("0.33")
        assert quotation.subtotal == Decimal("0.99")
        assert quotation.total_amount == Decimal("0.99")
    finally:
        db.close()
