import pytest

from backend.app.core.dev_seed import DEFAULT_DEV_ADMIN, ensure_default_dev_admin
from backend.app.db.base import Base
from backend.app.db.session import SessionLocal, engine
from backend.app.models.user import User


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


def test_seed_is_skipped_under_pytest():
    db = SessionLocal()
    try:
        ensure_default_dev_admin(db)
        assert db.query(User).count() == 0
    finally:
        db.close()


def test_seed_creates_admin_once_in_development(monkeypatch):
    monkeypatch.delenv("PYTEST_CURRENT_TEST", raising=False)
    db = SessionLocal()
    try:
        ensure_default_dev_admin(db)
        ensure_default_dev_admin(db)
        users = db.query(User).all()
        assert [(u.email, u.role) for u in users] == [(DEFAULT_DEV_ADMIN["email"], "admin")]
    finally:
        db.close()
