import pytest

from backend.app.core.errors import ValidationError
from backend.app.db.base import Base
from backend.app.db.session import SessionLocal, engine
from backend.app.models.user import User
from backend.app.schemas.committee import CommitteeCreate
from backend.app.services import committees as committee_service


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


def make_user(db, email: str) -> User:
    user = User(name=email.split("@")[0], email=email, hashed_password="x")
    db.add(user)
    db.commit()
    return user


def test_reassign_chairperson_to_non_member_adds_them():
    db = SessionLocal()
    try:
        chair = make_user(db, "chair@example.com")
        newcomer = make_user(db, "newcomer@example.com")
        committee = committee_service.create_committee(
            db, CommitteeCreate(name="Youth Service", chairperson_id=chair.id)
        )

        committee = committee_service.reassign_chairperson(db, committee.id, newcomer.id)
        assert committee.chairperson_id == newcomer.id
        assert {link.user_id: link.role for link in committee.member_links} == {
            chair.id: "member",
            newcomer.id: "chairperson",
        }
    finally:
        db.close()


def test_reassign_chairperson_to_unknown_user_fails():
    db = SessionLocal()
    try:
        chair = make_user(db, "chair@example.com")
        committee = committee_service.create_committee(
            db, CommitteeCreate(name="Youth Service", chairperson_id=chair.id)
        )
        with pytest.raises(ValidationError) as excinfo:
            committee_service.reassign_chairperson(db, committee.id, 999)
        assert "chairperson_id" in excinfo.value.errors
    finally:
        db.close()
