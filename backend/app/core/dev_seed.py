import logging
import os

from sqlalchemy.orm import Session

from backend.app.core.security import get_password_hash
from backend.app.core.settings import get_settings
from backend.app.models.user import User

logger = logging.getLogger(__name__)

DEFAULT_DEV_PASSWORD = "Secret123!"
DEFAULT_DEV_ADMIN = {
    "name": "Club Administrator",
    "email": "admin@rotary.local",
}


def ensure_default_dev_admin(db: Session) -> None:
    """
    Create a default admin for local development when the user table is empty.
    Skips execution when running under pytest or outside development.
    """
    if os.getenv("PYTEST_CURRENT_TEST"):
        return
    if get_settings().environment != "development":
        return
    if db.query(User).count() > 0:
        return

    user = User(
        name=DEFAULT_DEV_ADMIN["name"],
        email=DEFAULT_DEV_ADMIN["email"],
        hashed_password=get_password_hash(DEFAULT_DEV_PASSWORD),
        role="admin",
        status="active",
    )
    db.add(user)
    db.commit()
    logger.info("Seeded development admin %s", user.email)
