"""Authentication dependencies for retrieving the current user."""

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from backend.app.core.security import decode_access_token
from backend.app.db.session import get_db
from backend.app.models.user import User


def _unauthenticated() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthenticated",
        headers={"WWW-Authenticate": "Bearer"},
    )


def _resolve_user(db: Session, authorization: str) -> User:
    if not authorization.startswith("Bearer "):
        raise _unauthenticated()
    token = authorization.split(" ", 1)[1]
    try:
        payload = decode_access_token(token)
    except ValueError:
        raise _unauthenticated()

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise _unauthenticated()

    user = db.query(User).filter(User.id == user_id, User.deleted_at.is_(None)).first()
    if user is None or payload.get("ver") != user.token_version or not user.is_active:
        raise _unauthenticated()
    return user


def get_current_user(db: Session = Depends(get_db), authorization: str | None = Header(default=None)) -> User:
    # Expect Authorization: Bearer <token>
    if not authorization:
        raise _unauthenticated()
    return _resolve_user(db, authorization)
