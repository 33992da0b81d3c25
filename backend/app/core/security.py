"""Security utilities: password hashing and JWT token operations.

Tokens carry the user id as ``sub`` and the user's ``token_version`` as ``ver``;
bumping the version on logout invalidates every token issued before it.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from passlib.context import CryptContext

from backend.app.core.settings import get_settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ALGORITHM = "HS256"
ACCESS = "access"
PASSWORD_RESET = "password_reset"


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(user_id: int, token_version: int = 0, expires_minutes: Optional[int] = None) -> str:
    settings = get_settings()
    expire_delta = timedelta(
        minutes=expires_minutes if expires_minutes is not None else settings.access_token_expire_minutes
    )
    expire = datetime.now(timezone.utc) + expire_delta
    payload = {"sub": str(user_id), "ver": int(token_version or 0), "typ": ACCESS, "exp": expire}
    return jwt.encode(payload, settings.secret_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> Dict[str, Any]:
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError as exc:
        raise ValueError("Expired token") from exc
    except jwt.InvalidTokenError as exc:
        raise ValueError("Invalid token") from exc
    if payload.get("typ", ACCESS) != ACCESS:
        raise ValueError("Invalid token")
    return payload


def create_password_reset_token(user_id: int, token_version: int, expires_minutes: Optional[int] = None) -> str:
    """Single-use reset token: resetting bumps ``token_version``, which ``ver`` must still match."""
    settings = get_settings()
    minutes = expires_minutes if expires_minutes is not None else settings.password_reset_expire_minutes
    payload = {
        "sub": str(user_id),
        "ver": int(token_version or 0),
        "typ": PASSWORD_RESET,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=minutes),
    }
    return jwt.encode(payload, settings.secret_key, algorithm=ALGORITHM)


def decode_password_reset_token(token: str) -> Dict[str, Any]:
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except jwt.InvalidTokenError as exc:
        raise ValueError("Invalid reset token") from exc
    if payload.get("typ") != PASSWORD_RESET:
        raise ValueError("Invalid reset token")
    return payload
