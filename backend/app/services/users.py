"""Member accounts: registration, authentication, profiles and administration."""

import logging
from typing import Any, Dict
from urllib.parse import urlencode

from sqlalchemy import or_
from sqlalchemy.orm import Session

from backend.app.core.errors import AuthenticationError, InvalidStateError, PermissionDeniedError, ValidationError
from backend.app.core.mailer import Notice
from backend.app.core.pagination import ListParams, apply_sorting, paginate
from backend.app.core.security import (
    create_access_token,
    create_password_reset_token,
    decode_password_reset_token,
    get_password_hash,
    verify_password,
)
from backend.app.core.settings import get_settings
from backend.app.core.storage import get_storage
from backend.app.core.time import utc_now
from backend.app.db.session import atomic
from backend.app.models.committee import Committee
from backend.app.models.user import User
from backend.app.schemas.user import PasswordReset, ProfileUpdate, UserCreate, UserRegister, UserUpdate
from backend.app.services.common import apply_fields, get_live_or_404, live, soft_delete

logger = logging.getLogger(__name__)

AVATAR_MAX_BYTES = 2 * 1024 * 1024
AVATAR_TYPES = ("image/jpeg", "image/png", "image/gif")
RESET_INVALID = "This password reset token is invalid."

SORT_FIELDS = {
    "created_at": User.created_at,
    "name": User.name,
    "email": User.email,
    "role": User.role,
    "status": User.status,
}


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def _ensure_email_free(db: Session, email: str, exclude_id: int | None = None) -> None:
    query = db.query(User).filter(User.email == email)
    if exclude_id is not None:
        query = query.filter(User.id != exclude_id)
    if query.first() is not None:
        raise ValidationError.for_field("email", "The email has already been taken.")


def get_user(db: Session, user_id: int) -> User:
    return get_live_or_404(db, User, user_id, "User")


def register_user(db: Session, payload: UserRegister) -> User:
    """Create a member account; the very first account becomes an admin."""
    email = _normalize_email(payload.email)
    _ensure_email_free(db, email)
    first_user = db.query(User).count() == 0
    with atomic(db):
        user = User(
            name=payload.name,
            email=email,
            hashed_password=get_password_hash(payload.password),
            phone=payload.phone,
            profession=payload.profession,
            company=payload.company,
            role="admin" if first_user else "member",
            status="active",
        )
        db.add(user)
    logger.info("Registered user %s as %s", user.id, user.role)
    return user


def authenticate(db: Session, email: str, password: str) -> User:
    user = live(db, User).filter(User.email == _normalize_email(email)).first()
    if user is None or not verify_password(password, user.hashed_password):
        logger.warning("Failed login for %s", email)
        raise AuthenticationError("Invalid credentials")
    if not user.is_active:
        raise PermissionDeniedError("Your account is not active. Please contact the administrator.")
    return user


def issue_token(db: Session, user: User) -> str:
    with atomic(db):
        user.last_login = utc_now()
    return create_access_token(user.id, user.token_version)


def logout(db: Session, user: User) -> None:
    with atomic(db):
        user.token_version = (user.token_version or 0) + 1
    logger.info("User %s logged out", user.id)


def password_reset_notice(db: Session, email: str) -> Notice:
    """Issue a reset token for an active account and build the mail carrying it."""
    user = live(db, User).filter(User.email == _normalize_email(email)).first()
    if user is None or not user.is_active:
        raise ValidationError.for_field("email", "We can't find a user with that email address.")
    token = create_password_reset_token(user.id, user.token_version)
    settings = get_settings()
    link = f"{settings.frontend_url}/reset-password?{urlencode({'token': token, 'email': user.email})}"
    logger.info("Password reset requested for user %s", user.id)
    return Notice(
        user.email,
        "Reset your Rotary club password",
        f"Dear {user.name},\n\nUse the link below to choose a new password. "
        f"It expires in {settings.password_reset_expire_minutes} minutes.\n\n{link}\n\n"
        "If you did not ask for a password reset, ignore this message.",
    )


def reset_password(db: Session, payload: PasswordReset) -> User:
    if payload.password != payload.password_confirmation:
        raise ValidationError.for_field("password", "The password confirmation does not match.")
    try:
        claims = decode_password_reset_token(payload.token)
        user_id = int(claims.get("sub"))
    except (TypeError, ValueError):
        raise ValidationError.for_field("email", RESET_INVALID)
    user = live(db, User).filter(User.id == user_id).first()
    if user is None or user.email != _normalize_email(payload.email) or claims.get("ver") != user.token_version:
        raise ValidationError.for_field("email", RESET_INVALID)

    with atomic(db):
        user.hashed_password = get_password_hash(payload.password)
        user.token_version = (user.token_version or 0) + 1
    logger.info("Password reset for user %s", user.id)
    return user


def update_profile(db: Session, user: User, payload: ProfileUpdate) -> User:
    changes = payload.model_dump(exclude_unset=True)
    current_password = changes.pop("current_password", None)
    new_password = changes.pop("password", None)
    if "name" in changes and changes["name"] is None:
        raise ValidationError.for_field("name", "The name may not be empty.")
    if "email" in changes:
        if changes["email"] is None:
            raise ValidationError.for_field("email", "The email may not be empty.")
        changes["email"] = _normalize_email(changes["email"])
        _ensure_email_free(db, changes["email"], exclude_id=user.id)
    if new_password is not None and not verify_password(current_password or "", user.hashed_password):
        raise ValidationError.for_field("current_password", "The current password is incorrect.")

    with atomic(db):
        apply_fields(user, changes)
        if new_password is not None:
            user.hashed_password = get_password_hash(new_password)
    return user


def update_avatar(db: Session, user: User, data: bytes, file_name: str, content_type: str | None) -> User:
    if content_type not in AVATAR_TYPES:
        raise ValidationError.for_field("avatar", "The avatar must be a jpeg, png or gif image.")
    if not data:
        raise ValidationError.for_field("avatar", "The avatar field is required.")
    if len(data) > AVATAR_MAX_BYTES:
        raise ValidationError.for_field("avatar", "The avatar may not be greater than 2048 kilobytes.")

    storage = get_storage()
    prefix = storage.url("")
    old_key = user.avatar_url[len(prefix):] if user.avatar_url and user.avatar_url.startswith(prefix) else None
    key = storage.store(data, file_name, directory="avatars")
    with atomic(db):
        user.avatar_url = storage.url(key)
    if old_key:
        storage.delete(old_key)
    return user


def list_users(
    db: Session,
    params: ListParams,
    *,
    role: str | None = None,
    status: str | None = None,
    search: str | None = None,
) -> Dict[str, Any]:
    query = live(db, User)
    if role:
        query = query.filter(User.role == role)
    if status:
        query = query.filter(User.status == status)
    if search:
        pattern = f"%{search}%"
        query = query.filter(
            or_(
                User.name.ilike(pattern),
                User.email.ilike(pattern),
                User.profession.ilike(pattern),
                User.company.ilike(pattern),
            )
        )
    query = apply_sorting(query, params, SORT_FIELDS, "created_at", User.id)
    return paginate(query, params)


def list_public_members(db: Session, params: ListParams, search: str | None = None) -> Dict[str, Any]:
    query = live(db, User).filter(User.status == "active")
    if search:
        pattern = f"%{search}%"
        query = query.filter(
            or_(User.name.ilike(pattern), User.profession.ilike(pattern), User.company.ilike(pattern))
        )
    query = query.order_by(User.name.asc(), User.id.asc())
    return paginate(query, params)


def create_user(db: Session, payload: UserCreate) -> User:
    email = _normalize_email(payload.email)
    _ensure_email_free(db, email)
    with atomic(db):
        user = User(
            name=payload.name,
            email=email,
            hashed_password=get_password_hash(payload.password),
            phone=payload.phone,
            profession=payload.profession,
            company=payload.company,
            role=payload.role,
            status=payload.status,
        )
        db.add(user)
    logger.info("User %s created with role %s", user.id, user.role)
    return user


def _ensure_not_last_admin(db: Session, user: User) -> None:
    if user.role == "admin" and live(db, User).filter(User.role == "admin").count() <= 1:
        raise InvalidStateError("Cannot remove the last admin user")


def update_user(db: Session, user_id: int, payload: UserUpdate) -> User:
    user = get_user(db, user_id)
    changes = payload.model_dump(exclude_unset=True)
    new_password = changes.pop("password", None)
    for field in ("name", "email", "role", "status"):
        if field in changes and changes[field] is None:
            raise ValidationError.for_field(field, f"The {field} may not be empty.")
    if "email" in changes:
        changes["email"] = _normalize_email(changes["email"])
        _ensure_email_free(db, changes["email"], exclude_id=user.id)
    if changes.get("role", "admin") != "admin":
        _ensure_not_last_admin(db, user)

    with atomic(db):
        apply_fields(user, changes)
        if new_password is not None:
            user.hashed_password = get_password_hash(new_password)
    return user


def update_status(db: Session, user_id: int, status: str) -> User:
    user = get_user(db, user_id)
    if status != "active":
        _ensure_not_last_admin(db, user)
    previous = user.status
    with atomic(db):
        user.status = status
    logger.info("User %s status %s -> %s", user.id, previous, status)
    return user


def delete_user(db: Session, user_id: int) -> None:
    user = get_user(db, user_id)
    _ensure_not_last_admin(db, user)
    chaired = live(db, Committee).filter(Committee.chairperson_id == user.id).count()
    if chaired:
        raise InvalidStateError(
            f"Cannot delete a user who chairs {chaired} committee(s); reassign the chairperson first"
        )
    with atomic(db):
        soft_delete(user)
        user.token_version = (user.token_version or 0) + 1
    logger.info("User %s deleted", user_id)


def user_statistics(db: Session) -> Dict[str, int]:
    base = live(db, User)
    return {
        "total_users": base.count(),
        "active_users": base.filter(User.status == "active").count(),
        "inactive_users": base.filter(User.status == "inactive").count(),
        "pending_users": base.filter(User.status == "pending").count(),
        "admin_users": base.filter(User.role == "admin").count(),
        "member_users": base.filter(User.role == "member").count(),
        "blog_manager_users": base.filter(User.role == "blog_manager").count(),
    }
