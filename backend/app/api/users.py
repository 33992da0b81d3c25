"""Member administration and the per-member dues summary."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from backend.app.core.pagination import ListParams, list_params
from backend.app.core.permissions import Capability, authorize, owns_or_admin, require_capability
from backend.app.core.responses import envelope
from backend.app.db.session import get_db
from backend.app.dependencies.auth import get_current_user
from backend.app.models.enums import UserRole, UserStatus
from backend.app.models.user import User
from backend.app.schemas.common import Envelope, Page
from backend.app.schemas.user import UserCreate, UserRead, UserStatusUpdate, UserUpdate
from backend.app.services import dues as due_service
from backend.app.services import users as user_service

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=Envelope[Page[UserRead]])
async def list_users(
    role: UserRole | None = None,
    status: UserStatus | None = None,
    search: str | None = None,
    params: ListParams = Depends(list_params),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    page = user_service.list_users(db, params, role=role, status=status, search=search)
    return envelope(page, "Users retrieved successfully")


@router.post("", response_model=Envelope[UserRead], status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: UserCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    require_capability(current_user, Capability.MANAGE_USERS)
    user = user_service.create_user(db, payload)
    return envelope(user, "User created successfully")


@router.get("/{user_id}", response_model=Envelope[UserRead])
async def get_user(user_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return envelope(user_service.get_user(db, user_id), "User retrieved successfully")


@router.put("/{user_id}", response_model=Envelope[UserRead])
async def update_user(
    user_id: int,
    payload: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    require_capability(current_user, Capability.MANAGE_USERS)
    user = user_service.update_user(db, user_id, payload)
    return envelope(user, "User updated successfully")


@router.put("/{user_id}/status", response_model=Envelope[UserRead])
async def update_user_status(
    user_id: int,
    payload: UserStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    require_capability(current_user, Capability.MANAGE_USERS)
    user = user_service.update_status(db, user_id, payload.status)
    return envelope(user, "User status updated successfully")


@router.delete("/{user_id}", response_model=Envelope)
async def delete_user(user_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    require_capability(current_user, Capability.MANAGE_USERS)
    user_service.delete_user(db, user_id)
    return envelope(None, "User deleted successfully")


@router.get("/{user_id}/dues/summary", response_model=Envelope[dict])
async def user_dues_summary(
    user_id: int,
    year: int | None = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    user = user_service.get_user(db, user_id)
    authorize(owns_or_admin(current_user, user, "id"), "You can only view your own dues")
    summary = due_service.yearly_summary(db, user.id, year)
    summary["dues"] = [due_service.serialize(due) for due in summary["dues"]]
    return envelope(summary, "User dues summary retrieved successfully")
