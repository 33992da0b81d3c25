"""Registration, login/logout and the current user's own profile."""

from fastapi import APIRouter, BackgroundTasks, Depends, File, UploadFile, status
from sqlalchemy.orm import Session

from backend.app.core.mailer import queue_notice
from backend.app.core.responses import envelope
from backend.app.db.session import get_db
from backend.app.dependencies.auth import get_current_user
from backend.app.models.user import User
from backend.app.schemas.common import Envelope
from backend.app.schemas.user import (
    ForgotPassword,
    PasswordReset,
    ProfileUpdate,
    TokenRead,
    UserLogin,
    UserRead,
    UserRegister,
)
from backend.app.services import users as user_service

router = APIRouter(tags=["auth"])


@router.post("/register", response_model=Envelope[TokenRead], status_code=status.HTTP_201_CREATED)
async def register(payload: UserRegister, db: Session = Depends(get_db)):
    user = user_service.register_user(db, payload)
    token = user_service.issue_token(db, user)
    return envelope({"user": user, "token": token}, "User registered successfully")


@router.post("/login", response_model=Envelope[TokenRead])
async def login(payload: UserLogin, db: Session = Depends(get_db)):
    user = user_service.authenticate(db, payload.email, payload.password)
    token = user_service.issue_token(db, user)
    return envelope({"user": user, "token": token}, "User logged in successfully")


@router.post("/forgot-password", response_model=Envelope)
async def forgot_password(payload: ForgotPassword, background_tasks: BackgroundTasks, db: Session = Depends(get_db)):
    queue_notice(background_tasks, user_service.password_reset_notice(db, payload.email))
    return envelope(None, "We have emailed your password reset link.")


@router.post("/reset-password", response_model=Envelope)
async def reset_password(payload: PasswordReset, db: Session = Depends(get_db)):
    user_service.reset_password(db, payload)
    return envelope(None, "Your password has been reset.")


@router.post("/logout", response_model=Envelope)
async def logout(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    user_service.logout(db, current_user)
    return envelope(None, "Successfully logged out")


@router.get("/user", response_model=Envelope[UserRead])
async def read_current_user(current_user: User = Depends(get_current_user)):
    return envelope(current_user, "User retrieved successfully")


@router.put("/profile", response_model=Envelope[UserRead])
async def update_profile(
    payload: ProfileUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    user = user_service.update_profile(db, current_user, payload)
    return envelope(user, "Profile updated successfully")


@router.post("/avatar", response_model=Envelope[UserRead])
async def upload_avatar(
    avatar: UploadFile = File(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    data = await avatar.read()
    user = user_service.update_avatar(db, current_user, data, avatar.filename or "avatar", avatar.content_type)
    return envelope(user, "Avatar updated successfully")
