"""User schemas used for registration, profile and administration."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from backend.app.models.enums import UserRole, UserStatus


class UserRegister(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(min_length=8)
    phone: Optional[str] = Field(default=None, max_length=20)
    profession: Optional[str] = Field(default=None, max_length=100)
    company: Optional[str] = Field(default=None, max_length=100)


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserCreate(UserRegister):
    role: UserRole = "member"
    status: UserStatus = "active"


class UserUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(default=None, min_length=8)
    phone: Optional[str] = Field(default=None, max_length=20)
    profession: Optional[str] = Field(default=None, max_length=100)
    company: Optional[str] = Field(default=None, max_length=100)
    role: Optional[UserRole] = None
    status: Optional[UserStatus] = None


class ForgotPassword(BaseModel):
    email: EmailStr


class PasswordReset(BaseModel):
    token: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=8)
    password_confirmation: str


class UserStatusUpdate(BaseModel):
    status: UserStatus


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=20)
    profession: Optional[str] = Field(default=None, max_length=100)
    company: Optional[str] = Field(default=None, max_length=100)
    current_password: Optional[str] = None
    password: Optional[str] = Field(default=None, min_length=8)


class UserRead(BaseModel):
    id: int
    name: str
    email: EmailStr
    phone: Optional[str] = None
    profession: Optional[str] = None
    company: Optional[str] = None
    role: UserRole
    status: UserStatus
    avatar: Optional[str] = None
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class PublicMemberRead(BaseModel):
    id: int
    name: str
    profession: Optional[str] = None
    company: Optional[str] = None
    avatar: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class TokenRead(BaseModel):
    user: UserRead
    token: str
    token_type: str = "bearer"
