"""Response envelope and pagination wrappers shared by every router."""

from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict

T = TypeVar("T")


class Envelope(BaseModel, Generic[T]):
    success: bool = True
    message: Optional[str] = None
    data: Optional[T] = None


class Page(BaseModel, Generic[T]):
    items: List[T]
    total: int
    page: int
    per_page: int
    last_page: int


class UserSummary(BaseModel):
    id: int
    name: str
    email: str
    avatar: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)
