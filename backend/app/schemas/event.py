"""Event schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from backend.app.models.enums import EventCategory, EventStatus, EventType, EventVisibility
from backend.app.schemas.common import UserSummary


class EventCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1)
    excerpt: Optional[str] = Field(default=None, max_length=500)
    type: EventType
    category: EventCategory
    start_date: datetime
    end_date: Optional[datetime] = None
    all_day: bool = False
    location: Optional[str] = Field(default=None, max_length=255)
    address: Optional[str] = Field(default=None, max_length=512)
    latitude: Optional[Decimal] = Field(default=None, ge=-90, le=90)
    longitude: Optional[Decimal] = Field(default=None, ge=-180, le=180)
    max_attendees: Optional[int] = Field(default=None, ge=1)
    registration_fee: Optional[Decimal] = Field(default=None, ge=0)
    registration_deadline: Optional[datetime] = None
    requires_registration: bool = False
    featured_image: Optional[str] = Field(default=None, max_length=512)
    status: EventStatus = "draft"
    visibility: EventVisibility = "public"
    is_featured: bool = False
    tags: Optional[List[str]] = None
    notes: Optional[str] = None
    contact_info: Optional[Dict[str, Any]] = None


class EventUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, min_length=1)
    excerpt: Optional[str] = Field(default=None, max_length=500)
    type: Optional[EventType] = None
    category: Optional[EventCategory] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    all_day: Optional[bool] = None
    location: Optional[str] = Field(default=None, max_length=255)
    address: Optional[str] = Field(default=None, max_length=512)
    latitude: Optional[Decimal] = Field(default=None, ge=-90, le=90)
    longitude: Optional[Decimal] = Field(default=None, ge=-180, le=180)
    max_attendees: Optional[int] = Field(default=None, ge=1)
    registration_fee: Optional[Decimal] = Field(default=None, ge=0)
    registration_deadline: Optional[datetime] = None
    requires_registration: Optional[bool] = None
    featured_image: Optional[str] = Field(default=None, max_length=512)
    status: Optional[EventStatus] = None
    visibility: Optional[EventVisibility] = None
    is_featured: Optional[bool] = None
    tags: Optional[List[str]] = None
    notes: Optional[str] = None
    contact_info: Optional[Dict[str, Any]] = None


class EventRead(BaseModel):
    id: int
    title: str
    slug: str
    description: str
    excerpt: Optional[str] = None
    type: EventType
    category: EventCategory
    start_date: datetime
    end_date: Optional[datetime] = None
    all_day: bool
    location: Optional[str] = None
    address: Optional[str] = None
    latitude: Optional[Decimal] = None
    longitude: Optional[Decimal] = None
    max_attendees: Optional[int] = None
    registration_fee: Optional[Decimal] = None
    registration_deadline: Optional[datetime] = None
    requires_registration: bool
    registration_status: str
    featured_image: Optional[str] = None
    status: EventStatus
    visibility: EventVisibility
    is_featured: bool
    is_upcoming: bool
    is_past: bool
    is_ongoing: bool
    tags: Optional[List[str]] = None
    notes: Optional[str] = None
    contact_info: Optional[Dict[str, Any]] = None
    created_by: int
    creator: Optional[UserSummary] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
