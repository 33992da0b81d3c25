"""Event routes. Writes need ``manage_events``."""

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from backend.app.core.pagination import ListParams, list_params
from backend.app.core.permissions import Capability, authorize, has_capability, require_capability
from backend.app.core.responses import envelope
from backend.app.db.session import get_db
from backend.app.dependencies.auth import get_current_user
from backend.app.models.enums import EventCategory, EventStatus, EventType, EventVisibility
from backend.app.models.user import User
from backend.app.schemas.common import Envelope, Page
from backend.app.schemas.event import EventCreate, EventRead, EventUpdate
from backend.app.services import events as event_service

router = APIRouter(prefix="/events", tags=["events"])


@router.get("", response_model=Envelope[Page[EventRead]])
async def list_events(
    type: EventType | None = None,
    category: EventCategory | None = None,
    status: EventStatus | None = None,
    visibility: EventVisibility | None = None,
    timeframe: str | None = None,
    featured: bool | None = None,
    search: str | None = None,
    params: ListParams = Depends(list_params),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    page = event_service.list_events(
        db,
        params,
        current_user,
        type=type,
        category=category,
        status=status,
        visibility=visibility,
        timeframe=timeframe,
        featured=featured,
        search=search,
    )
    return envelope(page, "Events retrieved successfully")


@router.post("", response_model=Envelope[EventRead], status_code=status.HTTP_201_CREATED)
async def create_event(payload: EventCreate, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    require_capability(current_user, Capability.MANAGE_EVENTS)
    event = event_service.create_event(db, current_user, payload)
    return envelope(event, "Event created successfully")


@router.get("/featured", response_model=Envelope[List[EventRead]])
async def featured_events(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return envelope(event_service.featured_events(db), "Featured events retrieved successfully")


@router.get("/{event_id}", response_model=Envelope[EventRead])
async def get_event(event_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    event = event_service.get_event(db, event_id)
    authorize(
        has_capability(current_user, Capability.MANAGE_EVENTS)
        or event.created_by == current_user.id
        or (event.status == "published" and event.visibility != "private"),
        "You do not have permission to view this event",
    )
    return envelope(event, "Event retrieved successfully")


@router.put("/{event_id}", response_model=Envelope[EventRead])
async def update_event(
    event_id: int,
    payload: EventUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    require_capability(current_user, Capability.MANAGE_EVENTS)
    event = event_service.update_event(db, event_id, payload)
    return envelope(event, "Event updated successfully")


@router.delete("/{event_id}", response_model=Envelope)
async def delete_event(event_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    require_capability(current_user, Capability.MANAGE_EVENTS)
    event_service.delete_event(db, event_id)
    return envelope(None, "Event deleted successfully")
