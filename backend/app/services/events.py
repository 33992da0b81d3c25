"""Club events: scheduling, visibility and timeframe filters."""

import logging
from typing import Any, Dict, List

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from backend.app.core.errors import NotFoundError, ValidationError
from backend.app.core.pagination import ListParams, apply_sorting, paginate
from backend.app.core.permissions import Capability, has_capability
from backend.app.core.time import as_utc, utc_now
from backend.app.db.session import atomic
from backend.app.models.event import Event
from backend.app.models.user import User
from backend.app.schemas.event import EventCreate, EventUpdate
from backend.app.services.common import apply_fields, get_live_or_404, live, soft_delete, unique_slug

logger = logging.getLogger(__name__)

FEATURED_LIMIT = 5

SORT_FIELDS = {
    "start_date": Event.start_date,
    "created_at": Event.created_at,
    "title": Event.title,
    "status": Event.status,
}

DATETIME_FIELDS = ("start_date", "end_date", "registration_deadline")


def _ends_at():
    return func.coalesce(Event.end_date, Event.start_date)


def _with_timeframe(query, timeframe: str | None):
    now = utc_now()
    if timeframe == "upcoming":
        return query.filter(Event.start_date > now)
    if timeframe == "past":
        return query.filter(_ends_at() < now)
    if timeframe == "ongoing":
        return query.filter(Event.start_date <= now, _ends_at() >= now)
    return query


def _public(query):
    return query.filter(Event.status == "published", Event.visibility == "public")


def _ensure_schedule(start_date, end_date, registration_deadline) -> None:
    if end_date is not None and end_date < start_date:
        raise ValidationError.for_field("end_date", "The end date must be on or after the start date.")
    if registration_deadline is not None and registration_deadline >= start_date:
        raise ValidationError.for_field(
            "registration_deadline", "The registration deadline must be before the start date."
        )


def get_event(db: Session, event_id: int) -> Event:
    return get_live_or_404(db, Event, event_id, "Event")


def list_events(
    db: Session,
    params: ListParams,
    viewer: User,
    *,
    type: str | None = None,
    category: str | None = None,
    status: str | None = None,
    visibility: str | None = None,
    timeframe: str | None = None,
    featured: bool | None = None,
    search: str | None = None,
) -> Dict[str, Any]:
    query = live(db, Event)
    if not has_capability(viewer, Capability.MANAGE_EVENTS):
        query = query.filter(
            or_(
                Event.created_by == viewer.id,
                (Event.status == "published") & (Event.visibility != "private"),
            )
        )
    if type and type != "all":
        query = query.filter(Event.type == type)
    if category and category != "all":
        query = query.filter(Event.category == category)
    if status and status != "all":
        query = query.filter(Event.status == status)
    if visibility and visibility != "all":
        query = query.filter(Event.visibility == visibility)
    if featured is not None:
        query = query.filter(Event.is_featured.is_(featured))
    query = _with_timeframe(query, timeframe)
    if search:
        pattern = f"%{search}%"
        query = query.filter(
            or_(Event.title.ilike(pattern), Event.description.ilike(pattern), Event.location.ilike(pattern))
        )
    query = apply_sorting(query, params, SORT_FIELDS, "start_date", Event.id)
    return paginate(query, params)


def list_public_events(
    db: Session,
    params: ListParams,
    *,
    type: str | None = None,
    category: str | None = None,
    timeframe: str | None = None,
    search: str | None = None,
) -> Dict[str, Any]:
    query = _public(live(db, Event))
    if type and type != "all":
        query = query.filter(Event.type == type)
    if category and category != "all":
        query = query.filter(Event.category == category)
    if timeframe in ("upcoming", "past"):
        query = _with_timeframe(query, timeframe)
    if search:
        pattern = f"%{search}%"
        query = query.filter(
            or_(Event.title.ilike(pattern), Event.description.ilike(pattern), Event.location.ilike(pattern))
        )
    query = query.order_by(Event.start_date.asc(), Event.id.asc())
    return paginate(query, params)


def public_event_by_slug(db: Session, slug: str) -> Event:
    event = _public(live(db, Event)).filter(Event.slug == slug).first()
    if event is None:
        raise NotFoundError("Event not found")
    return event


def featured_events(db: Session) -> List[Event]:
    return (
        _with_timeframe(_public(live(db, Event)), "upcoming")
        .filter(Event.is_featured.is_(True))
        .order_by(Event.start_date.asc(), Event.id.asc())
        .limit(FEATURED_LIMIT)
        .all()
    )


def create_event(db: Session, actor: User, payload: EventCreate) -> Event:
    data = payload.model_dump()
    for field in DATETIME_FIELDS:
        data[field] = as_utc(data[field])
    _ensure_schedule(data["start_date"], data["end_date"], data["registration_deadline"])
    with atomic(db):
        event = Event(**data, created_by=actor.id)
        event.slug = unique_slug(db, Event, payload.title)
        db.add(event)
    logger.info("Event %s created by user %s", event.slug, actor.id)
    return event


def update_event(db: Session, event_id: int, payload: EventUpdate) -> Event:
    event = get_event(db, event_id)
    changes = payload.model_dump(exclude_unset=True)
    for field in ("title", "description", "type", "category", "start_date", "status", "visibility"):
        if field in changes and changes[field] is None:
            raise ValidationError.for_field(field, f"The {field.replace('_', ' ')} may not be empty.")
    for field in DATETIME_FIELDS:
        if field in changes:
            changes[field] = as_utc(changes[field])
    _ensure_schedule(
        changes.get("start_date", as_utc(event.start_date)),
        changes.get("end_date", as_utc(event.end_date)),
        changes.get("registration_deadline", as_utc(event.registration_deadline)),
    )
    with atomic(db):
        if "title" in changes and changes["title"] != event.title:
            event.slug = unique_slug(db, Event, changes["title"], exclude_id=event.id)
        apply_fields(event, changes)
    return event


def delete_event(db: Session, event_id: int) -> None:
    event = get_event(db, event_id)
    with atomic(db):
        soft_delete(event)
    logger.info("Event %s deleted", event.slug)


def event_statistics(db: Session) -> Dict[str, Any]:
    base = live(db, Event)
    return {
        "total": base.count(),
        "published": base.filter(Event.status == "published").count(),
        "draft": base.filter(Event.status == "draft").count(),
        "upcoming": _with_timeframe(base, "upcoming").count(),
        "ongoing": _with_timeframe(base, "ongoing").count(),
        "past": _with_timeframe(base, "past").count(),
        "public": base.filter(Event.visibility == "public").count(),
        "members_only": base.filter(Event.visibility == "members_only").count(),
        "by_type": dict(base.with_entities(Event.type, func.count(Event.id)).group_by(Event.type).all()),
        "by_category": dict(
            base.with_entities(Event.category, func.count(Event.id)).group_by(Event.category).all()
        ),
    }
