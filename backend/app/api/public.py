"""Unauthenticated routes for the public website."""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from backend.app.api.documents import file_response
from backend.app.core.errors import NotFoundError
from backend.app.core.pagination import ListParams, list_params
from backend.app.core.responses import envelope
from backend.app.db.session import get_db
from backend.app.models.enums import BlogCategory, EventCategory, EventType
from backend.app.schemas.blog_post import BlogPostRead
from backend.app.schemas.common import Envelope, Page
from backend.app.schemas.event import EventRead
from backend.app.schemas.user import PublicMemberRead
from backend.app.services import blog_posts as blog_service
from backend.app.services import documents as document_service
from backend.app.services import events as event_service
from backend.app.services import users as user_service

router = APIRouter(prefix="/public", tags=["public"])


@router.get("/members", response_model=Envelope[Page[PublicMemberRead]])
async def list_public_members(
    search: str | None = None,
    params: ListParams = Depends(list_params),
    db: Session = Depends(get_db),
):
    page = user_service.list_public_members(db, params, search=search)
    return envelope(page, "Members retrieved successfully")


@router.get("/blog-posts", response_model=Envelope[Page[BlogPostRead]])
async def list_public_blog_posts(
    search: str | None = None,
    category: BlogCategory | None = None,
    params: ListParams = Depends(list_params),
    db: Session = Depends(get_db),
):
    page = blog_service.list_blog_posts(db, params, None, search=search, category=category)
    return envelope(page, "Blog posts retrieved successfully")


@router.get("/blog-posts/featured/current", response_model=Envelope[BlogPostRead])
async def public_featured_blog_post(db: Session = Depends(get_db)):
    return envelope(blog_service.featured_post(db), "Featured blog post retrieved successfully")


@router.get("/blog-posts/{slug}", response_model=Envelope[BlogPostRead])
async def get_public_blog_post(slug: str, db: Session = Depends(get_db)):
    return envelope(blog_service.show_by_slug(db, slug, None), "Blog post retrieved successfully")


@router.get("/events", response_model=Envelope[Page[EventRead]])
async def list_public_events(
    type: EventType | None = None,
    category: EventCategory | None = None,
    timeframe: str | None = None,
    search: str | None = None,
    params: ListParams = Depends(list_params),
    db: Session = Depends(get_db),
):
    page = event_service.list_public_events(
        db, params, type=type, category=category, timeframe=timeframe, search=search
    )
    return envelope(page, "Public events retrieved successfully")


@router.get("/events/featured", response_model=Envelope[List[EventRead]])
async def public_featured_events(db: Session = Depends(get_db)):
    return envelope(event_service.featured_events(db), "Featured events retrieved successfully")


@router.get("/events/{slug}", response_model=Envelope[EventRead])
async def get_public_event(slug: str, db: Session = Depends(get_db)):
    return envelope(event_service.public_event_by_slug(db, slug), "Event retrieved successfully")


def _public_document(db: Session, document_id: int) -> None:
    document = document_service.get_document(db, document_id)
    if document.visibility != "public":
        raise NotFoundError("Document not found")


@router.get("/documents/{document_id}/download")
async def download_public_document(document_id: int, db: Session = Depends(get_db)):
    _public_document(db, document_id)
    return file_response(db, document_id, "download")


@router.get("/documents/{document_id}/preview")
async def preview_public_document(document_id: int, db: Session = Depends(get_db)):
    _public_document(db, document_id)
    return file_response(db, document_id, "preview")
