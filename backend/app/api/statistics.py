"""Organisation-wide rollups; all require ``view_statistics``."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from backend.app.core.permissions import Capability, require_capability
from backend.app.core.responses import envelope
from backend.app.db.session import get_db
from backend.app.dependencies.auth import get_current_user
from backend.app.models.user import User
from backend.app.schemas.common import Envelope
from backend.app.services import blog_posts as blog_service
from backend.app.services import documents as document_service
from backend.app.services import events as event_service
from backend.app.services import quotations as quotation_service
from backend.app.services import users as user_service

router = APIRouter(prefix="/statistics", tags=["statistics"])


def _require_statistics(current_user: User = Depends(get_current_user)) -> User:
    require_capability(current_user, Capability.VIEW_STATISTICS)
    return current_user


@router.get("/users", response_model=Envelope[dict])
async def user_statistics(db: Session = Depends(get_db), current_user: User = Depends(_require_statistics)):
    return envelope(user_service.user_statistics(db), "User statistics retrieved successfully")


@router.get("/documents", response_model=Envelope[dict])
async def document_statistics(db: Session = Depends(get_db), current_user: User = Depends(_require_statistics)):
    return envelope(document_service.document_statistics(db), "Document statistics retrieved successfully")


@router.get("/quotations", response_model=Envelope[dict])
async def quotation_statistics(db: Session = Depends(get_db), current_user: User = Depends(_require_statistics)):
    return envelope(quotation_service.quotation_statistics(db), "Quotation statistics retrieved successfully")


@router.get("/blog-posts", response_model=Envelope[dict])
async def blog_statistics(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    require_capability(current_user, Capability.MANAGE_BLOGS)
    return envelope(blog_service.blog_statistics(db), "Blog statistics retrieved successfully")


@router.get("/events", response_model=Envelope[dict])
async def event_statistics(db: Session = Depends(get_db), current_user: User = Depends(_require_statistics)):
    return envelope(event_service.event_statistics(db), "Event statistics retrieved successfully")
