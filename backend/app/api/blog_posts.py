"""Blog post routes. Writes need ``manage_blogs`` or authorship of the post."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from backend.app.core.pagination import ListParams, list_params
from backend.app.core.permissions import authorize, can_manage_blogs
from backend.app.core.responses import envelope
from backend.app.db.session import get_db
from backend.app.dependencies.auth import get_current_user
from backend.app.models.enums import BlogCategory
from backend.app.models.user import User
from backend.app.schemas.blog_post import BlogPostCreate, BlogPostRead, BlogPostUpdate
from backend.app.schemas.common import Envelope, Page
from backend.app.services import blog_posts as blog_service

router = APIRouter(prefix="/blog-posts", tags=["blog-posts"])

CANNOT_MANAGE = "You do not have permission to manage blog posts"


def _authorize_editor(db: Session, post_id: int, current_user: User) -> None:
    post = blog_service.get_blog_post(db, post_id)
    authorize(can_manage_blogs(current_user) or post.author_id == current_user.id, CANNOT_MANAGE)


@router.get("", response_model=Envelope[Page[BlogPostRead]])
async def list_blog_posts(
    search: str | None = None,
    category: BlogCategory | None = None,
    status: str | None = None,
    author_id: int | None = None,
    params: ListParams = Depends(list_params),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    page = blog_service.list_blog_posts(
        db, params, current_user, search=search, category=category, status=status, author_id=author_id
    )
    return envelope(page, "Blog posts retrieved successfully")


@router.post("", response_model=Envelope[BlogPostRead], status_code=status.HTTP_201_CREATED)
async def create_blog_post(
    payload: BlogPostCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    authorize(can_manage_blogs(current_user), CANNOT_MANAGE)
    post = blog_service.create_blog_post(db, current_user, payload)
    return envelope(post, "Blog post created successfully")


@router.get("/featured/current", response_model=Envelope[BlogPostRead])
async def featured_blog_post(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return envelope(blog_service.featured_post(db), "Featured blog post retrieved successfully")


@router.get("/{slug}", response_model=Envelope[BlogPostRead])
async def get_blog_post(slug: str, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return envelope(blog_service.show_by_slug(db, slug, current_user), "Blog post retrieved successfully")


@router.put("/{post_id}", response_model=Envelope[BlogPostRead])
async def update_blog_post(
    post_id: int,
    payload: BlogPostUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    _authorize_editor(db, post_id, current_user)
    post = blog_service.update_blog_post(db, post_id, payload)
    return envelope(post, "Blog post updated successfully")


@router.delete("/{post_id}", response_model=Envelope)
async def delete_blog_post(post_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    _authorize_editor(db, post_id, current_user)
    blog_service.delete_blog_post(db, post_id)
    return envelope(None, "Blog post deleted successfully")
