"""Blog posts with cached public listings.

Cached values are JSON-ready dicts, never ORM rows, and every write drops the
``blog_posts`` family only.
"""

import logging
import math
import re
from datetime import timedelta
from typing import Any, Dict

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from backend.app.core.cache import cache_key, read_cache
from backend.app.core.errors import NotFoundError, ValidationError
from backend.app.core.pagination import ListParams, apply_sorting, paginate
from backend.app.core.permissions import can_manage_blogs
from backend.app.core.time import utc_now
from backend.app.db.session import atomic
from backend.app.models.blog_post import BlogPost
from backend.app.models.enums import BlogCategory, values
from backend.app.models.user import User
from backend.app.schemas.blog_post import BlogPostCreate, BlogPostRead, BlogPostUpdate
from backend.app.services.common import apply_fields, get_live_or_404, live, soft_delete, unique_slug

logger = logging.getLogger(__name__)

CACHE_FAMILY = "blog_posts"
MANAGER_LIST_TTL = 60
PUBLIC_LIST_TTL = 300
FEATURED_TTL = 600
STATISTICS_TTL = 300
WORDS_PER_MINUTE = 200

TAG_RE = re.compile(r"<[^>]+>")

SORT_FIELDS = {
    "created_at": BlogPost.created_at,
    "published_at": BlogPost.published_at,
    "title": BlogPost.title,
    "views": BlogPost.views,
}


def read_time(content: str | None) -> int:
    words = len(TAG_RE.sub(" ", content or "").split())
    return max(1, math.ceil(words / WORDS_PER_MINUTE))


def _published(query):
    return query.filter(BlogPost.is_published.is_(True), BlogPost.published_at.isnot(None))


def _serialize(post: BlogPost) -> Dict[str, Any]:
    return BlogPostRead.model_validate(post).model_dump(mode="json")


def _unfeature_others(db: Session, keep_id: int | None) -> None:
    query = live(db, BlogPost).filter(BlogPost.is_featured.is_(True))
    if keep_id is not None:
        query = query.filter(BlogPost.id != keep_id)
    for other in query.all():
        other.is_featured = False


def list_blog_posts(
    db: Session,
    params: ListParams,
    viewer: User | None,
    *,
    search: str | None = None,
    category: str | None = None,
    status: str | None = None,
    author_id: int | None = None,
) -> Dict[str, Any]:
    manager = can_manage_blogs(viewer)
    key = cache_key(
        CACHE_FAMILY,
        "list",
        {
            "search": search,
            "category": category,
            "status": status,
            "author_id": author_id,
            "page": params.page,
            "per_page": params.per_page,
            "sort_by": params.sort_by,
            "sort_order": params.sort_order,
            "manager": manager,
        },
    )

    def compute() -> Dict[str, Any]:
        query = live(db, BlogPost)
        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(BlogPost.title.ilike(pattern), BlogPost.excerpt.ilike(pattern), BlogPost.content.ilike(pattern))
            )
        if category and category != "all":
            query = query.filter(BlogPost.category == category)
        if status == "published":
            query = _published(query)
        elif status == "draft":
            query = query.filter(BlogPost.is_published.is_(False))
        if author_id is not None:
            query = query.filter(BlogPost.author_id == author_id)
        if not manager:
            query = _published(query)
        query = apply_sorting(query, params, SORT_FIELDS, "created_at", BlogPost.id)
        page = paginate(query, params)
        page["items"] = [_serialize(post) for post in page["items"]]
        return page

    return read_cache.remember(key, MANAGER_LIST_TTL if manager else PUBLIC_LIST_TTL, compute)


def get_blog_post(db: Session, post_id: int) -> BlogPost:
    return get_live_or_404(db, BlogPost, post_id, "Blog post")


def show_by_slug(db: Session, slug: str, viewer: User | None) -> BlogPost:
    """Fetch a post by slug; unpublished posts are hidden from non-managers. Counts a view."""
    post = live(db, BlogPost).filter(BlogPost.slug == slug).first()
    if post is None or (not post.is_published and not can_manage_blogs(viewer)):
        raise NotFoundError("Blog post not found")
    if post.is_published:
        with atomic(db):
            post.views = (post.views or 0) + 1
    return post


def featured_post(db: Session) -> Dict[str, Any] | None:
    def compute():
        post = _published(live(db, BlogPost)).filter(BlogPost.is_featured.is_(True)).first()
        return _serialize(post) if post is not None else None

    return read_cache.remember(cache_key(CACHE_FAMILY, "featured"), FEATURED_TTL, compute)


def create_blog_post(db: Session, actor: User, payload: BlogPostCreate) -> BlogPost:
    data = payload.model_dump()
    slug_source = data.pop("slug") or payload.title
    with atomic(db):
        post = BlogPost(**data, author_id=actor.id)
        post.slug = unique_slug(db, BlogPost, slug_source)
        post.read_time = read_time(payload.content)
        if post.is_published and post.published_at is None:
            post.published_at = utc_now()
        if post.is_featured:
            _unfeature_others(db, None)
        db.add(post)
    read_cache.forget_family(CACHE_FAMILY)
    logger.info("Blog post %s created by user %s", post.slug, actor.id)
    return post


def update_blog_post(db: Session, post_id: int, payload: BlogPostUpdate) -> BlogPost:
    post = get_blog_post(db, post_id)
    changes = payload.model_dump(exclude_unset=True)
    for field in ("title", "content", "category", "is_featured", "is_published"):
        if field in changes and changes[field] is None:
            raise ValidationError.for_field(field, f"The {field.replace('_', ' ')} may not be empty.")
    slug_source = changes.pop("slug", None)
    if slug_source is None and "title" in changes and changes["title"] != post.title:
        slug_source = changes["title"]

    with atomic(db):
        becoming_published = changes.get("is_published") and not post.is_published
        apply_fields(post, changes)
        if slug_source:
            post.slug = unique_slug(db, BlogPost, slug_source, exclude_id=post.id)
        if "content" in changes:
            post.read_time = read_time(post.content)
        if becoming_published and "published_at" not in changes:
            post.published_at = utc_now()
        elif post.is_published and post.published_at is None:
            post.published_at = utc_now()
        if changes.get("is_featured"):
            _unfeature_others(db, post.id)
    read_cache.forget_family(CACHE_FAMILY)
    return post


def delete_blog_post(db: Session, post_id: int) -> None:
    post = get_blog_post(db, post_id)
    with atomic(db):
        soft_delete(post)
    read_cache.forget_family(CACHE_FAMILY)
    logger.info("Blog post %s deleted", post.slug)


def _compute_statistics(db: Session) -> Dict[str, Any]:
    base = live(db, BlogPost)
    by_category = {
        category: count
        for category, count in _published(base)
        .with_entities(BlogPost.category, func.count(BlogPost.id))
        .group_by(BlogPost.category)
        .all()
    }
    return {
        "total_posts": base.count(),
        "published_posts": _published(base).count(),
        "draft_posts": base.filter(BlogPost.is_published.is_(False)).count(),
        "featured_posts": base.filter(BlogPost.is_featured.is_(True)).count(),
        "total_views": int(base.with_entities(func.coalesce(func.sum(BlogPost.views), 0)).scalar() or 0),
        "recent_posts": base.filter(BlogPost.created_at >= utc_now() - timedelta(days=30)).count(),
        "posts_by_category": by_category,
        "categories": list(values(BlogCategory)),
    }


def blog_statistics(db: Session) -> Dict[str, Any]:
    return read_cache.remember(cache_key(CACHE_FAMILY, "statistics"), STATISTICS_TTL, lambda: _compute_statistics(db))
