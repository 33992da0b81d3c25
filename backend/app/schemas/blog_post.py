"""Blog post schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from backend.app.models.enums import BlogCategory
from backend.app.schemas.common import UserSummary


class BlogPostCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    slug: Optional[str] = Field(default=None, max_length=255)
    excerpt: Optional[str] = Field(default=None, max_length=500)
    content: str = Field(min_length=1)
    category: BlogCategory
    featured_image: Optional[str] = Field(default=None, max_length=512)
    is_featured: bool = False
    is_published: bool = False
    published_at: Optional[datetime] = None
    tags: Optional[List[str]] = None
    meta_description: Optional[str] = Field(default=None, max_length=160)


class BlogPostUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    slug: Optional[str] = Field(default=None, max_length=255)
    excerpt: Optional[str] = Field(default=None, max_length=500)
    content: Optional[str] = Field(default=None, min_length=1)
    category: Optional[BlogCategory] = None
    featured_image: Optional[str] = Field(default=None, max_length=512)
    is_featured: Optional[bool] = None
    is_published: Optional[bool] = None
    published_at: Optional[datetime] = None
    tags: Optional[List[str]] = None
    meta_description: Optional[str] = Field(default=None, max_length=160)


class BlogPostRead(BaseModel):
    id: int
    title: str
    slug: str
    excerpt: Optional[str] = None
    content: str
    category: BlogCategory
    featured_image: Optional[str] = None
    is_featured: bool
    is_published: bool
    published_at: Optional[datetime] = None
    views: int
    read_time: int
    tags: Optional[List[str]] = None
    meta_description: Optional[str] = None
    author_id: int
    author: Optional[UserSummary] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
