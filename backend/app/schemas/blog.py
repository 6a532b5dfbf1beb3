"""Blog schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field

from app.schemas.base import BaseSchema, IDMixin, TimestampMixin, reject_null
from app.models.enums import BlogPostStatus


class BlogPostCreate(BaseSchema):
    title: str = Field(..., min_length=3, max_length=255)
    slug: Optional[str] = Field(None, max_length=255)
    excerpt: Optional[str] = None
    content: str = Field(..., min_length=1)
    html_content: Optional[str] = None
    cover_image: Optional[str] = Field(None, max_length=1024)
    meta_title: Optional[str] = Field(None, max_length=255)
    meta_description: Optional[str] = Field(None, max_length=500)
    category: Optional[str] = Field(None, max_length=100)
    tags: list[str] = Field(default_factory=list)
    status: BlogPostStatus = BlogPostStatus.DRAFT


class BlogPostUpdate(BaseSchema):
    title: Optional[str] = Field(None, min_length=3, max_length=255)
    excerpt: Optional[str] = None
    content: Optional[str] = Field(None, min_length=1)
    html_content: Optional[str] = None
    cover_image: Optional[str] = Field(None, max_length=1024)
    meta_title: Optional[str] = Field(None, max_length=255)
    meta_description: Optional[str] = Field(None, max_length=500)
    category: Optional[str] = Field(None, max_length=100)
    tags: Optional[list[str]] = None
    status: Optional[BlogPostStatus] = None

    check_not_null = reject_null("title", "content", "status")


class BlogPostSummary(BaseSchema, IDMixin):
    title: str
    slug: str
    excerpt: Optional[str] = None
    cover_image: Optional[str] = None
    category: Optional[str] = None
    tags: Optional[list[str]] = None
    status: BlogPostStatus
    published_at: Optional[datetime] = None
    view_count: int = 0


class BlogPostResponse(BlogPostSummary, TimestampMixin):
    author_id: Optional[UUID] = None
    content: str
    html_content: Optional[str] = None
    meta_title: Optional[str] = None
    meta_description: Optional[str] = None
    meta_keywords: Optional[list[str]] = None
    is_automated: bool = False


class GenerateResult(BaseSchema):
    success: bool
    post: Optional[BlogPostResponse] = None
    message: Optional[str] = None
