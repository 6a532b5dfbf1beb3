"""Blog router: public reading plus ADMIN authoring and AI generation."""

import logging
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from anthropic import APIError
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import String, cast, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.security import get_optional_user, require_admin
from app.models.blog import BlogPost
from app.models.enums import BlogPostStatus
from app.models.user import User
from app.schemas.base import MessageResponse, Page
from app.schemas.blog import (
    BlogPostCreate,
    BlogPostResponse,
    BlogPostSummary,
    BlogPostUpdate,
    GenerateResult,
)
from app.services.blog_automation import (
    BlogAutomationService,
    can_view_blog_post,
    generate_unique_slug,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/blog", tags=["blog"])


def _tag_filter(tag: str):
    # Matches the JSON-encoded element on both JSON and JSONB columns
    return cast(BlogPost.tags, String).like(f'%"{tag}"%')


async def _get_post(db: AsyncSession, post_id: UUID) -> BlogPost:
    post = await db.get(BlogPost, post_id)
    if not post:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Blog post not found")
    return post


# =============================================================================
# Public
# =============================================================================

@router.get("", response_model=Page[BlogPostSummary])
async def list_published_posts(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    category: Optional[str] = None,
    tag: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
):
    conditions = [BlogPost.status == BlogPostStatus.PUBLISHED]
    if category:
        conditions.append(BlogPost.category == category)
    if tag:
        conditions.append(_tag_filter(tag))

    total_result = await db.execute(select(func.count(BlogPost.id)).where(*conditions))
    total = total_result.scalar_one()

    offset = (page - 1) * limit
    result = await db.execute(
        select(BlogPost)
        .where(*conditions)
        .order_by(BlogPost.published_at.desc(), BlogPost.created_at.desc())
        .offset(offset)
        .limit(limit)
    )
    return Page(
        items=[BlogPostSummary.model_validate(p) for p in result.scalars().all()],
        total=total,
        page=page,
        has_more=offset + limit < total,
    )


@router.get("/categories", response_model=List[str])
async def list_categories(db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(BlogPost.category)
        .where(BlogPost.status == BlogPostStatus.PUBLISHED, BlogPost.category.is_not(None))
        .distinct()
    )
    return sorted(result.scalars().all())


# =============================================================================
# Admin
# =============================================================================

@router.get("/admin/posts", response_model=Page[BlogPostSummary])
async def admin_list_posts(
    status_filter: Optional[BlogPostStatus] = Query(None, alias="status"),
    is_automated: Optional[bool] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    conditions = []
    if status_filter:
        conditions.append(BlogPost.status == status_filter)
    if is_automated is not None:
        conditions.append(BlogPost.is_automated.is_(is_automated))

    total_result = await db.execute(select(func.count(BlogPost.id)).where(*conditions))
    total = total_result.scalar_one()

    offset = (page - 1) * limit
    result = await db.execute(
        select(BlogPost)
        .where(*conditions)
        .order_by(BlogPost.created_at.desc())
        .offset(offset)
        .limit(limit)
    )
    return Page(
        items=[BlogPostSummary.model_validate(p) for p in result.scalars().all()],
        total=total,
        page=page,
        has_more=offset + limit < total,
    )


@router.post("/admin/posts", response_model=BlogPostResponse, status_code=status.HTTP_201_CREATED)
async def admin_create_post(
    data: BlogPostCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    fields = data.model_dump(exclude={"slug"})
    post = BlogPost(
        **fields,
        slug=await generate_unique_slug(db, data.slug or data.title),
        author_id=current_user.id,
        published_at=datetime.utcnow() if data.status == BlogPostStatus.PUBLISHED else None,
    )
    db.add(post)
    await db.commit()
    await db.refresh(post)
    return BlogPostResponse.model_validate(post)


@router.get("/admin/posts/{post_id}", response_model=BlogPostResponse)
async def admin_get_post(
    post_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    return BlogPostResponse.model_validate(await _get_post(db, post_id))


@router.patch("/admin/posts/{post_id}", response_model=BlogPostResponse)
async def admin_update_post(
    post_id: UUID,
    data: BlogPostUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    post = await _get_post(db, post_id)

    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(post, field, value)
    if post.status == BlogPostStatus.PUBLISHED and post.published_at is None:
        post.published_at = datetime.utcnow()

    await db.commit()
    await db.refresh(post)
    return BlogPostResponse.model_validate(post)


@router.delete("/admin/posts/{post_id}", response_model=MessageResponse)
async def admin_delete_post(
    post_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    post = await _get_post(db, post_id)
    await db.delete(post)
    await db.commit()
    return MessageResponse(message="Blog post deleted successfully")


@router.post("/admin/generate", response_model=GenerateResult)
async def admin_generate_post(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Generate one AI post now, regardless of the automation schedule."""
    try:
        post = await BlogAutomationService(db).generate_post(force=True)
    except RuntimeError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    except (ValueError, APIError) as e:
        logger.error("Blog generation failed: %s", e)
        await db.rollback()
        return GenerateResult(success=False, message=f"Blog generation failed: {e}")

    return GenerateResult(
        success=True,
        post=BlogPostResponse.model_validate(post),
        message="Blog post generated",
    )


@router.get("/admin/stats")
async def admin_stats(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    return await BlogAutomationService(db).statistics()


# =============================================================================
# Public, by slug (declared last so it does not shadow the routes above)
# =============================================================================

@router.get("/{slug}", response_model=BlogPostResponse)
async def get_post_by_slug(
    slug: str,
    db: AsyncSession = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user),
):
    result = await db.execute(select(BlogPost).where(BlogPost.slug == slug))
    post = result.scalar_one_or_none()
    role = current_user.role if current_user else None
    if not post or not can_view_blog_post(post.status, role):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Blog post not found")

    if post.status == BlogPostStatus.PUBLISHED:
        post.view_count = (post.view_count or 0) + 1
        await db.commit()
        await db.refresh(post)
    return BlogPostResponse.model_validate(post)
