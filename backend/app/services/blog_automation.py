"""Automated blog post generation and blog visibility rules."""

import logging
import re
import uuid
from datetime import datetime, timedelta
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.models.blog import BlogPost
from app.models.enums import AuditAction, BlogPostStatus, UserRole
from app.models.user import User
from app.services.audit import AuditService
from app.services.blog_ai import DEFAULT_INDUSTRY, BlogAIService

logger = logging.getLogger(__name__)

settings = get_settings()

RECENT_TOPIC_DAYS = 30
MAX_TAGS = 8

_NON_SLUG = re.compile(r"[^a-z0-9]+")


def can_view_blog_post(status: Any, role: Any = None) -> bool:
    """Published posts are public; every other status is ADMIN-only."""
    status_value = getattr(status, "value", status)
    role_value = getattr(role, "value", role)
    if status_value == BlogPostStatus.PUBLISHED.value:
        return True
    return role_value == UserRole.ADMIN.value


def slugify(text: str) -> str:
    slug = _NON_SLUG.sub("-", (text or "").lower()).strip("-")
    return slug or "post"


async def generate_unique_slug(db: AsyncSession, base: str) -> str:
    """Return ``base`` or the first free ``base-2``, ``base-3``, ..."""
    slug = slugify(base)
    result = await db.execute(
        select(BlogPost.slug).where((BlogPost.slug == slug) | BlogPost.slug.like(f"{slug}-%"))
    )
    taken = set(result.scalars().all())
    if slug not in taken:
        return slug
    counter = 2
    while f"{slug}-{counter}" in taken:
        counter += 1
    return f"{slug}-{counter}"


class BlogAutomationService:
    """Generates a post from an AI topic and stores it under the bot author."""

    def __init__(
        self,
        db: AsyncSession,
        ai: Optional[BlogAIService] = None,
        enabled: Optional[bool] = None,
        auto_publish: Optional[bool] = None,
    ):
        self.db = db
        self.ai = ai or BlogAIService()
        self.enabled = settings.blog_automation_enabled if enabled is None else enabled
        self.auto_publish = settings.blog_auto_publish if auto_publish is None else auto_publish
        self.target_word_count = settings.blog_target_word_count

    async def get_bot_user(self) -> User:
        """Find or create the inactive ADMIN account that authors automated posts."""
        result = await self.db.execute(select(User).where(User.email == settings.blog_bot_email))
        bot = result.scalar_one_or_none()
        if bot:
            return bot

        bot = User(
            firebase_uid=f"bot:{uuid.uuid4()}",
            email=settings.blog_bot_email,
            first_name=settings.app_name,
            last_name="Blog Bot",
            role=UserRole.ADMIN,
            is_active=False,
        )
        self.db.add(bot)
        await self.db.flush()
        logger.info("Created blog bot user %s", bot.id)
        return bot

    async def recent_titles(self, days: int = RECENT_TOPIC_DAYS) -> list[str]:
        since = datetime.utcnow() - timedelta(days=days)
        result = await self.db.execute(
            select(BlogPost.title)
            .where(BlogPost.created_at >= since)
            .order_by(BlogPost.created_at.desc())
        )
        return list(result.scalars().all())

    async def known_categories(self) -> list[str]:
        result = await self.db.execute(
            select(BlogPost.category).where(BlogPost.category.is_not(None)).distinct()
        )
        return sorted(result.scalars().all())

    async def generate_post(self, force: bool = False) -> Optional[BlogPost]:
        """Generate and store one post. Returns None when automation is disabled.

        ``force`` bypasses the enabled flag for admin-triggered runs.
        """
        if not self.enabled and not force:
            logger.info("Blog automation is disabled")
            return None

        author = await self.get_bot_user()
        topic = await self.ai.generate_topic(
            recent_topics=await self.recent_titles(),
            categories=await self.known_categories(),
            industry=DEFAULT_INDUSTRY,
        )
        content = await self.ai.generate_content(topic, self.target_word_count)

        keywords = [k for k in topic.get("keywords") or [] if isinstance(k, str)]
        tags: list[str] = []
        for tag in keywords + list(content.get("suggestedTags") or []):
            if isinstance(tag, str) and len(tag) >= 2 and tag not in tags:
                tags.append(tag)

        now = datetime.utcnow()
        post = BlogPost(
            author_id=author.id,
            title=topic["title"],
            slug=await generate_unique_slug(self.db, topic.get("slug") or topic["title"]),
            excerpt=topic.get("excerpt"),
            content=content["content"],
            html_content=content.get("htmlContent"),
            meta_title=content.get("metaTitle") or topic["title"],
            meta_description=content.get("metaDescription") or topic.get("excerpt"),
            meta_keywords=list(dict.fromkeys(keywords)),
            category=topic.get("category") or "General",
            tags=tags[:MAX_TAGS],
            status=BlogPostStatus.PUBLISHED if self.auto_publish else BlogPostStatus.DRAFT,
            published_at=now if self.auto_publish else None,
            is_automated=True,
            ai_metadata={
                "generatedAt": now.isoformat(),
                "topic": topic,
                "readingTime": content.get("readingTime"),
                "keyTakeaways": content.get("keyTakeaways"),
                "aiModel": self.ai.model,
                "targetWordCount": self.target_word_count,
                "actualWordCount": len(content["content"].split()),
            },
        )
        self.db.add(post)
        await self.db.flush()

        await AuditService(self.db).log(
            action=AuditAction.BLOG_POST_GENERATED,
            resource_type="blog_post",
            resource_id=post.id,
            user_id=author.id,
            details={"slug": post.slug, "status": post.status.value},
        )
        await self.db.commit()
        await self.db.refresh(post)

        logger.info("Generated blog post %s (%s, %s)", post.id, post.slug, post.status.value)
        return post

    async def statistics(self) -> dict[str, Any]:
        async def count(*conditions) -> int:
            result = await self.db.execute(select(func.count(BlogPost.id)).where(*conditions))
            return result.scalar_one()

        total = await count()
        automated = await count(BlogPost.is_automated.is_(True))
        return {
            "total_posts": total,
            "automated_posts": automated,
            "published_automated": await count(
                BlogPost.is_automated.is_(True), BlogPost.status == BlogPostStatus.PUBLISHED
            ),
            "draft_automated": await count(
                BlogPost.is_automated.is_(True), BlogPost.status == BlogPostStatus.DRAFT
            ),
            "automation_rate": round(automated / total * 100, 2) if total else 0.0,
            "is_enabled": self.enabled,
            "auto_publish": self.auto_publish,
        }
