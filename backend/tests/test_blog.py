"""Blog: slugs, visibility, AI generation and the public/admin endpoints."""

import json
from datetime import datetime
from types import SimpleNamespace

import pytest
from sqlalchemy import select

from app.core.config import get_settings
from app.models.blog import BlogPost
from app.models.enums import BlogPostStatus, UserRole
from app.models.user import User
from app.services.blog_ai import BlogAIService, extract_json
from app.services.blog_automation import (
    BlogAutomationService,
    can_view_blog_post,
    generate_unique_slug,
    slugify,
)
from tests.conftest import auth

TOPIC = {
    "title": "Preventive Maintenance Checklists That Work",
    "slug": "preventive-maintenance-checklists",
    "category": "Maintenance",
    "keywords": ["preventive maintenance", "checklist", "checklist"],
    "excerpt": "Build checklists technicians actually use.",
}

CONTENT = {
    "content": "## Why checklists\n\nThey keep buildings running.",
    "htmlContent": "<h2>Why checklists</h2>",
    "metaTitle": "Preventive Maintenance Checklists",
    "suggestedTags": ["facilities", "x", "checklist"],
    "readingTime": "5",
}


class FakeAI:
    model = "fake-model"

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.recent_topics = None

    async def generate_topic(self, recent_topics=(), categories=(), industry=""):
        if self.fail:
            raise ValueError("Failed to parse JSON response from AI")
        self.recent_topics = list(recent_topics)
        return dict(TOPIC)

    async def generate_content(self, topic, target_word_count=1500):
        return dict(CONTENT)


async def _post(db, slug: str, status=BlogPostStatus.PUBLISHED, **fields) -> BlogPost:
    post = BlogPost(
        title=fields.pop("title", slug.replace("-", " ").title()),
        slug=slug,
        content="Body",
        status=status,
        published_at=datetime.utcnow() if status == BlogPostStatus.PUBLISHED else None,
        **fields,
    )
    db.add(post)
    await db.commit()
    await db.refresh(post)
    return post


# ============================================================================
# Pure helpers
# ============================================================================

def test_extract_json_from_wrapped_response():
    text = 'Here you go:\n```json\n{"title": "Hello", "keywords": ["a"]}\n```'
    assert extract_json(text) == {"title": "Hello", "keywords": ["a"]}


@pytest.mark.parametrize("text", ["no json here", "{not valid}", ""])
def test_extract_json_rejects_garbage(text):
    with pytest.raises(ValueError):
        extract_json(text)


def test_slugify():
    assert slugify("  Hello, World! 2024 ") == "hello-world-2024"
    assert slugify("!!!") == "post"


@pytest.mark.parametrize(
    "status, role, visible",
    [
        (BlogPostStatus.PUBLISHED, None, True),
        (BlogPostStatus.DRAFT, None, False),
        (BlogPostStatus.DRAFT, UserRole.PROPERTY_MANAGER, False),
        (BlogPostStatus.SCHEDULED, UserRole.ADMIN, True),
        ("ARCHIVED", "ADMIN", True),
    ],
)
def test_can_view_blog_post(status, role, visible):
    assert can_view_blog_post(status, role) is visible


# ============================================================================
# Slugs and automation
# ============================================================================

@pytest.mark.anyio
async def test_unique_slug_appends_counter(db):
    assert await generate_unique_slug(db, "Roof Repairs") == "roof-repairs"
    await _post(db, "roof-repairs")
    await _post(db, "roof-repairs-2")
    assert await generate_unique_slug(db, "Roof Repairs") == "roof-repairs-3"


@pytest.mark.anyio
async def test_ai_service_parses_model_output():
    replies = iter([json.dumps(TOPIC), "Sure!\n" + json.dumps(CONTENT)])

    async def create(**kwargs):
        return SimpleNamespace(content=[SimpleNamespace(type="text", text=next(replies))])

    client = SimpleNamespace(messages=SimpleNamespace(create=create))
    ai = BlogAIService(client=client, model="test-model")

    topic = await ai.generate_topic(recent_topics=["Old post"])
    content = await ai.generate_content(topic, 800)

    assert topic["title"] == TOPIC["title"]
    assert content["metaTitle"] == CONTENT["metaTitle"]


@pytest.mark.anyio
async def test_disabled_automation_returns_none(db):
    service = BlogAutomationService(db, ai=FakeAI(), enabled=False)
    assert await service.generate_post() is None


@pytest.mark.anyio
async def test_generate_post_as_draft(db):
    ai = FakeAI()
    await _post(db, "earlier-post", title="Earlier post")
    service = BlogAutomationService(db, ai=ai, enabled=True, auto_publish=False)

    post = await service.generate_post()

    assert post.slug == "preventive-maintenance-checklists"
    assert post.status == BlogPostStatus.DRAFT
    assert post.published_at is None
    assert post.is_automated is True
    assert post.tags == ["preventive maintenance", "checklist", "facilities"]
    assert post.meta_keywords == ["preventive maintenance", "checklist"]
    assert post.ai_metadata["aiModel"] == "fake-model"
    assert ai.recent_topics == ["Earlier post"]

    bot = await db.get(User, post.author_id)
    assert bot.role == UserRole.ADMIN
    assert bot.is_active is False


@pytest.mark.anyio
async def test_generate_post_published_reuses_bot(db):
    service = BlogAutomationService(db, ai=FakeAI(), enabled=True, auto_publish=True)

    first = await service.generate_post()
    second = await service.generate_post()

    assert first.status == BlogPostStatus.PUBLISHED
    assert first.published_at is not None
    assert second.slug == "preventive-maintenance-checklists-2"
    assert first.author_id == second.author_id

    stats = await service.statistics()
    assert stats["total_posts"] == 2
    assert stats["published_automated"] == 2
    assert stats["automation_rate"] == 100.0


# ============================================================================
# Endpoints
# ============================================================================

@pytest.mark.anyio
async def test_public_listing_shows_only_published(client, db):
    await _post(db, "live-post", category="Maintenance", tags=["hvac", "roofing"])
    await _post(db, "other-live", category="Compliance", tags=["fire"])
    await _post(db, "draft-post", status=BlogPostStatus.DRAFT, category="Drafts")

    resp = await client.get("/api/blog")
    body = resp.json()
    assert resp.status_code == 200
    assert body["total"] == 2
    assert {p["slug"] for p in body["items"]} == {"live-post", "other-live"}

    by_tag = await client.get("/api/blog?tag=hvac")
    assert [p["slug"] for p in by_tag.json()["items"]] == ["live-post"]

    categories = await client.get("/api/blog/categories")
    assert categories.json() == ["Compliance", "Maintenance"]


@pytest.mark.anyio
async def test_slug_view_counts_and_hides_drafts(client, db, manager, admin):
    await _post(db, "live-post")
    await _post(db, "draft-post", status=BlogPostStatus.DRAFT)

    first = await client.get("/api/blog/live-post")
    second = await client.get("/api/blog/live-post")
    assert first.json()["view_count"] == 1
    assert second.json()["view_count"] == 2

    assert (await client.get("/api/blog/draft-post")).status_code == 404
    assert (await client.get("/api/blog/draft-post", headers=auth(manager))).status_code == 404

    as_admin = await client.get("/api/blog/draft-post", headers=auth(admin))
    assert as_admin.status_code == 200
    assert as_admin.json()["view_count"] == 0


@pytest.mark.anyio
async def test_admin_crud(client, db, admin, manager):
    payload = {"title": "Winter Checklist", "content": "Clear the gutters.", "status": "PUBLISHED", "tags": ["winter"]}

    assert (await client.post("/api/blog/admin/posts", json=payload, headers=auth(manager))).status_code == 403

    created = await client.post("/api/blog/admin/posts", json=payload, headers=auth(admin))
    assert created.status_code == 201
    post = created.json()
    assert post["slug"] == "winter-checklist"
    assert post["published_at"] is not None
    assert post["author_id"] == str(admin.id)

    updated = await client.patch(
        f"/api/blog/admin/posts/{post['id']}",
        json={"status": "ARCHIVED"},
        headers=auth(admin),
    )
    assert updated.json()["status"] == "ARCHIVED"

    deleted = await client.delete(f"/api/blog/admin/posts/{post['id']}", headers=auth(admin))
    assert deleted.status_code == 200
    remaining = await db.execute(select(BlogPost))
    assert remaining.scalars().all() == []


@pytest.mark.anyio
async def test_admin_generate_without_api_key(client, admin, monkeypatch):
    monkeypatch.setattr(get_settings(), "anthropic_api_key", None)
    resp = await client.post("/api/blog/admin/generate", headers=auth(admin))
    assert resp.status_code == 503
    assert resp.json()["message"] == "ANTHROPIC_API_KEY is not configured"
