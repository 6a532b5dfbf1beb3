"""Notification inbox endpoints and dispatch side effects."""

from unittest.mock import AsyncMock

import pytest

from app.models.enums import NotificationType
from app.services import notifications as notifications_module
from app.services.notifications import NotificationService, commit_and_notify
from tests.conftest import auth

pytestmark = pytest.mark.anyio


async def _notify(db, user, title="Hello", **kwargs):
    notification = await NotificationService(db).notify(
        user.id,
        NotificationType.SYSTEM,
        title=title,
        message="Something happened",
        **kwargs,
    )
    await commit_and_notify(db)
    return notification


async def test_notify_pushes_to_user_room(db, tenant, monkeypatch):
    emit = AsyncMock()
    monkeypatch.setattr(notifications_module, "emit_to_user", emit)

    notification = await _notify(db, tenant)

    emit.assert_awaited_once()
    user_id, event, payload = emit.await_args.args
    assert user_id == tenant.id
    assert event == "notification"
    assert payload["id"] == str(notification.id)


async def test_push_waits_for_commit(db, tenant, monkeypatch):
    emit = AsyncMock()
    monkeypatch.setattr(notifications_module, "emit_to_user", emit)

    await NotificationService(db).notify(tenant.id, NotificationType.SYSTEM, title="Later", message="Queued")
    emit.assert_not_awaited()

    await commit_and_notify(db)
    emit.assert_awaited_once()


async def test_rollback_discards_queued_push(db, tenant, monkeypatch):
    emit = AsyncMock()
    monkeypatch.setattr(notifications_module, "emit_to_user", emit)

    await NotificationService(db).notify(tenant.id, NotificationType.SYSTEM, title="Gone", message="Rolled back")
    await db.rollback()
    await commit_and_notify(db)

    emit.assert_not_awaited()


async def test_email_only_when_requested(db, tenant):
    email = AsyncMock()
    email.enabled = True
    service = NotificationService(db, email=email)

    await service.notify(tenant.id, NotificationType.SYSTEM, title="Quiet", message="No email")
    await commit_and_notify(db)
    email.send.assert_not_awaited()

    await service.notify(tenant.id, NotificationType.SYSTEM, title="Loud", message="Email", send_email=True)
    await commit_and_notify(db)
    email.send.assert_awaited_once()
    assert email.send.await_args.args[0] == tenant.email


async def test_list_unread_and_mark_read(client, db, tenant):
    first = await _notify(db, tenant, title="First")
    await _notify(db, tenant, title="Second")

    count = await client.get("/api/notifications/unread-count", headers=auth(tenant))
    assert count.json() == {"count": 2}

    marked = await client.patch(f"/api/notifications/{first.id}/read", headers=auth(tenant))
    assert marked.status_code == 200
    assert marked.json()["is_read"] is True

    unread = await client.get("/api/notifications?is_read=false", headers=auth(tenant))
    assert [n["title"] for n in unread.json()] == ["Second"]


async def test_cannot_touch_other_users_notifications(client, db, tenant, manager):
    notification = await _notify(db, tenant)

    assert (await client.patch(f"/api/notifications/{notification.id}/read", headers=auth(manager))).status_code == 403
    assert (await client.delete(f"/api/notifications/{notification.id}", headers=auth(manager))).status_code == 403


async def test_mark_all_read(client, db, tenant, manager):
    for i in range(3):
        await _notify(db, tenant, title=f"N{i}")
    await _notify(db, manager)

    resp = await client.patch("/api/notifications/mark-all-read", headers=auth(tenant))
    assert resp.json()["message"] == "3 notifications marked as read"

    assert (await client.get("/api/notifications/unread-count", headers=auth(tenant))).json()["count"] == 0
    assert (await client.get("/api/notifications/unread-count", headers=auth(manager))).json()["count"] == 1


async def test_delete_notification(client, db, tenant):
    notification = await _notify(db, tenant)
    resp = await client.delete(f"/api/notifications/{notification.id}", headers=auth(tenant))
    assert resp.json()["message"] == "Notification deleted"
    assert (await client.get("/api/notifications", headers=auth(tenant))).json() == []
