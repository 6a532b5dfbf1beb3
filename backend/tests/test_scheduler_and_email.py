"""Cron registration and notification email rendering."""

import pytest

from app.core.config import get_settings
from app.cron import scheduler as scheduler_module
from app.models.enums import NotificationType
from app.services.email import EmailService, render_notification_email

pytestmark = pytest.mark.anyio


def test_scheduler_disabled_returns_none(monkeypatch):
    monkeypatch.setattr(get_settings(), "scheduler_enabled", False)
    assert scheduler_module.start_scheduler() is None


async def test_scheduler_registers_enabled_jobs(monkeypatch):
    settings = get_settings()
    monkeypatch.setattr(settings, "scheduler_enabled", True)
    monkeypatch.setattr(settings, "maintenance_plans_enabled", True)
    monkeypatch.setattr(settings, "blog_automation_enabled", True)

    async def noop():
        return None

    monkeypatch.setattr(scheduler_module, "run_maintenance_plans", noop)

    scheduler = scheduler_module.start_scheduler()
    try:
        job_ids = {job.id for job in scheduler.get_jobs()}
        assert {"maintenance_plans", "blog_automation"} <= job_ids
        assert scheduler_module.start_scheduler() is scheduler
    finally:
        scheduler_module.stop_scheduler()


def test_email_escapes_user_content():
    subject, html = render_notification_email(
        NotificationType.JOB_ASSIGNED,
        recipient_name="Alex <script>",
        title="New Job Assigned: Fix tap",
        message="You have been assigned",
        action_url="https://app.test/jobs/1",
        property_name="Harbour View",
        priority="HIGH",
    )
    assert subject == "New Job Assigned: Fix tap"
    assert "Alex &lt;script&gt;" in html
    assert "https://app.test/jobs/1" in html
    assert "Harbour View" in html


def test_unknown_type_uses_generic_template():
    _, html = render_notification_email(NotificationType.SYSTEM, "Sam", "Heads up", "Body text")
    assert "Body text" in html


async def test_send_without_smtp_is_skipped():
    service = EmailService()
    service.host = None
    assert await service.send("a@example.com", "Hi", "<p>Hi</p>") is False


def test_build_message_has_html_part():
    msg = EmailService(host="smtp.test", sender="Buildstate <noreply@test>").build_message(
        "a@example.com", "Subject", "<p>Body</p>"
    )
    assert msg["To"] == "a@example.com"
    assert msg.get_body(preferencelist=("html",)).get_content().strip() == "<p>Body</p>"
