"""PDF property report and subscription status endpoints."""

from datetime import datetime, timedelta

import pytest

from app.models.enums import JobStatus, SubscriptionPlan, SubscriptionStatus
from app.models.jobs import Job
from app.models.subscription import Subscription
from app.services.pdf_generator import get_pdf_generator
from tests.conftest import auth, create_unit, create_user

pytestmark = pytest.mark.anyio


def test_generator_renders_empty_sections():
    pdf = get_pdf_generator().generate_property_report(
        prop={"name": "Empty Block", "address": "1 Nowhere St", "city": "Perth"},
        units=[],
        jobs=[],
        inspections=[],
    )
    assert pdf.startswith(b"%PDF")


async def test_property_report_download(client, db, manager, owner, tenant, prop):
    await create_unit(db, prop, "1A", tenant=tenant)
    db.add(Job(property_id=prop.id, title="Paint hallway", status=JobStatus.OPEN,
               scheduled_date=datetime.utcnow() + timedelta(days=2)))
    await db.commit()

    resp = await client.get(f"/api/reports/properties/{prop.id}/pdf", headers=auth(owner))

    assert resp.status_code == 200
    assert resp.headers["content-type"] == "application/pdf"
    assert resp.headers["content-disposition"].startswith(f'attachment; filename="property_{prop.id}_')
    assert resp.content.startswith(b"%PDF")


async def test_report_requires_property_access(client, tenant, prop):
    resp = await client.get(f"/api/reports/properties/{prop.id}/pdf", headers=auth(tenant))
    assert resp.status_code == 403


async def test_trial_subscription_status(client, manager):
    resp = await client.get("/api/subscriptions/me", headers=auth(manager))
    body = resp.json()
    assert body["status"] == "TRIAL"
    assert body["is_active"] is True
    assert body["subscription"] is None


async def test_expired_trial_is_inactive(client, db):
    lapsed = await create_user(db, trial_days=-1)
    body = (await client.get("/api/subscriptions/me", headers=auth(lapsed))).json()
    assert body["is_active"] is False


async def test_paid_subscription_record(client, db, manager):
    manager.subscription_status = SubscriptionStatus.ACTIVE
    manager.subscription_plan = SubscriptionPlan.PROFESSIONAL
    db.add(Subscription(
        user_id=manager.id,
        plan=SubscriptionPlan.PROFESSIONAL,
        status=SubscriptionStatus.ACTIVE,
        stripe_subscription_id="sub_live",
    ))
    await db.commit()

    body = (await client.get("/api/subscriptions/me", headers=auth(manager))).json()
    assert body["is_active"] is True
    assert body["plan"] == "PROFESSIONAL"
    assert body["subscription"]["stripe_subscription_id"] == "sub_live"
