"""Inspections and the recommendations raised from them."""

from datetime import datetime, timedelta

import pytest
from sqlalchemy import select

from app.models.audit import AuditLog
from app.models.enums import AuditAction, NotificationType, UserRole
from app.models.notification import Notification
from tests.conftest import auth, create_property, create_unit, create_user

pytestmark = pytest.mark.anyio

NEXT_WEEK = (datetime.utcnow() + timedelta(days=7)).isoformat()


async def _schedule(client, manager, prop, **fields):
    resp = await client.post(
        "/api/inspections",
        json={"property_id": str(prop.id), "title": "Annual safety check", "scheduled_date": NEXT_WEEK, **fields},
        headers=auth(manager),
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


async def test_schedule_and_notify_inspector(client, db, manager, technician, prop):
    inspection = await _schedule(client, manager, prop, assigned_to_id=str(technician.id))
    assert inspection["status"] == "SCHEDULED"

    notes = (await db.execute(select(Notification).where(Notification.user_id == technician.id))).scalars().all()
    assert [n.notification_type for n in notes] == [NotificationType.INSPECTION_SCHEDULED]


async def test_inspector_may_be_a_manager_but_not_a_tenant(client, manager, tenant, prop):
    await _schedule(client, manager, prop, assigned_to_id=str(manager.id))
    resp = await client.post(
        "/api/inspections",
        json={"property_id": str(prop.id), "title": "x", "scheduled_date": NEXT_WEEK, "assigned_to_id": str(tenant.id)},
        headers=auth(manager),
    )
    assert resp.status_code == 400


async def test_tenant_sees_inspections_of_own_unit(client, db, manager, tenant, prop):
    unit = await create_unit(db, prop, tenant=tenant)
    await _schedule(client, manager, prop, unit_id=str(unit.id), title="Move-in")
    await _schedule(client, manager, prop, title="Whole building")

    resp = await client.get("/api/inspections", headers=auth(tenant))
    assert [i["title"] for i in resp.json()] == ["Move-in"]


async def test_technician_field_limits_and_completion(client, db, manager, technician, prop):
    inspection = await _schedule(client, manager, prop, assigned_to_id=str(technician.id))
    url = f"/api/inspections/{inspection['id']}"

    denied = await client.patch(url, json={"scheduled_date": NEXT_WEEK}, headers=auth(technician))
    assert denied.status_code == 403

    done = await client.post(f"{url}/complete", json={"findings": "All clear"}, headers=auth(technician))
    assert done.status_code == 200
    assert done.json()["status"] == "COMPLETED"
    assert done.json()["completed_date"] is not None

    again = await client.post(f"{url}/complete", json={}, headers=auth(technician))
    assert again.status_code == 400
    assert again.json()["message"] == "Inspection is already completed"

    completed = (await db.execute(
        select(Notification).where(Notification.notification_type == NotificationType.INSPECTION_COMPLETED)
    )).scalars().all()
    assert [n.user_id for n in completed] == [manager.id]


# ============================================================================
# Recommendations
# ============================================================================

async def test_technician_recommends_from_assigned_inspection(client, db, manager, owner, technician, prop):
    inspection = await _schedule(client, manager, prop, assigned_to_id=str(technician.id))

    resp = await client.post(
        "/api/recommendations",
        json={
            "property_id": str(prop.id),
            "inspection_id": inspection["id"],
            "title": "Replace corroded balcony rail",
            "priority": "HIGH",
            "estimated_cost": 1200,
        },
        headers=auth(technician),
    )
    assert resp.status_code == 201
    recommendation = resp.json()
    assert recommendation["status"] == "SUBMITTED"

    approved = await client.post(f"/api/recommendations/{recommendation['id']}/approve", headers=auth(owner))
    assert approved.status_code == 200
    assert approved.json()["status"] == "APPROVED"
    assert approved.json()["approved_by_id"] == str(owner.id)

    twice = await client.post(f"/api/recommendations/{recommendation['id']}/reject", json={}, headers=auth(manager))
    assert twice.status_code == 400
    assert twice.json()["message"] == "Recommendation has already been approved"

    decided = (await db.execute(
        select(Notification).where(Notification.user_id == technician.id)
    )).scalars().all()
    assert NotificationType.RECOMMENDATION_UPDATE in [n.notification_type for n in decided]


async def test_inspection_must_match_property(client, db, manager, prop):
    inspection = await _schedule(client, manager, prop)
    other = await create_property(db, manager, name="Elsewhere")
    resp = await client.post(
        "/api/recommendations",
        json={"property_id": str(other.id), "inspection_id": inspection["id"], "title": "x"},
        headers=auth(manager),
    )
    assert resp.status_code == 400


async def test_manager_rejects_with_reason(client, db, manager, prop):
    created = await client.post(
        "/api/recommendations",
        json={"property_id": str(prop.id), "title": "Repaint stairwell"},
        headers=auth(manager),
    )
    rec_id = created.json()["id"]

    rejected = await client.post(
        f"/api/recommendations/{rec_id}/reject",
        json={"rejection_reason": "Not in this year's budget"},
        headers=auth(manager),
    )
    assert rejected.json()["status"] == "REJECTED"
    assert rejected.json()["rejection_reason"] == "Not in this year's budget"

    audit = (await db.execute(
        select(AuditLog).where(AuditLog.action == AuditAction.RECOMMENDATION_DECIDED)
    )).scalar_one()
    assert audit.details["decision"] == "REJECTED"


async def test_unrelated_users_cannot_decide_or_create(client, db, manager, prop):
    created = await client.post(
        "/api/recommendations",
        json={"property_id": str(prop.id), "title": "Repaint stairwell"},
        headers=auth(manager),
    )
    stranger_owner = await create_user(db, UserRole.OWNER)
    resp = await client.post(f"/api/recommendations/{created.json()['id']}/approve", headers=auth(stranger_owner))
    assert resp.status_code == 403

    outsider_tech = await create_user(db, UserRole.TECHNICIAN)
    resp = await client.post(
        "/api/recommendations",
        json={"property_id": str(prop.id), "title": "Sneaky"},
        headers=auth(outsider_tech),
    )
    assert resp.status_code == 403
