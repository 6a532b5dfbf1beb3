"""Job lifecycle through the API: assignment, technician limits, completion."""

import pytest
from sqlalchemy import select

from app.models.audit import AuditLog
from app.models.enums import AuditAction, NotificationType, UserRole
from app.models.notification import Notification
from tests.conftest import auth, create_property, create_unit, create_user

pytestmark = pytest.mark.anyio


async def _create_job(client, manager, prop, **fields):
    resp = await client.post(
        "/api/jobs",
        json={"property_id": str(prop.id), "title": "Replace smoke alarm", **fields},
        headers=auth(manager),
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


async def test_assigned_job_starts_assigned_and_notifies(client, db, manager, technician, prop):
    job = await _create_job(client, manager, prop, assigned_to_id=str(technician.id), priority="HIGH")

    assert job["status"] == "ASSIGNED"
    assert job["created_by_id"] == str(manager.id)

    notes = (await db.execute(select(Notification).where(Notification.user_id == technician.id))).scalars().all()
    assert [n.notification_type for n in notes] == [NotificationType.JOB_ASSIGNED]


async def test_unassigned_job_is_open(client, manager, prop):
    job = await _create_job(client, manager, prop)
    assert job["status"] == "OPEN"


async def test_assignee_must_be_technician(client, manager, tenant, prop):
    resp = await client.post(
        "/api/jobs",
        json={"property_id": str(prop.id), "title": "Fix", "assigned_to_id": str(tenant.id)},
        headers=auth(manager),
    )
    assert resp.status_code == 400


async def test_unit_must_belong_to_property(client, db, manager, prop):
    other = await create_property(db, manager, name="Other Block")
    foreign_unit = await create_unit(db, other)
    resp = await client.post(
        "/api/jobs",
        json={"property_id": str(prop.id), "title": "Fix", "unit_id": str(foreign_unit.id)},
        headers=auth(manager),
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "Unit does not belong to the specified property"


async def test_technician_updates_allowed_fields_and_completes(client, db, manager, technician, prop):
    job = await _create_job(client, manager, prop, assigned_to_id=str(technician.id))

    resp = await client.patch(
        f"/api/jobs/{job['id']}",
        json={
            "status": "COMPLETED",
            "notes": "Replaced unit",
            "actual_cost": 85.5,
            "evidence": [{"url": "https://files/photo.jpg", "caption": "after"}],
        },
        headers=auth(technician),
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "COMPLETED"
    assert body["completed_date"] is not None
    assert body["evidence"][0]["url"] == "https://files/photo.jpg"

    audit = (await db.execute(
        select(AuditLog).where(AuditLog.action == AuditAction.JOB_STATUS_CHANGED)
    )).scalar_one()
    assert audit.details == {"from": "ASSIGNED", "to": "COMPLETED"}

    completed = (await db.execute(
        select(Notification).where(
            Notification.user_id == manager.id,
            Notification.notification_type == NotificationType.JOB_COMPLETED,
        )
    )).scalars().all()
    assert len(completed) == 1


async def test_technician_cannot_change_other_fields(client, manager, technician, prop):
    job = await _create_job(client, manager, prop, assigned_to_id=str(technician.id))
    resp = await client.patch(
        f"/api/jobs/{job['id']}",
        json={"status": "IN_PROGRESS", "title": "Something else"},
        headers=auth(technician),
    )
    assert resp.status_code == 403
    assert resp.json()["message"] == "Technicians can only update: status, notes, actual_cost, evidence"


async def test_technician_cannot_touch_unassigned_job(client, db, manager, prop):
    job = await _create_job(client, manager, prop)
    outsider = await create_user(db, UserRole.TECHNICIAN)
    resp = await client.patch(f"/api/jobs/{job['id']}", json={"status": "IN_PROGRESS"}, headers=auth(outsider))
    assert resp.status_code == 403


async def test_reassigning_open_job_marks_assigned(client, manager, technician, prop):
    job = await _create_job(client, manager, prop)
    resp = await client.patch(
        f"/api/jobs/{job['id']}",
        json={"assigned_to_id": str(technician.id)},
        headers=auth(manager),
    )
    assert resp.json()["status"] == "ASSIGNED"


async def test_listing_scope(client, db, manager, owner, technician, prop):
    await _create_job(client, manager, prop, assigned_to_id=str(technician.id), title="Mine")
    await _create_job(client, manager, prop, title="Unassigned")

    tech_jobs = await client.get("/api/jobs", headers=auth(technician))
    assert [j["title"] for j in tech_jobs.json()] == ["Mine"]

    owner_jobs = await client.get("/api/jobs?status=OPEN", headers=auth(owner))
    assert [j["title"] for j in owner_jobs.json()] == ["Unassigned"]

    tenant = await create_user(db, UserRole.TENANT)
    assert (await client.get("/api/jobs", headers=auth(tenant))).status_code == 403


async def test_delete_job(client, manager, owner, prop):
    job = await _create_job(client, manager, prop)
    assert (await client.delete(f"/api/jobs/{job['id']}", headers=auth(owner))).status_code == 403
    assert (await client.delete(f"/api/jobs/{job['id']}", headers=auth(manager))).status_code == 200
    assert (await client.get(f"/api/jobs/{job['id']}", headers=auth(manager))).status_code == 404


@pytest.mark.parametrize("field", ["status", "title", "priority"])
async def test_null_on_required_field_is_a_validation_error(client, manager, prop, field):
    job = await _create_job(client, manager, prop)

    resp = await client.patch(f"/api/jobs/{job['id']}", json={field: None}, headers=auth(manager))

    assert resp.status_code == 400
    body = resp.json()
    assert body["code"] == "VALIDATION_ERROR"
    assert f"{field} must not be null" in body["message"]

    unchanged = await client.get(f"/api/jobs/{job['id']}", headers=auth(manager))
    assert unchanged.json()[field] == job[field]


async def test_null_on_optional_field_clears_it(client, manager, prop):
    job = await _create_job(client, manager, prop, notes="Bring a ladder")

    resp = await client.patch(f"/api/jobs/{job['id']}", json={"notes": None}, headers=auth(manager))

    assert resp.status_code == 200
    assert resp.json()["notes"] is None


async def test_comment_thread_between_manager_and_technician(client, manager, technician, prop):
    job = await _create_job(client, manager, prop, assigned_to_id=str(technician.id))
    url = f"/api/jobs/{job['id']}/comments"

    first = await client.post(url, json={"content": "Access via side gate"}, headers=auth(manager))
    assert first.status_code == 201
    assert first.json()["author"]["id"] == str(manager.id)

    reply = await client.post(url, json={"content": "On site at 9am"}, headers=auth(technician))
    assert reply.status_code == 201

    thread = await client.get(url, headers=auth(manager))
    assert [c["content"] for c in thread.json()] == ["Access via side gate", "On site at 9am"]
    assert thread.json()[1]["user_id"] == str(technician.id)


async def test_comments_follow_job_visibility(client, db, manager, prop):
    job = await _create_job(client, manager, prop)
    url = f"/api/jobs/{job['id']}/comments"
    outsider = await create_user(db, UserRole.TECHNICIAN)
    tenant = await create_user(db, UserRole.TENANT)

    assert (await client.post(url, json={"content": "hi"}, headers=auth(outsider))).status_code == 403
    assert (await client.get(url, headers=auth(outsider))).status_code == 403
    assert (await client.get(url, headers=auth(tenant))).status_code == 403

    empty = await client.post(url, json={"content": ""}, headers=auth(manager))
    assert empty.status_code == 400
