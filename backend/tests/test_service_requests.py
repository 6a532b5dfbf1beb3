"""Service requests: creation rules, pagination, role edits and conversion to jobs."""

import pytest
from sqlalchemy import select

from app.models.enums import NotificationType, ServiceRequestStatus, UserRole
from app.models.jobs import Job
from app.models.notification import Notification
from app.models.service_request import ServiceRequest
from app.routers.service_requests import clamp_limit
from tests.conftest import auth, create_property, create_unit, create_user

pytestmark = pytest.mark.anyio

DESCRIPTION = "Water is dripping from the kitchen ceiling."


@pytest.mark.parametrize("limit, expected", [(None, 50), (0, 50), (-5, 1), (10, 10), (500, 100)])
def test_clamp_limit(limit, expected):
    assert clamp_limit(limit) == expected


async def _tenant_request(client, tenant, prop, unit, title="Leaking ceiling"):
    resp = await client.post(
        "/api/service-requests",
        json={
            "property_id": str(prop.id),
            "unit_id": str(unit.id),
            "title": title,
            "description": DESCRIPTION,
            "category": "PLUMBING",
        },
        headers=auth(tenant),
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


async def test_tenant_submits_for_own_unit(client, db, manager, tenant, prop):
    unit = await create_unit(db, prop, tenant=tenant)
    body = await _tenant_request(client, tenant, prop, unit)

    assert body["status"] == "SUBMITTED"
    assert body["requested_by_id"] == str(tenant.id)

    notified = (await db.execute(
        select(Notification).where(Notification.user_id == manager.id)
    )).scalars().all()
    assert [n.notification_type for n in notified] == [NotificationType.SERVICE_REQUEST_UPDATE]


async def test_tenant_needs_unit(client, tenant, prop):
    resp = await client.post(
        "/api/service-requests",
        json={"property_id": str(prop.id), "title": "Leak", "description": DESCRIPTION},
        headers=auth(tenant),
    )
    assert resp.status_code == 400


async def test_tenant_cannot_use_someone_elses_unit(client, db, tenant, prop):
    unit = await create_unit(db, prop, tenant=await create_user(db, UserRole.TENANT))
    resp = await client.post(
        "/api/service-requests",
        json={"property_id": str(prop.id), "unit_id": str(unit.id), "title": "Leak", "description": DESCRIPTION},
        headers=auth(tenant),
    )
    assert resp.status_code == 403


async def test_technician_cannot_create(client, technician, prop):
    resp = await client.post(
        "/api/service-requests",
        json={"property_id": str(prop.id), "title": "Leak", "description": DESCRIPTION},
        headers=auth(technician),
    )
    assert resp.status_code == 403


async def test_lapsed_manager_blocks_tenant_requests(client, db, tenant):
    lapsed = await create_user(db, trial_days=-3)
    prop = await create_property(db, lapsed)
    unit = await create_unit(db, prop, tenant=tenant)
    resp = await client.post(
        "/api/service-requests",
        json={"property_id": str(prop.id), "unit_id": str(unit.id), "title": "Leak", "description": DESCRIPTION},
        headers=auth(tenant),
    )
    assert resp.status_code == 403
    assert resp.json()["code"] == "MANAGER_SUBSCRIPTION_REQUIRED"


async def test_pagination(client, db, manager, tenant, prop):
    unit = await create_unit(db, prop, tenant=tenant)
    for i in range(3):
        await _tenant_request(client, tenant, prop, unit, title=f"Request {i}")

    first = await client.get("/api/service-requests?limit=2", headers=auth(manager))
    body = first.json()
    assert body["total"] == 3
    assert len(body["items"]) == 2
    assert body["page"] == 1
    assert body["has_more"] is True

    second = await client.get("/api/service-requests?limit=2&offset=2", headers=auth(manager))
    assert second.json()["page"] == 2
    assert second.json()["has_more"] is False


async def test_technician_without_jobs_sees_nothing(client, technician):
    resp = await client.get("/api/service-requests", headers=auth(technician))
    assert resp.json() == {"items": [], "total": 0, "page": 1, "has_more": False}


async def test_role_field_limits(client, db, owner, tenant, technician, prop):
    unit = await create_unit(db, prop, tenant=tenant)
    request = await _tenant_request(client, tenant, prop, unit)
    url = f"/api/service-requests/{request['id']}"

    assert (await client.patch(url, json={"status": "APPROVED"}, headers=auth(tenant))).status_code == 403
    assert (await client.patch(url, json={"title": "Still leaking"}, headers=auth(tenant))).status_code == 200
    assert (await client.patch(url, json={"title": "Owner edit"}, headers=auth(owner))).status_code == 403
    assert (await client.patch(url, json={"status": "UNDER_REVIEW"}, headers=auth(technician))).status_code == 403

    reviewed = await client.patch(
        url,
        json={"status": "UNDER_REVIEW", "review_notes": "Plumber booked"},
        headers=auth(owner),
    )
    assert reviewed.status_code == 200
    assert reviewed.json()["reviewed_at"] is not None

    # tenants lose edit rights once review starts
    assert (await client.patch(url, json={"title": "Too late now"}, headers=auth(tenant))).status_code == 403


async def test_convert_to_job(client, db, manager, tenant, technician, prop):
    unit = await create_unit(db, prop, tenant=tenant)
    request = await _tenant_request(client, tenant, prop, unit)
    url = f"/api/service-requests/{request['id']}/convert-to-job"

    resp = await client.post(url, json={"assigned_to_id": str(technician.id)}, headers=auth(manager))
    assert resp.status_code == 200
    body = resp.json()
    assert body["job"]["status"] == "ASSIGNED"
    assert body["job"]["unit_id"] == str(unit.id)
    assert body["job"]["service_request_id"] == request["id"]
    assert body["service_request"]["status"] == "CONVERTED_TO_JOB"
    assert body["service_request"]["review_notes"] == f"Converted to job #{body['job']['id']}"

    again = await client.post(url, json={}, headers=auth(manager))
    assert again.status_code == 400
    assert len((await db.execute(select(Job))).scalars().all()) == 1


async def test_failed_conversion_leaves_request_untouched(client, db, manager, tenant, prop):
    unit = await create_unit(db, prop, tenant=tenant)
    request = await _tenant_request(client, tenant, prop, unit)

    resp = await client.post(
        f"/api/service-requests/{request['id']}/convert-to-job",
        json={"assigned_to_id": str(tenant.id)},
        headers=auth(manager),
    )
    assert resp.status_code == 400

    stored = (await db.execute(select(ServiceRequest))).scalar_one()
    assert stored.status == ServiceRequestStatus.SUBMITTED
    assert (await db.execute(select(Job))).scalars().all() == []


@pytest.mark.parametrize("field", ["status", "priority", "title", "description"])
async def test_null_on_required_field_is_a_validation_error(client, db, manager, tenant, prop, field):
    unit = await create_unit(db, prop, tenant=tenant)
    request = await _tenant_request(client, tenant, prop, unit)

    resp = await client.patch(
        f"/api/service-requests/{request['id']}",
        json={field: None},
        headers=auth(manager),
    )

    assert resp.status_code == 400
    assert resp.json()["code"] == "VALIDATION_ERROR"
    stored = (await db.execute(select(ServiceRequest))).scalar_one()
    assert stored.status == ServiceRequestStatus.SUBMITTED
