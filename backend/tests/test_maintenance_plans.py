"""Maintenance plan scheduling and the cron job that spawns plan jobs."""

from datetime import datetime, timedelta

import pytest
from sqlalchemy import select

from app.models.enums import JobStatus, MaintenanceFrequency
from app.models.jobs import Job
from app.models.maintenance import MaintenancePlan
from app.services.maintenance_plans import add_months, calculate_next_due_date, process_due_plans
from tests.conftest import auth, create_property, create_user

BASE = datetime(2024, 1, 15, 9, 30)


@pytest.mark.parametrize(
    "frequency, expected",
    [
        (MaintenanceFrequency.DAILY, datetime(2024, 1, 16, 9, 30)),
        (MaintenanceFrequency.WEEKLY, datetime(2024, 1, 22, 9, 30)),
        (MaintenanceFrequency.BIWEEKLY, datetime(2024, 1, 29, 9, 30)),
        (MaintenanceFrequency.MONTHLY, datetime(2024, 2, 15, 9, 30)),
        (MaintenanceFrequency.QUARTERLY, datetime(2024, 4, 15, 9, 30)),
        (MaintenanceFrequency.SEMIANNUALLY, datetime(2024, 7, 15, 9, 30)),
        (MaintenanceFrequency.ANNUALLY, datetime(2025, 1, 15, 9, 30)),
    ],
)
def test_next_due_date(frequency, expected):
    assert calculate_next_due_date(BASE, frequency) == expected


def test_month_end_is_clamped():
    assert add_months(datetime(2024, 1, 31), 1) == datetime(2024, 2, 29)
    assert add_months(datetime(2023, 1, 31), 1) == datetime(2023, 2, 28)
    assert add_months(datetime(2024, 8, 31), 6) == datetime(2025, 2, 28)


def test_year_rollover():
    assert add_months(datetime(2024, 11, 30), 3) == datetime(2025, 2, 28)


def test_missing_date_counts_from_now():
    before = datetime.utcnow()
    result = calculate_next_due_date(None, MaintenanceFrequency.WEEKLY)
    assert before + timedelta(days=7) <= result <= datetime.utcnow() + timedelta(days=7)


# ============================================================================
# process_due_plans
# ============================================================================


async def _plan(db, prop, **fields) -> MaintenancePlan:
    plan = MaintenancePlan(
        property_id=prop.id,
        name=fields.pop("name", "Gutter clean"),
        frequency=fields.pop("frequency", MaintenanceFrequency.MONTHLY),
        next_due_date=fields.pop("next_due_date", BASE),
        **fields,
    )
    db.add(plan)
    await db.commit()
    await db.refresh(plan)
    return plan


@pytest.mark.anyio
async def test_due_plan_creates_job_and_advances(session_factory, db, prop):
    plan = await _plan(db, prop)
    now = BASE + timedelta(hours=1)

    created = await process_due_plans(session_factory, now=now)

    assert created == 1
    jobs = (await db.execute(select(Job).where(Job.maintenance_plan_id == plan.id))).scalars().all()
    assert len(jobs) == 1
    assert jobs[0].title == "Maintenance: Gutter clean"
    assert jobs[0].status == JobStatus.OPEN
    assert jobs[0].scheduled_date == BASE

    await db.refresh(plan)
    assert plan.next_due_date == datetime(2024, 2, 15, 9, 30)
    assert plan.last_completed_date == now


@pytest.mark.anyio
async def test_skips_inactive_manual_and_future_plans(session_factory, db, prop):
    await _plan(db, prop, name="Inactive", is_active=False)
    await _plan(db, prop, name="Manual", auto_create_jobs=False)
    await _plan(db, prop, name="Future", next_due_date=BASE + timedelta(days=3))

    assert await process_due_plans(session_factory, now=BASE) == 0
    assert (await db.execute(select(Job))).scalars().all() == []


@pytest.mark.anyio
async def test_second_run_is_not_due_again(session_factory, db, prop):
    await _plan(db, prop, frequency=MaintenanceFrequency.WEEKLY)

    assert await process_due_plans(session_factory, now=BASE) == 1
    assert await process_due_plans(session_factory, now=BASE) == 0


# ============================================================================
# Plans API
# ============================================================================

@pytest.mark.anyio
async def test_manager_creates_plan(client, manager, prop):
    resp = await client.post(
        "/api/plans",
        json={
            "property_id": str(prop.id),
            "name": "HVAC service",
            "frequency": "QUARTERLY",
            "next_due_date": "2024-03-01T00:00:00",
        },
        headers=auth(manager),
    )
    assert resp.status_code == 201
    assert resp.json()["frequency"] == "QUARTERLY"

    listing = await client.get("/api/plans?search=hvac", headers=auth(manager))
    assert [p["name"] for p in listing.json()] == ["HVAC service"]


@pytest.mark.anyio
async def test_plan_on_foreign_property_is_forbidden(client, db, prop):
    other_manager = await create_user(db)
    resp = await client.post(
        "/api/plans",
        json={
            "property_id": str(prop.id),
            "name": "HVAC service",
            "frequency": "MONTHLY",
            "next_due_date": "2024-03-01T00:00:00",
        },
        headers=auth(other_manager),
    )
    assert resp.status_code == 403


@pytest.mark.anyio
async def test_owner_sees_but_cannot_create(client, db, owner, prop):
    await _plan(db, prop)
    other_prop = await create_property(db, await create_user(db))
    await _plan(db, other_prop, name="Not mine")

    listing = await client.get("/api/plans", headers=auth(owner))
    assert [p["name"] for p in listing.json()] == ["Gutter clean"]

    resp = await client.post(
        "/api/plans",
        json={"property_id": str(prop.id), "name": "x", "frequency": "DAILY", "next_due_date": "2024-03-01T00:00:00"},
        headers=auth(owner),
    )
    assert resp.status_code == 403
