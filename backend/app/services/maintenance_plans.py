"""Recurring maintenance plans: due-date arithmetic and automatic job creation."""

import calendar
import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import JobStatus, MaintenanceFrequency, Priority
from app.models.jobs import Job
from app.models.maintenance import MaintenancePlan

logger = logging.getLogger(__name__)

_DAY_STEPS = {
    MaintenanceFrequency.DAILY: 1,
    MaintenanceFrequency.WEEKLY: 7,
    MaintenanceFrequency.BIWEEKLY: 14,
}

_MONTH_STEPS = {
    MaintenanceFrequency.MONTHLY: 1,
    MaintenanceFrequency.QUARTERLY: 3,
    MaintenanceFrequency.SEMIANNUALLY: 6,
    MaintenanceFrequency.ANNUALLY: 12,
}


def add_months(value: datetime, months: int) -> datetime:
    """Shift by whole months, clamping the day to the target month's length."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def calculate_next_due_date(
    current: Optional[datetime],
    frequency: MaintenanceFrequency,
) -> datetime:
    """Next due date after ``current`` (or now, when unset)."""
    base = current or datetime.utcnow()
    frequency = MaintenanceFrequency(frequency)
    if frequency in _DAY_STEPS:
        return base + timedelta(days=_DAY_STEPS[frequency])
    return add_months(base, _MONTH_STEPS[frequency])


async def create_job_for_plan(db: AsyncSession, plan: MaintenancePlan, now: datetime) -> Job:
    """Create the plan's next job and advance its schedule. Does not commit."""
    job = Job(
        property_id=plan.property_id,
        title=f"Maintenance: {plan.name}",
        description=plan.description or f"Scheduled maintenance task generated for {plan.name}",
        status=JobStatus.OPEN,
        priority=Priority.MEDIUM,
        scheduled_date=plan.next_due_date or now,
        maintenance_plan_id=plan.id,
    )
    db.add(job)

    plan.next_due_date = calculate_next_due_date(plan.next_due_date, plan.frequency)
    plan.last_completed_date = now
    await db.flush()
    return job


async def process_due_plans(
    session_factory: Callable[[], AsyncSession],
    now: Optional[datetime] = None,
) -> int:
    """Create jobs for every active auto-create plan that is due.

    Each plan is handled in its own transaction; a failing plan is logged
    and skipped. Returns the number of jobs created.
    """
    now = now or datetime.utcnow()

    async with session_factory() as db:
        result = await db.execute(
            select(MaintenancePlan.id).where(
                MaintenancePlan.is_active.is_(True),
                MaintenancePlan.auto_create_jobs.is_(True),
                MaintenancePlan.next_due_date <= now,
            )
        )
        plan_ids = list(result.scalars().all())

    if not plan_ids:
        logger.info("No maintenance plans due")
        return 0

    created = 0
    for plan_id in plan_ids:
        async with session_factory() as db:
            try:
                plan = await db.get(MaintenancePlan, plan_id)
                if plan is None:
                    continue
                job = await create_job_for_plan(db, plan, now)
                await db.commit()
                created += 1
                logger.info(
                    "Created job %s for maintenance plan %s; next due %s",
                    job.id,
                    plan.id,
                    plan.next_due_date.isoformat(),
                )
            except Exception:
                await db.rollback()
                logger.exception("Failed to process maintenance plan %s", plan_id)

    logger.info("Processed %d due maintenance plans, created %d jobs", len(plan_ids), created)
    return created
