"""Dashboard router - role-scoped summary counts and recent activity."""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.access import (
    get_viewable_property,
    managed_property_ids,
    owned_property_ids,
    technician_property_ids,
    tenant_property_ids,
    tenant_unit_ids,
)
from app.core.cache import (
    ACTIVITY_LIMITS,
    DASHBOARD_SUMMARY_PATH,
    CacheService,
    get_cache,
    property_activity_key,
    response_cache_key,
)
from app.core.database import get_db
from app.core.security import get_current_user
from app.models.enums import InspectionStatus, JobStatus, ServiceRequestStatus, UnitStatus, UserRole
from app.models.inspection import Inspection
from app.models.jobs import Job
from app.models.property import Property, Unit
from app.models.service_request import ServiceRequest
from app.models.user import User

router = APIRouter(prefix="/dashboard", tags=["dashboard"])

OPEN_SERVICE_REQUEST_STATUSES = (
    ServiceRequestStatus.SUBMITTED,
    ServiceRequestStatus.UNDER_REVIEW,
    ServiceRequestStatus.APPROVED,
)


class DashboardScope:
    """Filter conditions restricting each dashboard query to the caller's data."""

    def __init__(self, user: User):
        if user.role == UserRole.PROPERTY_MANAGER:
            properties = managed_property_ids(user.id)
        elif user.role == UserRole.OWNER:
            properties = owned_property_ids(user.id)
        elif user.role == UserRole.TECHNICIAN:
            properties = technician_property_ids(user.id)
        elif user.role == UserRole.TENANT:
            properties = tenant_property_ids(user.id)
        else:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")

        self.properties = Property.id.in_(properties)

        if user.role == UserRole.TENANT:
            units = tenant_unit_ids(user.id)
            self.units = Unit.id.in_(units)
            self.jobs = Job.unit_id.in_(units)
            self.inspections = Inspection.unit_id.in_(units)
            self.service_requests = ServiceRequest.requested_by_id == user.id
        elif user.role == UserRole.TECHNICIAN:
            self.units = Unit.property_id.in_(properties)
            self.jobs = Job.assigned_to_id == user.id
            self.inspections = Inspection.assigned_to_id == user.id
            self.service_requests = ServiceRequest.property_id.in_(properties)
        else:
            self.units = Unit.property_id.in_(properties)
            self.jobs = Job.property_id.in_(properties)
            self.inspections = Inspection.property_id.in_(properties)
            self.service_requests = ServiceRequest.property_id.in_(properties)


async def _counts_by_status(db: AsyncSession, column, condition, statuses) -> dict[str, int]:
    result = await db.execute(select(column, func.count()).where(condition).group_by(column))
    counts = {s.value: 0 for s in statuses}
    for value, count in result.all():
        counts[value.value] = count
    return counts


async def build_summary(db: AsyncSession, user: User, now: Optional[datetime] = None) -> dict[str, Any]:
    """Aggregate counts for everything the user can see.

    A tenant without active tenancies gets all zeros: every scope is an
    empty subquery, never an unfiltered query.
    """
    now = now or datetime.utcnow()
    scope = DashboardScope(user)

    property_count = await db.execute(select(func.count(Property.id)).where(scope.properties))
    units = await _counts_by_status(db, Unit.status, scope.units, UnitStatus)
    jobs = await _counts_by_status(db, Job.status, scope.jobs, JobStatus)

    open_requests = await db.execute(
        select(func.count(ServiceRequest.id)).where(
            scope.service_requests,
            ServiceRequest.status.in_(OPEN_SERVICE_REQUEST_STATUSES),
        )
    )
    upcoming_inspections = await db.execute(
        select(func.count(Inspection.id)).where(
            scope.inspections,
            Inspection.status == InspectionStatus.SCHEDULED,
            Inspection.scheduled_date >= now,
        )
    )

    return {
        "properties": property_count.scalar_one(),
        "units": {"total": sum(units.values()), **units},
        "jobs": {"total": sum(jobs.values()), **jobs},
        "open_service_requests": open_requests.scalar_one(),
        "upcoming_inspections": upcoming_inspections.scalar_one(),
    }


@router.get("/summary")
async def get_summary(
    db: AsyncSession = Depends(get_db),
    cache: CacheService = Depends(get_cache),
    current_user: User = Depends(get_current_user),
):
    cache_key = response_cache_key(DASHBOARD_SUMMARY_PATH, current_user.id)
    cached = await cache.get_json(cache_key)
    if cached is not None:
        return cached

    summary = await build_summary(db, current_user)
    await cache.set_json(cache_key, summary)
    return summary


def _enum(value: Any) -> Optional[str]:
    return value.value if value is not None else None


async def build_activity(
    db: AsyncSession,
    scope: DashboardScope,
    limit: int,
    property_id: Optional[UUID] = None,
) -> list[dict[str, Any]]:
    """Latest jobs, inspections and service requests merged by update time."""
    jobs_query = select(Job).where(scope.jobs)
    inspections_query = select(Inspection).where(scope.inspections)
    requests_query = select(ServiceRequest).where(scope.service_requests)
    if property_id:
        jobs_query = jobs_query.where(Job.property_id == property_id)
        inspections_query = inspections_query.where(Inspection.property_id == property_id)
        requests_query = requests_query.where(ServiceRequest.property_id == property_id)

    activities = []

    jobs = await db.execute(jobs_query.order_by(Job.updated_at.desc()).limit(limit))
    for job in jobs.scalars().all():
        activities.append({
            "type": "job",
            "id": str(job.id),
            "property_id": str(job.property_id),
            "title": job.title,
            "status": _enum(job.status),
            "timestamp": job.updated_at.isoformat() if job.updated_at else None,
        })

    inspections = await db.execute(
        inspections_query.order_by(Inspection.updated_at.desc()).limit(limit)
    )
    for inspection in inspections.scalars().all():
        activities.append({
            "type": "inspection",
            "id": str(inspection.id),
            "property_id": str(inspection.property_id),
            "title": inspection.title,
            "status": _enum(inspection.status),
            "timestamp": inspection.updated_at.isoformat() if inspection.updated_at else None,
        })

    requests = await db.execute(
        requests_query.order_by(ServiceRequest.updated_at.desc()).limit(limit)
    )
    for request in requests.scalars().all():
        activities.append({
            "type": "service_request",
            "id": str(request.id),
            "property_id": str(request.property_id),
            "title": request.title,
            "status": _enum(request.status),
            "timestamp": request.updated_at.isoformat() if request.updated_at else None,
        })

    activities.sort(key=lambda x: x["timestamp"] or "", reverse=True)
    return activities[:limit]


@router.get("/activity")
async def get_activity(
    property_id: Optional[UUID] = None,
    limit: int = Query(default=20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    cache: CacheService = Depends(get_cache),
    current_user: User = Depends(get_current_user),
):
    """Recent activity for the caller, optionally narrowed to one property.

    Manager and owner feeds for one property see the whole property, so for
    the standard page sizes they share a cache entry that is dropped whenever
    a job, inspection or service request on the property changes.
    """
    scope = DashboardScope(current_user)

    cache_key = None
    if property_id:
        await get_viewable_property(db, property_id, current_user)
        full_view = current_user.role in (UserRole.PROPERTY_MANAGER, UserRole.OWNER)
        if full_view and limit in ACTIVITY_LIMITS:
            cache_key = property_activity_key(property_id, limit)
            cached = await cache.get_json(cache_key)
            if cached is not None:
                return cached

    activities = await build_activity(db, scope, limit, property_id)
    response = {"activities": activities, "total": len(activities)}
    if cache_key:
        await cache.set_json(cache_key, response)
    return response
