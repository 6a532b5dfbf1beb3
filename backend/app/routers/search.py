"""Global search across properties, jobs, inspections and service requests.

Each category is filtered by the same visibility rules as its own list
endpoint, so search never reveals a row the caller could not list.
"""

import math

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.access import accessible_property_ids
from app.core.database import get_db
from app.core.security import get_current_user
from app.models.enums import UserRole
from app.models.inspection import Inspection
from app.models.jobs import Job
from app.models.property import Property
from app.models.service_request import ServiceRequest
from app.models.user import User
from app.routers.inspections import inspection_scope
from app.routers.jobs import job_scope
from app.schemas.search import SearchResponse, SearchResult

router = APIRouter(prefix="/search", tags=["search"])

MAX_LIMIT = 50


def _matches(term: str, *columns):
    pattern = f"%{term}%"
    return or_(*(column.ilike(pattern) for column in columns))


def _job_result(job: Job, property_name: str) -> SearchResult:
    return SearchResult(
        id=job.id,
        type="job",
        title=job.title,
        description=job.description,
        subtitle=f"{property_name} - {job.status.value}",
        status=job.status.value,
        priority=job.priority.value,
        link="/jobs",
    )


async def _search_jobs(db: AsyncSession, user: User, term: str, limit: int) -> list[SearchResult]:
    result = await db.execute(
        select(Job, Property.name)
        .join(Property, Property.id == Job.property_id)
        .where(job_scope(user), _matches(term, Job.title, Job.description))
        .order_by(Job.created_at.desc())
        .limit(limit)
    )
    return [_job_result(job, name) for job, name in result.all()]


@router.get("", response_model=SearchResponse)
async def search(
    q: str = "",
    limit: int = Query(20, ge=1),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Search the records visible to the caller.

    Technicians only search the jobs assigned to them. Everyone else gets
    up to a quarter of ``limit`` hits from each category. Service requests
    are searched for managers (their properties) and tenants (their own
    requests).
    """
    term = q.strip()
    if not term:
        return SearchResponse(results=[], total=0)
    limit = min(limit, MAX_LIMIT)

    if current_user.role == UserRole.TECHNICIAN:
        results = await _search_jobs(db, current_user, term, limit)
        return SearchResponse(results=results, total=len(results))

    scope = accessible_property_ids(current_user)
    if scope is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
    per_category = math.ceil(limit / 4)
    results: list[SearchResult] = []

    properties = await db.execute(
        select(Property)
        .where(
            Property.id.in_(scope),
            _matches(term, Property.name, Property.address, Property.city),
        )
        .order_by(Property.name)
        .limit(per_category)
    )
    for prop in properties.scalars().all():
        location = ", ".join(part for part in (prop.city, prop.state) if part)
        results.append(SearchResult(
            id=prop.id,
            type="property",
            title=prop.name,
            description=prop.address,
            subtitle=f"{location} - {prop.status.value}",
            status=prop.status.value,
            link=f"/properties/{prop.id}",
        ))

    if current_user.role != UserRole.TENANT:
        results.extend(await _search_jobs(db, current_user, term, per_category))

    inspections = await db.execute(
        select(Inspection, Property.name)
        .join(Property, Property.id == Inspection.property_id)
        .where(inspection_scope(current_user), _matches(term, Inspection.title, Inspection.notes))
        .order_by(Inspection.scheduled_date.desc())
        .limit(per_category)
    )
    for inspection, property_name in inspections.all():
        results.append(SearchResult(
            id=inspection.id,
            type="inspection",
            title=inspection.title,
            description=inspection.notes or "No notes",
            subtitle=f"{property_name} - {inspection.status.value}",
            status=inspection.status.value,
            scheduled_date=inspection.scheduled_date,
            link=f"/inspections/{inspection.id}",
        ))

    if current_user.role in (UserRole.PROPERTY_MANAGER, UserRole.TENANT):
        if current_user.role == UserRole.TENANT:
            request_scope = ServiceRequest.requested_by_id == current_user.id
        else:
            request_scope = ServiceRequest.property_id.in_(scope)
        requests = await db.execute(
            select(ServiceRequest, Property.name)
            .join(Property, Property.id == ServiceRequest.property_id)
            .where(request_scope, _matches(term, ServiceRequest.title, ServiceRequest.description))
            .order_by(ServiceRequest.created_at.desc())
            .limit(per_category)
        )
        for request, property_name in requests.all():
            results.append(SearchResult(
                id=request.id,
                type="service_request",
                title=request.title,
                description=request.description,
                subtitle=f"{property_name} - {request.status.value}",
                status=request.status.value,
                priority=request.priority.value,
                link="/service-requests",
            ))

    return SearchResponse(results=results, total=len(results))
