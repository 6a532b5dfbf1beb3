"""Service requests router."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.access import (
    allowed_service_request_fields,
    check_update_fields,
    get_managed_property,
    get_property_or_404,
    get_technician,
    get_unit_in_property,
    is_property_owner,
    managed_property_ids,
    owned_property_ids,
    technician_property_ids,
)
from app.core.cache import CacheService, get_cache
from app.core.database import get_db
from app.core.errors import ApiError
from app.core.security import check_active_subscription, get_current_user, is_subscription_active, require_manager
from app.models.enums import JobStatus, ServiceRequestCategory, ServiceRequestStatus, UserRole
from app.models.jobs import Job
from app.models.property import Property, UnitTenant
from app.models.service_request import ServiceRequest
from app.models.user import User
from app.schemas.base import Page
from app.schemas.job import JobResponse
from app.schemas.service_request import (
    ConvertToJobRequest,
    ConvertToJobResponse,
    ServiceRequestCreate,
    ServiceRequestResponse,
    ServiceRequestUpdate,
)
from app.services.audit import AuditService
from app.services.notifications import NotificationService, commit_and_notify

router = APIRouter(prefix="/service-requests", tags=["service-requests"])

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100


def clamp_limit(limit: Optional[int]) -> int:
    """Missing or zero means the default page size; otherwise 1..100."""
    if not limit:
        return DEFAULT_PAGE_SIZE
    return max(1, min(limit, MAX_PAGE_SIZE))


async def _load(db: AsyncSession, request_id: UUID) -> ServiceRequest:
    request = await db.get(ServiceRequest, request_id)
    if not request:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Service request not found")
    return request


async def _can_view(db: AsyncSession, request: ServiceRequest, prop: Property, user: User) -> bool:
    if user.role == UserRole.PROPERTY_MANAGER:
        return prop.manager_id == user.id
    if user.role == UserRole.OWNER:
        return await is_property_owner(db, prop.id, user.id)
    if user.role == UserRole.TENANT:
        return request.requested_by_id == user.id
    return False


@router.get("", response_model=Page[ServiceRequestResponse])
async def list_service_requests(
    status_filter: Optional[ServiceRequestStatus] = Query(None, alias="status"),
    property_id: Optional[UUID] = None,
    category: Optional[ServiceRequestCategory] = None,
    limit: Optional[int] = None,
    offset: int = 0,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Paginated service requests visible to the caller."""
    limit = clamp_limit(limit)
    offset = max(offset, 0)

    if current_user.role == UserRole.PROPERTY_MANAGER:
        scope = ServiceRequest.property_id.in_(managed_property_ids(current_user.id))
    elif current_user.role == UserRole.OWNER:
        scope = ServiceRequest.property_id.in_(owned_property_ids(current_user.id))
    elif current_user.role == UserRole.TENANT:
        scope = ServiceRequest.requested_by_id == current_user.id
    elif current_user.role == UserRole.TECHNICIAN:
        job_properties = await db.execute(technician_property_ids(current_user.id).distinct())
        property_ids = [pid for pid in job_properties.scalars().all() if pid]
        if not property_ids:
            return Page(items=[], total=0, page=1, has_more=False)
        scope = ServiceRequest.property_id.in_(property_ids)
    else:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")

    conditions = [scope]
    if status_filter:
        conditions.append(ServiceRequest.status == status_filter)
    if property_id:
        conditions.append(ServiceRequest.property_id == property_id)
    if category:
        conditions.append(ServiceRequest.category == category)

    total_result = await db.execute(select(func.count(ServiceRequest.id)).where(*conditions))
    total = total_result.scalar_one()

    result = await db.execute(
        select(ServiceRequest)
        .where(*conditions)
        .order_by(ServiceRequest.created_at.desc())
        .offset(offset)
        .limit(limit)
    )
    items = [ServiceRequestResponse.model_validate(r) for r in result.scalars().all()]

    return Page(
        items=items,
        total=total,
        page=offset // limit + 1,
        has_more=offset + limit < total,
    )


@router.post("", response_model=ServiceRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_service_request(
    data: ServiceRequestCreate,
    db: AsyncSession = Depends(get_db),
    cache: CacheService = Depends(get_cache),
    current_user: User = Depends(get_current_user),
):
    """Raise a service request for a property (or a tenant's unit)."""
    prop = await get_property_or_404(db, data.property_id)

    if current_user.role == UserRole.TECHNICIAN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Technicians cannot create service requests")

    if current_user.role == UserRole.PROPERTY_MANAGER:
        has_access = prop.manager_id == current_user.id
    elif current_user.role == UserRole.OWNER:
        has_access = await is_property_owner(db, prop.id, current_user.id)
    elif current_user.role == UserRole.TENANT:
        if not data.unit_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Tenants must specify a unit for service requests",
            )
        tenancy = await db.execute(
            select(UnitTenant.id).where(
                UnitTenant.unit_id == data.unit_id,
                UnitTenant.tenant_id == current_user.id,
                UnitTenant.is_active.is_(True),
            )
        )
        has_access = tenancy.first() is not None
    else:
        has_access = False

    if not has_access:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have access to create service requests for this property",
        )

    if data.unit_id:
        await get_unit_in_property(db, data.unit_id, prop.id)

    if current_user.role == UserRole.PROPERTY_MANAGER:
        check_active_subscription(current_user)
    else:
        manager = await db.get(User, prop.manager_id)
        if manager is None or not is_subscription_active(manager):
            raise ApiError(
                status.HTTP_403_FORBIDDEN,
                "This property's subscription has expired. Please contact your property manager.",
                code="MANAGER_SUBSCRIPTION_REQUIRED",
            )

    request = ServiceRequest(
        **data.model_dump(),
        requested_by_id=current_user.id,
        status=ServiceRequestStatus.SUBMITTED,
    )
    db.add(request)
    await db.flush()

    if prop.manager_id != current_user.id:
        await NotificationService(db).service_request_submitted(request, prop)

    await commit_and_notify(db)
    await db.refresh(request)

    await cache.invalidate_property_activity(prop.id)
    return ServiceRequestResponse.model_validate(request)


@router.get("/{request_id}", response_model=ServiceRequestResponse)
async def get_service_request(
    request_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    request = await _load(db, request_id)
    prop = await get_property_or_404(db, request.property_id)
    if not await _can_view(db, request, prop, current_user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
    return ServiceRequestResponse.model_validate(request)


@router.patch("/{request_id}", response_model=ServiceRequestResponse)
async def update_service_request(
    request_id: UUID,
    data: ServiceRequestUpdate,
    db: AsyncSession = Depends(get_db),
    cache: CacheService = Depends(get_cache),
    current_user: User = Depends(get_current_user),
):
    request = await _load(db, request_id)
    prop = await get_property_or_404(db, request.property_id)

    allowed = allowed_service_request_fields(current_user)
    if current_user.role == UserRole.TENANT and request.status != ServiceRequestStatus.SUBMITTED:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only update service requests that are still in submitted status",
        )
    if not await _can_view(db, request, prop, current_user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have access to update this service request",
        )

    update_data = data.model_dump(exclude_unset=True)
    check_update_fields(update_data.keys(), allowed)

    old_status = request.status
    for field, value in update_data.items():
        setattr(request, field, value)
    if "review_notes" in update_data or ("status" in update_data and request.status != old_status):
        request.reviewed_at = datetime.utcnow()
    await db.flush()

    if request.status != old_status and request.requested_by_id != current_user.id:
        await NotificationService(db).service_request_status_changed(request)

    await commit_and_notify(db)
    await db.refresh(request)

    await cache.invalidate_property_activity(prop.id)
    return ServiceRequestResponse.model_validate(request)


@router.post("/{request_id}/convert-to-job", response_model=ConvertToJobResponse)
async def convert_to_job(
    request_id: UUID,
    data: ConvertToJobRequest,
    db: AsyncSession = Depends(get_db),
    cache: CacheService = Depends(get_cache),
    current_user: User = Depends(require_manager),
):
    """Create a job from the request and mark the request converted, atomically."""
    request = await _load(db, request_id)
    prop = await get_managed_property(db, request.property_id, current_user)

    if request.status == ServiceRequestStatus.CONVERTED_TO_JOB:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Service request has already been converted to a job",
        )
    if data.assigned_to_id:
        await get_technician(db, data.assigned_to_id)

    job = Job(
        property_id=request.property_id,
        unit_id=request.unit_id,
        title=request.title,
        description=request.description,
        status=JobStatus.ASSIGNED if data.assigned_to_id else JobStatus.OPEN,
        priority=request.priority,
        scheduled_date=data.scheduled_date,
        assigned_to_id=data.assigned_to_id,
        estimated_cost=data.estimated_cost,
        notes=data.notes or f"Converted from service request #{request.id}",
        created_by_id=current_user.id,
        service_request_id=request.id,
    )
    db.add(job)
    await db.flush()

    request.status = ServiceRequestStatus.CONVERTED_TO_JOB
    request.review_notes = f"Converted to job #{job.id}"
    request.reviewed_at = datetime.utcnow()

    await AuditService(db).log_service_request_converted(request.id, job.id, current_user.id)
    notifications = NotificationService(db)
    if job.assigned_to_id:
        await notifications.job_assigned(job, job.assigned_to_id, prop.name)
    if request.requested_by_id != current_user.id:
        await notifications.service_request_status_changed(request)

    await commit_and_notify(db)
    await db.refresh(job)
    await db.refresh(request)

    await cache.invalidate_property_activity(prop.id)
    return ConvertToJobResponse(
        job=JobResponse.model_validate(job),
        service_request=ServiceRequestResponse.model_validate(request),
    )
