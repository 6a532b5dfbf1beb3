"""Inspections router."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.access import (
    INSPECTION_TECHNICIAN_FIELDS,
    check_update_fields,
    get_managed_property,
    get_property_or_404,
    get_unit_in_property,
    managed_property_ids,
    owned_property_ids,
    tenant_unit_ids,
)
from app.core.cache import CacheService, get_cache
from app.core.database import get_db
from app.core.security import get_current_user, require_manager
from app.models.enums import InspectionStatus, UserRole
from app.models.inspection import Inspection
from app.models.property import Property
from app.models.user import User
from app.schemas.base import MessageResponse
from app.schemas.inspection import (
    InspectionComplete,
    InspectionCreate,
    InspectionResponse,
    InspectionUpdate,
)
from app.services.notifications import NotificationService, commit_and_notify

router = APIRouter(prefix="/inspections", tags=["inspections"])


def inspection_scope(user: User):
    if user.role == UserRole.PROPERTY_MANAGER:
        return Inspection.property_id.in_(managed_property_ids(user.id))
    if user.role == UserRole.OWNER:
        return Inspection.property_id.in_(owned_property_ids(user.id))
    if user.role == UserRole.TECHNICIAN:
        return Inspection.assigned_to_id == user.id
    if user.role == UserRole.TENANT:
        return Inspection.unit_id.in_(tenant_unit_ids(user.id))
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")


async def _load(db: AsyncSession, inspection_id: UUID) -> Inspection:
    inspection = await db.get(Inspection, inspection_id)
    if not inspection:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Inspection not found")
    return inspection


async def _check_inspector(db: AsyncSession, user_id: UUID) -> User:
    inspector = await db.get(User, user_id)
    if not inspector:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Assigned user not found")
    if inspector.role not in (UserRole.TECHNICIAN, UserRole.PROPERTY_MANAGER):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Inspections can only be assigned to technicians or property managers",
        )
    return inspector


def _can_work_on(inspection: Inspection, prop: Property, user: User) -> bool:
    if user.role == UserRole.PROPERTY_MANAGER:
        return prop.manager_id == user.id
    if user.role == UserRole.TECHNICIAN:
        return inspection.assigned_to_id == user.id
    return False


@router.get("", response_model=List[InspectionResponse])
async def list_inspections(
    status_filter: Optional[InspectionStatus] = Query(None, alias="status"),
    property_id: Optional[UUID] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    query = select(Inspection).where(inspection_scope(current_user))
    if status_filter:
        query = query.where(Inspection.status == status_filter)
    if property_id:
        query = query.where(Inspection.property_id == property_id)

    result = await db.execute(query.order_by(Inspection.scheduled_date.desc()))
    return [InspectionResponse.model_validate(i) for i in result.scalars().all()]


@router.post("", response_model=InspectionResponse, status_code=status.HTTP_201_CREATED)
async def create_inspection(
    data: InspectionCreate,
    db: AsyncSession = Depends(get_db),
    cache: CacheService = Depends(get_cache),
    current_user: User = Depends(require_manager),
):
    """Schedule an inspection on a managed property."""
    prop = await get_managed_property(db, data.property_id, current_user)
    if data.unit_id:
        await get_unit_in_property(db, data.unit_id, prop.id)
    if data.assigned_to_id:
        await _check_inspector(db, data.assigned_to_id)

    inspection = Inspection(
        **data.model_dump(),
        status=InspectionStatus.SCHEDULED,
        created_by_id=current_user.id,
    )
    db.add(inspection)
    await db.flush()

    if inspection.assigned_to_id and inspection.assigned_to_id != current_user.id:
        await NotificationService(db).inspection_scheduled(inspection, inspection.assigned_to_id, prop.name)

    await commit_and_notify(db)
    await db.refresh(inspection)

    await cache.invalidate_property_activity(prop.id)
    return InspectionResponse.model_validate(inspection)


@router.get("/{inspection_id}", response_model=InspectionResponse)
async def get_inspection(
    inspection_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    inspection = await _load(db, inspection_id)
    visible = await db.execute(
        select(Inspection.id).where(Inspection.id == inspection_id, inspection_scope(current_user))
    )
    if visible.first() is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
    return InspectionResponse.model_validate(inspection)


@router.patch("/{inspection_id}", response_model=InspectionResponse)
async def update_inspection(
    inspection_id: UUID,
    data: InspectionUpdate,
    db: AsyncSession = Depends(get_db),
    cache: CacheService = Depends(get_cache),
    current_user: User = Depends(get_current_user),
):
    inspection = await _load(db, inspection_id)
    prop = await get_property_or_404(db, inspection.property_id)
    if not _can_work_on(inspection, prop, current_user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")

    update_data = data.model_dump(exclude_unset=True)
    if current_user.role == UserRole.TECHNICIAN:
        check_update_fields(update_data.keys(), INSPECTION_TECHNICIAN_FIELDS, "Technicians can only update")

    new_assignee = update_data.get("assigned_to_id")
    reassigned = new_assignee is not None and new_assignee != inspection.assigned_to_id
    if reassigned:
        await _check_inspector(db, new_assignee)

    was_completed = inspection.status == InspectionStatus.COMPLETED
    for field, value in update_data.items():
        setattr(inspection, field, value)
    if inspection.status == InspectionStatus.COMPLETED and inspection.completed_date is None:
        inspection.completed_date = datetime.utcnow()
    await db.flush()

    notifications = NotificationService(db)
    if reassigned and new_assignee != current_user.id:
        await notifications.inspection_scheduled(inspection, new_assignee, prop.name)
    if inspection.status == InspectionStatus.COMPLETED and not was_completed and current_user.id != prop.manager_id:
        await notifications.inspection_completed(inspection, prop)

    await commit_and_notify(db)
    await db.refresh(inspection)

    await cache.invalidate_property_activity(prop.id)
    return InspectionResponse.model_validate(inspection)


@router.post("/{inspection_id}/complete", response_model=InspectionResponse)
async def complete_inspection(
    inspection_id: UUID,
    data: InspectionComplete,
    db: AsyncSession = Depends(get_db),
    cache: CacheService = Depends(get_cache),
    current_user: User = Depends(get_current_user),
):
    inspection = await _load(db, inspection_id)
    prop = await get_property_or_404(db, inspection.property_id)
    if not _can_work_on(inspection, prop, current_user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
    if inspection.status in (InspectionStatus.COMPLETED, InspectionStatus.CANCELLED):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Inspection is already {inspection.status.value.lower()}",
        )

    inspection.status = InspectionStatus.COMPLETED
    inspection.completed_date = datetime.utcnow()
    if data.findings is not None:
        inspection.findings = data.findings
    if data.notes is not None:
        inspection.notes = data.notes
    await db.flush()

    if current_user.id != prop.manager_id:
        await NotificationService(db).inspection_completed(inspection, prop)

    await commit_and_notify(db)
    await db.refresh(inspection)

    await cache.invalidate_property_activity(prop.id)
    return InspectionResponse.model_validate(inspection)


@router.delete("/{inspection_id}", response_model=MessageResponse)
async def delete_inspection(
    inspection_id: UUID,
    db: AsyncSession = Depends(get_db),
    cache: CacheService = Depends(get_cache),
    current_user: User = Depends(require_manager),
):
    inspection = await _load(db, inspection_id)
    await get_managed_property(db, inspection.property_id, current_user)

    property_id = inspection.property_id
    await db.delete(inspection)
    await db.commit()

    await cache.invalidate_property_activity(property_id)
    return MessageResponse(message="Inspection deleted successfully")
