"""Maintenance plans router."""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.access import get_managed_property, managed_property_ids, owned_property_ids
from app.core.database import get_db
from app.core.security import get_current_user, require_manager
from app.models.enums import MaintenanceFrequency, UserRole
from app.models.maintenance import MaintenancePlan
from app.models.user import User
from app.schemas.base import MessageResponse
from app.schemas.maintenance import PlanCreate, PlanResponse, PlanUpdate

router = APIRouter(prefix="/plans", tags=["plans"])


def plan_scope(user: User):
    if user.role == UserRole.PROPERTY_MANAGER:
        return MaintenancePlan.property_id.in_(managed_property_ids(user.id))
    if user.role == UserRole.OWNER:
        return MaintenancePlan.property_id.in_(owned_property_ids(user.id))
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")


async def _load(db: AsyncSession, plan_id: UUID) -> MaintenancePlan:
    plan = await db.get(MaintenancePlan, plan_id)
    if not plan:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Maintenance plan not found")
    return plan


@router.get("", response_model=List[PlanResponse])
async def list_plans(
    property_id: Optional[UUID] = None,
    frequency: Optional[MaintenanceFrequency] = None,
    is_active: Optional[bool] = None,
    search: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    query = select(MaintenancePlan).where(plan_scope(current_user))
    if property_id:
        query = query.where(MaintenancePlan.property_id == property_id)
    if frequency:
        query = query.where(MaintenancePlan.frequency == frequency)
    if is_active is not None:
        query = query.where(MaintenancePlan.is_active.is_(is_active))
    if search:
        pattern = f"%{search.strip()}%"
        query = query.where(
            or_(MaintenancePlan.name.ilike(pattern), MaintenancePlan.description.ilike(pattern))
        )

    result = await db.execute(query.order_by(MaintenancePlan.next_due_date))
    return [PlanResponse.model_validate(p) for p in result.scalars().all()]


@router.post("", response_model=PlanResponse, status_code=status.HTTP_201_CREATED)
async def create_plan(
    data: PlanCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_manager),
):
    await get_managed_property(db, data.property_id, current_user)

    plan = MaintenancePlan(**data.model_dump())
    db.add(plan)
    await db.commit()
    await db.refresh(plan)
    return PlanResponse.model_validate(plan)


@router.get("/{plan_id}", response_model=PlanResponse)
async def get_plan(
    plan_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    plan = await _load(db, plan_id)
    visible = await db.execute(
        select(MaintenancePlan.id).where(MaintenancePlan.id == plan_id, plan_scope(current_user))
    )
    if visible.first() is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
    return PlanResponse.model_validate(plan)


@router.patch("/{plan_id}", response_model=PlanResponse)
async def update_plan(
    plan_id: UUID,
    data: PlanUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_manager),
):
    plan = await _load(db, plan_id)
    await get_managed_property(db, plan.property_id, current_user)

    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(plan, field, value)

    await db.commit()
    await db.refresh(plan)
    return PlanResponse.model_validate(plan)


@router.delete("/{plan_id}", response_model=MessageResponse)
async def delete_plan(
    plan_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_manager),
):
    plan = await _load(db, plan_id)
    await get_managed_property(db, plan.property_id, current_user)

    await db.delete(plan)
    await db.commit()
    return MessageResponse(message="Maintenance plan deleted successfully")
