"""Units and tenancies nested under a property."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.access import (
    get_managed_property,
    get_property_or_404,
    get_unit_in_property,
    get_viewable_property,
    is_property_owner,
)
from app.core.cache import CacheService, get_cache
from app.core.database import get_db
from app.core.security import get_current_user, require_manager
from app.models.enums import AuditAction, UnitStatus, UserRole
from app.models.property import Unit, UnitTenant
from app.models.user import User
from app.routers.properties import invalidate_property
from app.schemas.base import MessageResponse
from app.schemas.property import TenancyResponse, TenantAssign, UnitCreate, UnitResponse, UnitUpdate
from app.services.audit import AuditService

router = APIRouter(prefix="/properties/{property_id}/units", tags=["units"])


async def _ensure_unit_number_free(
    db: AsyncSession,
    property_id: UUID,
    unit_number: str,
    exclude_id: Optional[UUID] = None,
) -> None:
    query = select(Unit.id).where(Unit.property_id == property_id, Unit.unit_number == unit_number)
    if exclude_id:
        query = query.where(Unit.id != exclude_id)
    if (await db.execute(query)).first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Unit number already exists for this property",
        )


async def _has_active_tenancy(db: AsyncSession, unit_id: UUID, tenant_id: UUID) -> bool:
    result = await db.execute(
        select(UnitTenant.id).where(
            UnitTenant.unit_id == unit_id,
            UnitTenant.tenant_id == tenant_id,
            UnitTenant.is_active.is_(True),
        )
    )
    return result.first() is not None


@router.get("", response_model=List[UnitResponse])
async def list_units(
    property_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    await get_viewable_property(db, property_id, current_user)
    result = await db.execute(
        select(Unit).where(Unit.property_id == property_id).order_by(Unit.unit_number)
    )
    return [UnitResponse.model_validate(u) for u in result.scalars().all()]


@router.post("", response_model=UnitResponse, status_code=status.HTTP_201_CREATED)
async def create_unit(
    property_id: UUID,
    data: UnitCreate,
    db: AsyncSession = Depends(get_db),
    cache: CacheService = Depends(get_cache),
    current_user: User = Depends(require_manager),
):
    prop = await get_managed_property(db, property_id, current_user)
    await _ensure_unit_number_free(db, property_id, data.unit_number)

    unit = Unit(property_id=property_id, **data.model_dump())
    db.add(unit)
    await db.commit()
    await db.refresh(unit)

    await invalidate_property(db, cache, prop, current_user)
    return UnitResponse.model_validate(unit)


@router.get("/{unit_id}", response_model=UnitResponse)
async def get_unit(
    property_id: UUID,
    unit_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Managers, owners and the unit's active tenants may view a unit."""
    prop = await get_property_or_404(db, property_id)
    unit = await get_unit_in_property(db, unit_id, property_id)

    if current_user.role == UserRole.PROPERTY_MANAGER and prop.manager_id == current_user.id:
        allowed = True
    elif current_user.role == UserRole.OWNER:
        allowed = await is_property_owner(db, property_id, current_user.id)
    elif current_user.role == UserRole.TENANT:
        allowed = await _has_active_tenancy(db, unit.id, current_user.id)
    else:
        allowed = False
    if not allowed:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")

    return UnitResponse.model_validate(unit)


@router.patch("/{unit_id}", response_model=UnitResponse)
async def update_unit(
    property_id: UUID,
    unit_id: UUID,
    data: UnitUpdate,
    db: AsyncSession = Depends(get_db),
    cache: CacheService = Depends(get_cache),
    current_user: User = Depends(require_manager),
):
    prop = await get_managed_property(db, property_id, current_user)
    unit = await get_unit_in_property(db, unit_id, property_id)

    update_data = data.model_dump(exclude_unset=True)
    if update_data.get("unit_number") and update_data["unit_number"] != unit.unit_number:
        await _ensure_unit_number_free(db, property_id, update_data["unit_number"], exclude_id=unit.id)

    for field, value in update_data.items():
        setattr(unit, field, value)

    await db.commit()
    await db.refresh(unit)

    await invalidate_property(db, cache, prop, current_user)
    return UnitResponse.model_validate(unit)


@router.delete("/{unit_id}", response_model=MessageResponse)
async def delete_unit(
    property_id: UUID,
    unit_id: UUID,
    db: AsyncSession = Depends(get_db),
    cache: CacheService = Depends(get_cache),
    current_user: User = Depends(require_manager),
):
    prop = await get_managed_property(db, property_id, current_user)
    unit = await get_unit_in_property(db, unit_id, property_id)

    await db.delete(unit)
    await db.commit()

    await invalidate_property(db, cache, prop, current_user)
    return MessageResponse(message="Unit deleted successfully")


# =============================================================================
# Tenancies
# =============================================================================

@router.get("/{unit_id}/tenants", response_model=List[TenancyResponse])
async def list_tenants(
    property_id: UUID,
    unit_id: UUID,
    include_inactive: bool = False,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    await get_viewable_property(db, property_id, current_user)
    await get_unit_in_property(db, unit_id, property_id)

    query = select(UnitTenant).where(UnitTenant.unit_id == unit_id)
    if not include_inactive:
        query = query.where(UnitTenant.is_active.is_(True))
    result = await db.execute(query.order_by(UnitTenant.lease_start.desc()))
    return [TenancyResponse.model_validate(t) for t in result.scalars().all()]


@router.post("/{unit_id}/tenants", response_model=TenancyResponse, status_code=status.HTTP_201_CREATED)
async def assign_tenant(
    property_id: UUID,
    unit_id: UUID,
    data: TenantAssign,
    db: AsyncSession = Depends(get_db),
    cache: CacheService = Depends(get_cache),
    current_user: User = Depends(require_manager),
):
    """Start a tenancy; the unit becomes OCCUPIED."""
    prop = await get_managed_property(db, property_id, current_user)
    unit = await get_unit_in_property(db, unit_id, property_id)

    tenant = await db.get(User, data.tenant_id)
    if not tenant:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tenant not found")
    if tenant.role != UserRole.TENANT:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User is not a tenant")
    if await _has_active_tenancy(db, unit.id, tenant.id):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Tenant is already assigned to this unit")

    tenancy = UnitTenant(
        unit_id=unit.id,
        tenant_id=tenant.id,
        lease_start=data.lease_start,
        lease_end=data.lease_end,
        rent_amount=data.rent_amount if data.rent_amount is not None else unit.rent_amount,
        deposit_amount=data.deposit_amount,
        is_active=True,
    )
    db.add(tenancy)
    unit.status = UnitStatus.OCCUPIED
    await db.flush()

    await AuditService(db).log(
        action=AuditAction.TENANT_ASSIGNED,
        resource_type="unit",
        resource_id=unit.id,
        org_id=prop.org_id,
        user_id=current_user.id,
        details={"tenant_id": str(tenant.id)},
    )
    await db.commit()
    await db.refresh(tenancy)

    await invalidate_property(db, cache, prop, current_user)
    return TenancyResponse.model_validate(tenancy)


@router.delete("/{unit_id}/tenants/{tenancy_id}", response_model=TenancyResponse)
async def end_tenancy(
    property_id: UUID,
    unit_id: UUID,
    tenancy_id: UUID,
    db: AsyncSession = Depends(get_db),
    cache: CacheService = Depends(get_cache),
    current_user: User = Depends(require_manager),
):
    """End a tenancy; the unit becomes VACANT when no active tenancy remains."""
    prop = await get_managed_property(db, property_id, current_user)
    unit = await get_unit_in_property(db, unit_id, property_id)

    tenancy = await db.get(UnitTenant, tenancy_id)
    if not tenancy or tenancy.unit_id != unit.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tenancy not found")
    if not tenancy.is_active:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Tenancy has already ended")

    tenancy.is_active = False
    if tenancy.lease_end is None or tenancy.lease_end > datetime.utcnow():
        tenancy.lease_end = datetime.utcnow()
    await db.flush()

    remaining = await db.execute(
        select(UnitTenant.id).where(UnitTenant.unit_id == unit.id, UnitTenant.is_active.is_(True))
    )
    if remaining.first() is None:
        unit.status = UnitStatus.VACANT

    await AuditService(db).log(
        action=AuditAction.TENANT_REMOVED,
        resource_type="unit",
        resource_id=unit.id,
        org_id=prop.org_id,
        user_id=current_user.id,
        details={"tenant_id": str(tenancy.tenant_id)},
    )
    await db.commit()
    await db.refresh(tenancy)

    await invalidate_property(db, cache, prop, current_user)
    return TenancyResponse.model_validate(tenancy)
