"""User directory router (technician/tenant/owner pickers)."""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.access import managed_property_ids
from app.core.database import get_db
from app.core.security import require_manager
from app.models.enums import UserRole
from app.models.jobs import Job
from app.models.property import PropertyOwner, Unit, UnitTenant
from app.models.user import User
from app.schemas.auth import UserSummary

router = APIRouter(prefix="/users", tags=["users"])


def related_user_ids(manager: User, role: UserRole):
    """Subquery of users with `role` connected to the manager's portfolio."""
    properties = managed_property_ids(manager.id)

    if role == UserRole.OWNER:
        return select(PropertyOwner.owner_id).where(PropertyOwner.property_id.in_(properties))

    if role == UserRole.TENANT:
        return (
            select(UnitTenant.tenant_id)
            .join(Unit, Unit.id == UnitTenant.unit_id)
            .where(Unit.property_id.in_(properties), UnitTenant.is_active.is_(True))
        )

    if role == UserRole.TECHNICIAN:
        assigned = select(Job.assigned_to_id).where(
            Job.property_id.in_(properties), Job.assigned_to_id.is_not(None)
        )
        conditions = [User.id.in_(assigned)]
        if manager.org_id is not None:
            conditions.append(User.org_id == manager.org_id)
        return select(User.id).where(User.role == UserRole.TECHNICIAN, or_(*conditions))

    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail="role must be one of OWNER, TENANT, TECHNICIAN",
    )


@router.get("", response_model=List[UserSummary])
async def list_users(
    role: UserRole = Query(...),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_manager),
):
    """Owners and tenants of the caller's properties, or technicians they work with."""
    result = await db.execute(
        select(User)
        .where(
            User.id.in_(related_user_ids(current_user, role)),
            User.role == role,
            User.is_active.is_(True),
        )
        .order_by(User.first_name, User.last_name, User.email)
    )
    return [UserSummary.model_validate(u) for u in result.scalars().all()]
