"""Role-scoped resource access rules.

Every router resolves "which properties can this user see" and "which
fields may this role change" through the helpers here, so that the rules
for the four customer roles live in one place.
"""

from typing import Iterable, Optional
from uuid import UUID

from fastapi import status
from sqlalchemy import select, Select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ApiError, not_found
from app.models.enums import UserRole
from app.models.jobs import Job
from app.models.property import Property, PropertyOwner, Unit, UnitTenant
from app.models.user import User

JOB_TECHNICIAN_FIELDS = ("status", "notes", "actual_cost", "evidence")

SERVICE_REQUEST_UPDATE_FIELDS: dict[UserRole, tuple[str, ...]] = {
    UserRole.PROPERTY_MANAGER: ("status", "priority", "title", "description", "review_notes"),
    UserRole.OWNER: ("status", "priority", "review_notes"),
    UserRole.TENANT: ("title", "description"),
}

INSPECTION_TECHNICIAN_FIELDS = ("status", "notes", "findings")


def managed_property_ids(user_id: UUID) -> Select:
    return select(Property.id).where(Property.manager_id == user_id)


def owned_property_ids(user_id: UUID) -> Select:
    return select(PropertyOwner.property_id).where(PropertyOwner.owner_id == user_id)


def tenant_property_ids(user_id: UUID) -> Select:
    return (
        select(Unit.property_id)
        .join(UnitTenant, UnitTenant.unit_id == Unit.id)
        .where(UnitTenant.tenant_id == user_id, UnitTenant.is_active.is_(True))
    )


def tenant_unit_ids(user_id: UUID) -> Select:
    return select(UnitTenant.unit_id).where(
        UnitTenant.tenant_id == user_id,
        UnitTenant.is_active.is_(True),
    )


def technician_property_ids(user_id: UUID) -> Select:
    return select(Job.property_id).where(Job.assigned_to_id == user_id)


def accessible_property_ids(user: User) -> Optional[Select]:
    """Subquery of property ids visible to the user, or None for no access."""
    if user.role == UserRole.PROPERTY_MANAGER:
        return managed_property_ids(user.id)
    if user.role == UserRole.OWNER:
        return owned_property_ids(user.id)
    if user.role == UserRole.TENANT:
        return tenant_property_ids(user.id)
    if user.role == UserRole.TECHNICIAN:
        return technician_property_ids(user.id)
    return None


async def is_property_owner(db: AsyncSession, property_id: UUID, user_id: UUID) -> bool:
    result = await db.execute(
        select(PropertyOwner.id).where(
            PropertyOwner.property_id == property_id,
            PropertyOwner.owner_id == user_id,
        )
    )
    return result.first() is not None


async def can_view_property(db: AsyncSession, prop: Property, user: User) -> bool:
    """Managers and owners see the whole property; tenants and technicians a subset."""
    if user.role == UserRole.PROPERTY_MANAGER:
        return prop.manager_id == user.id
    if user.role == UserRole.OWNER:
        return await is_property_owner(db, prop.id, user.id)
    scope = accessible_property_ids(user)
    if scope is None:
        return False
    result = await db.execute(
        select(Property.id).where(Property.id == prop.id, Property.id.in_(scope))
    )
    return result.first() is not None


async def get_property_or_404(db: AsyncSession, property_id: UUID) -> Property:
    result = await db.execute(select(Property).where(Property.id == property_id))
    prop = result.scalar_one_or_none()
    if not prop:
        raise not_found("Property")
    return prop


async def get_managed_property(db: AsyncSession, property_id: UUID, user: User) -> Property:
    """Load a property the user manages (404 if missing, 403 otherwise)."""
    prop = await get_property_or_404(db, property_id)
    if user.role != UserRole.PROPERTY_MANAGER or prop.manager_id != user.id:
        raise ApiError(status.HTTP_403_FORBIDDEN, "You do not manage this property")
    return prop


async def get_viewable_property(db: AsyncSession, property_id: UUID, user: User) -> Property:
    """Load a property the user manages or owns."""
    prop = await get_property_or_404(db, property_id)
    if user.role == UserRole.PROPERTY_MANAGER and prop.manager_id == user.id:
        return prop
    if user.role == UserRole.OWNER and await is_property_owner(db, prop.id, user.id):
        return prop
    raise ApiError(status.HTTP_403_FORBIDDEN, "You do not have access to this property")


async def get_unit_in_property(db: AsyncSession, unit_id: UUID, property_id: UUID) -> Unit:
    """A unit referenced together with a property must belong to it."""
    result = await db.execute(select(Unit).where(Unit.id == unit_id))
    unit = result.scalar_one_or_none()
    if not unit:
        raise not_found("Unit")
    if unit.property_id != property_id:
        raise ApiError(status.HTTP_400_BAD_REQUEST, "Unit does not belong to the specified property")
    return unit


async def get_technician(db: AsyncSession, user_id: UUID) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise ApiError(status.HTTP_404_NOT_FOUND, "Assigned user not found")
    if user.role != UserRole.TECHNICIAN:
        raise ApiError(status.HTTP_400_BAD_REQUEST, "Jobs can only be assigned to technicians")
    return user


def check_update_fields(
    requested: Iterable[str],
    allowed: Iterable[str],
    message_prefix: str = "You can only update the following fields",
) -> None:
    """Reject updates touching fields outside the role's allow-list."""
    allowed = tuple(allowed)
    disallowed = [field for field in requested if field not in allowed]
    if disallowed:
        raise ApiError(
            status.HTTP_403_FORBIDDEN,
            f"{message_prefix}: {', '.join(allowed)}",
        )


def check_job_update(job: Job, prop: Property, user: User, fields: Iterable[str]) -> None:
    """Technicians touch only their own jobs and a few fields; managers only their properties."""
    if user.role == UserRole.TECHNICIAN:
        if job.assigned_to_id != user.id:
            raise ApiError(status.HTTP_403_FORBIDDEN, "You can only update jobs assigned to you")
        check_update_fields(fields, JOB_TECHNICIAN_FIELDS, "Technicians can only update")
    elif user.role == UserRole.PROPERTY_MANAGER:
        if prop.manager_id != user.id:
            raise ApiError(status.HTTP_403_FORBIDDEN, "You can only update jobs for your properties")
    else:
        raise ApiError(status.HTTP_403_FORBIDDEN, "Access denied")


def allowed_service_request_fields(user: User) -> tuple[str, ...]:
    if user.role == UserRole.TECHNICIAN:
        raise ApiError(status.HTTP_403_FORBIDDEN, "Technicians cannot update service requests directly")
    return SERVICE_REQUEST_UPDATE_FIELDS.get(user.role, ())
