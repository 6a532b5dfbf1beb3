"""Invite schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import EmailStr, field_validator

from app.schemas.auth import UserSummary
from app.schemas.base import BaseSchema, IDMixin
from app.models.enums import InviteStatus, UserRole

INVITABLE_ROLES = (UserRole.OWNER, UserRole.TECHNICIAN, UserRole.TENANT)


class InviteCreate(BaseSchema):
    """Invite an owner, technician or tenant by email."""

    email: EmailStr
    role: UserRole
    property_id: Optional[UUID] = None
    unit_id: Optional[UUID] = None

    @field_validator("role")
    @classmethod
    def invitable_role(cls, value: UserRole) -> UserRole:
        if value not in INVITABLE_ROLES:
            raise ValueError("role must be one of OWNER, TECHNICIAN, TENANT")
        return value


class InviteResponse(BaseSchema, IDMixin):
    email: str
    role: UserRole
    status: InviteStatus
    expires_at: datetime
    created_at: datetime
    property_id: Optional[UUID] = None
    property_name: Optional[str] = None
    unit_id: Optional[UUID] = None
    unit_number: Optional[str] = None
    invited_user: Optional[UserSummary] = None


class InviteCreated(InviteResponse):
    signup_url: str


class InviteDetails(BaseSchema):
    """Public view of a pending invite, shown on the signup page."""

    email: str
    role: UserRole
    invited_by: UserSummary
    property_id: Optional[UUID] = None
    property_name: Optional[str] = None
    unit_id: Optional[UUID] = None
    unit_number: Optional[str] = None
