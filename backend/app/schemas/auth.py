"""Registration and current-user schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import EmailStr, Field, field_validator

from app.schemas.base import BaseSchema, IDMixin, TimestampMixin
from app.models.enums import UserRole, SubscriptionStatus, SubscriptionPlan


class RegisterRequest(BaseSchema):
    """Create the local account for a verified Firebase identity."""

    role: UserRole = UserRole.PROPERTY_MANAGER
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=50)
    email: Optional[EmailStr] = None
    company_name: Optional[str] = Field(None, max_length=255)
    invite_token: Optional[str] = Field(None, max_length=64)

    @field_validator("role")
    @classmethod
    def no_admin_self_registration(cls, value: UserRole) -> UserRole:
        if value == UserRole.ADMIN:
            raise ValueError("ADMIN accounts cannot be self-registered")
        return value


class ProfileUpdate(BaseSchema):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=50)


class UserSummary(BaseSchema, IDMixin):
    """Compact user shape embedded in other responses."""

    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: UserRole


class CurrentUserResponse(BaseSchema, IDMixin, TimestampMixin):
    """Current user with role and subscription context."""

    firebase_uid: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    role: UserRole
    org_id: Optional[UUID] = None
    is_active: bool
    subscription_status: SubscriptionStatus
    subscription_plan: SubscriptionPlan
    trial_end_date: Optional[datetime] = None
    subscription_end_date: Optional[datetime] = None
