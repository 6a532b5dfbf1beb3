"""Maintenance plan schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field

from app.schemas.base import BaseSchema, IDMixin, TimestampMixin, reject_null
from app.models.enums import MaintenanceFrequency


class PlanCreate(BaseSchema):
    """Create a recurring maintenance plan."""

    property_id: UUID
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    frequency: MaintenanceFrequency
    next_due_date: datetime
    auto_create_jobs: bool = True
    is_active: bool = True


class PlanUpdate(BaseSchema):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    frequency: Optional[MaintenanceFrequency] = None
    next_due_date: Optional[datetime] = None
    auto_create_jobs: Optional[bool] = None
    is_active: Optional[bool] = None

    check_not_null = reject_null("name", "frequency", "next_due_date", "auto_create_jobs", "is_active")


class PlanResponse(BaseSchema, IDMixin, TimestampMixin):
    property_id: UUID
    name: str
    description: Optional[str] = None
    frequency: MaintenanceFrequency
    next_due_date: datetime
    last_completed_date: Optional[datetime] = None
    auto_create_jobs: bool
    is_active: bool
