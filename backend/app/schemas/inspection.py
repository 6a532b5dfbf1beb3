"""Inspection schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field

from app.schemas.base import BaseSchema, IDMixin, TimestampMixin, reject_null
from app.models.enums import InspectionType, InspectionStatus


class InspectionCreate(BaseSchema):
    """Schedule an inspection."""

    property_id: UUID
    unit_id: Optional[UUID] = None
    title: str = Field(..., min_length=1, max_length=255)
    inspection_type: InspectionType = InspectionType.ROUTINE
    scheduled_date: datetime
    assigned_to_id: Optional[UUID] = None
    notes: Optional[str] = None


class InspectionUpdate(BaseSchema):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    inspection_type: Optional[InspectionType] = None
    status: Optional[InspectionStatus] = None
    scheduled_date: Optional[datetime] = None
    assigned_to_id: Optional[UUID] = None
    notes: Optional[str] = None
    findings: Optional[str] = None

    check_not_null = reject_null("title", "inspection_type", "status", "scheduled_date")


class InspectionComplete(BaseSchema):
    findings: Optional[str] = None
    notes: Optional[str] = None


class InspectionResponse(BaseSchema, IDMixin, TimestampMixin):
    """Inspection response."""

    property_id: UUID
    unit_id: Optional[UUID] = None
    title: str
    inspection_type: InspectionType
    status: InspectionStatus
    scheduled_date: datetime
    completed_date: Optional[datetime] = None
    assigned_to_id: Optional[UUID] = None
    created_by_id: Optional[UUID] = None
    notes: Optional[str] = None
    findings: Optional[str] = None
