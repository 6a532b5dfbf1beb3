"""Service request schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field

from app.schemas.base import BaseSchema, IDMixin, TimestampMixin, reject_null
from app.schemas.job import JobResponse
from app.models.enums import Priority, ServiceRequestStatus, ServiceRequestCategory


class ServiceRequestCreate(BaseSchema):
    property_id: UUID
    unit_id: Optional[UUID] = None
    title: str = Field(..., min_length=3, max_length=255)
    description: str = Field(..., min_length=10)
    category: ServiceRequestCategory = ServiceRequestCategory.GENERAL
    priority: Priority = Priority.MEDIUM
    photos: Optional[list[str]] = None


class ServiceRequestUpdate(BaseSchema):
    status: Optional[ServiceRequestStatus] = None
    priority: Optional[Priority] = None
    title: Optional[str] = Field(None, min_length=3, max_length=255)
    description: Optional[str] = Field(None, min_length=10)
    review_notes: Optional[str] = None

    check_not_null = reject_null("status", "priority", "title", "description")


class ConvertToJobRequest(BaseSchema):
    scheduled_date: Optional[datetime] = None
    assigned_to_id: Optional[UUID] = None
    estimated_cost: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = None


class ServiceRequestResponse(BaseSchema, IDMixin, TimestampMixin):
    property_id: UUID
    unit_id: Optional[UUID] = None
    requested_by_id: UUID
    title: str
    description: str
    category: ServiceRequestCategory
    priority: Priority
    status: ServiceRequestStatus
    photos: Optional[list[str]] = None
    review_notes: Optional[str] = None
    reviewed_at: Optional[datetime] = None


class ConvertToJobResponse(BaseSchema):
    job: JobResponse
    service_request: ServiceRequestResponse
