"""Job schemas."""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import Field

from app.schemas.auth import UserSummary
from app.schemas.base import BaseSchema, IDMixin, TimestampMixin, reject_null
from app.models.enums import JobStatus, Priority


class EvidenceItem(BaseSchema):
    url: str = Field(..., max_length=1024)
    caption: Optional[str] = Field(None, max_length=255)


class JobCreate(BaseSchema):
    """Create a new job."""

    property_id: UUID
    unit_id: Optional[UUID] = None
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    priority: Priority = Priority.MEDIUM
    scheduled_date: Optional[datetime] = None
    assigned_to_id: Optional[UUID] = None
    estimated_cost: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = None


class JobUpdate(BaseSchema):
    """Partial job update; the fields a caller may send depend on their role."""

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    status: Optional[JobStatus] = None
    priority: Optional[Priority] = None
    scheduled_date: Optional[datetime] = None
    assigned_to_id: Optional[UUID] = None
    estimated_cost: Optional[float] = Field(None, ge=0)
    actual_cost: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = None
    evidence: Optional[list[EvidenceItem]] = None

    check_not_null = reject_null("title", "status", "priority")


class JobResponse(BaseSchema, IDMixin, TimestampMixin):
    """Job response."""

    property_id: UUID
    unit_id: Optional[UUID] = None
    title: str
    description: Optional[str] = None
    status: JobStatus
    priority: Priority
    scheduled_date: Optional[datetime] = None
    completed_date: Optional[datetime] = None
    assigned_to_id: Optional[UUID] = None
    created_by_id: Optional[UUID] = None
    estimated_cost: Optional[float] = None
    actual_cost: Optional[float] = None
    notes: Optional[str] = None
    evidence: Optional[list[dict[str, Any]]] = None
    service_request_id: Optional[UUID] = None
    maintenance_plan_id: Optional[UUID] = None


class JobCommentCreate(BaseSchema):
    content: str = Field(..., min_length=1, max_length=5000)


class JobCommentResponse(BaseSchema, IDMixin, TimestampMixin):
    job_id: UUID
    user_id: UUID
    content: str
    author: Optional[UserSummary] = None
