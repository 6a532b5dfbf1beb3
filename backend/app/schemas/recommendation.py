"""Recommendation schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field

from app.schemas.base import BaseSchema, IDMixin, TimestampMixin
from app.models.enums import Priority, RecommendationStatus


class RecommendationCreate(BaseSchema):
    property_id: UUID
    inspection_id: Optional[UUID] = None
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    priority: Priority = Priority.MEDIUM
    estimated_cost: Optional[float] = Field(None, ge=0)


class RecommendationReject(BaseSchema):
    rejection_reason: Optional[str] = Field(None, max_length=2000)


class RecommendationResponse(BaseSchema, IDMixin, TimestampMixin):
    property_id: UUID
    inspection_id: Optional[UUID] = None
    created_by_id: UUID
    title: str
    description: Optional[str] = None
    priority: Priority
    estimated_cost: Optional[float] = None
    status: RecommendationStatus
    approved_by_id: Optional[UUID] = None
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
