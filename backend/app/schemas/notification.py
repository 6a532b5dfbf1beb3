"""Notification schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from app.schemas.base import BaseSchema, IDMixin
from app.models.enums import NotificationType


class NotificationResponse(BaseSchema, IDMixin):
    user_id: UUID
    notification_type: NotificationType
    title: str
    message: str
    entity_type: Optional[str] = None
    entity_id: Optional[UUID] = None
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime


class UnreadCountResponse(BaseSchema):
    count: int
