"""Billing and subscription schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field

from app.schemas.base import BaseSchema, IDMixin
from app.models.enums import SubscriptionPlan, SubscriptionStatus


class CheckoutRequest(BaseSchema):
    plan: str = Field(..., min_length=1)
    success_url: Optional[str] = None
    cancel_url: Optional[str] = None


class CheckoutResponse(BaseSchema):
    session_id: str
    url: str


class ConfirmRequest(BaseSchema):
    session_id: str = Field(..., min_length=1)


class PortalResponse(BaseSchema):
    url: str


class SubscriptionRecord(BaseSchema, IDMixin):
    user_id: UUID
    plan: SubscriptionPlan
    status: SubscriptionStatus
    stripe_customer_id: Optional[str] = None
    stripe_subscription_id: Optional[str] = None
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False


class SubscriptionStatusResponse(BaseSchema):
    """User-level subscription state plus the Stripe mirror, if any."""

    status: SubscriptionStatus
    plan: SubscriptionPlan
    trial_end_date: Optional[datetime] = None
    subscription_end_date: Optional[datetime] = None
    is_active: bool
    subscription: Optional[SubscriptionRecord] = None
