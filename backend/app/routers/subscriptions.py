"""Subscription status router."""

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.security import get_current_user, is_subscription_active
from app.models.subscription import Subscription
from app.models.user import User
from app.schemas.billing import SubscriptionRecord, SubscriptionStatusResponse

router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])


@router.get("/me", response_model=SubscriptionStatusResponse)
async def get_my_subscription(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    result = await db.execute(select(Subscription).where(Subscription.user_id == current_user.id))
    record = result.scalar_one_or_none()

    return SubscriptionStatusResponse(
        status=current_user.subscription_status,
        plan=current_user.subscription_plan,
        trial_end_date=current_user.trial_end_date,
        subscription_end_date=current_user.subscription_end_date,
        is_active=is_subscription_active(current_user),
        subscription=SubscriptionRecord.model_validate(record) if record else None,
    )
