"""Billing router: Stripe checkout, confirmation, portal and webhook."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.security import get_current_user, require_manager
from app.models.user import User
from app.schemas.auth import CurrentUserResponse
from app.schemas.billing import CheckoutRequest, CheckoutResponse, ConfirmRequest, PortalResponse
from app.services.billing import BillingService, verify_webhook

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/billing", tags=["billing"])


@router.post("/checkout", response_model=CheckoutResponse)
async def create_checkout(
    data: CheckoutRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_manager),
):
    """Start a Stripe Checkout session for a subscription plan."""
    session = await BillingService(db).create_checkout_session(
        current_user,
        data.plan,
        success_url=data.success_url,
        cancel_url=data.cancel_url,
    )
    return CheckoutResponse(**session)


@router.post("/confirm", response_model=CurrentUserResponse)
async def confirm_checkout(
    data: ConfirmRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Apply a completed checkout session when the webhook has not arrived yet."""
    user = await BillingService(db).confirm_checkout(data.session_id, current_user)
    await db.refresh(user)
    return CurrentUserResponse.model_validate(user)


@router.post("/portal", response_model=PortalResponse)
async def create_portal(
    return_url: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    url = await BillingService(db).create_portal_session(current_user, return_url)
    return PortalResponse(url=url)


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="stripe-signature"),
    db: AsyncSession = Depends(get_db),
):
    """Stripe webhook endpoint. Needs the raw body for signature verification."""
    payload = await request.body()
    event = verify_webhook(payload, stripe_signature)

    handled = await BillingService(db).handle_event(event)
    if not handled:
        logger.info("Ignoring Stripe event %s", event.get("type"))
    return {"received": True}
