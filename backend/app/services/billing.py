"""Stripe billing: checkout, confirmation, customer portal and webhook events."""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional
from uuid import UUID

import stripe
from fastapi import status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.errors import ApiError, bad_request
from app.models.enums import SubscriptionPlan, SubscriptionStatus, UserRole
from app.models.subscription import Subscription
from app.models.user import User
from app.services.audit import AuditService

logger = logging.getLogger(__name__)

settings = get_settings()

STRIPE_STATUS_MAP = {
    "active": SubscriptionStatus.ACTIVE,
    "trialing": SubscriptionStatus.TRIAL,
    "past_due": SubscriptionStatus.PAST_DUE,
    "unpaid": SubscriptionStatus.PAST_DUE,
    "canceled": SubscriptionStatus.CANCELLED,
    "incomplete_expired": SubscriptionStatus.CANCELLED,
}


def map_stripe_status(stripe_status: Optional[str]) -> SubscriptionStatus:
    return STRIPE_STATUS_MAP.get(stripe_status or "", SubscriptionStatus.SUSPENDED)


def _parse_plan(value: Optional[str]) -> Optional[SubscriptionPlan]:
    if not value:
        return None
    try:
        return SubscriptionPlan(value.upper())
    except ValueError:
        return None


def _from_timestamp(value: Optional[int]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc).replace(tzinfo=None)


def _as_dict(obj: Any) -> dict[str, Any]:
    """Plain-dict view of a Stripe object (or a dict passed through)."""
    if isinstance(obj, dict) and not isinstance(obj, stripe.StripeObject):
        return obj
    return json.loads(str(obj))


def _configure_stripe() -> None:
    if not settings.stripe_secret_key:
        raise ApiError(status.HTTP_503_SERVICE_UNAVAILABLE, "Billing is not configured")
    stripe.api_key = settings.stripe_secret_key


def _with_session_placeholder(url: str) -> str:
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}session_id={{CHECKOUT_SESSION_ID}}"


def _stripe_failure(action: str, e: Exception) -> ApiError:
    logger.error("Stripe %s failed: %s", action, e)
    return ApiError(status.HTTP_502_BAD_GATEWAY, f"{action.capitalize()} failed")


def verify_webhook(payload: bytes, signature: Optional[str]) -> dict[str, Any]:
    """Verify the Stripe-Signature header and return the event as a dict."""
    if not settings.stripe_webhook_secret:
        raise ApiError(status.HTTP_503_SERVICE_UNAVAILABLE, "Webhook secret is not configured")
    if not signature:
        raise bad_request("Missing Stripe-Signature header")
    try:
        stripe.Webhook.construct_event(payload, signature, settings.stripe_webhook_secret)
    except stripe.SignatureVerificationError as e:
        logger.warning("Webhook signature verification failed: %s", e)
        raise bad_request(f"Webhook Error: {e}")
    except ValueError as e:
        raise bad_request(f"Webhook Error: invalid payload ({e})")
    return json.loads(payload)


class BillingService:
    """Mirrors Stripe subscription state onto users and subscription rows."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditService(db)

    # =========================================================================
    # Checkout / portal
    # =========================================================================

    async def create_checkout_session(
        self,
        user: User,
        plan: str,
        success_url: Optional[str] = None,
        cancel_url: Optional[str] = None,
    ) -> dict[str, str]:
        _configure_stripe()
        price_id = settings.price_id_for_plan(plan)
        if not price_id:
            raise bad_request(f"Unknown plan or missing price id: {plan}")

        success = _with_session_placeholder(
            success_url or f"{settings.frontend_url}/subscriptions?success=1"
        )
        cancel = cancel_url or f"{settings.frontend_url}/subscriptions?canceled=1"
        metadata = {
            "orgId": str(user.org_id) if user.org_id else "",
            "userId": str(user.id),
            "plan": plan.upper(),
        }

        try:
            customer_id = await self._ensure_customer(user)
            session = stripe.checkout.Session.create(
                mode="subscription",
                line_items=[{"price": price_id, "quantity": 1}],
                success_url=success,
                cancel_url=cancel,
                customer=customer_id,
                client_reference_id=str(user.org_id or user.id),
                metadata=metadata,
                subscription_data={"metadata": metadata},
                allow_promotion_codes=True,
            )
        except stripe.StripeError as e:
            raise _stripe_failure("checkout", e)

        await self.db.commit()
        return {"session_id": session.id, "url": session.url}

    async def _ensure_customer(self, user: User) -> str:
        if user.stripe_customer_id:
            return user.stripe_customer_id
        customer = stripe.Customer.create(
            email=user.email,
            name=user.full_name,
            metadata={"userId": str(user.id)},
        )
        user.stripe_customer_id = customer.id
        return customer.id

    async def confirm_checkout(self, session_id: str, caller: User) -> User:
        """Fallback for a missed webhook: apply a completed checkout session.

        Only the user who started the checkout, or a member of the same
        organization, may confirm it. Returns the caller.
        """
        _configure_stripe()
        try:
            session = _as_dict(stripe.checkout.Session.retrieve(session_id))
        except stripe.StripeError as e:
            raise _stripe_failure("confirm", e)

        if session.get("mode") != "subscription":
            raise bad_request("Not a subscription session")
        if session.get("status") != "complete" and session.get("payment_status") != "paid":
            raise bad_request("Session not complete")

        user = await self._checkout_user(session)
        if user is None:
            raise bad_request("No user linked to this checkout session")
        same_org = caller.org_id is not None and user.org_id == caller.org_id
        if user.id != caller.id and not same_org:
            raise ApiError(status.HTTP_403_FORBIDDEN, "This checkout session belongs to another account")

        await self._apply_checkout_completed(session, "checkout.confirm", user)
        await self.db.commit()
        return caller

    async def create_portal_session(self, user: User, return_url: Optional[str] = None) -> str:
        _configure_stripe()
        if not user.stripe_customer_id:
            raise ApiError(status.HTTP_404_NOT_FOUND, "No billing account found for this user")
        try:
            session = stripe.billing_portal.Session.create(
                customer=user.stripe_customer_id,
                return_url=return_url or f"{settings.frontend_url}/subscriptions",
            )
        except stripe.StripeError as e:
            raise _stripe_failure("portal", e)
        return session.url

    # =========================================================================
    # Webhook events
    # =========================================================================

    async def handle_event(self, event: dict[str, Any]) -> bool:
        """Apply one verified webhook event. Returns False for ignored events."""
        event_type = event.get("type", "")
        obj = event.get("data", {}).get("object", {})

        if event_type == "checkout.session.completed":
            user = await self._apply_checkout_completed(obj, event_type)
        elif event_type in ("customer.subscription.created", "customer.subscription.updated"):
            user = await self._apply_subscription(obj, event_type)
        elif event_type == "customer.subscription.deleted":
            user = await self._apply_subscription_deleted(obj, event_type)
        elif event_type == "invoice.payment_failed":
            user = await self._apply_invoice(obj, event_type, SubscriptionStatus.PAST_DUE)
        elif event_type == "invoice.payment_succeeded":
            user = await self._apply_invoice(obj, event_type, SubscriptionStatus.ACTIVE)
        else:
            logger.debug("Ignoring Stripe event %s", event_type)
            return False

        if user is None:
            logger.warning("Stripe event %s (%s) matched no user", event_type, event.get("id"))
            return False

        await self.db.commit()
        logger.info("Applied Stripe event %s to user %s", event_type, user.id)
        return True

    async def _checkout_user(self, session: dict[str, Any]) -> Optional[User]:
        metadata = session.get("metadata") or {}
        return await self._find_user(
            user_id=metadata.get("userId"),
            customer_id=session.get("customer"),
            org_id=metadata.get("orgId") or session.get("client_reference_id"),
        )

    async def _apply_checkout_completed(
        self,
        session: dict[str, Any],
        event_type: str,
        user: Optional[User] = None,
    ) -> Optional[User]:
        user = user or await self._checkout_user(session)
        if user is None:
            return None
        metadata = session.get("metadata") or {}

        plan = _parse_plan(metadata.get("plan")) or SubscriptionPlan.STARTER
        subscription_id = session.get("subscription")
        if isinstance(subscription_id, dict):
            subscription_id = subscription_id.get("id")

        await self._update(
            user,
            event_type,
            status=SubscriptionStatus.ACTIVE,
            plan=plan,
            customer_id=session.get("customer"),
            subscription_id=subscription_id,
        )
        return user

    async def _apply_subscription(self, sub: dict[str, Any], event_type: str) -> Optional[User]:
        metadata = sub.get("metadata") or {}
        user = await self._find_user(
            user_id=metadata.get("userId"),
            customer_id=sub.get("customer"),
            subscription_id=sub.get("id"),
        )
        if user is None:
            return None

        items = (sub.get("items") or {}).get("data") or []
        first_item = items[0] if items else {}
        price_id = (first_item.get("price") or {}).get("id")
        plan = _parse_plan(metadata.get("plan")) or _parse_plan(settings.plan_for_price_id(price_id))
        period_end = sub.get("current_period_end") or first_item.get("current_period_end")

        await self._update(
            user,
            event_type,
            status=map_stripe_status(sub.get("status")),
            plan=plan,
            customer_id=sub.get("customer"),
            subscription_id=sub.get("id"),
            period_end=_from_timestamp(period_end),
            cancel_at_period_end=bool(sub.get("cancel_at_period_end")),
        )
        return user

    async def _apply_subscription_deleted(self, sub: dict[str, Any], event_type: str) -> Optional[User]:
        user = await self._find_user(
            user_id=(sub.get("metadata") or {}).get("userId"),
            customer_id=sub.get("customer"),
            subscription_id=sub.get("id"),
        )
        if user is None:
            return None

        await self._update(user, event_type, status=SubscriptionStatus.CANCELLED, clear_subscription=True)
        return user

    async def _apply_invoice(
        self,
        invoice: dict[str, Any],
        event_type: str,
        new_status: SubscriptionStatus,
    ) -> Optional[User]:
        user = await self._find_user(
            customer_id=invoice.get("customer"),
            subscription_id=invoice.get("subscription"),
        )
        if user is None:
            return None
        await self._update(user, event_type, status=new_status)
        return user

    # =========================================================================
    # Persistence helpers
    # =========================================================================

    async def _find_user(
        self,
        user_id: Optional[str] = None,
        customer_id: Optional[str] = None,
        subscription_id: Optional[str] = None,
        org_id: Optional[str] = None,
    ) -> Optional[User]:
        if user_id:
            try:
                user = await self.db.get(User, UUID(str(user_id)))
            except ValueError:
                user = None
            if user:
                return user

        if customer_id:
            result = await self.db.execute(select(User).where(User.stripe_customer_id == customer_id))
            user = result.scalars().first()
            if user:
                return user

        if subscription_id:
            result = await self.db.execute(
                select(User).where(User.stripe_subscription_id == subscription_id)
            )
            user = result.scalars().first()
            if user:
                return user

        if org_id:
            try:
                org_uuid = UUID(str(org_id))
            except ValueError:
                return None
            result = await self.db.execute(
                select(User)
                .where(User.org_id == org_uuid, User.role == UserRole.PROPERTY_MANAGER)
                .order_by(User.created_at)
            )
            return result.scalars().first()

        return None

    async def _update(
        self,
        user: User,
        event_type: str,
        status: SubscriptionStatus,
        plan: Optional[SubscriptionPlan] = None,
        customer_id: Optional[str] = None,
        subscription_id: Optional[str] = None,
        period_end: Optional[datetime] = None,
        cancel_at_period_end: Optional[bool] = None,
        clear_subscription: bool = False,
    ) -> Subscription:
        user.subscription_status = status
        if plan:
            user.subscription_plan = plan
        if customer_id:
            user.stripe_customer_id = customer_id
        if subscription_id:
            user.stripe_subscription_id = subscription_id
        if period_end:
            user.subscription_end_date = period_end
        if clear_subscription:
            user.stripe_subscription_id = None

        result = await self.db.execute(select(Subscription).where(Subscription.user_id == user.id))
        record = result.scalar_one_or_none()
        if record is None:
            record = Subscription(user_id=user.id)
            self.db.add(record)

        record.status = status
        record.plan = user.subscription_plan
        record.stripe_customer_id = user.stripe_customer_id
        record.stripe_subscription_id = user.stripe_subscription_id
        if period_end:
            record.current_period_end = period_end
        if cancel_at_period_end is not None:
            record.cancel_at_period_end = cancel_at_period_end

        await self.db.flush()
        await self.audit.log_subscription_updated(
            user.id,
            event_type,
            status.value,
            user.subscription_plan.value,
        )
        return record
