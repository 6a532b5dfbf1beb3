"""
Checkout, confirmation and portal endpoints.

Stripe API calls are replaced on the stripe module; each fake records
the keyword arguments it received.
"""

from types import SimpleNamespace

import pytest
import stripe
from sqlalchemy import select

from app.core.config import get_settings
from app.models.enums import SubscriptionStatus, UserRole
from app.models.org import Organization
from app.models.user import User
from tests.conftest import auth, create_user

pytestmark = pytest.mark.anyio


class Recorder:
    def __init__(self, result):
        self.result = result
        self.calls = []

    def __call__(self, *args, **kwargs):
        self.calls.append((args, kwargs))
        return self.result


@pytest.fixture
def stripe_configured(monkeypatch):
    settings = get_settings()
    monkeypatch.setattr(settings, "stripe_secret_key", "sk_test_key")
    monkeypatch.setattr(settings, "stripe_price_id_professional", "price_pro")
    monkeypatch.setattr(settings, "stripe_price_id_starter", None)
    return settings


@pytest.fixture
def checkout_create(monkeypatch, stripe_configured):
    recorder = Recorder(SimpleNamespace(id="cs_test_1", url="https://checkout.stripe.test/cs_test_1"))
    monkeypatch.setattr(stripe.checkout.Session, "create", recorder)
    monkeypatch.setattr(stripe.Customer, "create", Recorder(SimpleNamespace(id="cus_new")))
    return recorder


def completed_session(user, plan="PROFESSIONAL", **fields):
    return {
        "id": "cs_test_1",
        "mode": "subscription",
        "status": "complete",
        "payment_status": "paid",
        "customer": "cus_paid",
        "subscription": "sub_paid",
        "metadata": {"userId": str(user.id), "orgId": str(user.org_id or ""), "plan": plan},
        **fields,
    }


@pytest.fixture
def retrieve_session(monkeypatch, stripe_configured):
    def install(session):
        recorder = Recorder(session)
        monkeypatch.setattr(stripe.checkout.Session, "retrieve", recorder)
        return recorder

    return install


# ============================================================================
# Checkout
# ============================================================================

async def test_checkout_creates_session_and_customer(client, db, manager, checkout_create):
    resp = await client.post(
        "/api/billing/checkout",
        json={"plan": "professional"},
        headers=auth(manager),
    )

    assert resp.status_code == 200, resp.text
    assert resp.json() == {"session_id": "cs_test_1", "url": "https://checkout.stripe.test/cs_test_1"}

    _, kwargs = checkout_create.calls[0]
    assert kwargs["line_items"] == [{"price": "price_pro", "quantity": 1}]
    assert kwargs["customer"] == "cus_new"
    assert kwargs["metadata"]["userId"] == str(manager.id)
    assert kwargs["metadata"]["plan"] == "PROFESSIONAL"
    assert kwargs["success_url"].endswith("/subscriptions?success=1&session_id={CHECKOUT_SESSION_ID}")

    stored = (await db.execute(select(User.stripe_customer_id).where(User.id == manager.id))).scalar_one()
    assert stored == "cus_new"


@pytest.mark.parametrize(
    "success_url, expected",
    [
        ("https://app.test/done", "https://app.test/done?session_id={CHECKOUT_SESSION_ID}"),
        ("https://app.test/done?tab=billing", "https://app.test/done?tab=billing&session_id={CHECKOUT_SESSION_ID}"),
    ],
)
async def test_success_url_always_carries_session_placeholder(client, manager, checkout_create, success_url, expected):
    resp = await client.post(
        "/api/billing/checkout",
        json={"plan": "PROFESSIONAL", "success_url": success_url},
        headers=auth(manager),
    )
    assert resp.status_code == 200
    assert checkout_create.calls[0][1]["success_url"] == expected


@pytest.mark.parametrize("plan", ["STARTER", "PLATINUM"])
async def test_unknown_plan_or_missing_price(client, manager, checkout_create, plan):
    resp = await client.post("/api/billing/checkout", json={"plan": plan}, headers=auth(manager))

    assert resp.status_code == 400
    assert resp.json()["message"] == f"Unknown plan or missing price id: {plan}"
    assert checkout_create.calls == []


async def test_checkout_is_for_managers(client, tenant, checkout_create):
    resp = await client.post("/api/billing/checkout", json={"plan": "PROFESSIONAL"}, headers=auth(tenant))
    assert resp.status_code == 403


async def test_billing_not_configured(client, manager, monkeypatch):
    monkeypatch.setattr(get_settings(), "stripe_secret_key", None)

    checkout = await client.post("/api/billing/checkout", json={"plan": "PROFESSIONAL"}, headers=auth(manager))
    portal = await client.post("/api/billing/portal", headers=auth(manager))

    for resp in (checkout, portal):
        assert resp.status_code == 503
        assert resp.json() == {"success": False, "message": "Billing is not configured"}


# ============================================================================
# Confirm
# ============================================================================

async def test_confirm_activates_own_subscription(client, db, manager, retrieve_session):
    recorder = retrieve_session(completed_session(manager))

    resp = await client.post("/api/billing/confirm", json={"session_id": "cs_test_1"}, headers=auth(manager))

    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["id"] == str(manager.id)
    assert body["subscription_status"] == "ACTIVE"
    assert body["subscription_plan"] == "PROFESSIONAL"
    assert recorder.calls[0][0] == ("cs_test_1",)

    await db.refresh(manager)
    assert manager.stripe_subscription_id == "sub_paid"


async def test_confirm_rejects_someone_elses_session(client, db, manager, tenant, retrieve_session):
    retrieve_session(completed_session(manager))

    resp = await client.post("/api/billing/confirm", json={"session_id": "cs_test_1"}, headers=auth(tenant))

    assert resp.status_code == 403
    assert "email" not in resp.json()
    await db.refresh(manager)
    assert manager.subscription_status == SubscriptionStatus.TRIAL


async def test_confirm_by_colleague_in_same_org(client, db, retrieve_session):
    org = Organization(name="Acme Property Group")
    db.add(org)
    await db.commit()
    founder = await create_user(db, UserRole.PROPERTY_MANAGER, org_id=org.id)
    colleague = await create_user(db, UserRole.PROPERTY_MANAGER, org_id=org.id)
    retrieve_session(completed_session(founder))

    resp = await client.post("/api/billing/confirm", json={"session_id": "cs_test_1"}, headers=auth(colleague))

    assert resp.status_code == 200
    assert resp.json()["id"] == str(colleague.id)
    await db.refresh(founder)
    assert founder.subscription_status == SubscriptionStatus.ACTIVE


@pytest.mark.parametrize(
    "fields, message",
    [
        ({"mode": "payment"}, "Not a subscription session"),
        ({"status": "open", "payment_status": "unpaid"}, "Session not complete"),
    ],
)
async def test_confirm_requires_completed_subscription_session(client, manager, retrieve_session, fields, message):
    retrieve_session(completed_session(manager, **fields))

    resp = await client.post("/api/billing/confirm", json={"session_id": "cs_test_1"}, headers=auth(manager))

    assert resp.status_code == 400
    assert resp.json()["message"] == message


async def test_confirm_stripe_failure_is_bad_gateway(client, manager, stripe_configured, monkeypatch):
    def boom(*args, **kwargs):
        raise stripe.InvalidRequestError("No such checkout.session", "id")

    monkeypatch.setattr(stripe.checkout.Session, "retrieve", boom)

    resp = await client.post("/api/billing/confirm", json={"session_id": "cs_missing"}, headers=auth(manager))
    assert resp.status_code == 502


# ============================================================================
# Portal
# ============================================================================

async def test_portal_without_customer_is_404(client, manager, stripe_configured):
    resp = await client.post("/api/billing/portal", headers=auth(manager))

    assert resp.status_code == 404
    assert resp.json()["message"] == "No billing account found for this user"


async def test_portal_session_for_customer(client, db, stripe_configured, monkeypatch):
    payer = await create_user(db, subscription_status=SubscriptionStatus.ACTIVE, stripe_customer_id="cus_paid")
    recorder = Recorder(SimpleNamespace(url="https://billing.stripe.test/p/session"))
    monkeypatch.setattr(stripe.billing_portal.Session, "create", recorder)

    resp = await client.post("/api/billing/portal?return_url=https://app.test/back", headers=auth(payer))

    assert resp.status_code == 200
    assert resp.json() == {"url": "https://billing.stripe.test/p/session"}
    assert recorder.calls[0][1] == {"customer": "cus_paid", "return_url": "https://app.test/back"}
