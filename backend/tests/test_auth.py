"""Registration and current-user endpoints."""

import uuid

import pytest
from sqlalchemy import select

from app.models.audit import AuditLog
from app.models.enums import AuditAction
from app.models.org import Organization
from tests.conftest import auth

pytestmark = pytest.mark.anyio


def bearer(uid: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {uid}"}


async def test_register_manager_creates_org_and_trial(client, db):
    resp = await client.post(
        "/api/auth/register",
        json={"first_name": "Dana", "last_name": "Lee", "company_name": "Lee Facilities"},
        headers=bearer("new-manager"),
    )

    assert resp.status_code == 201
    body = resp.json()
    assert body["email"] == "new-manager@example.com"
    assert body["role"] == "PROPERTY_MANAGER"
    assert body["subscription_status"] == "TRIAL"
    assert body["subscription_plan"] == "FREE_TRIAL"
    assert body["trial_end_date"] is not None

    org = await db.get(Organization, uuid.UUID(body["org_id"]))
    assert org.name == "Lee Facilities"

    audit = (await db.execute(select(AuditLog))).scalar_one()
    assert audit.action == AuditAction.USER_REGISTERED


async def test_register_tenant_has_no_org(client):
    resp = await client.post(
        "/api/auth/register",
        json={"role": "TENANT", "first_name": "Sam", "last_name": "Ng"},
        headers=bearer("new-tenant"),
    )
    assert resp.status_code == 201
    assert resp.json()["org_id"] is None


async def test_admin_cannot_self_register(client):
    resp = await client.post(
        "/api/auth/register",
        json={"role": "ADMIN", "first_name": "Eve", "last_name": "X"},
        headers=bearer("sneaky"),
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "VALIDATION_ERROR"


async def test_double_registration_conflicts(client, manager):
    resp = await client.post(
        "/api/auth/register",
        json={"first_name": "Again", "last_name": "Me"},
        headers=auth(manager),
    )
    assert resp.status_code == 409


async def test_me_requires_registration(client):
    resp = await client.get("/api/auth/me", headers=bearer("ghost"))
    assert resp.status_code == 401
    assert resp.json() == {"success": False, "message": "User not registered"}


async def test_update_profile(client, tenant):
    resp = await client.patch("/api/auth/me", json={"phone": "0400 000 000"}, headers=auth(tenant))
    assert resp.status_code == 200
    assert resp.json()["phone"] == "0400 000 000"
    assert resp.json()["role"] == "TENANT"
