"""Units and tenancies nested under a property."""

from datetime import datetime, timedelta

import pytest

from app.models.enums import UserRole
from tests.conftest import auth, create_user

pytestmark = pytest.mark.anyio


async def _unit(client, manager, prop, number="201", **fields):
    resp = await client.post(
        f"/api/properties/{prop.id}/units",
        json={"unit_number": number, "bedrooms": 2, "rent_amount": 550, **fields},
        headers=auth(manager),
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


async def test_unit_numbers_are_unique_per_property(client, manager, prop):
    unit = await _unit(client, manager, prop)
    assert unit["status"] == "AVAILABLE"

    clash = await client.post(
        f"/api/properties/{prop.id}/units",
        json={"unit_number": "201"},
        headers=auth(manager),
    )
    assert clash.status_code == 409


async def test_owner_reads_units_but_cannot_create(client, manager, owner, prop):
    await _unit(client, manager, prop)

    listing = await client.get(f"/api/properties/{prop.id}/units", headers=auth(owner))
    assert [u["unit_number"] for u in listing.json()] == ["201"]

    resp = await client.post(f"/api/properties/{prop.id}/units", json={"unit_number": "9"}, headers=auth(owner))
    assert resp.status_code == 403


async def test_tenancy_lifecycle_drives_unit_status(client, manager, tenant, prop):
    unit = await _unit(client, manager, prop)
    base = f"/api/properties/{prop.id}/units/{unit['id']}"
    start = datetime.utcnow().isoformat()

    tenancy = await client.post(
        f"{base}/tenants",
        json={"tenant_id": str(tenant.id), "lease_start": start},
        headers=auth(manager),
    )
    assert tenancy.status_code == 201
    assert tenancy.json()["rent_amount"] == 550

    duplicate = await client.post(
        f"{base}/tenants",
        json={"tenant_id": str(tenant.id), "lease_start": start},
        headers=auth(manager),
    )
    assert duplicate.status_code == 409

    occupied = await client.get(base, headers=auth(manager))
    assert occupied.json()["status"] == "OCCUPIED"

    ended = await client.delete(f"{base}/tenants/{tenancy.json()['id']}", headers=auth(manager))
    assert ended.status_code == 200
    assert ended.json()["is_active"] is False

    vacant = await client.get(base, headers=auth(manager))
    assert vacant.json()["status"] == "VACANT"

    twice = await client.delete(f"{base}/tenants/{tenancy.json()['id']}", headers=auth(manager))
    assert twice.status_code == 400


async def test_only_tenants_can_lease(client, db, manager, prop):
    unit = await _unit(client, manager, prop)
    owner_user = await create_user(db, UserRole.OWNER)
    resp = await client.post(
        f"/api/properties/{prop.id}/units/{unit['id']}/tenants",
        json={"tenant_id": str(owner_user.id), "lease_start": datetime.utcnow().isoformat()},
        headers=auth(manager),
    )
    assert resp.status_code == 400


async def test_lease_end_must_follow_start(client, manager, tenant, prop):
    unit = await _unit(client, manager, prop)
    start = datetime.utcnow()
    resp = await client.post(
        f"/api/properties/{prop.id}/units/{unit['id']}/tenants",
        json={
            "tenant_id": str(tenant.id),
            "lease_start": start.isoformat(),
            "lease_end": (start - timedelta(days=1)).isoformat(),
        },
        headers=auth(manager),
    )
    assert resp.status_code == 400
