"""Property endpoints: role scoping, subscription gating and cache invalidation."""

import pytest

from app.core.cache import property_activity_key, response_cache_key
from app.models.enums import SubscriptionStatus, UserRole
from tests.conftest import auth, create_property, create_unit, create_user

pytestmark = pytest.mark.anyio

NEW_PROPERTY = {"name": "Riverside Lofts", "address": "22 River Rd", "city": "Brisbane"}


async def test_manager_creates_property_with_legacy_fields(client, manager):
    resp = await client.post(
        "/api/properties",
        json={**NEW_PROPERTY, "postcode": "4000", "type": "RESIDENTIAL", "images": [{"url": "https://img/1.jpg"}]},
        headers=auth(manager),
    )

    assert resp.status_code == 201
    body = resp.json()
    assert body["manager_id"] == str(manager.id)
    assert body["zip_code"] == "4000"
    assert body["property_type"] == "RESIDENTIAL"
    assert body["image_url"] == "https://img/1.jpg"
    assert body["unit_count"] == 0


async def test_expired_trial_cannot_create(client, db):
    lapsed = await create_user(db, trial_days=-1)
    resp = await client.post("/api/properties", json=NEW_PROPERTY, headers=auth(lapsed))
    assert resp.status_code == 403
    assert resp.json()["code"] == "TRIAL_EXPIRED"


@pytest.mark.parametrize("role", [UserRole.OWNER, UserRole.TENANT, UserRole.TECHNICIAN])
async def test_only_managers_create(client, db, role):
    user = await create_user(db, role)
    resp = await client.post("/api/properties", json=NEW_PROPERTY, headers=auth(user))
    assert resp.status_code == 403


async def test_listing_is_scoped_and_counts_units(client, db, manager, owner, tenant, prop):
    await create_unit(db, prop, "101", tenant=tenant)
    await create_unit(db, prop, "102")
    await create_property(db, await create_user(db), name="Somebody Else's")

    for user in (manager, owner):
        resp = await client.get("/api/properties", headers=auth(user))
        assert resp.status_code == 200
        body = resp.json()
        assert [p["name"] for p in body] == [prop.name]
        assert body[0]["unit_count"] == 2
        assert body[0]["occupied_units"] == 1

    assert (await client.get("/api/properties", headers=auth(tenant))).status_code == 403


async def test_property_detail_access(client, db, manager, owner, prop):
    stranger = await create_user(db)
    assert (await client.get(f"/api/properties/{prop.id}", headers=auth(owner))).status_code == 200
    assert (await client.get(f"/api/properties/{prop.id}", headers=auth(stranger))).status_code == 403


async def test_list_is_cached_and_invalidated_on_update(client, redis_cache, manager, owner, prop):
    manager_key = response_cache_key("/api/properties", manager.id)
    owner_key = response_cache_key("/api/properties", owner.id)

    await client.get("/api/properties", headers=auth(manager))
    await client.get("/api/properties", headers=auth(owner))
    redis_cache.store[property_activity_key(prop.id, 20)] = "{}"
    assert manager_key in redis_cache.store
    assert owner_key in redis_cache.store

    resp = await client.patch(f"/api/properties/{prop.id}", json={"name": "Renamed"}, headers=auth(manager))
    assert resp.status_code == 200

    assert manager_key not in redis_cache.store
    assert owner_key not in redis_cache.store
    assert property_activity_key(prop.id, 20) not in redis_cache.store

    fresh = await client.get("/api/properties", headers=auth(owner))
    assert fresh.json()[0]["name"] == "Renamed"


@pytest.mark.parametrize("field", ["name", "address", "city", "status"])
async def test_required_fields_cannot_be_nulled(client, manager, prop, field):
    resp = await client.patch(f"/api/properties/{prop.id}", json={field: None}, headers=auth(manager))
    assert resp.status_code == 400
    assert resp.json()["code"] == "VALIDATION_ERROR"


async def test_owner_cannot_update(client, owner, prop):
    resp = await client.patch(f"/api/properties/{prop.id}", json={"name": "Mine now"}, headers=auth(owner))
    assert resp.status_code == 403


async def test_assign_and_remove_owner(client, db, manager, prop):
    new_owner = await create_user(db, UserRole.OWNER)
    tenant = await create_user(db, UserRole.TENANT)

    not_owner = await client.post(
        f"/api/properties/{prop.id}/owners",
        json={"owner_id": str(tenant.id)},
        headers=auth(manager),
    )
    assert not_owner.status_code == 400

    added = await client.post(
        f"/api/properties/{prop.id}/owners",
        json={"owner_id": str(new_owner.id)},
        headers=auth(manager),
    )
    assert added.status_code == 201

    duplicate = await client.post(
        f"/api/properties/{prop.id}/owners",
        json={"owner_id": str(new_owner.id)},
        headers=auth(manager),
    )
    assert duplicate.status_code == 409

    owners = await client.get(f"/api/properties/{prop.id}/owners", headers=auth(manager))
    assert len(owners.json()) == 2

    removed = await client.delete(f"/api/properties/{prop.id}/owners/{new_owner.id}", headers=auth(manager))
    assert removed.status_code == 200


async def test_delete_property(client, db, manager, prop):
    await create_unit(db, prop)
    resp = await client.delete(f"/api/properties/{prop.id}", headers=auth(manager))
    assert resp.status_code == 200
    assert (await client.get(f"/api/properties/{prop.id}", headers=auth(manager))).status_code == 404


async def test_lapsed_subscription_still_reads(client, db, manager, prop):
    manager.subscription_status = SubscriptionStatus.CANCELLED
    await db.commit()
    resp = await client.get("/api/properties", headers=auth(manager))
    assert resp.status_code == 200
