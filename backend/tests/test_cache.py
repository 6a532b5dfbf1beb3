"""Cache key formats and invalidation against an in-memory Redis stand-in."""

import uuid

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from app.core.cache import (
    CacheService,
    collect_property_cache_user_ids,
    property_activity_keys,
    property_cache_keys,
    property_cache_pattern,
    response_cache_key,
)
from tests.conftest import FakeRedis

pytestmark = pytest.mark.anyio


class BrokenRedis(FakeRedis):
    async def get(self, key):
        raise RedisConnectionError("down")

    async def set(self, key, value, ex=None):
        raise RedisConnectionError("down")


USER_ID = uuid.UUID("11111111-1111-1111-1111-111111111111")
PROPERTY_ID = uuid.UUID("22222222-2222-2222-2222-222222222222")


def test_key_formats():
    assert response_cache_key("/api/properties", USER_ID) == f"cache:/api/properties:user:{USER_ID}"
    assert property_cache_keys(USER_ID) == [
        f"cache:/api/properties:user:{USER_ID}",
        f"cache:/api/dashboard/summary:user:{USER_ID}",
    ]
    assert property_cache_pattern(USER_ID) == f"cache:/api/properties*user:{USER_ID}"
    assert property_activity_keys(PROPERTY_ID) == [
        f"property:{PROPERTY_ID}:activity:20",
        f"property:{PROPERTY_ID}:activity:50",
    ]


def test_collect_user_ids_dedupes_and_skips_missing():
    a, b, c = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
    assert collect_property_cache_user_ids(a, b, [c, a, b]) == [a, b, c]
    assert collect_property_cache_user_ids(None, b) == [b]


async def test_json_round_trip_with_ttl():
    cache = CacheService(FakeRedis(), ttl_seconds=300)
    await cache.set_json("k", {"id": USER_ID, "n": 1})
    assert await cache.get_json("k") == {"id": str(USER_ID), "n": 1}
    assert cache.client.ttls["k"] == 300


async def test_disabled_cache_is_a_noop():
    cache = CacheService(None)
    await cache.set_json("k", [1])
    assert await cache.get_json("k") is None


async def test_redis_errors_are_swallowed():
    cache = CacheService(BrokenRedis())
    await cache.set_json("k", [1])
    assert await cache.get_json("k") is None


async def test_invalidate_property_caches():
    other_user = uuid.uuid4()
    redis = FakeRedis()
    redis.store = {
        f"cache:/api/properties:user:{USER_ID}": "[]",
        f"cache:/api/properties?status=ACTIVE:user:{USER_ID}": "[]",
        f"cache:/api/dashboard/summary:user:{USER_ID}": "{}",
        f"cache:/api/properties:user:{other_user}": "[]",
        f"property:{PROPERTY_ID}:activity:20": "{}",
    }
    cache = CacheService(redis)

    await cache.invalidate_property_caches([USER_ID])
    await cache.invalidate_property_activity(PROPERTY_ID)

    assert list(redis.store) == [f"cache:/api/properties:user:{other_user}"]
