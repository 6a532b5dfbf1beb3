"""Redis response cache.

Keys follow ``cache:{path}:user:{user_id}``. Redis is optional: with no
REDIS_URL every read is a miss and every write a no-op, and Redis errors
are logged and ignored so they never fail a request.
"""

import json
import logging
from typing import Any, Iterable, Optional
from uuid import UUID

import redis.asyncio as redis
from fastapi.encoders import jsonable_encoder
from redis.exceptions import RedisError

from app.core.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()

PROPERTIES_PATH = "/api/properties"
DASHBOARD_SUMMARY_PATH = "/api/dashboard/summary"
ACTIVITY_LIMITS = (20, 50)

_client: Optional[redis.Redis] = None


def response_cache_key(path: str, user_id: UUID) -> str:
    return f"cache:{path}:user:{user_id}"


def property_cache_keys(user_id: UUID) -> list[str]:
    """Exact keys dropped for a user whenever a property they can see changes."""
    return [
        response_cache_key(PROPERTIES_PATH, user_id),
        response_cache_key(DASHBOARD_SUMMARY_PATH, user_id),
    ]


def property_cache_pattern(user_id: UUID) -> str:
    """Pattern covering per-property and filtered property list entries."""
    return f"cache:{PROPERTIES_PATH}*user:{user_id}"


def property_activity_key(property_id: UUID, limit: int) -> str:
    return f"property:{property_id}:activity:{limit}"


def property_activity_keys(property_id: UUID) -> list[str]:
    return [property_activity_key(property_id, limit) for limit in ACTIVITY_LIMITS]


def collect_property_cache_user_ids(
    current_user_id: Optional[UUID],
    manager_id: Optional[UUID],
    owner_ids: Iterable[UUID] = (),
) -> list[UUID]:
    """Unique users whose cached property views are affected, in a stable order."""
    seen: list[UUID] = []
    for user_id in (current_user_id, manager_id, *owner_ids):
        if user_id and user_id not in seen:
            seen.append(user_id)
    return seen


def get_redis() -> Optional[redis.Redis]:
    """Lazily create the shared Redis client; None when caching is disabled."""
    global _client
    if not settings.redis_url:
        return None
    if _client is None:
        _client = redis.from_url(settings.redis_url, decode_responses=True)
    return _client


async def close_redis() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None


class CacheService:
    """Thin JSON cache over a Redis client."""

    def __init__(self, client: Optional[Any] = None, ttl_seconds: Optional[int] = None):
        self.client = client
        self.ttl_seconds = ttl_seconds or settings.cache_ttl_seconds

    @property
    def enabled(self) -> bool:
        return self.client is not None

    async def get_json(self, key: str) -> Optional[Any]:
        if not self.enabled:
            return None
        try:
            raw = await self.client.get(key)
        except RedisError as e:
            logger.warning("Cache read failed for %s: %s", key, e)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("Discarding malformed cache entry %s", key)
            return None

    async def set_json(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        if not self.enabled:
            return
        try:
            await self.client.set(
                key,
                json.dumps(jsonable_encoder(value)),
                ex=ttl_seconds or self.ttl_seconds,
            )
        except RedisError as e:
            logger.warning("Cache write failed for %s: %s", key, e)

    async def delete(self, *keys: str) -> None:
        if not self.enabled or not keys:
            return
        try:
            await self.client.delete(*keys)
        except RedisError as e:
            logger.warning("Cache delete failed for %s: %s", keys, e)

    async def delete_pattern(self, pattern: str) -> None:
        if not self.enabled:
            return
        try:
            keys = [key async for key in self.client.scan_iter(match=pattern)]
            if keys:
                await self.client.delete(*keys)
        except RedisError as e:
            logger.warning("Cache pattern delete failed for %s: %s", pattern, e)

    async def invalidate_property_caches(self, user_ids: Iterable[UUID]) -> None:
        for user_id in user_ids:
            await self.delete_pattern(property_cache_pattern(user_id))
            await self.delete(*property_cache_keys(user_id))

    async def invalidate_property_activity(self, property_id: UUID) -> None:
        await self.delete(*property_activity_keys(property_id))


def get_cache() -> CacheService:
    """FastAPI dependency returning the cache bound to the shared client."""
    return CacheService(get_redis())
