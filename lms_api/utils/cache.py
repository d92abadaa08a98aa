import json
import logging
from typing import Any, Optional

from fastapi import Request
from redis import asyncio as aioredis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

PREFIX = "lms-cache"
GENERATION_PREFIX = "lms-cache-generation"


class Cache:
    """
    Thin JSON cache over redis. Without a redis client every lookup misses
    and every write is a no-op.
    """

    def __init__(self, redis: Optional[aioredis.Redis] = None, expire: int = 60):
        self.redis = redis
        self.expire = expire

    @property
    def enabled(self) -> bool:
        return self.redis is not None

    def key(self, namespace: str, *parts: Any) -> str:
        return ":".join([PREFIX, namespace] + [str(p) for p in parts])

    async def generation(self, namespace: str) -> int:
        if not self.enabled:
            return 0
        try:
            return int(await self.redis.get(f"{GENERATION_PREFIX}:{namespace}") or 0)
        except RedisError as e:
            logger.warning(f"Error reading cache generation of {namespace}: {e}")
            return 0

    async def versioned_key(self, namespace: str, *parts: Any) -> str:
        """
        Key under the current generation of ``namespace``. Entries written
        with an older generation are never read again.
        """
        return self.key(namespace, f"g{await self.generation(namespace)}", *parts)

    async def get(self, key: str) -> Any:
        if not self.enabled:
            return None
        try:
            value = await self.redis.get(key)
        except RedisError as e:
            logger.warning(f"Error getting cache key {key}: {e}")
            return None
        return json.loads(value) if value else None

    async def set(self, key: str, value: Any, expire: Optional[int] = None) -> bool:
        if not self.enabled:
            return False
        try:
            await self.redis.set(key, json.dumps(value, default=str), ex=expire or self.expire)
        except RedisError as e:
            logger.warning(f"Error setting cache key {key}: {e}")
            return False
        return True

    async def invalidate(self, *namespaces: str) -> None:
        """
        Move the given namespaces to a new generation and drop their entries
        """
        if not self.enabled:
            return
        for namespace in namespaces:
            try:
                await self.redis.incr(f"{GENERATION_PREFIX}:{namespace}")
                keys = [key async for key in self.redis.scan_iter(match=f"{PREFIX}:{namespace}:*")]
                if keys:
                    await self.redis.delete(*keys)
            except RedisError as e:
                logger.warning(f"Error clearing cache namespace {namespace}: {e}")

    async def close(self) -> None:
        if self.enabled:
            await self.redis.aclose()


def init_cache(redis_url: Optional[str], expire: int) -> Cache:
    """
    Build the application cache; caching is off when no redis URL is set
    """
    if not redis_url:
        logger.info("Redis URL not configured, caching disabled")
        return Cache(None, expire)
    redis = aioredis.from_url(redis_url, encoding="utf-8", decode_responses=True)
    logger.info("Redis cache initialized")
    return Cache(redis, expire)


def get_cache(request: Request) -> Cache:
    return request.app.state.cache
