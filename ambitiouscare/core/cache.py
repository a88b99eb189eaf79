"""
Redis-backed query cache with tag-based invalidation.

Reads are stored as JSON under a key, and the key is added to one Redis set
per entity tag it depends on. After a mutation of an entity, invalidating its
tag drops every read that included it, for every worker sharing the Redis.
"""
import json
import logging
from typing import Any, Callable, Iterable, Optional

import redis

from ambitiouscare.core import config
from ambitiouscare.core.redis_client import get_redis_client

logger = logging.getLogger(__name__)

TAG_PREFIX = "cache-tag:"


def _tag_key(tag: str) -> str:
    return f"{TAG_PREFIX}{tag}"


class QueryCache:
    """Redis cache wrapper with JSON serialization, TTLs and tags"""

    def __init__(self, default_ttl: Optional[int] = None, client_factory: Callable[[], redis.Redis] = get_redis_client):
        self.default_ttl = default_ttl
        self.redis_client: Optional[redis.Redis] = None
        self._client_factory = client_factory

    def _get_client(self) -> Optional[redis.Redis]:
        """Lazy load Redis client"""
        if self.redis_client is None:
            try:
                self.redis_client = self._client_factory()
            except redis.RedisError as exc:
                logger.warning("Redis cache unavailable: %s", exc)
                return None
        return self.redis_client

    def get(self, key: str) -> Optional[Any]:
        client = self._get_client()
        if client is None:
            return None

        try:
            value = client.get(key)
        except redis.RedisError as exc:
            logger.error("Cache get error for %s: %s", key, exc)
            return None

        if value is None:
            logger.debug("Cache MISS: %s", key)
            return None

        logger.debug("Cache HIT: %s", key)
        return json.loads(value)

    def set(self, key: str, value: Any, tags: Iterable[str] = (), ttl: Optional[int] = None) -> bool:
        client = self._get_client()
        if client is None:
            return False

        ttl = self.default_ttl if ttl is None else ttl
        serialized = json.dumps(value)

        try:
            pipeline = client.pipeline()
            if ttl:
                pipeline.setex(key, ttl, serialized)
            else:
                pipeline.set(key, serialized)
            for tag in tags:
                pipeline.sadd(_tag_key(tag), key)
                if ttl:
                    pipeline.expire(_tag_key(tag), ttl)
            pipeline.execute()
        except redis.RedisError as exc:
            logger.error("Cache set error for %s: %s", key, exc)
            return False

        logger.debug("Cache SET: %s (TTL: %ss)", key, ttl)
        return True

    def get_or_load(self, key: str, loader: Callable[[], Any], tags: Iterable[str] = (), ttl: Optional[int] = None) -> Any:
        cached = self.get(key)
        if cached is not None:
            return cached

        value = loader()
        self.set(key, value, tags=tags, ttl=ttl)
        return value

    def invalidate(self, *tags: str) -> int:
        """Drop every entry carrying any of ``tags``; returns how many were dropped."""
        client = self._get_client()
        if client is None or not tags:
            return 0

        tag_keys = [_tag_key(tag) for tag in tags]
        try:
            keys = set()
            for tag_key in tag_keys:
                keys.update(client.smembers(tag_key))
            deleted = client.delete(*keys) if keys else 0
            client.delete(*tag_keys)
        except redis.RedisError as exc:
            logger.error("Cache invalidate error for %s: %s", ", ".join(tags), exc)
            return 0

        if deleted:
            logger.debug("Cache INVALIDATE %s: %d keys", ", ".join(tags), deleted)
        return deleted


def availability_tag(therapist_id: str) -> str:
    return f"availability:{therapist_id}"


THERAPISTS_TAG = "therapists"

query_cache = QueryCache(default_ttl=config.AVAILABILITY_CACHE_TTL_SECONDS)
