"""Cache service with Protocol pattern for dependency injection.

Provides RedisCacheService (real cache) and NullCacheService (no-op fallback).
Used for read-heavy company listings; every failure reads as a cache miss.
"""

import json
import logging
from typing import Any, Protocol

import redis

from ..config import settings

logger = logging.getLogger(__name__)

POPULAR_COMPANIES_KEY = "companies:popular"


class CacheService(Protocol):
    """Cache service interface."""

    def get(self, key: str) -> str | None: ...
    def set(self, key: str, value: str, ttl: int) -> None: ...
    def delete(self, key: str) -> None: ...
    def get_json(self, key: str) -> Any | None: ...
    def set_json(self, key: str, data: Any, ttl: int) -> None: ...


class RedisCacheService:
    """Redis-backed cache implementation."""

    def __init__(self, redis_url: str) -> None:
        self._client = redis.from_url(redis_url, decode_responses=True)
        self._client.ping()

    def get(self, key: str) -> str | None:
        try:
            return self._client.get(key)
        except redis.RedisError:
            logger.warning("Cache read failed for %s", key)
            return None

    def set(self, key: str, value: str, ttl: int) -> None:
        try:
            self._client.setex(key, ttl, value)
        except redis.RedisError:
            logger.warning("Cache write failed for %s", key)

    def delete(self, key: str) -> None:
        try:
            self._client.delete(key)
        except redis.RedisError:
            logger.warning("Cache delete failed for %s", key)

    def get_json(self, key: str) -> Any | None:
        raw = self.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            return None

    def set_json(self, key: str, data: Any, ttl: int) -> None:
        self.set(key, json.dumps(data, ensure_ascii=False, default=str), ttl)


class NullCacheService:
    """No-op cache for when Redis is unavailable."""

    def get(self, key: str) -> str | None:
        return None

    def set(self, key: str, value: str, ttl: int) -> None:
        pass

    def delete(self, key: str) -> None:
        pass

    def get_json(self, key: str) -> Any | None:
        return None

    def set_json(self, key: str, data: Any, ttl: int) -> None:
        pass


def create_cache_service() -> CacheService:
    """Factory: create the appropriate cache service based on configuration."""
    if not settings.redis_url:
        return NullCacheService()
    try:
        return RedisCacheService(settings.redis_url)
    except redis.RedisError:
        logger.warning("Redis unavailable at startup, caching disabled")
        return NullCacheService()
