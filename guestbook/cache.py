"""Snapshot cache for the full message list.

Every backend degrades instead of raising: a cache outage turns into a
Store round-trip, never into a failed request.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from threading import Lock
from typing import Protocol

import redis

from .config import Settings

logger = logging.getLogger(__name__)

MESSAGES_KEY = "guestbook:messages"


class CacheStatus(str, Enum):
    HIT = "hit"
    MISS = "miss"
    DEGRADED = "degraded"


@dataclass(frozen=True)
class CacheResult:
    status: CacheStatus
    value: str | None = None

    @property
    def hit(self) -> bool:
        return self.status is CacheStatus.HIT


MISS = CacheResult(CacheStatus.MISS)
DEGRADED = CacheResult(CacheStatus.DEGRADED)


class MessageCache(Protocol):
    def get(self) -> CacheResult: ...

    def set(self, blob: str, ttl_seconds: int) -> bool: ...

    def invalidate(self) -> bool: ...


class RedisCache:
    def __init__(self, client: redis.Redis, key: str = MESSAGES_KEY) -> None:
        self.client = client
        self.key = key

    @classmethod
    def from_settings(cls, settings: Settings, key: str = MESSAGES_KEY) -> "RedisCache":
        password = settings.redis_password.get_secret_value() if settings.redis_password else None
        client = redis.Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            password=password,
            decode_responses=True,
        )
        return cls(client, key=key)

    def ping(self) -> bool:
        try:
            self.client.ping()
        except redis.RedisError:
            logger.warning("Failed to connect to Redis during initialization.", exc_info=True)
            return False
        logger.info("Successfully connected to Redis.")
        return True

    def get(self) -> CacheResult:
        try:
            value = self.client.get(self.key)
        except redis.RedisError as exc:
            logger.warning("Redis GET failed for %s: %s", self.key, exc)
            return DEGRADED
        if value is None:
            return MISS
        if isinstance(value, bytes):
            value = value.decode()
        return CacheResult(CacheStatus.HIT, value)

    def set(self, blob: str, ttl_seconds: int) -> bool:
        try:
            self.client.setex(self.key, ttl_seconds, blob)
        except redis.RedisError as exc:
            logger.warning("Redis SETEX failed for %s: %s", self.key, exc)
            return False
        return True

    def invalidate(self) -> bool:
        try:
            self.client.delete(self.key)
        except redis.RedisError as exc:
            logger.warning("Redis DEL failed for %s: %s", self.key, exc)
            return False
        return True


class MemoryCache:
    """In-process TTL cache. Each worker process holds its own copy."""

    def __init__(self, clock=time.monotonic) -> None:
        self._clock = clock
        self._lock = Lock()
        self._entry: tuple[float, str] | None = None

    def get(self) -> CacheResult:
        with self._lock:
            if self._entry is None:
                return MISS
            expires_at, value = self._entry
            if self._clock() >= expires_at:
                self._entry = None
                return MISS
            return CacheResult(CacheStatus.HIT, value)

    def set(self, blob: str, ttl_seconds: int) -> bool:
        with self._lock:
            self._entry = (self._clock() + ttl_seconds, blob)
        return True

    def invalidate(self) -> bool:
        with self._lock:
            self._entry = None
        return True


def build_cache(settings: Settings) -> MessageCache | None:
    if settings.redis_configured:
        logger.info("Attempting to connect to Redis at: %s:%s", settings.redis_host, settings.redis_port)
        cache = RedisCache.from_settings(settings)
        cache.ping()
        return cache
    if settings.cache_backend == "memory":
        logger.info("Using in-process message cache.")
        return MemoryCache()
    logger.warning("Missing REDIS_HOST or REDIS_PORT. Redis caching will be disabled.")
    return None
