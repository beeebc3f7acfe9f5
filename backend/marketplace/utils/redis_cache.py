import logging
import os
import random
from typing import Any, Optional

import redis

from marketplace.core.config import settings
from .json import loads
from .json_utils import dumps

logger = logging.getLogger(__name__)

_redis_client: Optional[redis.Redis] = None


class _NullRedis:
    """No-op Redis client used when Redis is disabled.

    Methods mirror the minimal surface used in this codebase so callers can
    proceed without special-casing a missing cache.
    """

    def get(self, key: str):
        return None

    def setex(self, key: str, expire: int, value: str):
        return None

    def incr(self, key: str):
        return 0

    def expire(self, key: str, seconds: int):
        return None

    def scan_iter(self, pattern: str):
        return iter(())

    def delete(self, *keys: str):
        return 0

    def close(self):
        return None


def get_redis_client() -> redis.Redis:
    global _redis_client
    if _redis_client is None:
        url = (settings.REDIS_URL or "").strip()
        if not url or url.lower() in {"none", "disabled", "false", "0"}:
            _redis_client = _NullRedis()  # type: ignore[assignment]
            return _redis_client
        # Conservative socket timeouts so a slow Redis does not stall
        # login or listing requests.
        _redis_client = redis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=float(os.getenv("REDIS_CONNECT_TIMEOUT", "0.5")),
            socket_timeout=float(os.getenv("REDIS_SOCKET_TIMEOUT", "0.5")),
        )
    return _redis_client


SERVICE_LIST_KEY_PREFIX = "services:list"


def _apply_jitter(expire: int) -> int:
    """Return a TTL with a small random jitter to prevent cache stampedes."""
    return expire + random.randint(0, max(1, expire // 10))


def _make_key(filters: dict) -> str:
    """Return a stable Redis key for a service listing filter set."""
    parts = []
    for name in sorted(filters):
        value = filters[name]
        parts.append(f"{name}={'' if value is None else value}")
    return f"{SERVICE_LIST_KEY_PREFIX}:{'&'.join(parts)}"


def get_cached_service_list(filters: dict) -> Any | None:
    """Retrieve a cached listing payload for the given filters, if present."""
    client = get_redis_client()
    key = _make_key(filters)
    try:
        data = client.get(key)
    except redis.exceptions.RedisError as exc:
        logger.warning("Redis unavailable: %s", exc)
        return None
    if not data:
        return None
    try:
        return loads(data)
    except ValueError as exc:
        # Treat malformed payloads as cache misses instead of 500s.
        logger.warning("Could not decode service list cache for key %s: %s", key, exc)
        return None


def cache_service_list(data: Any, filters: dict, expire: Optional[int] = None) -> None:
    """Cache a listing payload for the given filters."""
    client = get_redis_client()
    key = _make_key(filters)
    ttl = _apply_jitter(expire if expire is not None else settings.SERVICE_LIST_CACHE_TTL)
    try:
        client.setex(key, ttl, dumps(data))
    except redis.exceptions.RedisError as exc:
        logger.warning("Could not cache service list: %s", exc)


def invalidate_service_list_cache() -> None:
    """Remove all cached listing pages (ratings and service fields changed)."""
    client = get_redis_client()
    try:
        for key in client.scan_iter(f"{SERVICE_LIST_KEY_PREFIX}:*"):
            client.delete(key)
    except redis.exceptions.RedisError as exc:
        logger.warning("Could not clear service list cache: %s", exc)


def close_redis_client() -> None:
    """Close the global Redis client if it exists."""
    global _redis_client
    if _redis_client is not None:
        try:
            _redis_client.close()
        except redis.exceptions.RedisError as exc:  # pragma: no cover - best effort
            logger.warning("Error closing Redis client: %s", exc)
        finally:
            _redis_client = None
