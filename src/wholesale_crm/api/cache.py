"""
Redis Caching Layer

Caches read-heavy aggregate endpoints (dashboard statistics). Redis is
optional: when it is not configured or unreachable every call goes
straight to the database.
"""
import json
import hashlib
from typing import Optional, Callable, Any
from functools import wraps

import redis
from redis.exceptions import RedisError
from sqlalchemy.orm import Session

from config.settings import settings
from src.wholesale_crm.utils.logger import get_logger

logger = get_logger(__name__)

redis_client: Optional[redis.Redis] = None
_connection_failed = False


def get_redis_client() -> Optional[redis.Redis]:
    """
    Get Redis client instance.

    Returns:
        Redis client if available, None if not configured or connection fails
    """
    global redis_client, _connection_failed

    if redis_client is None and not _connection_failed:
        if not settings.redis_url:
            logger.debug("redis_not_configured")
            _connection_failed = True
            return None

        try:
            client = redis.Redis.from_url(
                settings.redis_url,
                decode_responses=True,
                socket_connect_timeout=2,
                socket_timeout=2,
            )
            client.ping()
            redis_client = client
        except RedisError as e:
            logger.warning("redis_connection_failed", error=str(e))
            _connection_failed = True

    return redis_client


def make_cache_key(prefix: str, *args, **kwargs) -> str:
    """
    Generate cache key from function arguments.

    Database sessions are skipped so that requests with the same
    parameters share an entry.
    """
    key_data = {
        "args": [str(arg) for arg in args if not isinstance(arg, Session)],
        "kwargs": {
            k: str(v) for k, v in sorted(kwargs.items()) if not isinstance(v, Session)
        },
    }
    key_string = json.dumps(key_data, sort_keys=True)
    key_hash = hashlib.md5(key_string.encode()).hexdigest()
    return f"{prefix}:{key_hash}"


def cache_result(prefix: str, ttl: int = None):
    """
    Decorator to cache JSON-serializable function results in Redis.

    Args:
        prefix: Cache key prefix
        ttl: Time to live in seconds (defaults to settings.cache_ttl_seconds)
    """
    expiry = ttl or settings.cache_ttl_seconds

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            client = get_redis_client()
            if client is None:
                return func(*args, **kwargs)

            cache_key = make_cache_key(prefix, *args, **kwargs)

            try:
                cached = client.get(cache_key)
                if cached is not None:
                    logger.debug("cache_hit", key=cache_key)
                    return json.loads(cached)
            except RedisError as e:
                logger.warning("cache_read_error", key=cache_key, error=str(e))

            result = func(*args, **kwargs)

            try:
                payload = result.model_dump(mode="json") if hasattr(result, "model_dump") else result
                client.setex(cache_key, expiry, json.dumps(payload, default=str))
            except RedisError as e:
                logger.warning("cache_write_error", key=cache_key, error=str(e))

            return result

        return wrapper
    return decorator


def invalidate_cache(prefix: str) -> int:
    """
    Invalidate all cache keys with given prefix.

    Returns:
        Number of keys deleted
    """
    client = get_redis_client()
    if client is None:
        return 0

    try:
        keys = list(client.scan_iter(match=f"{prefix}:*"))
        deleted = client.delete(*keys) if keys else 0
        logger.debug("cache_invalidated", prefix=prefix, deleted=deleted)
        return deleted
    except RedisError as e:
        logger.warning("cache_invalidation_error", prefix=prefix, error=str(e))
        return 0


def get_cache_stats() -> dict:
    """
    Get Redis cache statistics.

    Returns:
        Dictionary with cache stats
    """
    client = get_redis_client()

    if client is None:
        return {
            "available": False,
            "error": "Redis connection unavailable"
        }

    try:
        info = client.info("stats")
        hits = info.get("keyspace_hits", 0)
        misses = info.get("keyspace_misses", 0)
        return {
            "available": True,
            "total_keys": client.dbsize(),
            "hits": hits,
            "misses": misses,
            "hit_rate": hits / max(hits + misses, 1) * 100,
        }
    except RedisError as e:
        return {
            "available": False,
            "error": str(e)
        }
