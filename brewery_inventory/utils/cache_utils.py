import json
import logging
from typing import Any, Optional

import redis

logger = logging.getLogger(__name__)


def create_redis_client(url: Optional[str]):
    """Redis client for REDIS_URL; no URL means caching is off"""
    if not url:
        return None
    return redis.Redis.from_url(url, decode_responses=True)


def cache_key(prefix: str, identifier: Any) -> str:
    return f"{prefix}:{identifier}"


def get_from_cache(key: str, redis_client) -> Optional[Any]:
    """Read a JSON value; misses and Redis errors both return None"""
    if not redis_client:
        return None

    try:
        cached_data = redis_client.get(key)
        if cached_data:
            return json.loads(cached_data)
    except redis.RedisError as e:
        logger.warning(f"Error reading from cache key {key}: {e}")

    return None


def set_cache(key: str, data: Any, ttl: int, redis_client) -> bool:
    """Write a JSON value with a TTL in seconds"""
    if not redis_client:
        return False

    try:
        redis_client.setex(key, ttl, json.dumps(data))
        return True
    except redis.RedisError as e:
        logger.warning(f"Error setting cache key {key}: {e}")
        return False


def delete_cache(key: str, redis_client) -> bool:
    if not redis_client:
        return False

    try:
        return bool(redis_client.delete(key))
    except redis.RedisError as e:
        logger.warning(f"Error deleting cache key {key}: {e}")
        return False


def clear_cache_pattern(pattern: str, redis_client) -> int:
    """Delete every key matching pattern"""
    if not redis_client:
        return 0

    try:
        keys = list(redis_client.scan_iter(match=pattern))
        if keys:
            return redis_client.delete(*keys)
        return 0
    except redis.RedisError as e:
        logger.warning(f"Error clearing cache pattern {pattern}: {e}")
        return 0
