"""
Module for caching and short-lived key/value storage backed by Redis.

Besides read-through caching of product listings, Redis holds the transient
"continue sale" hand-off between the sales history and the POS screen.
"""
import json
import logging
import os
from typing import Any, Optional, Dict, List

import redis

logger = logging.getLogger(__name__)

# Get Redis connection string from environment variable or use default
REDIS_URL = os.environ.get("REDIS_URL", "redis://localhost:6379/0")
# Cache TTL in seconds (default: 10 minutes)
DEFAULT_CACHE_TTL = int(os.environ.get("CACHE_TTL", 600))
# Product catalog cache TTL (default: 5 minutes)
PRODUCTS_CACHE_TTL = int(os.environ.get("PRODUCTS_CACHE_TTL", 300))

PRODUCTS_CACHE_PREFIX = "products"

# Global Redis client
redis_client = None


def get_redis_client():
    """
    Get or create a Redis client instance.

    Returns None when Redis cannot be reached; callers treat that as
    "caching disabled".
    """
    global redis_client
    if redis_client is None:
        try:
            client = redis.Redis.from_url(
                REDIS_URL,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True
            )
            # Ping Redis to ensure connection works
            client.ping()
            redis_client = client
        except redis.exceptions.ConnectionError as e:
            logger.warning("Redis connection failed: %s. Caching disabled.", e)
            redis_client = None
        except Exception as e:
            logger.warning("Redis initialization error: %s. Caching disabled.", e)
            redis_client = None

    return redis_client


async def get_cache(key: str) -> Optional[Any]:
    """
    Get a value from cache by key.

    Args:
        key: The cache key to retrieve

    Returns:
        The cached value if found, otherwise None
    """
    client = get_redis_client()
    if not client:
        return None

    try:
        data = client.get(key)
        if data:
            return json.loads(data)
        return None
    except Exception as e:
        logger.warning("Cache get error for %s: %s", key, e)
        return None


async def set_cache(key: str, value: Any, ttl: int = DEFAULT_CACHE_TTL) -> bool:
    """
    Set a value in cache with optional TTL.

    Args:
        key: The cache key
        value: The value to cache (must be JSON serializable)
        ttl: Time to live in seconds (default: 10 minutes)

    Returns:
        True if successful, False otherwise
    """
    client = get_redis_client()
    if not client:
        return False

    try:
        serialized = json.dumps(value, default=str)
        return bool(client.set(key, serialized, ex=ttl))
    except Exception as e:
        logger.warning("Cache set error for %s: %s", key, e)
        return False


async def pop_cache(key: str) -> Optional[Any]:
    """
    Read a value and delete it in one round trip, so it is consumed once.

    Args:
        key: The cache key to consume

    Returns:
        The stored value if present, otherwise None
    """
    client = get_redis_client()
    if not client:
        return None

    try:
        pipe = client.pipeline()
        pipe.get(key)
        pipe.delete(key)
        data, _ = pipe.execute()
        if data:
            return json.loads(data)
        return None
    except Exception as e:
        logger.warning("Cache pop error for %s: %s", key, e)
        return None


async def delete_cache(key: str) -> bool:
    """
    Delete a value from cache by key.

    Args:
        key: The cache key to delete

    Returns:
        True if successful, False otherwise
    """
    client = get_redis_client()
    if not client:
        return False

    try:
        return client.delete(key) > 0
    except Exception as e:
        logger.warning("Cache delete error for %s: %s", key, e)
        return False


async def delete_pattern(pattern: str) -> int:
    """
    Delete all keys matching a pattern.

    Args:
        pattern: The pattern to match (e.g., "products:*")

    Returns:
        Number of keys deleted
    """
    client = get_redis_client()
    if not client:
        return 0

    try:
        keys = list(client.scan_iter(match=pattern))
        if keys:
            return client.delete(*keys)
        return 0
    except Exception as e:
        logger.warning("Cache delete pattern error for %s: %s", pattern, e)
        return 0


def generate_cache_key(prefix: str, params: Dict[str, Any]) -> str:
    """
    Generate a cache key from a prefix and parameters.

    Args:
        prefix: The prefix for the key (e.g., "products")
        params: Dictionary of parameters to include in the key

    Returns:
        A cache key string
    """
    # Sort params to ensure consistent keys
    sorted_params = sorted((k, str(v)) for k, v in params.items() if v is not None)
    param_str = ":".join(f"{k}={v}" for k, v in sorted_params)
    return f"{prefix}:{param_str}" if param_str else prefix


async def cache_product_listing(params: Dict[str, Any], products: List[Dict]) -> bool:
    """
    Cache a product listing for the given query parameters.
    """
    return await set_cache(generate_cache_key(PRODUCTS_CACHE_PREFIX, params), products, PRODUCTS_CACHE_TTL)


async def get_cached_product_listing(params: Dict[str, Any]) -> Optional[List[Dict]]:
    """
    Get a cached product listing for the given query parameters.
    """
    return await get_cache(generate_cache_key(PRODUCTS_CACHE_PREFIX, params))


async def invalidate_product_listings() -> int:
    """
    Drop every cached product listing; called after any stock or catalog write.
    """
    return await delete_pattern(f"{PRODUCTS_CACHE_PREFIX}:*")
