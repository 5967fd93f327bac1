"""Redis backend for the persisted transaction snapshot.

Values are JSON documents encoded with orjson. If Redis cannot be reached at
startup the backend stays disabled: reads return None, writes return False,
and the transaction store keeps working from memory.
"""

from __future__ import annotations

import logging
from typing import Any

import orjson
import redis.asyncio as redis

from stellar_wrap.config import get_settings

logger = logging.getLogger(__name__)

_client: redis.Redis | None = None


async def init_cache(redis_url: str | None = None) -> None:
    """Connect to Redis, or leave the backend disabled if unreachable."""
    global _client

    if _client is not None:
        return

    url = redis_url or get_settings().redis_url
    client = redis.Redis.from_url(url, max_connections=4)
    try:
        await client.ping()
    except (redis.ConnectionError, OSError) as e:
        logger.warning(f"Redis unavailable at {url} ({e}); transaction state is memory-only")
        await client.aclose()
        return

    _client = client
    logger.info(f"Redis connected: {url}")


async def close_cache() -> None:
    """Disconnect from Redis."""
    global _client

    if _client is None:
        return
    await _client.aclose()
    _client = None
    logger.info("Redis disconnected")


def is_cache_available() -> bool:
    """Whether writes will reach Redis."""
    return _client is not None


async def get_json(key: str) -> Any | None:
    """Read and decode a JSON document.

    Returns:
        The decoded value, or None if missing, undecodable or Redis is down
    """
    if _client is None:
        return None

    try:
        raw = await _client.get(key)
    except redis.RedisError as e:
        logger.warning(f"Redis read of {key} failed: {e}")
        return None
    if raw is None:
        return None

    try:
        return orjson.loads(raw)
    except orjson.JSONDecodeError as e:
        logger.warning(f"Corrupt JSON under {key}: {e}")
        return None


async def set_json(key: str, value: Any, ttl: int | None = None) -> bool:
    """Encode and write a JSON document.

    Args:
        key: Redis key
        value: orjson-serializable value
        ttl: Expiry in seconds, or None to keep forever

    Returns:
        True if written
    """
    if _client is None:
        return False

    try:
        payload = orjson.dumps(value)
    except TypeError as e:
        logger.warning(f"Cannot encode value for {key}: {e}")
        return False

    try:
        await _client.set(key, payload, ex=ttl)
    except redis.RedisError as e:
        logger.warning(f"Redis write of {key} failed: {e}")
        return False
    return True

