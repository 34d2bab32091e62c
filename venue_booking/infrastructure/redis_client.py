"""
Connection to the Redis server that brokers booking notifications.

Redis is optional. When it is disabled or unreachable `get_redis` returns
None and notifications degrade to log lines. After a failed connection
attempt no new attempt is made for REDIS_RETRY_SECONDS, so an outage does
not add a connect timeout to every notification.
"""

import time
from typing import Optional

import redis.asyncio as redis

from venue_booking.core.config import get_settings
from venue_booking.core.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()

_client: Optional[redis.Redis] = None
_last_failure: Optional[float] = None


def _in_backoff() -> bool:
    return _last_failure is not None and time.monotonic() - _last_failure < settings.REDIS_RETRY_SECONDS


async def _connect() -> Optional[redis.Redis]:
    global _last_failure
    client = redis.from_url(
        settings.REDIS_URL,
        decode_responses=True,
        socket_connect_timeout=settings.REDIS_TIMEOUT_SECONDS,
        socket_timeout=settings.REDIS_TIMEOUT_SECONDS,
        health_check_interval=30,
    )
    try:
        await client.ping()
    except redis.RedisError as e:
        _last_failure = time.monotonic()
        logger.error("redis_connection_failed", error=str(e), retry_in_seconds=settings.REDIS_RETRY_SECONDS)
        await client.aclose()
        return None
    _last_failure = None
    logger.info("redis_connected")
    return client


async def get_redis() -> Optional[redis.Redis]:
    """The shared client, or None when Redis is disabled or down."""
    global _client
    if not settings.REDIS_ENABLED:
        return None
    if _client is None and not _in_backoff():
        _client = await _connect()
    return _client


async def close_redis() -> None:
    global _client, _last_failure
    if _client is not None:
        await _client.aclose()
    _client = None
    _last_failure = None


async def redis_status() -> dict:
    if not settings.REDIS_ENABLED:
        return {"status": "disabled"}
    client = await get_redis()
    if client is None:
        return {"status": "unavailable"}
    try:
        await client.ping()
    except redis.RedisError as e:
        return {"status": "error", "error": str(e)}
    return {"status": "connected"}
