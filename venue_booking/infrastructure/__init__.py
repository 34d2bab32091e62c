"""Clients for services outside the database."""

from .redis_client import close_redis, get_redis, redis_status

__all__ = ["close_redis", "get_redis", "redis_status"]
