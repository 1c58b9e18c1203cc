"""
Redis client for staff session revocation.

Only revoked JWT ids live here, each under a key that expires with the
token it names.
"""

from __future__ import annotations

import redis.asyncio as redis

from agency_portal.core.config import get_settings

settings = get_settings()

REVOKED_JTI_PREFIX = "ap:jwt:revoked:"

_client: redis.Redis | None = None


def revoked_jti_key(jti: str) -> str:
    return f"{REVOKED_JTI_PREFIX}{jti}"


async def get_redis() -> redis.Redis:
    """Return the shared client, creating its pool on first use."""
    global _client
    if _client is None:
        pool = redis.ConnectionPool.from_url(
            settings.redis_url,
            max_connections=settings.redis_max_connections,
            decode_responses=True,
        )
        _client = redis.Redis(connection_pool=pool)
    return _client


async def close_redis() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        await _client.connection_pool.disconnect()
        _client = None
