from __future__ import annotations

import logging

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from bartmart_indexer.app.config import settings

logger = logging.getLogger(__name__)


def create_redis_client(*, url: str | None = None) -> aioredis.Redis:
    """
    Factory for the Redis client backing the projection store.

    The client is created per task and passed explicitly to every store,
    there is no process-wide singleton.
    """
    return aioredis.from_url(
        url or settings.redis_url,
        decode_responses=True,
        health_check_interval=30,
    )


async def ensure_redis_connection(client: aioredis.Redis) -> bool:
    try:
        await client.ping()
    except RedisError as exc:
        logger.error("Failed to connect to Redis: %s", exc)
        return False
    return True


async def close_redis_client(client: aioredis.Redis) -> None:
    await client.aclose()
