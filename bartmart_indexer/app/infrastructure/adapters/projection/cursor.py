from __future__ import annotations

import logging

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from bartmart_indexer.app.domain.errors import StoreUnavailableError
from bartmart_indexer.app.infrastructure.db.keys import Keys
from bartmart_indexer.app.infrastructure.db.redis import ensure_redis_connection

logger = logging.getLogger(__name__)


class RedisIndexerCursorStore:
    """Resume cursor of the incremental indexer (indexer:lastBlock)."""

    def __init__(self, client: aioredis.Redis) -> None:
        self._client = client

    async def is_available(self) -> bool:
        return await ensure_redis_connection(self._client)

    async def get_last_block(self) -> int | None:
        try:
            raw = await self._client.get(Keys.indexer_last_block())
        except RedisError as exc:
            raise StoreUnavailableError(f"Cannot read indexer cursor: {exc}") from exc
        return int(raw) if raw else None

    async def set_last_block(self, block_number: int) -> bool:
        """Persist the cursor; never moves it backwards."""
        try:
            current = await self.get_last_block()
            if current is not None and block_number <= current:
                logger.info(
                    "Cursor already at %s, not moving it to %s", current, block_number
                )
                return True
            await self._client.set(Keys.indexer_last_block(), str(block_number))
        except (RedisError, StoreUnavailableError) as exc:
            logger.error("Error saving indexer cursor %s: %s", block_number, exc)
            return False
        return True
