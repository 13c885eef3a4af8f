from __future__ import annotations

import logging
import time

from redis.exceptions import RedisError

from bartmart_indexer.app.domain.models import UserStats, normalize_address
from bartmart_indexer.app.infrastructure.adapters.projection.base import (
    RedisProjectionStore,
    _opt_int,
    _opt_str,
)
from bartmart_indexer.app.infrastructure.db.keys import Keys

logger = logging.getLogger(__name__)


class RedisUserStore(RedisProjectionStore):
    """
    Per-account activity counters.

    The ordersCreated / ordersFulfilled / ordersCancelled counters are bumped
    once per processed event with no dedup, so a redelivered event counts
    twice. The user:<addr>:orders:created|fulfilled sets are idempotent and
    hold the exact order ids.
    """

    async def save_user_activity(
        self,
        address: str,
        *,
        order_created: int | None = None,
        order_fulfilled: int | None = None,
        order_cancelled: int | None = None,
        seen_at: int | None = None,
    ) -> bool:
        addr = normalize_address(address)
        user_key = Keys.user(addr)
        ts = seen_at if seen_at is not None else int(time.time())

        try:
            first_seen, last_seen = await self._client.hmget(user_key, ["firstSeen", "lastSeen"])

            pipe = self._client.pipeline(transaction=True)
            pipe.hsetnx(user_key, "address", addr)
            pipe.hsetnx(user_key, "ordersCreated", "0")
            pipe.hsetnx(user_key, "ordersFulfilled", "0")
            pipe.hsetnx(user_key, "ordersCancelled", "0")
            if first_seen is None or ts < int(first_seen):
                pipe.hset(user_key, "firstSeen", str(ts))
            if last_seen is None or ts > int(last_seen):
                pipe.hset(user_key, "lastSeen", str(ts))

            if order_created is not None:
                pipe.sadd(Keys.user_orders_created(addr), str(order_created))
                pipe.hincrby(user_key, "ordersCreated", 1)
            if order_fulfilled is not None:
                pipe.sadd(Keys.user_orders_fulfilled(addr), str(order_fulfilled))
                pipe.hincrby(user_key, "ordersFulfilled", 1)
            if order_cancelled is not None:
                pipe.hincrby(user_key, "ordersCancelled", 1)

            await pipe.execute()
        except RedisError as exc:
            logger.error("Error saving activity of %s to Redis: %s", addr, exc)
            return False
        return True

    async def get_user_stats(self, address: str) -> UserStats | None:
        addr = normalize_address(address)
        try:
            data = await self._client.hgetall(Keys.user(addr))
        except RedisError as exc:
            logger.error("Error getting stats of %s from Redis: %s", addr, exc)
            return None
        if not data:
            return None

        return UserStats(
            address=addr,
            orders_created=int(data.get("ordersCreated") or 0),
            orders_fulfilled=int(data.get("ordersFulfilled") or 0),
            orders_cancelled=int(data.get("ordersCancelled") or 0),
            total_volume=_opt_str(data.get("totalVolume")),
            first_seen=_opt_int(data.get("firstSeen")),
            last_seen=_opt_int(data.get("lastSeen")),
        )
