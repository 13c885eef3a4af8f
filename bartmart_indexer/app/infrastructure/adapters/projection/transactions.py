from __future__ import annotations

import logging

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from bartmart_indexer.app.config import settings
from bartmart_indexer.app.domain.models import (
    Transaction,
    TransactionStatus,
    TransactionType,
    normalize_address,
)
from bartmart_indexer.app.infrastructure.adapters.projection.base import (
    RedisProjectionStore,
    _opt_int,
    _opt_str,
    _without_none,
)
from bartmart_indexer.app.infrastructure.db.keys import Keys

logger = logging.getLogger(__name__)


def _encode_transaction(tx: Transaction) -> dict[str, str]:
    return _without_none(
        {
            "hash": tx.hash,
            "from": normalize_address(tx.from_address),
            "to": normalize_address(tx.to_address) if tx.to_address else None,
            "type": tx.type.value,
            "orderId": tx.order_id,
            "tokenAddress": normalize_address(tx.token_address) if tx.token_address else None,
            "amount": tx.amount,
            "blockNumber": tx.block_number,
            "timestamp": tx.timestamp,
            "status": tx.status.value,
        }
    )


def _decode_transaction(data: dict[str, str], tx_hash: str) -> Transaction:
    return Transaction(
        hash=data.get("hash") or tx_hash,
        from_address=data["from"],
        to_address=_opt_str(data.get("to")),
        type=TransactionType(data["type"]),
        order_id=_opt_int(data.get("orderId")),
        token_address=_opt_str(data.get("tokenAddress")),
        amount=_opt_str(data.get("amount")),
        block_number=_opt_int(data.get("blockNumber")),
        timestamp=_opt_int(data.get("timestamp")),
        status=TransactionStatus(data["status"]),
    )


class RedisTransactionStore(RedisProjectionStore):
    """
    Transactions projection.

    tx:<hash> holds the record, tx:user:<addr> is a newest-first list of the
    sender's hashes capped at `history_limit`, tx:order:<id> collects the
    hashes touching an order.
    """

    def __init__(
        self,
        client: aioredis.Redis,
        *,
        batch_size: int | None = None,
        history_limit: int | None = None,
    ) -> None:
        super().__init__(client, batch_size=batch_size)
        self._history_limit = history_limit or settings.user_tx_history_limit

    async def save_transaction(self, tx: Transaction) -> bool:
        user_key = Keys.user_transactions(tx.from_address)
        try:
            pipe = self._client.pipeline(transaction=True)
            pipe.hset(Keys.transaction(tx.hash), mapping=_encode_transaction(tx))
            # re-saving a hash moves it to the front instead of duplicating it
            pipe.lrem(user_key, 0, tx.hash)
            pipe.lpush(user_key, tx.hash)
            pipe.ltrim(user_key, 0, self._history_limit - 1)
            if tx.order_id is not None:
                pipe.sadd(Keys.order_transactions(tx.order_id), tx.hash)
            await pipe.execute()
        except RedisError as exc:
            logger.error("Error saving transaction %s to Redis: %s", tx.hash, exc)
            return False
        return True

    async def get_transaction(self, tx_hash: str) -> Transaction | None:
        try:
            data = await self._client.hgetall(Keys.transaction(tx_hash))
        except RedisError as exc:
            logger.error("Error getting transaction %s from Redis: %s", tx_hash, exc)
            return None
        if not data:
            return None
        return _decode_transaction(data, tx_hash)

    async def get_user_transactions(self, address: str, limit: int = 100) -> list[Transaction]:
        if limit <= 0:
            return []
        try:
            hashes = await self._client.lrange(Keys.user_transactions(address), 0, limit - 1)
            return await self._load(hashes)
        except RedisError as exc:
            logger.error("Error getting transactions of %s from Redis: %s", address, exc)
            return []

    async def get_order_transactions(self, order_id: int) -> list[Transaction]:
        try:
            hashes = sorted(await self._client.smembers(Keys.order_transactions(order_id)))
            txs = await self._load(hashes)
        except RedisError as exc:
            logger.error("Error getting transactions of order %s from Redis: %s", order_id, exc)
            return []
        txs.sort(key=lambda t: t.timestamp or 0, reverse=True)
        return txs

    async def _load(self, hashes: list[str]) -> list[Transaction]:
        rows = await self._fetch_hashes([Keys.transaction(h) for h in hashes])
        return [
            _decode_transaction(data, h)
            for h, data in zip(hashes, rows, strict=True)
            if data
        ]
