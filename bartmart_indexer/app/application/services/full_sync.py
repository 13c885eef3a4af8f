from __future__ import annotations

import asyncio
import logging

from bartmart_indexer.app.domain.models import Order
from bartmart_indexer.app.domain.ports.out import ChainReader, OrderStore

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 50


class FullSyncReconciler:
    """
    Rebuilds the order projection straight from contract storage.

    Walks ids 0..orderCounter()-1 in sequential batches, each batch read
    concurrently, and overwrites the stored flags with the contract's.
    Event context (createdAt, blockNumber, transactionHash) is not available
    here; values already stored are kept. Leaves the indexer cursor alone.
    """

    def __init__(
        self,
        *,
        chain: ChainReader,
        orders: OrderStore,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        self._chain = chain
        self._orders = orders
        self._batch_size = batch_size

    async def run(self) -> int:
        count = await self._chain.read_order_count()
        logger.info("Syncing %s orders from contract", count)

        synced = 0
        for start in range(0, count, self._batch_size):
            end = min(start + self._batch_size, count)
            results = await asyncio.gather(*(self._sync_order(i) for i in range(start, end)))
            synced += sum(results)
            logger.info("Synced orders %s to %s", start, end - 1)

        logger.info("Finished full sync: %s of %s orders synced", synced, count)
        return synced

    async def _sync_order(self, order_id: int) -> bool:
        try:
            raw = await self._chain.read_order(order_id)
            order = Order(
                order_id=order_id,
                creator=raw.creator,
                input_token=raw.input_token,
                input_amount=raw.input_amount,
                output_token=raw.output_token,
                output_amount=raw.output_amount,
                fulfilled=raw.fulfilled,
                cancelled=raw.cancelled,
            )
        except Exception:
            logger.exception("Error syncing order %s", order_id)
            return False

        if not await self._orders.save_order(order):
            logger.error("Error syncing order %s: store write failed", order_id)
            return False
        return True
