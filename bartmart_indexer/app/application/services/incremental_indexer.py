from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from bartmart_indexer.app.application.services.event_processor import (
    EventProcessor,
    ProcessOutcome,
)
from bartmart_indexer.app.domain.errors import IndexingBatchError, StoreUnavailableError
from bartmart_indexer.app.domain.events import BlockInfo, EventLog, EventName, TransactionInfo
from bartmart_indexer.app.domain.ports.out import ChainReader, IndexerCursorStore

logger = logging.getLogger(__name__)

DEFAULT_LOOKBACK_BLOCKS = 1000


@dataclass(frozen=True)
class BlockRange:
    from_block: int
    to_block: int

    def validate(self) -> None:
        if self.from_block < 0 or self.to_block < 0:
            raise ValueError("Block numbers must be non-negative")
        if self.from_block > self.to_block:
            raise ValueError("from_block must be <= to_block")


class IncrementalIndexer:
    """
    Advances the projection from the stored cursor to the chain head.

    The cursor write is the commit point: it happens only after every log of
    the range was applied, so a failed run is retried from the same block on
    the next invocation (events are applied at least once).

    A missing cursor starts from `lookback_blocks` below the head; older
    history is the full sync's job.
    """

    def __init__(
        self,
        *,
        chain: ChainReader,
        cursor: IndexerCursorStore,
        processor: EventProcessor,
        lookback_blocks: int = DEFAULT_LOOKBACK_BLOCKS,
    ) -> None:
        self._chain = chain
        self._cursor = cursor
        self._processor = processor
        self._lookback_blocks = lookback_blocks

    async def run(self) -> int:
        """Index everything since the cursor; returns the number of logs processed."""
        if not await self._cursor.is_available():
            raise StoreUnavailableError()

        head = await self._chain.current_block_height()
        last_block = await self._cursor.get_last_block()

        if last_block is None:
            from_block = max(head - self._lookback_blocks, 0)
            logger.info(
                "No indexer cursor found, starting %s blocks behind head at %s",
                head - from_block,
                from_block,
            )
        elif last_block >= head:
            logger.info("Indexer caught up at block %s", last_block)
            return 0
        else:
            from_block = last_block + 1

        processed = await self.index_block_range(BlockRange(from_block=from_block, to_block=head))

        if not await self._cursor.set_last_block(head):
            raise StoreUnavailableError(f"Cannot persist indexer cursor at block {head}")
        return processed

    async def index_block_range(self, block_range: BlockRange) -> int:
        """
        Apply all BartMart events of the inclusive range. Does not touch the cursor.

        Created logs go first, then fulfilled, then cancelled, so an order
        created and settled inside one range is never looked up before it exists.
        """
        block_range.validate()
        from_block, to_block = block_range.from_block, block_range.to_block
        logger.info("Indexing blocks %s to %s", from_block, to_block)

        created, fulfilled, cancelled = await asyncio.gather(
            *(
                self._chain.get_event_logs(
                    event_name=name,
                    from_block=from_block,
                    to_block=to_block,
                )
                for name in (
                    EventName.ORDER_CREATED,
                    EventName.ORDER_FULFILLED,
                    EventName.ORDER_CANCELLED,
                )
            )
        )
        ordered_logs = [*created, *fulfilled, *cancelled]
        if not ordered_logs:
            logger.info("No events in blocks %s to %s", from_block, to_block)
            return 0

        blocks, txs = await self._resolve_context(ordered_logs)

        failed = 0
        skipped = 0
        for log in ordered_logs:
            outcome = await self._processor.process(
                log,
                blocks[log.block_number],
                txs[log.transaction_hash],
            )
            if outcome is ProcessOutcome.FAILED:
                failed += 1
            elif outcome is ProcessOutcome.SKIPPED:
                skipped += 1

        if failed:
            raise IndexingBatchError(from_block, to_block, failed)

        logger.info(
            "Processed %s events from blocks %s to %s (skipped=%s)",
            len(ordered_logs),
            from_block,
            to_block,
            skipped,
        )
        return len(ordered_logs)

    async def _resolve_context(
        self, logs: list[EventLog]
    ) -> tuple[dict[int, BlockInfo], dict[str, TransactionInfo]]:
        block_numbers = sorted({log.block_number for log in logs})
        tx_hashes = sorted({log.transaction_hash for log in logs})

        blocks = await asyncio.gather(*(self._chain.get_block(n) for n in block_numbers))
        txs = await asyncio.gather(*(self._chain.get_transaction(h) for h in tx_hashes))

        return (
            dict(zip(block_numbers, blocks, strict=True)),
            dict(zip(tx_hashes, txs, strict=True)),
        )
