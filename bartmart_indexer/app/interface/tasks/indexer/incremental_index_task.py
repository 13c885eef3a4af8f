from __future__ import annotations

import redis.asyncio as aioredis

from bartmart_indexer.app.application.services.event_processor import EventProcessor
from bartmart_indexer.app.application.services.incremental_indexer import (
    BlockRange,
    IncrementalIndexer,
)
from bartmart_indexer.app.config import settings
from bartmart_indexer.app.domain.ports.out import ChainReader
from bartmart_indexer.app.infrastructure.db.redis import close_redis_client, create_redis_client
from bartmart_indexer.app.infrastructure.factories.chain_reader_factory import (
    chain_reader_factory,
)
from bartmart_indexer.app.infrastructure.factories.projection_factory import projection_factory


def build_incremental_indexer(
    *,
    client: aioredis.Redis,
    chain: ChainReader,
) -> IncrementalIndexer:
    stores = projection_factory(client=client)
    processor = EventProcessor(
        orders=stores.orders,
        transactions=stores.transactions,
        users=stores.users,
    )
    return IncrementalIndexer(
        chain=chain,
        cursor=stores.cursor,
        processor=processor,
        lookback_blocks=settings.indexer_lookback_blocks,
    )


async def run_incremental_index_task(*, backend: str = "web3") -> int:
    """
    Task: index BartMart events from the stored cursor up to the chain head.

    Returns the number of events processed (0 when already caught up).
    Raises when the batch fails; the cursor is then left where it was.
    """
    client = create_redis_client()
    try:
        indexer = build_incremental_indexer(
            client=client,
            chain=chain_reader_factory(backend=backend),
        )
        return await indexer.run()
    finally:
        await close_redis_client(client)


async def index_block_range_task(
    *,
    from_block: int | str,
    to_block: int | str,
    backend: str = "web3",
) -> int:
    """
    Task: re-apply events of an explicit block range without moving the cursor.

    to_block may be "latest" (the current chain head).
    """
    client = create_redis_client()
    try:
        chain = chain_reader_factory(backend=backend)
        indexer = build_incremental_indexer(client=client, chain=chain)

        resolved_to = (
            await chain.current_block_height()
            if str(to_block).strip().lower() in ("", "latest")
            else int(to_block)
        )
        return await indexer.index_block_range(
            BlockRange(from_block=int(from_block), to_block=resolved_to)
        )
    finally:
        await close_redis_client(client)
