from __future__ import annotations

from bartmart_indexer.app.application.services.full_sync import FullSyncReconciler
from bartmart_indexer.app.config import settings
from bartmart_indexer.app.infrastructure.db.redis import close_redis_client, create_redis_client
from bartmart_indexer.app.infrastructure.factories.chain_reader_factory import (
    chain_reader_factory,
)
from bartmart_indexer.app.infrastructure.factories.projection_factory import projection_factory


async def run_full_sync_task(*, backend: str = "web3") -> int:
    """
    Task: rebuild every order in the projection from contract storage.

    - reads orderCounter() and walks ids 0..N-1 in concurrent batches,
    - overwrites fulfilled/cancelled with the contract's values,
    - leaves the indexer cursor untouched.

    Returns the number of orders synced.
    """
    client = create_redis_client()
    try:
        stores = projection_factory(client=client)
        reconciler = FullSyncReconciler(
            chain=chain_reader_factory(backend=backend),
            orders=stores.orders,
            batch_size=settings.full_sync_batch_size,
        )
        return await reconciler.run()
    finally:
        await close_redis_client(client)
