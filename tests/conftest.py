"""Shared test fixtures."""
from __future__ import annotations

import fakeredis
import pytest

from bartmart_indexer.app.application.services.event_processor import EventProcessor
from bartmart_indexer.app.application.services.incremental_indexer import IncrementalIndexer
from bartmart_indexer.app.infrastructure.factories.projection_factory import (
    ProjectionStores,
    projection_factory,
)
from tests.fakes import FakeChainReader


@pytest.fixture
async def redis_client():
    """Async Redis double; every test gets its own empty server."""
    client = fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer(), decode_responses=True)
    yield client
    await client.aclose()


@pytest.fixture
def stores(redis_client) -> ProjectionStores:
    return projection_factory(client=redis_client)


@pytest.fixture
def processor(stores: ProjectionStores) -> EventProcessor:
    return EventProcessor(
        orders=stores.orders,
        transactions=stores.transactions,
        users=stores.users,
    )


@pytest.fixture
def chain() -> FakeChainReader:
    return FakeChainReader()


@pytest.fixture
def indexer(
    chain: FakeChainReader,
    stores: ProjectionStores,
    processor: EventProcessor,
) -> IncrementalIndexer:
    return IncrementalIndexer(
        chain=chain,
        cursor=stores.cursor,
        processor=processor,
        lookback_blocks=1000,
    )
