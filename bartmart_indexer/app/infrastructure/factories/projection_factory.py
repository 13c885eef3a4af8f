from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict

import redis.asyncio as aioredis

from bartmart_indexer.app.infrastructure.adapters.projection.cursor import RedisIndexerCursorStore
from bartmart_indexer.app.infrastructure.adapters.projection.orders import RedisOrderStore
from bartmart_indexer.app.infrastructure.adapters.projection.tokens import RedisTokenStore
from bartmart_indexer.app.infrastructure.adapters.projection.transactions import (
    RedisTransactionStore,
)
from bartmart_indexer.app.infrastructure.adapters.projection.users import RedisUserStore


@dataclass(frozen=True)
class ProjectionStores:
    orders: RedisOrderStore
    transactions: RedisTransactionStore
    users: RedisUserStore
    tokens: RedisTokenStore
    cursor: RedisIndexerCursorStore


ProjectionFactory = Callable[[aioredis.Redis], ProjectionStores]

_PROJECTION_REGISTRY: Dict[str, ProjectionFactory] = {
    "redis": lambda client: ProjectionStores(
        orders=RedisOrderStore(client),
        transactions=RedisTransactionStore(client),
        users=RedisUserStore(client),
        tokens=RedisTokenStore(client),
        cursor=RedisIndexerCursorStore(client),
    ),
}


def projection_factory(*, client: aioredis.Redis, backend: str = "redis") -> ProjectionStores:
    """Bind every projection store to one injected Redis client."""
    try:
        factory = _PROJECTION_REGISTRY[backend]
    except KeyError:
        raise ValueError(f"Unsupported projection store backend: {backend!r}")
    return factory(client)
