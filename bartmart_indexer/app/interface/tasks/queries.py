"""
Read/write entry points for projection consumers (API routes, operators).

Each call opens its own Redis client and closes it before returning. Store
failures come back as None / [] / False, never as exceptions.
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from bartmart_indexer.app.domain.models import (
    Order,
    OrderFilters,
    TokenMetadata,
    Transaction,
    UserStats,
)
from bartmart_indexer.app.infrastructure.db.redis import close_redis_client, create_redis_client
from bartmart_indexer.app.infrastructure.factories.erc20_tokens_factory import (
    token_resolver_factory,
)
from bartmart_indexer.app.infrastructure.factories.projection_factory import (
    ProjectionStores,
    projection_factory,
)


@asynccontextmanager
async def _stores() -> AsyncIterator[ProjectionStores]:
    client = create_redis_client()
    try:
        yield projection_factory(client=client)
    finally:
        await close_redis_client(client)


async def get_order(order_id: int) -> Order | None:
    async with _stores() as stores:
        return await stores.orders.get_order(order_id)


async def list_orders(filters: OrderFilters) -> list[Order]:
    async with _stores() as stores:
        return await stores.orders.get_orders(filters)


async def get_transaction(tx_hash: str) -> Transaction | None:
    async with _stores() as stores:
        return await stores.transactions.get_transaction(tx_hash)


async def save_transaction(tx: Transaction) -> bool:
    async with _stores() as stores:
        return await stores.transactions.save_transaction(tx)


async def list_user_transactions(address: str, limit: int = 100) -> list[Transaction]:
    async with _stores() as stores:
        return await stores.transactions.get_user_transactions(address, limit)


async def list_order_transactions(order_id: int) -> list[Transaction]:
    async with _stores() as stores:
        return await stores.transactions.get_order_transactions(order_id)


async def get_user_stats(address: str) -> UserStats | None:
    async with _stores() as stores:
        return await stores.users.get_user_stats(address)


async def list_tokens() -> list[TokenMetadata]:
    async with _stores() as stores:
        return await stores.tokens.get_all_tokens()


async def save_token(metadata: TokenMetadata) -> bool:
    async with _stores() as stores:
        return await stores.tokens.save_token_metadata(metadata)


async def resolve_token(address: str, *, backend: str = "web3") -> TokenMetadata | None:
    async with _stores() as stores:
        resolver = token_resolver_factory(store=stores.tokens, backend=backend)
        return await resolver.resolve(address)
