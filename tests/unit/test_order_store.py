# tests/unit/test_order_store.py
"""Unit tests for RedisOrderStore on a fakeredis backend."""
from dataclasses import replace
from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from bartmart_indexer.app.domain.errors import StoreUnavailableError
from bartmart_indexer.app.domain.models import Order, OrderFilters, OrderStatusFilter
from bartmart_indexer.app.infrastructure.adapters.projection.orders import RedisOrderStore
from bartmart_indexer.app.infrastructure.db.keys import Keys
from tests.fakes import CREATOR, NATIVE, TOKEN_B

OTHER = "0x" + "dd" * 20
TOKEN_C = "0x" + "ee" * 20


def _order(order_id: int, **kwargs) -> Order:
    base = dict(
        order_id=order_id,
        creator=CREATOR,
        input_token=NATIVE,
        input_amount=1000,
        output_token=TOKEN_B,
        output_amount=2000,
        created_at=1000,
        block_number=100,
        transaction_hash="0xdead",
    )
    base.update(kwargs)
    return Order(**base)


class TestSaveOrder:
    async def test_round_trip(self, stores) -> None:
        order = _order(7)
        assert await stores.orders.save_order(order)
        assert await stores.orders.get_order(7) == order

    async def test_stored_fields(self, stores, redis_client) -> None:
        await stores.orders.save_order(_order(7, creator=CREATOR.upper().replace("0X", "0x")))

        data = await redis_client.hgetall("order:7")
        assert data["creator"] == CREATOR
        assert data["fulfilled"] == "0"
        assert data["cancelled"] == "0"
        assert data["createdAt"] == "1000"
        assert data["transactionHash"] == "0xdead"
        assert "fulfilledAt" not in data

    async def test_indexes(self, stores, redis_client) -> None:
        await stores.orders.save_order(_order(7))

        assert await redis_client.smembers("orders:active") == {"7"}
        assert await redis_client.smembers(Keys.orders_by_creator(CREATOR)) == {"7"}
        assert await redis_client.smembers(Keys.orders_by_token(NATIVE)) == {"7"}
        assert await redis_client.smembers(Keys.orders_by_token(TOKEN_B)) == {"7"}

    async def test_upsert_is_idempotent(self, stores, redis_client) -> None:
        order = _order(7)
        await stores.orders.save_order(order)
        before = await redis_client.hgetall("order:7")

        await stores.orders.save_order(order)

        assert await redis_client.hgetall("order:7") == before
        assert await redis_client.smembers("orders:active") == {"7"}
        assert await redis_client.scard(Keys.orders_by_creator(CREATOR)) == 1

    async def test_fulfilling_moves_status_set(self, stores, redis_client) -> None:
        order = _order(7)
        await stores.orders.save_order(order)
        await stores.orders.save_order(replace(order, fulfilled=True, fulfilled_at=1100))

        assert await redis_client.smembers("orders:active") == set()
        assert await redis_client.smembers("orders:fulfilled") == {"7"}
        assert await redis_client.smembers("orders:cancelled") == set()
        stored = await stores.orders.get_order(7)
        assert stored.fulfilled and not stored.cancelled
        assert stored.fulfilled_at == 1100

    async def test_partial_upsert_keeps_event_context(self, stores) -> None:
        await stores.orders.save_order(_order(7))
        await stores.orders.save_order(
            Order(
                order_id=7,
                creator=CREATOR,
                input_token=NATIVE,
                input_amount=1000,
                output_token=TOKEN_B,
                output_amount=2000,
                cancelled=True,
            )
        )

        stored = await stores.orders.get_order(7)
        assert stored.cancelled
        assert stored.created_at == 1000
        assert stored.block_number == 100
        assert stored.transaction_hash == "0xdead"

    async def test_clearing_flag_removes_its_timestamp(self, stores, redis_client) -> None:
        await stores.orders.save_order(_order(7, fulfilled=True, fulfilled_at=1100))
        await stores.orders.save_order(_order(7))

        assert "fulfilledAt" not in await redis_client.hgetall("order:7")
        assert await redis_client.smembers("orders:active") == {"7"}

    async def test_redis_error_returns_false(self) -> None:
        client = MagicMock()
        client.pipeline.return_value.execute = AsyncMock(side_effect=RedisConnectionError("down"))
        store = RedisOrderStore(client)

        assert await store.save_order(_order(1)) is False


class TestGetOrder:
    async def test_missing_returns_none(self, stores) -> None:
        assert await stores.orders.get_order(42) is None

    async def test_redis_error_returns_none(self) -> None:
        client = MagicMock()
        client.hgetall = AsyncMock(side_effect=RedisConnectionError("down"))
        store = RedisOrderStore(client)

        assert await store.get_order(1) is None

    async def test_strict_raises_on_redis_error(self) -> None:
        client = MagicMock()
        client.hgetall = AsyncMock(side_effect=RedisConnectionError("down"))
        store = RedisOrderStore(client)

        with pytest.raises(StoreUnavailableError):
            await store.get_order(1, strict=True)


class TestGetOrders:
    @pytest.fixture
    async def five_live_orders(self, stores) -> None:
        for i in range(1, 6):
            await stores.orders.save_order(_order(i))

    async def test_sorted_by_id_descending(self, stores, five_live_orders) -> None:
        orders = await stores.orders.get_orders()
        assert [o.order_id for o in orders] == [5, 4, 3, 2, 1]

    async def test_pagination_is_deterministic(self, stores, five_live_orders) -> None:
        page = OrderFilters(status=OrderStatusFilter.LIVE, limit=2, offset=1)

        first = await stores.orders.get_orders(page)
        second = await stores.orders.get_orders(page)

        assert [o.order_id for o in first] == [4, 3]
        assert first == second

    async def test_pages_partition_the_result(self, stores, five_live_orders) -> None:
        seen: list[int] = []
        for offset in (0, 2, 4):
            page = await stores.orders.get_orders(OrderFilters(limit=2, offset=offset))
            seen.extend(o.order_id for o in page)

        assert seen == [5, 4, 3, 2, 1]

    async def test_small_batch_size_fills_page(self, redis_client, five_live_orders) -> None:
        store = RedisOrderStore(redis_client, batch_size=2)

        orders = await store.get_orders(OrderFilters(limit=3, offset=1))

        assert [o.order_id for o in orders] == [4, 3, 2]

    async def test_offset_past_end_is_empty(self, stores, five_live_orders) -> None:
        assert await stores.orders.get_orders(OrderFilters(offset=10)) == []

    async def test_status_filter(self, stores, five_live_orders) -> None:
        await stores.orders.save_order(_order(2, fulfilled=True))
        await stores.orders.save_order(_order(4, cancelled=True))

        live = await stores.orders.get_orders(OrderFilters(status=OrderStatusFilter.LIVE))
        completed = await stores.orders.get_orders(OrderFilters(status=OrderStatusFilter.COMPLETED))

        assert [o.order_id for o in live] == [5, 3, 1]
        assert [o.order_id for o in completed] == [4, 2]

    async def test_creator_filter(self, stores, five_live_orders) -> None:
        await stores.orders.save_order(_order(6, creator=OTHER))

        orders = await stores.orders.get_orders(OrderFilters(creator=OTHER.upper().replace("0X", "0x")))

        assert [o.order_id for o in orders] == [6]

    async def test_token_filter_checks_side(self, stores) -> None:
        await stores.orders.save_order(_order(1, input_token=TOKEN_C, output_token=TOKEN_B))
        await stores.orders.save_order(_order(2, input_token=TOKEN_B, output_token=TOKEN_C))

        by_input = await stores.orders.get_orders(OrderFilters(input_token=TOKEN_C))
        by_output = await stores.orders.get_orders(OrderFilters(output_token=TOKEN_C))

        assert [o.order_id for o in by_input] == [1]
        assert [o.order_id for o in by_output] == [2]

    async def test_empty_store(self, stores) -> None:
        assert await stores.orders.get_orders() == []

    async def test_redis_error_returns_empty(self) -> None:
        client = MagicMock()
        client.sunion = AsyncMock(side_effect=RedisConnectionError("down"))
        store = RedisOrderStore(client)

        assert await store.get_orders() == []
