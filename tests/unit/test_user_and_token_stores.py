# tests/unit/test_user_and_token_stores.py
"""Unit tests for user activity, token cache and indexer cursor stores."""
from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from bartmart_indexer.app.domain.errors import StoreUnavailableError
from bartmart_indexer.app.domain.models import TokenMetadata
from bartmart_indexer.app.infrastructure.adapters.projection.cursor import RedisIndexerCursorStore
from bartmart_indexer.app.infrastructure.adapters.projection.tokens import RedisTokenStore
from bartmart_indexer.app.infrastructure.adapters.projection.users import RedisUserStore
from tests.fakes import CREATOR


class TestUserStore:
    async def test_unknown_user(self, stores) -> None:
        assert await stores.users.get_user_stats(CREATOR) is None

    async def test_counters_per_activity(self, stores) -> None:
        await stores.users.save_user_activity(CREATOR, order_created=1, seen_at=1000)
        await stores.users.save_user_activity(CREATOR, order_created=2, seen_at=1100)
        await stores.users.save_user_activity(CREATOR, order_fulfilled=5, seen_at=1200)
        await stores.users.save_user_activity(CREATOR, order_cancelled=1, seen_at=1300)

        stats = await stores.users.get_user_stats(CREATOR)

        assert stats.address == CREATOR
        assert stats.orders_created == 2
        assert stats.orders_fulfilled == 1
        assert stats.orders_cancelled == 1
        assert stats.first_seen == 1000
        assert stats.last_seen == 1300

    async def test_seen_bounds_ignore_arrival_order(self, stores) -> None:
        await stores.users.save_user_activity(CREATOR, order_created=2, seen_at=2000)
        await stores.users.save_user_activity(CREATOR, order_created=1, seen_at=1000)

        stats = await stores.users.get_user_stats(CREATOR)

        assert stats.first_seen == 1000
        assert stats.last_seen == 2000

    async def test_address_is_normalized(self, stores, redis_client) -> None:
        await stores.users.save_user_activity(
            CREATOR.upper().replace("0X", "0x"), order_created=1, seen_at=1000
        )

        assert await redis_client.hget(f"user:{CREATOR}", "address") == CREATOR

    async def test_redelivered_event_double_counts(self, stores, redis_client) -> None:
        # counters have no dedup; the per-user order sets do
        await stores.users.save_user_activity(CREATOR, order_created=7, seen_at=1000)
        await stores.users.save_user_activity(CREATOR, order_created=7, seen_at=1000)

        stats = await stores.users.get_user_stats(CREATOR)

        assert stats.orders_created == 2
        assert await redis_client.smembers(f"user:{CREATOR}:orders:created") == {"7"}

    async def test_redis_error_returns_false(self) -> None:
        client = MagicMock()
        client.hmget = AsyncMock(side_effect=RedisConnectionError("down"))
        store = RedisUserStore(client)

        assert await store.save_user_activity(CREATOR, order_created=1) is False


class TestTokenStore:
    async def test_round_trip(self, stores) -> None:
        meta = TokenMetadata(
            address="0x833589FCD6EDB6E08F4C7C32D4F71B54BDA02913",
            symbol="USDC",
            name="USD Coin",
            decimals=6,
            logo_uri="https://example.org/usdc.png",
        )
        assert await stores.tokens.save_token_metadata(meta)

        stored = await stores.tokens.get_token_metadata(meta.address)

        assert stored.address == "0x833589fcd6edb6e08f4c7c32d4f71b54bda02913"
        assert stored.symbol == "USDC"
        assert stored.decimals == 6
        assert stored.logo_uri == "https://example.org/usdc.png"
        assert stored.last_updated is not None

    async def test_all_tokens(self, stores) -> None:
        await stores.tokens.save_token_metadata(
            TokenMetadata(address="0x02", symbol="B", name="B", decimals=18)
        )
        await stores.tokens.save_token_metadata(
            TokenMetadata(address="0x01", symbol="A", name="A", decimals=6)
        )

        tokens = await stores.tokens.get_all_tokens()

        assert [t.symbol for t in tokens] == ["A", "B"]
        assert tokens[0].logo_uri is None

    async def test_missing_token(self, stores) -> None:
        assert await stores.tokens.get_token_metadata("0x03") is None

    async def test_redis_error(self) -> None:
        client = MagicMock()
        client.hgetall = AsyncMock(side_effect=RedisConnectionError("down"))
        client.smembers = AsyncMock(side_effect=RedisConnectionError("down"))
        store = RedisTokenStore(client)

        assert await store.get_token_metadata("0x01") is None
        assert await store.get_all_tokens() == []


class TestCursorStore:
    async def test_unset(self, stores) -> None:
        assert await stores.cursor.get_last_block() is None

    async def test_set_and_get(self, stores, redis_client) -> None:
        assert await stores.cursor.set_last_block(100)

        assert await stores.cursor.get_last_block() == 100
        assert await redis_client.get("indexer:lastBlock") == "100"

    async def test_never_moves_backwards(self, stores) -> None:
        await stores.cursor.set_last_block(100)

        assert await stores.cursor.set_last_block(90)
        assert await stores.cursor.get_last_block() == 100

    async def test_available(self, stores) -> None:
        assert await stores.cursor.is_available()

    async def test_unavailable(self) -> None:
        client = MagicMock()
        client.ping = AsyncMock(side_effect=RedisConnectionError("down"))
        client.get = AsyncMock(side_effect=RedisConnectionError("down"))
        store = RedisIndexerCursorStore(client)

        assert await store.is_available() is False
        with pytest.raises(StoreUnavailableError):
            await store.get_last_block()
        assert await store.set_last_block(5) is False
