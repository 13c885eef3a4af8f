from __future__ import annotations

from typing import Any, Protocol

from bartmart_indexer.app.domain.events import (
    BartMartEvent,
    BlockInfo,
    ContractOrder,
    EventLog,
    EventName,
    TransactionInfo,
)
from bartmart_indexer.app.domain.models import (
    Order,
    OrderFilters,
    TokenMetadata,
    Transaction,
    UserStats,
)


class ChainReader(Protocol):
    """
    Port for read-only access to the chain and the BartMart contract.

    Implementations retry transient network failures internally and raise
    TransientNetworkError once retries are exhausted, ChainUnavailableError
    when the endpoint cannot be reached at all.
    """

    async def current_block_height(self) -> int: ...

    async def get_event_logs(
        self,
        *,
        event_name: EventName,
        from_block: int,
        to_block: int,
    ) -> list[EventLog]:
        """
        Return decoded logs of one event kind for the inclusive range
        [from_block, to_block]. Logs that fail to decode are skipped.
        """
        ...

    async def get_block(self, block_number: int) -> BlockInfo: ...

    async def get_transaction(self, tx_hash: str) -> TransactionInfo: ...

    async def read_order(self, order_id: int) -> ContractOrder: ...

    async def read_order_count(self) -> int: ...


class EvmEventDecoder(Protocol):
    @property
    def topic0(self) -> bytes: ...

    def decode(
        self,
        *,
        topics: list[bytes],
        data: bytes,
    ) -> BartMartEvent:
        """
        Decode an EVM log (topics + data) into a typed event.

        Raises MalformedEventError when the log does not match the event ABI.
        """
        ...


class Erc20TokenMetadataFetcher(Protocol):
    """
    Low-level dependency used by the token metadata resolver.

    Implementations should perform eth_call against the ERC-20 contract and return:
      - symbol (str | None)
      - decimals (int | None)
      - name (str | None)
    """

    async def fetch(self, *, token_address: str) -> dict[str, Any]: ...


class OrderStore(Protocol):
    async def save_order(self, order: Order) -> bool: ...

    async def get_order(self, order_id: int, *, strict: bool = False) -> Order | None: ...

    async def get_orders(self, filters: OrderFilters | None = None) -> list[Order]: ...


class TransactionStore(Protocol):
    async def save_transaction(self, tx: Transaction) -> bool: ...

    async def get_transaction(self, tx_hash: str) -> Transaction | None: ...

    async def get_user_transactions(self, address: str, limit: int = 100) -> list[Transaction]: ...

    async def get_order_transactions(self, order_id: int) -> list[Transaction]: ...


class UserStore(Protocol):
    async def save_user_activity(
        self,
        address: str,
        *,
        order_created: int | None = None,
        order_fulfilled: int | None = None,
        order_cancelled: int | None = None,
        seen_at: int | None = None,
    ) -> bool: ...

    async def get_user_stats(self, address: str) -> UserStats | None: ...


class TokenStore(Protocol):
    async def save_token_metadata(self, metadata: TokenMetadata) -> bool: ...

    async def get_token_metadata(self, address: str) -> TokenMetadata | None: ...

    async def get_all_tokens(self) -> list[TokenMetadata]: ...


class IndexerCursorStore(Protocol):
    """
    Port for the incremental indexer's resume cursor.

    The cursor only moves forward; writing a value <= the stored one is a no-op.
    """

    async def is_available(self) -> bool: ...

    async def get_last_block(self) -> int | None: ...

    async def set_last_block(self, block_number: int) -> bool: ...
