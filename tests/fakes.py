"""In-memory doubles shared by the unit tests."""
from __future__ import annotations

from dataclasses import dataclass, field

from bartmart_indexer.app.domain.errors import ChainNotFoundError
from bartmart_indexer.app.domain.events import (
    BartMartEvent,
    BlockInfo,
    ContractOrder,
    EventLog,
    EventName,
    OrderCancelledEvent,
    OrderCreatedEvent,
    OrderFulfilledEvent,
    TransactionInfo,
)

CREATOR = "0x" + "aa" * 20
TOKEN_B = "0x" + "bb" * 20
FULFILLER = "0x" + "cc" * 20
NATIVE = "0x" + "00" * 20

_EVENT_NAMES = {
    OrderCreatedEvent: EventName.ORDER_CREATED,
    OrderFulfilledEvent: EventName.ORDER_FULFILLED,
    OrderCancelledEvent: EventName.ORDER_CANCELLED,
}


def created(order_id: int, *, creator: str = CREATOR, input_amount: int = 1000) -> OrderCreatedEvent:
    return OrderCreatedEvent(
        order_id=order_id,
        creator=creator,
        input_token=NATIVE,
        input_amount=input_amount,
        output_token=TOKEN_B,
        output_amount=2000,
    )


@dataclass
class FakeChainReader:
    """ChainReader whose logs, block timestamps and contract storage are set by the test."""

    head: int = 0
    logs: list[EventLog] = field(default_factory=list)
    timestamps: dict[int, int] = field(default_factory=dict)
    contract_orders: dict[int, ContractOrder] = field(default_factory=dict)
    order_count: int | None = None
    log_queries: list[tuple[EventName, int, int]] = field(default_factory=list)

    def add_log(
        self,
        event: BartMartEvent,
        *,
        block: int,
        tx_hash: str,
        log_index: int = 0,
        timestamp: int | None = None,
    ) -> None:
        self.logs.append(
            EventLog(event=event, block_number=block, transaction_hash=tx_hash, log_index=log_index)
        )
        self.timestamps.setdefault(block, timestamp if timestamp is not None else block * 10)

    async def current_block_height(self) -> int:
        return self.head

    async def get_event_logs(
        self, *, event_name: EventName, from_block: int, to_block: int
    ) -> list[EventLog]:
        self.log_queries.append((event_name, from_block, to_block))
        return sorted(
            (
                log
                for log in self.logs
                if _EVENT_NAMES[type(log.event)] is event_name
                and from_block <= log.block_number <= to_block
            ),
            key=lambda log: (log.block_number, log.log_index),
        )

    async def get_block(self, block_number: int) -> BlockInfo:
        if block_number not in self.timestamps:
            raise ChainNotFoundError(f"block {block_number}")
        return BlockInfo(number=block_number, timestamp=self.timestamps[block_number])

    async def get_transaction(self, tx_hash: str) -> TransactionInfo:
        return TransactionInfo(hash=tx_hash)

    async def read_order(self, order_id: int) -> ContractOrder:
        if order_id not in self.contract_orders:
            raise ChainNotFoundError(f"order {order_id}")
        return self.contract_orders[order_id]

    async def read_order_count(self) -> int:
        if self.order_count is not None:
            return self.order_count
        return len(self.contract_orders)
