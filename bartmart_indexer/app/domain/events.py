"""
Typed contract events and chain context.

Each BartMart event kind is its own frozen dataclass; decoding happens once at
the chain reader boundary, so downstream code never sees loosely-typed args.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union


class EventName(str, Enum):
    ORDER_CREATED = "OrderCreated"
    ORDER_FULFILLED = "OrderFulfilled"
    ORDER_CANCELLED = "OrderCancelled"


@dataclass(frozen=True)
class OrderCreatedEvent:
    order_id: int
    creator: str
    input_token: str
    input_amount: int
    output_token: str
    output_amount: int


@dataclass(frozen=True)
class OrderFulfilledEvent:
    order_id: int
    fulfiller: str


@dataclass(frozen=True)
class OrderCancelledEvent:
    order_id: int


BartMartEvent = Union[OrderCreatedEvent, OrderFulfilledEvent, OrderCancelledEvent]


@dataclass(frozen=True)
class EventLog:
    event: BartMartEvent
    block_number: int
    transaction_hash: str
    log_index: int = 0

    @property
    def order_id(self) -> int:
        return self.event.order_id


@dataclass(frozen=True)
class BlockInfo:
    number: int
    timestamp: int


@dataclass(frozen=True)
class TransactionInfo:
    hash: str


@dataclass(frozen=True)
class ContractOrder:
    """Result of the contract's orders(uint256) view."""

    creator: str
    input_token: str
    input_amount: int
    output_token: str
    output_amount: int
    fulfilled: bool
    cancelled: bool
