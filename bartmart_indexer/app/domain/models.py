from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def normalize_address(address: str) -> str:
    """Lowercase hex address; used for every key component and stored value."""
    return address.strip().lower()


def is_native_coin(address: str) -> bool:
    return normalize_address(address) == ZERO_ADDRESS


class TransactionType(str, Enum):
    CREATE = "create"
    FULFILL = "fulfill"
    CANCEL = "cancel"
    APPROVE = "approve"


class TransactionStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class OrderStatusFilter(str, Enum):
    LIVE = "live"
    COMPLETED = "completed"


@dataclass(frozen=True)
class Order:
    """
    Projection of one on-chain barter order.

    The contract is authoritative; this record only mirrors it.
    fulfilled and cancelled are mutually exclusive.
    """

    order_id: int
    creator: str
    input_token: str
    input_amount: int
    output_token: str
    output_amount: int
    fulfilled: bool = False
    cancelled: bool = False
    created_at: int | None = None
    fulfilled_at: int | None = None
    cancelled_at: int | None = None
    block_number: int | None = None
    transaction_hash: str | None = None

    def __post_init__(self) -> None:
        if self.order_id < 0:
            raise ValueError("order_id must be non-negative")
        if self.input_amount < 0 or self.output_amount < 0:
            raise ValueError("amounts must be non-negative")
        if self.fulfilled and self.cancelled:
            raise ValueError(f"Order {self.order_id} cannot be both fulfilled and cancelled")

    @property
    def is_live(self) -> bool:
        return not (self.fulfilled or self.cancelled)

    @property
    def is_completed(self) -> bool:
        return self.fulfilled or self.cancelled


@dataclass(frozen=True)
class Transaction:
    hash: str
    from_address: str
    type: TransactionType
    status: TransactionStatus = TransactionStatus.CONFIRMED
    to_address: str | None = None
    order_id: int | None = None
    token_address: str | None = None
    amount: str | None = None
    block_number: int | None = None
    timestamp: int | None = None


@dataclass(frozen=True)
class TokenMetadata:
    address: str
    symbol: str
    name: str
    decimals: int
    logo_uri: str | None = None
    last_updated: int | None = None

    def __post_init__(self) -> None:
        if not 0 <= self.decimals <= 255:
            raise ValueError(f"decimals out of range: {self.decimals}")


@dataclass(frozen=True)
class UserStats:
    address: str
    orders_created: int = 0
    orders_fulfilled: int = 0
    orders_cancelled: int = 0
    total_volume: str | None = None
    first_seen: int | None = None
    last_seen: int | None = None


@dataclass(frozen=True)
class OrderFilters:
    status: OrderStatusFilter | None = None
    creator: str | None = None
    input_token: str | None = None
    output_token: str | None = None
    limit: int = 100
    offset: int = 0

    def __post_init__(self) -> None:
        if self.limit <= 0:
            raise ValueError("limit must be positive")
        if self.offset < 0:
            raise ValueError("offset must be non-negative")
