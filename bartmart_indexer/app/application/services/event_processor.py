from __future__ import annotations

import logging
from dataclasses import replace
from enum import Enum

from bartmart_indexer.app.domain.errors import (
    MissingReferencedOrderError,
    StoreUnavailableError,
)
from bartmart_indexer.app.domain.events import (
    BlockInfo,
    EventLog,
    OrderCancelledEvent,
    OrderCreatedEvent,
    OrderFulfilledEvent,
    TransactionInfo,
)
from bartmart_indexer.app.domain.models import (
    Order,
    Transaction,
    TransactionStatus,
    TransactionType,
)
from bartmart_indexer.app.domain.ports.out import OrderStore, TransactionStore, UserStore

logger = logging.getLogger(__name__)


class ProcessOutcome(str, Enum):
    APPLIED = "applied"
    SKIPPED = "skipped"
    FAILED = "failed"


class EventProcessor:
    """
    Maps one decoded BartMart event plus its block/transaction context to
    projection writes.

    Writes for one event are applied in order (order, transaction, user
    activity) and stop at the first store failure. Errors never escape;
    the outcome tells the caller whether the event is safely applied.
    """

    def __init__(
        self,
        *,
        orders: OrderStore,
        transactions: TransactionStore,
        users: UserStore,
    ) -> None:
        self._orders = orders
        self._transactions = transactions
        self._users = users

    async def process(self, log: EventLog, block: BlockInfo, tx: TransactionInfo) -> ProcessOutcome:
        match log.event:
            case OrderCreatedEvent():
                return await self.process_order_created(log, block, tx)
            case OrderFulfilledEvent():
                return await self.process_order_fulfilled(log, block, tx)
            case OrderCancelledEvent():
                return await self.process_order_cancelled(log, block, tx)
            case other:
                raise TypeError(f"Unsupported event type: {type(other).__name__}")

    async def process_order_created(
        self, log: EventLog, block: BlockInfo, tx: TransactionInfo
    ) -> ProcessOutcome:
        event = log.event
        if not isinstance(event, OrderCreatedEvent):
            raise TypeError(f"Expected OrderCreatedEvent, got {type(event).__name__}")

        try:
            order = Order(
                order_id=event.order_id,
                creator=event.creator,
                input_token=event.input_token,
                input_amount=event.input_amount,
                output_token=event.output_token,
                output_amount=event.output_amount,
                fulfilled=False,
                cancelled=False,
                created_at=block.timestamp,
                block_number=block.number,
                transaction_hash=tx.hash,
            )
            # a replayed create must not reopen a settled order
            existing = await self._orders.get_order(event.order_id, strict=True)
            if existing is not None:
                order = replace(
                    order,
                    fulfilled=existing.fulfilled,
                    cancelled=existing.cancelled,
                    fulfilled_at=existing.fulfilled_at,
                    cancelled_at=existing.cancelled_at,
                )
            if not await self._orders.save_order(order):
                return self._failed("OrderCreated", event.order_id, tx.hash)

            saved = await self._transactions.save_transaction(
                Transaction(
                    hash=tx.hash,
                    from_address=event.creator,
                    type=TransactionType.CREATE,
                    status=TransactionStatus.CONFIRMED,
                    order_id=event.order_id,
                    token_address=event.input_token,
                    amount=str(event.input_amount),
                    block_number=block.number,
                    timestamp=block.timestamp,
                )
            )
            if not saved:
                return self._failed("OrderCreated", event.order_id, tx.hash)

            if not await self._users.save_user_activity(
                event.creator,
                order_created=event.order_id,
                seen_at=block.timestamp,
            ):
                return self._failed("OrderCreated", event.order_id, tx.hash)
        except StoreUnavailableError as exc:
            logger.error("Store unavailable while processing OrderCreated %s: %s", event.order_id, exc)
            return ProcessOutcome.FAILED
        except Exception:
            logger.exception("Error processing OrderCreated for order %s", event.order_id)
            return ProcessOutcome.FAILED

        return ProcessOutcome.APPLIED

    async def process_order_fulfilled(
        self, log: EventLog, block: BlockInfo, tx: TransactionInfo
    ) -> ProcessOutcome:
        event = log.event
        if not isinstance(event, OrderFulfilledEvent):
            raise TypeError(f"Expected OrderFulfilledEvent, got {type(event).__name__}")

        try:
            order = await self._orders.get_order(event.order_id, strict=True)
            if order is None:
                return self._missing(event.order_id, "OrderFulfilled")
            if order.cancelled:
                logger.warning(
                    "Order %s is already cancelled; ignoring OrderFulfilled in tx %s",
                    event.order_id,
                    tx.hash,
                )
                return ProcessOutcome.SKIPPED

            # creator and amounts stay as stored, the event does not carry them
            updated = replace(order, fulfilled=True, fulfilled_at=block.timestamp)
            if not await self._orders.save_order(updated):
                return self._failed("OrderFulfilled", event.order_id, tx.hash)

            saved = await self._transactions.save_transaction(
                Transaction(
                    hash=tx.hash,
                    from_address=event.fulfiller,
                    to_address=order.creator,
                    type=TransactionType.FULFILL,
                    status=TransactionStatus.CONFIRMED,
                    order_id=event.order_id,
                    token_address=order.output_token,
                    amount=str(order.output_amount),
                    block_number=block.number,
                    timestamp=block.timestamp,
                )
            )
            if not saved:
                return self._failed("OrderFulfilled", event.order_id, tx.hash)

            if not await self._users.save_user_activity(
                event.fulfiller,
                order_fulfilled=event.order_id,
                seen_at=block.timestamp,
            ):
                return self._failed("OrderFulfilled", event.order_id, tx.hash)
        except StoreUnavailableError as exc:
            logger.error("Store unavailable while processing OrderFulfilled %s: %s", event.order_id, exc)
            return ProcessOutcome.FAILED
        except Exception:
            logger.exception("Error processing OrderFulfilled for order %s", event.order_id)
            return ProcessOutcome.FAILED

        return ProcessOutcome.APPLIED

    async def process_order_cancelled(
        self, log: EventLog, block: BlockInfo, tx: TransactionInfo
    ) -> ProcessOutcome:
        event = log.event
        if not isinstance(event, OrderCancelledEvent):
            raise TypeError(f"Expected OrderCancelledEvent, got {type(event).__name__}")

        try:
            order = await self._orders.get_order(event.order_id, strict=True)
            if order is None:
                return self._missing(event.order_id, "OrderCancelled")
            if order.fulfilled:
                logger.warning(
                    "Order %s is already fulfilled; ignoring OrderCancelled in tx %s",
                    event.order_id,
                    tx.hash,
                )
                return ProcessOutcome.SKIPPED

            updated = replace(order, cancelled=True, cancelled_at=block.timestamp)
            if not await self._orders.save_order(updated):
                return self._failed("OrderCancelled", event.order_id, tx.hash)

            saved = await self._transactions.save_transaction(
                Transaction(
                    hash=tx.hash,
                    from_address=order.creator,
                    type=TransactionType.CANCEL,
                    status=TransactionStatus.CONFIRMED,
                    order_id=event.order_id,
                    block_number=block.number,
                    timestamp=block.timestamp,
                )
            )
            if not saved:
                return self._failed("OrderCancelled", event.order_id, tx.hash)

            if not await self._users.save_user_activity(
                order.creator,
                order_cancelled=event.order_id,
                seen_at=block.timestamp,
            ):
                return self._failed("OrderCancelled", event.order_id, tx.hash)
        except StoreUnavailableError as exc:
            logger.error("Store unavailable while processing OrderCancelled %s: %s", event.order_id, exc)
            return ProcessOutcome.FAILED
        except Exception:
            logger.exception("Error processing OrderCancelled for order %s", event.order_id)
            return ProcessOutcome.FAILED

        return ProcessOutcome.APPLIED

    @staticmethod
    def _missing(order_id: int, event_name: str) -> ProcessOutcome:
        # needs a full sync to repair
        logger.warning("%s; skipping", MissingReferencedOrderError(order_id, event_name))
        return ProcessOutcome.SKIPPED

    @staticmethod
    def _failed(event_name: str, order_id: int, tx_hash: str) -> ProcessOutcome:
        logger.error("Store write failed for %s (order %s, tx %s)", event_name, order_id, tx_hash)
        return ProcessOutcome.FAILED
