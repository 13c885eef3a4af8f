from __future__ import annotations

import logging

from redis.exceptions import RedisError

from bartmart_indexer.app.domain.errors import StoreUnavailableError
from bartmart_indexer.app.domain.models import (
    Order,
    OrderFilters,
    OrderStatusFilter,
    normalize_address,
)
from bartmart_indexer.app.infrastructure.adapters.projection.base import (
    RedisProjectionStore,
    _chunks,
    _opt_int,
    _opt_str,
    _without_none,
)
from bartmart_indexer.app.infrastructure.db.keys import Keys

logger = logging.getLogger(__name__)


def _encode_order(order: Order) -> dict[str, str]:
    return _without_none(
        {
            "orderId": order.order_id,
            "creator": normalize_address(order.creator),
            "inputToken": normalize_address(order.input_token),
            "inputAmount": order.input_amount,
            "outputToken": normalize_address(order.output_token),
            "outputAmount": order.output_amount,
            "fulfilled": "1" if order.fulfilled else "0",
            "cancelled": "1" if order.cancelled else "0",
            "createdAt": order.created_at,
            "fulfilledAt": order.fulfilled_at,
            "cancelledAt": order.cancelled_at,
            "blockNumber": order.block_number,
            "transactionHash": order.transaction_hash,
        }
    )


def _decode_order(data: dict[str, str], order_id: int) -> Order:
    return Order(
        order_id=int(data.get("orderId") or order_id),
        creator=data["creator"],
        input_token=data["inputToken"],
        input_amount=int(data["inputAmount"]),
        output_token=data["outputToken"],
        output_amount=int(data["outputAmount"]),
        fulfilled=data.get("fulfilled") == "1",
        cancelled=data.get("cancelled") == "1",
        created_at=_opt_int(data.get("createdAt")),
        fulfilled_at=_opt_int(data.get("fulfilledAt")),
        cancelled_at=_opt_int(data.get("cancelledAt")),
        block_number=_opt_int(data.get("blockNumber")),
        transaction_hash=_opt_str(data.get("transactionHash")),
    )


def _matches_tokens(order: Order, filters: OrderFilters) -> bool:
    # orders:by:token:<addr> does not record the side, check it on the record
    if filters.input_token and order.input_token != normalize_address(filters.input_token):
        return False
    if filters.output_token and order.output_token != normalize_address(filters.output_token):
        return False
    return True


class RedisOrderStore(RedisProjectionStore):
    """
    Orders projection.

    Layout:
      order:<id>                  hash with the order fields
      orders:active|fulfilled|cancelled   status index sets (exactly one holds the id)
      orders:by:creator:<addr>    creator index set
      orders:by:token:<addr>      input and output token index set
    """

    async def save_order(self, order: Order) -> bool:
        """
        Upsert the order and move it into the status set matching its flags.

        Fields left unset on `order` keep whatever value is already stored,
        timestamps of a flag that is no longer set are removed.
        """
        order_id = str(order.order_id)
        key = Keys.order(order_id)

        if order.fulfilled:
            target, others = Keys.orders_fulfilled(), (Keys.orders_active(), Keys.orders_cancelled())
        elif order.cancelled:
            target, others = Keys.orders_cancelled(), (Keys.orders_active(), Keys.orders_fulfilled())
        else:
            target, others = Keys.orders_active(), (Keys.orders_fulfilled(), Keys.orders_cancelled())

        try:
            pipe = self._client.pipeline(transaction=True)
            pipe.hset(key, mapping=_encode_order(order))
            if not order.fulfilled:
                pipe.hdel(key, "fulfilledAt")
            if not order.cancelled:
                pipe.hdel(key, "cancelledAt")

            pipe.sadd(target, order_id)
            for other in others:
                pipe.srem(other, order_id)

            pipe.sadd(Keys.orders_by_creator(order.creator), order_id)
            pipe.sadd(Keys.orders_by_token(order.input_token), order_id)
            pipe.sadd(Keys.orders_by_token(order.output_token), order_id)
            await pipe.execute()
        except RedisError as exc:
            logger.error("Error saving order %s to Redis: %s", order_id, exc)
            return False
        return True

    async def get_order(self, order_id: int, *, strict: bool = False) -> Order | None:
        """
        Return the stored order or None.

        With strict=True a store failure raises StoreUnavailableError instead
        of being reported as a missing order.
        """
        try:
            data = await self._client.hgetall(Keys.order(order_id))
        except RedisError as exc:
            logger.error("Error getting order %s from Redis: %s", order_id, exc)
            if strict:
                raise StoreUnavailableError(str(exc)) from exc
            return None

        if not data:
            return None
        return _decode_order(data, order_id)

    async def get_orders(self, filters: OrderFilters | None = None) -> list[Order]:
        """
        List orders matching the filters, newest (highest id) first.

        Ids are sorted before any record is loaded; records are fetched in
        pipelined chunks only until the requested page is filled.
        """
        filters = filters or OrderFilters()
        try:
            order_ids = await self._candidate_ids(filters)

            wanted = filters.offset + filters.limit
            orders: list[Order] = []
            for chunk in _chunks(sorted(order_ids, reverse=True), self._batch_size):
                rows = await self._fetch_hashes([Keys.order(i) for i in chunk])
                for order_id, data in zip(chunk, rows, strict=True):
                    if not data:
                        continue
                    order = _decode_order(data, order_id)
                    if _matches_tokens(order, filters):
                        orders.append(order)
                if len(orders) >= wanted:
                    break
        except RedisError as exc:
            logger.error("Error getting orders from Redis: %s", exc)
            return []

        return orders[filters.offset : wanted]

    async def _candidate_ids(self, filters: OrderFilters) -> set[int]:
        if filters.status is OrderStatusFilter.LIVE:
            members = await self._client.smembers(Keys.orders_active())
        elif filters.status is OrderStatusFilter.COMPLETED:
            members = await self._client.sunion(
                [Keys.orders_fulfilled(), Keys.orders_cancelled()]
            )
        else:
            members = await self._client.sunion(
                [Keys.orders_active(), Keys.orders_fulfilled(), Keys.orders_cancelled()]
            )
        ids = set(members)

        if filters.creator:
            ids &= set(await self._client.smembers(Keys.orders_by_creator(filters.creator)))
        if filters.input_token:
            ids &= set(await self._client.smembers(Keys.orders_by_token(filters.input_token)))
        if filters.output_token:
            ids &= set(await self._client.smembers(Keys.orders_by_token(filters.output_token)))

        return {int(i) for i in ids}
