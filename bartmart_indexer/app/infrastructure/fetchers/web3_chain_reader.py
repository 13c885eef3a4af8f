from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Mapping, TypeVar

import aiohttp
from web3 import AsyncWeb3, Web3
from web3.contract.async_contract import AsyncContract
from web3.exceptions import BlockNotFound, TransactionNotFound

from bartmart_indexer.app.domain.errors import (
    ChainNotFoundError,
    ChainUnavailableError,
    MalformedEventError,
    TransientNetworkError,
)
from bartmart_indexer.app.domain.events import (
    BlockInfo,
    ContractOrder,
    EventLog,
    EventName,
    TransactionInfo,
)
from bartmart_indexer.app.domain.ports.out import ChainReader, EvmEventDecoder

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Web3ChainReader(ChainReader):
    """
    ChainReader over AsyncWeb3 (JSON-RPC).

    Every RPC goes through `_call`, which retries timeouts and HTTP client
    errors with exponential backoff. A refused connection is not retried.
    """

    def __init__(
        self,
        *,
        w3: AsyncWeb3,
        contract: AsyncContract,
        decoders: Mapping[EventName, EvmEventDecoder],
        max_retries: int = 3,
        backoff_seconds: float = 0.5,
    ) -> None:
        self._w3 = w3
        self._contract = contract
        self._decoders = dict(decoders)
        self._max_attempts = max_retries + 1
        self._backoff_seconds = backoff_seconds

    async def current_block_height(self) -> int:
        return int(await self._call("eth_blockNumber", lambda: self._w3.eth.block_number))

    async def get_event_logs(
        self,
        *,
        event_name: EventName,
        from_block: int,
        to_block: int,
    ) -> list[EventLog]:
        decoder = self._decoders[event_name]
        filter_params = {
            "address": self._contract.address,
            "fromBlock": from_block,
            "toBlock": to_block,
            "topics": [Web3.to_hex(decoder.topic0)],
        }
        raw_logs = await self._call(
            f"eth_getLogs({event_name.value})",
            lambda: self._w3.eth.get_logs(filter_params),
        )

        out: list[EventLog] = []
        for raw in raw_logs:
            try:
                event = decoder.decode(topics=list(raw["topics"]), data=bytes(raw["data"]))
            except MalformedEventError as exc:
                logger.warning(
                    "Skipping malformed log in tx %s (block %s): %s",
                    Web3.to_hex(raw["transactionHash"]),
                    raw.get("blockNumber"),
                    exc,
                )
                continue
            out.append(
                EventLog(
                    event=event,
                    block_number=int(raw["blockNumber"]),
                    transaction_hash=Web3.to_hex(raw["transactionHash"]),
                    log_index=int(raw.get("logIndex") or 0),
                )
            )

        out.sort(key=lambda log: (log.block_number, log.log_index))
        return out

    async def get_block(self, block_number: int) -> BlockInfo:
        try:
            block = await self._call(
                f"eth_getBlockByNumber({block_number})",
                lambda: self._w3.eth.get_block(block_number),
            )
        except BlockNotFound as exc:
            raise ChainNotFoundError(f"block {block_number}") from exc
        return BlockInfo(number=int(block["number"]), timestamp=int(block["timestamp"]))

    async def get_transaction(self, tx_hash: str) -> TransactionInfo:
        try:
            tx = await self._call(
                f"eth_getTransactionByHash({tx_hash})",
                lambda: self._w3.eth.get_transaction(tx_hash),
            )
        except TransactionNotFound as exc:
            raise ChainNotFoundError(f"transaction {tx_hash}") from exc
        return TransactionInfo(hash=Web3.to_hex(tx["hash"]))

    async def read_order(self, order_id: int) -> ContractOrder:
        raw = await self._call(
            f"orders({order_id})",
            lambda: self._contract.functions.orders(order_id).call(),
        )
        creator, input_token, input_amount, output_token, output_amount, fulfilled, cancelled = raw
        return ContractOrder(
            creator=str(creator).lower(),
            input_token=str(input_token).lower(),
            input_amount=int(input_amount),
            output_token=str(output_token).lower(),
            output_amount=int(output_amount),
            fulfilled=bool(fulfilled),
            cancelled=bool(cancelled),
        )

    async def read_order_count(self) -> int:
        return int(
            await self._call(
                "orderCounter()",
                lambda: self._contract.functions.orderCounter().call(),
            )
        )

    async def _call(self, operation: str, fn: Callable[[], Awaitable[T]]) -> T:
        delay = self._backoff_seconds
        attempt = 0
        while True:
            attempt += 1
            try:
                return await fn()
            except aiohttp.ClientConnectorError as exc:
                raise ChainUnavailableError(operation, exc) from exc
            except (asyncio.TimeoutError, aiohttp.ClientError) as exc:
                if attempt >= self._max_attempts:
                    raise TransientNetworkError(operation, attempt, exc) from exc
                logger.warning(
                    "%s failed (attempt %s/%s): %s; retrying in %.2fs",
                    operation,
                    attempt,
                    self._max_attempts,
                    exc,
                    delay,
                )
                await asyncio.sleep(delay)
                delay *= 2
