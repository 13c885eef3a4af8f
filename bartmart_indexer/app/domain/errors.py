"""
Error taxonomy for the indexer.

  - StoreUnavailableError     -> Redis projection store cannot be reached
  - ChainReaderError          -> base for JSON-RPC failures
      - TransientNetworkError -> retried inside the chain reader, surfaced when exhausted
      - ChainUnavailableError -> endpoint refused the connection, abort without retry
      - ChainNotFoundError    -> unknown block / transaction
  - MalformedEventError       -> log did not decode into the expected event shape
  - MissingReferencedOrderError -> fulfilled/cancelled event for an order we never stored
  - IndexingBatchError        -> some writes in a batch failed, cursor not advanced
"""
from __future__ import annotations


class BartMartIndexerError(Exception):
    """Base indexer error."""


class StoreUnavailableError(BartMartIndexerError):
    def __init__(self, detail: str = "Redis projection store is unavailable") -> None:
        super().__init__(detail)


class ChainReaderError(BartMartIndexerError):
    """Base error for chain reads."""


class TransientNetworkError(ChainReaderError):
    def __init__(self, operation: str, attempts: int, cause: BaseException | None = None) -> None:
        self.operation = operation
        self.attempts = attempts
        super().__init__(f"{operation} failed after {attempts} attempts: {cause!r}")


class ChainUnavailableError(ChainReaderError):
    def __init__(self, operation: str, cause: BaseException | None = None) -> None:
        self.operation = operation
        super().__init__(f"RPC endpoint unavailable during {operation}: {cause!r}")


class ChainNotFoundError(ChainReaderError):
    def __init__(self, what: str) -> None:
        super().__init__(f"Not found on chain: {what}")


class MalformedEventError(BartMartIndexerError):
    def __init__(self, event_name: str, detail: str) -> None:
        self.event_name = event_name
        super().__init__(f"Malformed {event_name} log: {detail}")


class MissingReferencedOrderError(BartMartIndexerError):
    def __init__(self, order_id: int, event_name: str) -> None:
        self.order_id = order_id
        self.event_name = event_name
        super().__init__(f"{event_name} references unknown order {order_id}")


class IndexingBatchError(BartMartIndexerError):
    def __init__(self, from_block: int, to_block: int, failed: int) -> None:
        self.from_block = from_block
        self.to_block = to_block
        self.failed = failed
        super().__init__(
            f"{failed} event(s) failed to apply for blocks {from_block}..{to_block}; cursor not advanced"
        )
