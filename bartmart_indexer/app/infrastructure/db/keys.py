"""Redis key naming scheme for the projection store."""
from __future__ import annotations

from bartmart_indexer.app.domain.models import normalize_address


class Keys:
    # Orders
    @staticmethod
    def order(order_id: int | str) -> str:
        return f"order:{order_id}"

    @staticmethod
    def orders_active() -> str:
        return "orders:active"

    @staticmethod
    def orders_fulfilled() -> str:
        return "orders:fulfilled"

    @staticmethod
    def orders_cancelled() -> str:
        return "orders:cancelled"

    @staticmethod
    def orders_by_creator(address: str) -> str:
        return f"orders:by:creator:{normalize_address(address)}"

    @staticmethod
    def orders_by_token(address: str) -> str:
        return f"orders:by:token:{normalize_address(address)}"

    # Transactions
    @staticmethod
    def transaction(tx_hash: str) -> str:
        return f"tx:{tx_hash}"

    @staticmethod
    def user_transactions(address: str) -> str:
        return f"tx:user:{normalize_address(address)}"

    @staticmethod
    def order_transactions(order_id: int | str) -> str:
        return f"tx:order:{order_id}"

    # Tokens
    @staticmethod
    def token(address: str) -> str:
        return f"token:{normalize_address(address)}"

    @staticmethod
    def tokens_list() -> str:
        return "tokens:list"

    # Users
    @staticmethod
    def user(address: str) -> str:
        return f"user:{normalize_address(address)}"

    @staticmethod
    def user_orders_created(address: str) -> str:
        return f"user:{normalize_address(address)}:orders:created"

    @staticmethod
    def user_orders_fulfilled(address: str) -> str:
        return f"user:{normalize_address(address)}:orders:fulfilled"

    # Indexer state
    @staticmethod
    def indexer_last_block() -> str:
        return "indexer:lastBlock"
