from __future__ import annotations

import logging
from typing import Any

from web3 import AsyncWeb3
from web3.contract.async_contract import AsyncContract
from web3.exceptions import BadFunctionCallOutput, ContractLogicError

from bartmart_indexer.app.domain.ports.out import Erc20TokenMetadataFetcher

logger = logging.getLogger(__name__)

# Minimal ERC-20 ABI fragments
_ERC20_ABI_STD = [
    {"name": "symbol", "type": "function", "stateMutability": "view", "inputs": [], "outputs": [{"name": "", "type": "string"}]},
    {"name": "decimals", "type": "function", "stateMutability": "view", "inputs": [], "outputs": [{"name": "", "type": "uint8"}]},
    {"name": "name", "type": "function", "stateMutability": "view", "inputs": [], "outputs": [{"name": "", "type": "string"}]},
]

# Pre-standard tokens (MKR and friends) return bytes32 strings
_ERC20_ABI_LEGACY = [
    {"name": "symbol", "type": "function", "stateMutability": "view", "inputs": [], "outputs": [{"name": "", "type": "bytes32"}]},
    {"name": "name", "type": "function", "stateMutability": "view", "inputs": [], "outputs": [{"name": "", "type": "bytes32"}]},
]


class Web3Erc20TokenMetadataFetcher(Erc20TokenMetadataFetcher):
    """
    ERC-20 metadata fetcher using AsyncWeb3.

    Fetches:
      - symbol() -> str | None
      - decimals() -> int | None
      - name() -> str | None

    Any call that reverts or returns garbage yields None for that field.
    """

    def __init__(self, *, w3: AsyncWeb3) -> None:
        self._w3 = w3

    async def fetch(self, *, token_address: str) -> dict[str, Any]:
        addr = self._w3.to_checksum_address(token_address)

        contract_std: AsyncContract = self._w3.eth.contract(address=addr, abi=_ERC20_ABI_STD)
        contract_legacy: AsyncContract = self._w3.eth.contract(address=addr, abi=_ERC20_ABI_LEGACY)

        symbol = self._normalize_symbol_name(await self._safe_call(contract_std, "symbol"))
        name = self._normalize_symbol_name(await self._safe_call(contract_std, "name"))

        decimals = None
        raw_decimals = await self._safe_call(contract_std, "decimals")
        if isinstance(raw_decimals, int) and 0 <= raw_decimals <= 255:
            decimals = int(raw_decimals)

        # Fallback to legacy ONLY for missing fields
        if symbol is None:
            symbol = self._normalize_symbol_name(await self._safe_call(contract_legacy, "symbol"))
        if name is None:
            name = self._normalize_symbol_name(await self._safe_call(contract_legacy, "name"))

        return {"symbol": symbol, "decimals": decimals, "name": name}

    @staticmethod
    def _normalize_symbol_name(val: Any) -> str | None:
        if val is None:
            return None

        if isinstance(val, str):
            return val.strip() or None

        if isinstance(val, (bytes, bytearray, memoryview)):
            try:
                return bytes(val).rstrip(b"\x00").decode("utf-8").strip() or None
            except UnicodeDecodeError:
                return None

        return None

    async def _safe_call(self, contract: AsyncContract, fn_name: str) -> Any | None:
        try:
            fn = getattr(contract.functions, fn_name)
            return await fn().call()
        except (BadFunctionCallOutput, ContractLogicError, ValueError) as exc:
            # Non-ERC20, proxy weirdness, revert, or empty response
            logger.debug("%s() on %s failed: %s", fn_name, contract.address, exc)
            return None
