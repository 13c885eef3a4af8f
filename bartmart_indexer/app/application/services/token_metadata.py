from __future__ import annotations

import logging

from bartmart_indexer.app.domain.models import (
    ZERO_ADDRESS,
    TokenMetadata,
    is_native_coin,
    normalize_address,
)
from bartmart_indexer.app.domain.ports.out import Erc20TokenMetadataFetcher, TokenStore

logger = logging.getLogger(__name__)

# Common Base mainnet tokens
KNOWN_TOKENS: dict[str, TokenMetadata] = {
    t.address: t
    for t in (
        TokenMetadata(address=ZERO_ADDRESS, symbol="ETH", name="Ethereum", decimals=18),
        TokenMetadata(
            address="0x833589fcd6edb6e08f4c7c32d4f71b54bda02913",
            symbol="USDC",
            name="USD Coin",
            decimals=6,
        ),
        TokenMetadata(
            address="0x4200000000000000000000000000000000000006",
            symbol="WETH",
            name="Wrapped Ethereum",
            decimals=18,
        ),
        TokenMetadata(
            address="0x50c5725949a6f0c72e6c4a641f24049a917db0cb",
            symbol="DAI",
            name="Dai Stablecoin",
            decimals=18,
        ),
    )
}


class TokenMetadataResolver:
    """
    Resolve token metadata: cache, then the built-in Base list, then ERC-20 calls.

    Whatever is resolved outside the cache is written back to it. The native
    coin sentinel never hits the chain.
    """

    def __init__(
        self,
        *,
        store: TokenStore,
        fetcher: Erc20TokenMetadataFetcher | None = None,
    ) -> None:
        self._store = store
        self._fetcher = fetcher

    async def resolve(self, address: str) -> TokenMetadata | None:
        addr = normalize_address(address)

        cached = await self._store.get_token_metadata(addr)
        if cached is not None:
            return cached

        known = KNOWN_TOKENS.get(addr)
        if known is not None:
            await self._store.save_token_metadata(known)
            return known

        if is_native_coin(addr) or self._fetcher is None:
            return None

        meta = await self._fetcher.fetch(token_address=addr)
        symbol, decimals = meta.get("symbol"), meta.get("decimals")
        if symbol is None or decimals is None:
            logger.info("Incomplete ERC-20 metadata for %s: %s", addr, meta)
            return None

        token = TokenMetadata(
            address=addr,
            symbol=symbol,
            name=meta.get("name") or symbol,
            decimals=decimals,
        )
        await self._store.save_token_metadata(token)
        return token
