from __future__ import annotations

from typing import Callable, Dict

from bartmart_indexer.app.application.services.token_metadata import TokenMetadataResolver
from bartmart_indexer.app.domain.ports.out import TokenStore
from bartmart_indexer.app.infrastructure.factories.chain_reader_factory import create_async_web3
from bartmart_indexer.app.infrastructure.fetchers.erc20_tokens_fetcher import (
    Web3Erc20TokenMetadataFetcher,
)

TokenResolverFactory = Callable[[TokenStore], TokenMetadataResolver]

_TOKEN_RESOLVER_REGISTRY: Dict[str, TokenResolverFactory] = {}


def _make_web3_resolver(store: TokenStore) -> TokenMetadataResolver:
    """
    Wire dependencies for the web3 backend:
    - AsyncWeb3 provider (RPC URL from settings)
    - ERC-20 metadata fetcher (symbol/decimals/name via eth_call)
    - resolver writing results into the token cache
    """
    fetcher = Web3Erc20TokenMetadataFetcher(w3=create_async_web3())
    return TokenMetadataResolver(store=store, fetcher=fetcher)


# Register backends
_TOKEN_RESOLVER_REGISTRY["web3"] = _make_web3_resolver
_TOKEN_RESOLVER_REGISTRY["offline"] = lambda store: TokenMetadataResolver(store=store)


def token_resolver_factory(*, store: TokenStore, backend: str = "web3") -> TokenMetadataResolver:
    """
    Create a token metadata resolver.

    "offline" resolves from the cache and the built-in token list only.
    """
    try:
        factory = _TOKEN_RESOLVER_REGISTRY[backend]
    except KeyError:
        raise ValueError(f"Unsupported token resolver backend: {backend!r}")

    return factory(store)
