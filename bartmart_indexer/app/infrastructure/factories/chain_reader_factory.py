from __future__ import annotations

from pathlib import Path
from typing import Callable, Dict

from web3 import AsyncHTTPProvider, AsyncWeb3

from bartmart_indexer.app.config import settings
from bartmart_indexer.app.domain.events import EventName
from bartmart_indexer.app.domain.ports.out import ChainReader
from bartmart_indexer.app.infrastructure.decoders.bartmart.event_decoder import (
    BartMartEventDecoder,
    load_abi,
)
from bartmart_indexer.app.infrastructure.fetchers.web3_chain_reader import Web3ChainReader

ChainReaderFactory = Callable[[], ChainReader]

_CHAIN_READER_REGISTRY: Dict[str, ChainReaderFactory] = {}

# Resolve ABI path robustly (relative to module, not current working dir)
DEFAULT_ABI_PATH = (
    Path(__file__).resolve().parents[2]  # .../bartmart_indexer/app
    / "registry"
    / "abi"
    / "BartMart.json"
)


def create_async_web3(*, rpc_url: str | None = None) -> AsyncWeb3:
    return AsyncWeb3(
        AsyncHTTPProvider(
            rpc_url or settings.rpc_url,
            request_kwargs={"timeout": settings.rpc_timeout_seconds},
        )
    )


def _make_web3_chain_reader(
    *,
    rpc_url: str,
    contract_address: str,
    abi_path: Path,
    max_retries: int,
    backoff_seconds: float,
) -> ChainReader:
    """
    Wire dependencies for the web3 backend:
    - AsyncWeb3 provider (RPC URL from settings)
    - BartMart contract bound to the packaged ABI
    - one ABI-based decoder per indexed event
    """
    w3 = create_async_web3(rpc_url=rpc_url)
    contract = w3.eth.contract(
        address=w3.to_checksum_address(contract_address),
        abi=load_abi(abi_path),
    )
    decoders = {
        name: BartMartEventDecoder(abi_path=abi_path, event_name=name)
        for name in EventName
    }
    return Web3ChainReader(
        w3=w3,
        contract=contract,
        decoders=decoders,
        max_retries=max_retries,
        backoff_seconds=backoff_seconds,
    )


# Register backends
_CHAIN_READER_REGISTRY["web3"] = lambda: _make_web3_chain_reader(
    rpc_url=settings.rpc_url,
    contract_address=settings.bartmart_address,
    abi_path=DEFAULT_ABI_PATH,
    max_retries=settings.rpc_max_retries,
    backoff_seconds=settings.rpc_backoff_seconds,
)


def chain_reader_factory(*, backend: str = "web3") -> ChainReader:
    """Create a chain reader for the given backend."""
    try:
        factory = _CHAIN_READER_REGISTRY[backend]
    except KeyError:
        raise ValueError(f"Unsupported chain reader backend: {backend!r}")

    return factory()
