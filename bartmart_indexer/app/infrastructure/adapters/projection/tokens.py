from __future__ import annotations

import logging
import time
from dataclasses import replace

from redis.exceptions import RedisError

from bartmart_indexer.app.domain.models import TokenMetadata, normalize_address
from bartmart_indexer.app.infrastructure.adapters.projection.base import (
    RedisProjectionStore,
    _opt_int,
    _opt_str,
)
from bartmart_indexer.app.infrastructure.db.keys import Keys

logger = logging.getLogger(__name__)


def _decode_token(data: dict[str, str], address: str) -> TokenMetadata:
    return TokenMetadata(
        address=data.get("address") or address,
        symbol=data["symbol"],
        name=data["name"],
        decimals=int(data["decimals"]),
        logo_uri=_opt_str(data.get("logoURI")),
        last_updated=_opt_int(data.get("lastUpdated")),
    )


class RedisTokenStore(RedisProjectionStore):
    """Token metadata cache: token:<addr> hashes plus the tokens:list set."""

    async def save_token_metadata(self, metadata: TokenMetadata) -> bool:
        addr = normalize_address(metadata.address)
        try:
            pipe = self._client.pipeline(transaction=True)
            pipe.hset(
                Keys.token(addr),
                mapping={
                    "address": addr,
                    "symbol": metadata.symbol,
                    "name": metadata.name,
                    "decimals": str(metadata.decimals),
                    "logoURI": metadata.logo_uri or "",
                    "lastUpdated": str(int(time.time())),
                },
            )
            pipe.sadd(Keys.tokens_list(), addr)
            await pipe.execute()
        except RedisError as exc:
            logger.error("Error saving token metadata %s to Redis: %s", addr, exc)
            return False
        return True

    async def get_token_metadata(self, address: str) -> TokenMetadata | None:
        addr = normalize_address(address)
        try:
            data = await self._client.hgetall(Keys.token(addr))
        except RedisError as exc:
            logger.error("Error getting token metadata %s from Redis: %s", addr, exc)
            return None
        if not data:
            return None
        return replace(_decode_token(data, addr), address=addr)

    async def get_all_tokens(self) -> list[TokenMetadata]:
        try:
            addresses = sorted(await self._client.smembers(Keys.tokens_list()))
            rows = await self._fetch_hashes([Keys.token(a) for a in addresses])
        except RedisError as exc:
            logger.error("Error getting tokens from Redis: %s", exc)
            return []
        return [
            _decode_token(data, addr)
            for addr, data in zip(addresses, rows, strict=True)
            if data
        ]
