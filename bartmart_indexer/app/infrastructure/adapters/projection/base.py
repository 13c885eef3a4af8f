from __future__ import annotations

from typing import Any, Iterable

import redis.asyncio as aioredis

from bartmart_indexer.app.config import settings


def _chunks(seq: list[Any], size: int) -> Iterable[list[Any]]:
    for i in range(0, len(seq), size):
        yield seq[i : i + size]


def _opt_int(value: str | None) -> int | None:
    if value is None or value == "":
        return None
    return int(value)


def _opt_str(value: str | None) -> str | None:
    return value or None


def _without_none(mapping: dict[str, Any]) -> dict[str, str]:
    """HSET payload: drop unset fields so existing values survive the upsert."""
    return {k: str(v) for k, v in mapping.items() if v is not None}


class RedisProjectionStore:
    """
    Shared plumbing for the Redis-backed projection stores.

    Record fetches for many keys go through non-transactional pipelines,
    `batch_size` HGETALLs per round trip.
    """

    def __init__(
        self,
        client: aioredis.Redis,
        *,
        batch_size: int | None = None,
    ) -> None:
        self._client = client
        self._batch_size = batch_size or settings.query_batch_size

    async def _fetch_hashes(self, keys: list[str]) -> list[dict[str, str]]:
        out: list[dict[str, str]] = []
        for chunk in _chunks(keys, self._batch_size):
            pipe = self._client.pipeline(transaction=False)
            for key in chunk:
                pipe.hgetall(key)
            out.extend(await pipe.execute())
        return out
