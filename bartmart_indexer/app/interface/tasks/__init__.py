from __future__ import annotations

from collections.abc import Awaitable, Callable

from .indexer.full_sync_task import run_full_sync_task as indexer__run_full_sync_task
from .indexer.incremental_index_task import (
    index_block_range_task as indexer__index_block_range_task,
    run_incremental_index_task as indexer__run_incremental_index_task,
)

TaskFn = Callable[..., Awaitable[int]]

TASKS: dict[str, TaskFn] = {
    "indexer__run_incremental_index_task": indexer__run_incremental_index_task,
    "indexer__run_full_sync_task": indexer__run_full_sync_task,
    "indexer__index_block_range_task": indexer__index_block_range_task,
}
