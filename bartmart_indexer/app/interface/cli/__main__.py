import asyncio
import inspect
import json
import logging
from dataclasses import asdict
from typing import Any, Optional

import typer
from dotenv import load_dotenv
from InquirerPy import inquirer

from bartmart_indexer.app.domain.errors import BartMartIndexerError
from bartmart_indexer.app.domain.models import (
    OrderFilters,
    OrderStatusFilter,
    TokenMetadata,
    Transaction,
    TransactionStatus,
    TransactionType,
)
from bartmart_indexer.app.interface.tasks import TASKS, queries
from bartmart_indexer.app.interface.tasks.indexer.full_sync_task import run_full_sync_task
from bartmart_indexer.app.interface.tasks.indexer.incremental_index_task import (
    index_block_range_task,
    run_incremental_index_task,
)


load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)

logger = logging.getLogger(__name__)

app = typer.Typer()
indexer_app = typer.Typer(help="cli for indexing BartMart events into the projection.")
orders_app = typer.Typer(help="query projected orders.")
tx_app = typer.Typer(help="query and record transactions.")
tokens_app = typer.Typer(help="token metadata cache.")
users_app = typer.Typer(help="per-user activity.")
app.add_typer(indexer_app, name="indexer")
app.add_typer(orders_app, name="orders")
app.add_typer(tx_app, name="tx")
app.add_typer(tokens_app, name="tokens")
app.add_typer(users_app, name="users")


def _echo_json(value: Any) -> None:
    if isinstance(value, list):
        payload: Any = [asdict(v) for v in value]
    elif value is None:
        payload = None
    else:
        payload = asdict(value)
    typer.echo(json.dumps(payload, indent=2, default=str))


def _run_task(coro: Any) -> Any:
    try:
        return asyncio.run(coro)
    except BartMartIndexerError as exc:
        logger.error("Task failed: %s", exc)
        raise typer.Exit(code=1)


@indexer_app.command("run")
def run() -> None:
    task_name = inquirer.select(
        message="Select task:",
        choices=list(TASKS.keys()),
        pointer="❯",
        instruction="Use ↑/↓ to move, Enter to select",
    ).execute()

    task = TASKS[task_name]

    kwargs: dict[str, object] = {}

    params = inspect.signature(task).parameters

    if "from_block" in params:
        kwargs["from_block"] = inquirer.text(
            message="From block (inclusive):",
            default="0",
        ).execute()
    if "to_block" in params:
        kwargs["to_block"] = inquirer.text(
            message="To block (inclusive):",
            default="latest",
        ).execute()

    result = _run_task(task(**kwargs))  # type: ignore
    typer.echo(f"{task_name}: {result}")


@indexer_app.command("index")
def index(
    backend: str = typer.Option("web3", help="Chain reader backend."),
) -> None:
    """Index events from the stored cursor up to the chain head."""
    processed = _run_task(run_incremental_index_task(backend=backend))
    typer.echo(f"processed {processed} events")


@indexer_app.command("range")
def index_range(
    from_block: int = typer.Argument(..., help="From block (inclusive)."),
    to_block: str = typer.Argument("latest", help="To block (inclusive) or 'latest'."),
    backend: str = typer.Option("web3", help="Chain reader backend."),
) -> None:
    """Re-apply events of a block range; the cursor is not moved."""
    processed = _run_task(
        index_block_range_task(from_block=from_block, to_block=to_block, backend=backend)
    )
    typer.echo(f"processed {processed} events")


@indexer_app.command("sync")
def sync(
    backend: str = typer.Option("web3", help="Chain reader backend."),
) -> None:
    """Rebuild every order from contract storage."""
    synced = _run_task(run_full_sync_task(backend=backend))
    typer.echo(f"synced {synced} orders")


@orders_app.command("list")
def list_orders(
    status: Optional[OrderStatusFilter] = typer.Option(None, help="live or completed."),
    creator: Optional[str] = typer.Option(None),
    input_token: Optional[str] = typer.Option(None),
    output_token: Optional[str] = typer.Option(None),
    limit: int = typer.Option(100, min=1),
    offset: int = typer.Option(0, min=0),
) -> None:
    filters = OrderFilters(
        status=status,
        creator=creator,
        input_token=input_token,
        output_token=output_token,
        limit=limit,
        offset=offset,
    )
    _echo_json(_run_task(queries.list_orders(filters)))


@orders_app.command("show")
def show_order(order_id: int) -> None:
    order = _run_task(queries.get_order(order_id))
    if order is None:
        typer.echo(f"order {order_id} not found", err=True)
        raise typer.Exit(code=1)
    _echo_json(order)


@orders_app.command("txs")
def order_transactions(order_id: int) -> None:
    _echo_json(_run_task(queries.list_order_transactions(order_id)))


@tx_app.command("show")
def show_transaction(tx_hash: str) -> None:
    tx = _run_task(queries.get_transaction(tx_hash))
    if tx is None:
        typer.echo(f"transaction {tx_hash} not found", err=True)
        raise typer.Exit(code=1)
    _echo_json(tx)


@tx_app.command("user")
def user_transactions(
    address: str,
    limit: int = typer.Option(100, min=1),
) -> None:
    _echo_json(_run_task(queries.list_user_transactions(address, limit)))


@tx_app.command("record")
def record_transaction(
    tx_hash: str,
    from_address: str,
    tx_type: TransactionType = typer.Option(..., "--type"),
    status: TransactionStatus = typer.Option(TransactionStatus.PENDING),
    order_id: Optional[int] = typer.Option(None),
    token_address: Optional[str] = typer.Option(None),
    amount: Optional[str] = typer.Option(None),
) -> None:
    """Record a transaction submitted outside the indexer (e.g. a pending approve)."""
    ok = _run_task(
        queries.save_transaction(
            Transaction(
                hash=tx_hash,
                from_address=from_address,
                type=tx_type,
                status=status,
                order_id=order_id,
                token_address=token_address,
                amount=amount,
            )
        )
    )
    if not ok:
        raise typer.Exit(code=1)


@tokens_app.command("list")
def list_tokens() -> None:
    _echo_json(_run_task(queries.list_tokens()))


@tokens_app.command("resolve")
def resolve_token(
    address: str,
    backend: str = typer.Option("web3", help="web3 or offline."),
) -> None:
    metadata = _run_task(queries.resolve_token(address, backend=backend))
    if metadata is None:
        typer.echo(f"no metadata for {address}", err=True)
        raise typer.Exit(code=1)
    _echo_json(metadata)


@tokens_app.command("add")
def add_token(
    address: str,
    symbol: str,
    decimals: int,
    name: Optional[str] = typer.Option(None),
    logo_uri: Optional[str] = typer.Option(None),
) -> None:
    ok = _run_task(
        queries.save_token(
            TokenMetadata(
                address=address,
                symbol=symbol,
                name=name or symbol,
                decimals=decimals,
                logo_uri=logo_uri,
            )
        )
    )
    if not ok:
        raise typer.Exit(code=1)


@users_app.command("show")
def show_user(address: str) -> None:
    stats = _run_task(queries.get_user_stats(address))
    if stats is None:
        typer.echo(f"no activity for {address}", err=True)
        raise typer.Exit(code=1)
    _echo_json(stats)


if __name__ == "__main__":
    LOGO = r"""
     ___          _   __  __          _
    | _ ) __ _ _ _| |_|  \/  |__ _ _ _| |_
    | _ \/ _` | '_|  _| |\/| / _` | '_|  _|
    |___/\__,_|_|  \__|_|  |_\__,_|_|  \__|

      --- BartMart Indexer CLI ---
    """
    typer.echo(LOGO)
    app()
