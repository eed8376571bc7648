"""
CLI utility helpers - output formatting and connection management.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from tally.core.connection import create_connection
from tally.core.models.counters import CounterRecord
from tally.ops.context import OperationContext
from tally.ops.result import OperationResult

console = Console()
err_console = Console(stderr=True)


# ── Connection helper ────────────────────────────────────────────────────


def get_connection(database: str | None = None, *, init_schema: bool = False) -> Any:
    """Open a database connection.

    Defaults to ``TALLY_DATABASE_URL`` resolved against ``TALLY_DATA_DIR``
    (``~/.tally/tally.db`` out of the box).
    """
    from tally.api.settings import TallyAPISettings

    settings = TallyAPISettings()
    conn, _info = create_connection(
        database or settings.database_url,
        init_schema=init_schema,
        data_dir=settings.data_dir,
        timeout=settings.sqlite_timeout_s,
    )
    return conn


def make_context(
    database: str | None = None,
    *,
    init_schema: bool = False,
) -> tuple[OperationContext, Any]:
    """Create an ``OperationContext`` + connection pair for CLI commands."""
    conn = get_connection(database, init_schema=init_schema)
    ctx = OperationContext(caller="cli")
    return ctx, conn


# ── Output helpers ───────────────────────────────────────────────────────


def _to_dict(obj: Any) -> dict[str, Any]:
    """Convert a record / dataclass / dict to a plain dict."""
    if isinstance(obj, CounterRecord):
        return obj.to_dict()
    if hasattr(obj, "__dataclass_fields__"):
        return asdict(obj)
    if isinstance(obj, dict):
        return obj
    return {"value": str(obj)}


def fail(result: OperationResult) -> None:
    """Print the error of a failed result and exit with status 1."""
    err = result.error
    msg = err.message if err else "Unknown error"
    code = err.code if err else "ERROR"
    err_console.print(f"[bold red]Error[/bold red] ({code}): {msg}")
    for issue in (err.details.get("issues", []) if err else []):
        err_console.print(f"  [yellow]{issue['field']}[/yellow]: {issue['message']}")
    raise typer.Exit(code=1)


def output_result(
    result: OperationResult,
    *,
    as_json: bool = False,
    title: str = "",
) -> None:
    """Render an ``OperationResult`` to the terminal."""
    if not result.success:
        fail(result)

    data = result.data

    if as_json:
        if isinstance(data, list):
            payload: Any = [d if isinstance(d, str) else _to_dict(d) for d in data]
        else:
            payload = _to_dict(data)
        console.print_json(json.dumps(payload, default=str))
        return

    if isinstance(data, list):
        if not data:
            console.print("[dim]No items.[/dim]")
            return
        for item in data:
            console.print(f"  {item}")
    else:
        _print_dict(_to_dict(data), title=title)


def print_record(record: CounterRecord, *, title: str = "") -> None:
    """Render a counter record as a Rich table of key → value."""
    table = Table(title=title or record.site, show_lines=False, pad_edge=False)
    table.add_column("counter", overflow="fold")
    table.add_column("value", justify="right")
    for key, value in sorted(record.counters.items()):
        table.add_row(key, str(value))
    console.print(table)
    console.print(f"[dim]created {record.created_at} · updated {record.updated_at}[/dim]")


# ── Private helpers ──────────────────────────────────────────────────────


def _print_dict(data: dict[str, Any], *, title: str = "") -> None:
    """Render a single dict as key-value pairs."""
    if title:
        console.print(f"[bold]{title}[/bold]")
    for k, v in data.items():
        console.print(f"  [cyan]{k}[/cyan]: {v}")
