"""
CLI: ``tally items`` - read and submit counter records.

Runs the same merge engine as the API against a SQLite database::

    tally items submit blog views=1 --ip 9.9.9.9
    tally items show blog
    tally items sites --json
"""

from __future__ import annotations

import json

import typer

from tally.cli.utils import console, fail, make_context, output_result, print_record
from tally.core.identity import ForwardedPosition, RemoteAddress
from tally.core.repositories import SqlCounterRepository
from tally.ops.counters import MergeEngine
from tally.ops.requests import SubmitCountersRequest

app = typer.Typer(no_args_is_help=True)


def _parse_pairs(pairs: list[str]) -> dict[str, str]:
    """``["views=1", "clicks=2"]`` → ``{"views": "1", "clicks": "2"}``."""
    data: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep:
            raise typer.BadParameter(f"expected KEY=VALUE, got {pair!r}", param_hint="DELTAS")
        data[key.strip()] = value
    return data


@app.command()
def show(
    site: str = typer.Argument(..., help="Site identifier"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Show the accumulated counters for SITE."""
    ctx, conn = make_context(database, init_schema=True)
    try:
        result = MergeEngine(SqlCounterRepository(conn)).get(ctx, site)
    finally:
        conn.close()

    if not result.success:
        fail(result)
    if json_out:
        console.print_json(json.dumps(result.data.to_dict()))
        return
    print_record(result.data)


@app.command()
def sites(
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """List every site that has a record."""
    ctx, conn = make_context(database, init_schema=True)
    try:
        result = MergeEngine(SqlCounterRepository(conn)).sites(ctx)
    finally:
        conn.close()
    output_result(result, as_json=json_out, title="Sites")


@app.command()
def submit(
    site: str = typer.Argument(..., help="Site identifier"),
    deltas: list[str] = typer.Argument(..., help="Increments as KEY=VALUE"),
    ip: str | None = typer.Option(None, "--ip", help="Client address for the identity counter"),
    position: ForwardedPosition = typer.Option(
        ForwardedPosition.FIRST, "--forwarded-position", help="Which --ip entry identifies the client"
    ),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Add KEY=VALUE increments to SITE's record."""
    data = _parse_pairs(deltas)
    ctx, conn = make_context(database, init_schema=True)
    try:
        engine = MergeEngine(SqlCounterRepository(conn), forwarded_position=position)
        result = engine.submit(
            ctx,
            SubmitCountersRequest(site=site, data=data, remote=RemoteAddress(forwarded_for=ip)),
        )
    finally:
        conn.close()

    if not result.success:
        fail(result)
    outcome = result.data.outcome.value
    if json_out:
        console.print_json(json.dumps({"outcome": outcome, "record": result.data.record.to_dict()}))
        return
    console.print(f"[bold green]{outcome}[/bold green] {result.data.record.site}")
    print_record(result.data.record)
