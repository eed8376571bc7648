"""
CLI: ``tally db`` - database management commands.
"""

from __future__ import annotations

import typer

from tally.cli.utils import make_context, output_result

app = typer.Typer(no_args_is_help=True)


@app.command()
def init(
    database: str | None = typer.Option(None, "--database", "-d", help="Database path or sqlite:/// URL"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Initialise database schema (create tables)."""
    from tally.ops.database import initialize_database

    ctx, conn = make_context(database)
    try:
        result = initialize_database(ctx, conn)
    finally:
        conn.close()
    output_result(result, as_json=json_out, title="Database Init")


@app.command()
def health(
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Check that the counter tables exist."""
    from tally.ops.database import check_database_health

    ctx, conn = make_context(database)
    try:
        result = check_database_health(ctx, conn)
    finally:
        conn.close()
    output_result(result, as_json=json_out, title="Database Health")
    if result.data and not result.data.healthy:
        raise typer.Exit(code=1)
