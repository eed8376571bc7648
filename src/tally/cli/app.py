"""
Root Typer application for the tally CLI.

Sub-commands live in their own modules and are registered below.
"""

from __future__ import annotations

import sys

import typer
from typer import Typer

app = Typer(
    name="tally",
    help="tally - per-site counter aggregation service.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from tally import __version__

        typer.echo(f"tally {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    log_level: str = typer.Option("WARNING", "--log-level", help="Log level for CLI commands."),
) -> None:
    """tally CLI - serve the API and inspect or update counter records."""
    from tally.core.logging import configure_logging

    configure_logging(level=log_level, json_format=False, stream=sys.stderr)


# ── Sub-command registration ─────────────────────────────────────────────

from tally.cli.db import app as db_app  # noqa: E402
from tally.cli.items import app as items_app  # noqa: E402
from tally.cli.serve import app as serve_app  # noqa: E402

app.add_typer(serve_app, name="serve", help="Start the API server.")
app.add_typer(db_app, name="db", help="Database operations.")
app.add_typer(items_app, name="items", help="Read and submit counter records.")


if __name__ == "__main__":
    app()
