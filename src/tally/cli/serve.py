"""
CLI: ``tally serve`` - start the API server.
"""

from __future__ import annotations

import typer
import uvicorn

from tally.cli.utils import console

app = typer.Typer(no_args_is_help=True)


@app.command("start")
def start(
    host: str = typer.Option("0.0.0.0", "--host", "-h", help="Bind address"),
    port: int = typer.Option(3001, "--port", "-p", help="Bind port"),
    reload: bool = typer.Option(False, "--reload", help="Auto-reload on changes"),
    workers: int = typer.Option(1, "--workers", "-w", help="Number of workers"),
    log_level: str = typer.Option("info", "--log-level"),
) -> None:
    """Start the tally REST API server.

    Storage and logging are configured through ``TALLY_*`` environment
    variables. Use ``TALLY_STORAGE_BACKEND=sqlite`` with more than one
    worker; the memory backend is per process.
    """
    console.print(f"[bold green]Starting tally API[/bold green] on {host}:{port}")
    uvicorn.run(
        "tally.api:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        workers=workers,
        log_level=log_level,
    )
