"""
CLI: ``bound-preview serve`` — start the API server.
"""

from __future__ import annotations

import typer
import uvicorn

from bound_preview.cli.utils import console
from bound_preview.core.settings import get_settings


def serve(
    host: str | None = typer.Option(None, "--host", "-h", help="Bind address"),
    port: int | None = typer.Option(None, "--port", "-p", help="Bind port"),
    reload: bool = typer.Option(False, "--reload", help="Auto-reload on changes"),
    log_level: str = typer.Option("info", "--log-level"),
) -> None:
    """Start the bound-preview HTTP API server."""
    settings = get_settings()
    host = host or settings.host
    port = port or settings.port

    console.print(f"[bold green]Starting bound-preview API[/bold green] on {host}:{port}")
    # One worker: preview sessions live in process memory.
    uvicorn.run(
        "bound_preview.api:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        workers=1,
        log_level=log_level,
    )
