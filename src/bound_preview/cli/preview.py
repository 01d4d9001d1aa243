"""
CLI: ``bound-preview preview`` — drive an in-process preview session.

Useful for inspecting what the preview and pane clients would receive
without running the HTTP server.
"""

from __future__ import annotations

import typer

from bound_preview.cli.utils import err_console, parse_assignments, print_json
from bound_preview.core.errors import BoundPreviewError
from bound_preview.core.settings import get_settings
from bound_preview.manager import PreviewManager
from bound_preview.rest.models import RestRequest

app = typer.Typer(no_args_is_help=True)

SetOption = typer.Option(None, "--set", "-s", help="Dirty value as FIELD_ID=VALUE (repeatable)")


def _session_manager(stylesheet: str | None, values: dict) -> PreviewManager:
    from bound_preview.api.app import build_default_manager

    manager = build_default_manager(get_settings())
    manager.start_session(stylesheet)
    manager.register_dynamic_settings(values)
    return manager


@app.command("bootstrap")
def bootstrap(
    pane: bool = typer.Option(False, "--pane", help="Emit the pane blob (with route schema)"),
    stylesheet: str | None = typer.Option(None, "--stylesheet", "-t", help="Previewed theme"),
    assignments: list[str] | None = SetOption,
) -> None:
    """Print the bootstrap JSON handed to the preview frame or the pane."""
    manager = _session_manager(stylesheet, parse_assignments(assignments))
    try:
        args = manager.pane_bootstrap() if pane else manager.preview_bootstrap()
    except BoundPreviewError as e:
        err_console.print(f"[bold red]Error[/bold red] ({e.category.value}): {e.message}")
        raise typer.Exit(code=1) from e
    typer.echo(manager.render_bootstrap(args))


@app.command("get")
def get(
    route: str = typer.Argument(..., help="REST route, e.g. /wp/v2/pages/4"),
    context: str | None = typer.Option(None, "--context", "-c", help="Requested context"),
) -> None:
    """Dispatch a GET inside a preview session and print the response."""
    manager = _session_manager(None, {})

    params = {"context": context} if context else {}
    response = manager.server.serve(
        RestRequest("GET", route, params=params, capabilities=manager.capabilities, preview=True)
    )
    print_json(
        {
            "status": response.status,
            "context": response.context.value if response.context else None,
            "headers": response.headers,
            "data": response.data,
        }
    )
    if response.is_error:
        raise typer.Exit(code=1)

