"""
``bound-preview`` command line.

    bound-preview serve                  run the HTTP API
    bound-preview config show            print effective settings
    bound-preview preview bootstrap      print a bootstrap blob
    bound-preview preview get ROUTE      dispatch a read inside a preview
"""

from __future__ import annotations

import typer

from bound_preview import __version__
from bound_preview.cli import config as config_cmd
from bound_preview.cli import preview as preview_cmd
from bound_preview.cli.serve import serve
from bound_preview.core.logging import configure_logging

app = typer.Typer(
    name="bound-preview",
    help="Context-elevating REST dispatch and live preview sync.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
app.command("serve")(serve)
app.add_typer(config_cmd.app, name="config", help="Inspect configuration.")
app.add_typer(preview_cmd.app, name="preview", help="Run an in-process preview session.")


def _print_version(value: bool) -> None:
    if not value:
        return
    typer.echo(f"bound-preview {__version__}")
    raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", "-V", callback=_print_version, is_eager=True, help="Print the version and exit."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at INFO (default WARNING)."),
    log_format: str | None = typer.Option(None, "--log-format", help="json or console; defaults to settings."),
) -> None:
    """Bound configuration preview tools."""
    # CLI output goes to stdout, so keep logs quiet unless asked.
    configure_logging(level="INFO" if verbose else "WARNING", format=log_format, force=True)
