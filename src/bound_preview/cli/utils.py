"""
CLI utility helpers — output formatting and option parsing.
"""

from __future__ import annotations

import json
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

console = Console()
err_console = Console(stderr=True)


def parse_assignments(pairs: list[str] | None) -> dict[str, Any]:
    """Parse ``FIELD=VALUE`` options; values are decoded as JSON when possible."""
    values: dict[str, Any] = {}
    for pair in pairs or []:
        key, sep, raw = pair.partition("=")
        if not sep or not key:
            err_console.print(f"[bold red]Error[/bold red]: expected FIELD=VALUE, got {pair!r}")
            raise typer.Exit(code=2)
        try:
            values[key] = json.loads(raw)
        except ValueError:
            values[key] = raw
    return values


def print_json(payload: Any) -> None:
    console.print_json(json.dumps(payload, default=str))


def print_dict(data: dict[str, Any], *, title: str = "") -> None:
    """Render a flat dict as a two-column table."""
    table = Table(title=title or None, show_header=False)
    table.add_column("Key", style="bold")
    table.add_column("Value")
    for key, value in data.items():
        table.add_row(str(key), str(value))
    console.print(table)
