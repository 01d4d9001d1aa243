"""
``bound-preview config``: print the settings the API would start with.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any

import typer

from bound_preview.cli.utils import console, print_dict
from bound_preview.core.settings import get_settings

app = typer.Typer(no_args_is_help=True)

SECRET_FIELDS = frozenset({"nonce_secret"})
ENV_PREFIX = "BOUND_PREVIEW_"


class OutputFormat(str, Enum):
    table = "table"
    json = "json"
    env = "env"


def _settings_dict(reveal: bool) -> dict[str, Any]:
    data = get_settings().model_dump(mode="json")
    if not reveal:
        data.update({name: "********" for name in SECRET_FIELDS if name in data})
    return data


def _env_value(value: Any) -> str:
    # pydantic-settings parses complex values (lists) from JSON.
    return json.dumps(value) if isinstance(value, (list, dict)) else str(value)


@app.command("show")
def show_config(
    format: OutputFormat = typer.Option(OutputFormat.table, "--format", "-f", help="table, json or env"),
    reveal: bool = typer.Option(False, "--reveal", help="Print secrets instead of masking them."),
) -> None:
    """Show the effective configuration (env vars and .env applied)."""
    data = _settings_dict(reveal)
    if format is OutputFormat.json:
        console.print_json(data=data)
    elif format is OutputFormat.env:
        for key in sorted(data):
            line = f"{ENV_PREFIX}{key.upper()}={_env_value(data[key])}"
            console.print(line, markup=False, highlight=False, soft_wrap=True)
    else:
        print_dict(data, title="bound-preview settings")
