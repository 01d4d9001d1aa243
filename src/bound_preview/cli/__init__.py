"""
bound-preview CLI — Typer-based command-line interface.

Entry point::

    bound-preview --help
"""

from bound_preview.cli.app import app

__all__ = ["app"]
