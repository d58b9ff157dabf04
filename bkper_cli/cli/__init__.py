"""Command line interface (Typer)."""

from bkper_cli.cli.main import app

__all__ = ["app"]
