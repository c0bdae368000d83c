"""CLI application setup using Typer."""

from anthropic_tools.cli.main import app

__all__ = ["app"]
