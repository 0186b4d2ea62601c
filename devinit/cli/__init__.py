"""devinit CLI: typer entry point."""

from devinit.cli.app import app, main

__all__ = ["app", "main"]
