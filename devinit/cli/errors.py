"""CLI error handling: wrap commands to report errors instead of tracebacks."""

import sqlite3
from functools import wraps

import typer
from click.exceptions import Abort, Exit

from devinit.errors import DevinitError, LaunchError


def error_feedback(f):
    """Wrap command to catch exceptions and report them before exiting.

    Domain errors print their message; ValueError, OSError and sqlite3
    errors (such as a lock timeout) get a short prefix. Anything else is
    left to propagate with its traceback.
    """

    @wraps(f)
    def wrapper(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except (SystemExit, Exit, Abort):
            raise
        except LaunchError as e:
            typer.echo(f"Launch failed: {e}", err=True)
            raise typer.Exit(1) from e
        except DevinitError as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(1) from e
        except ValueError as e:
            typer.echo(f"Invalid input: {e}", err=True)
            raise typer.Exit(1) from e
        except OSError as e:
            typer.echo(f"File error: {e}", err=True)
            raise typer.Exit(1) from e
        except sqlite3.Error as e:
            typer.echo(f"Store error: {e}", err=True)
            raise typer.Exit(1) from e

    return wrapper
