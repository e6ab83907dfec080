"""CLI error handling and decorators."""

from __future__ import annotations

import functools
from typing import Any, Callable

import typer

from alertroute.manifests import ManifestError


def handle_error(msg: str) -> None:
    """Print an error message and exit."""
    typer.echo(f"Error: {msg}", err=True)
    raise typer.Exit(1)


def manifest_errors(f: Callable) -> Callable:
    """Decorator: turn unreadable or malformed manifests into a clean exit."""

    @functools.wraps(f)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return f(*args, **kwargs)
        except ManifestError as err:
            handle_error(str(err))

    return wrapper
