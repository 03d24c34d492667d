"""Common CLI helpers.

This module provides:
- `console`: shared rich console for CLI output
- `err_console`: stderr console for progress notices
- `run_async_command`: unified async execution with error handling
"""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from typing import TypeVar

import typer
from rich.console import Console

from paced_rest.api.exceptions import ApiClientError

console = Console()
err_console = Console(stderr=True)

T = TypeVar("T")


def run_async_command(
    coro: Coroutine[object, object, T],
    *,
    error_prefix: str = "Error",
) -> T:
    """Run a command coroutine to completion and turn failures into exit code 1.

    The request command wraps its whole client session:

        result = run_async_command(_request(), error_prefix="Request failed")

    An ``HttpStatusError(404)`` raised inside then prints
    ``Request failed: request received http error 404 (...)`` and exits 1.
    Anything that is not an ``ApiClientError`` is reported with its type.
    ``typer.Exit`` raised on purpose passes through untouched.
    """
    try:
        return asyncio.run(coro)
    except typer.Exit:
        raise
    except ApiClientError as e:
        console.print(f"[red]{error_prefix}:[/red] {e}")
        raise typer.Exit(1) from None
    except Exception as e:
        # Unexpected failures keep their type in the message
        console.print(f"[red]{error_prefix}:[/red] {type(e).__name__}: {e}")
        raise typer.Exit(1) from None
