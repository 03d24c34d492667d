"""Main CLI application for paced-rest."""

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from paced_rest import __version__
from paced_rest.cli import request as request_cmd
from paced_rest.config import get_settings
from paced_rest.logging import setup_logging

app = typer.Typer(
    name="pacedrest",
    help="Throttled, rate-limit aware and paginating REST API client.",
    add_completion=False,
)
console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"pacedrest version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable debug logging (shows every request, queue and back-off).",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress non-error output (WARNING level).",
        ),
    ] = False,
) -> None:
    """paced-rest - call a rate-limited, paginated REST API."""
    settings = get_settings()
    log_config = settings.logging

    setup_logging(
        level=settings.log_level,
        verbose=verbose,
        quiet=quiet,
        log_file=Path(log_config.log_file) if log_config.log_file else None,
        rotation=log_config.rotation,
        retention=log_config.retention,
        serialize=log_config.serialize,
    )


app.command("request")(request_cmd.request)


if __name__ == "__main__":
    app()
