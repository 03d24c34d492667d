"""Single paced request command."""

import json
from typing import Annotated, Any

import typer

from paced_rest.api import ApiClient, RateLimitedEvent
from paced_rest.cli.common import console, err_console, run_async_command
from paced_rest.config import get_settings
from paced_rest.logging import log_pipeline_events


def request(
    method: Annotated[
        str,
        typer.Argument(help="HTTP method (GET, POST, PUT, DELETE)"),
    ],
    url: Annotated[
        str,
        typer.Argument(help="Absolute URL, or a path relative to API_BASE_URL"),
    ],
    max_results: Annotated[
        int | None,
        typer.Option(
            "--max",
            "-m",
            min=0,
            help="Total items wanted across pages (enables pagination)",
        ),
    ] = None,
    data: Annotated[
        str | None,
        typer.Option("--data", "-d", help="JSON request body"),
    ] = None,
    token: Annotated[
        str | None,
        typer.Option("--token", "-t", help="Bearer token (default: API_TOKEN)"),
    ] = None,
    base_url: Annotated[
        str | None,
        typer.Option("--base-url", "-b", help="Base URL (default: API_BASE_URL)"),
    ] = None,
    delay_ms: Annotated[
        int | None,
        typer.Option("--delay", min=0, help="Minimum milliseconds between requests"),
    ] = None,
) -> None:
    """Send one request through the throttle scheduler and print the JSON result.

    Examples:
        pacedrest request GET rooms --max 250
        pacedrest request POST https://api.example.com/v1/messages -d '{"text": "hi"}'
        pacedrest request DELETE memberships/abc123
    """
    body: Any = None
    if data is not None:
        try:
            body = json.loads(data)
        except json.JSONDecodeError as e:
            console.print(f"[red]Error:[/red] --data is not valid JSON: {e}")
            raise typer.Exit(1) from None

    config = get_settings().pacing
    if delay_ms is not None:
        config = config.model_copy(update={"min_request_interval_ms": delay_ms})

    def _notify(event: RateLimitedEvent) -> None:
        err_console.print(
            f"[yellow]Rate limited:[/yellow] retrying {event.url} in {event.delay:g}s"
        )

    async def _request() -> Any:
        async with ApiClient(token, base_url=base_url, config=config) as client:
            client.events.on_rate_limited(_notify)
            log_pipeline_events(client.events)
            return await client.request(method, url, json=body, max_results=max_results)

    result = run_async_command(_request(), error_prefix="Request failed")
    console.print_json(data=result)
