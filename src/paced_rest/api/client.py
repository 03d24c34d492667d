"""Async REST API client wrapper around the throttle scheduler.

This module attaches the bearer credential, resolves paths against a base
URL and turns keyword arguments into RequestDescriptors. Every call goes
through the client's own ThrottleScheduler, so spacing, 429 retries and
pagination apply to all of them.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import urlencode, urljoin, urlsplit, urlunsplit

from paced_rest.config import PacingConfig, get_settings
from paced_rest.logging import bind_request

from .events import EventBus
from .exceptions import ConfigurationError
from .pacing.scheduler import ThrottleScheduler
from .schemas import RequestDescriptor
from .transport import Executor, HttpxTransport


class ApiClient:
    """Async client for a rate-limited, paginated REST API.

    Usage:
        async with ApiClient(base_url="https://api.example.com/v1") as client:
            client.events.on_rate_limited(lambda e: print(f"waiting {e.delay}s"))
            rooms = await client.get("rooms", max_results=250)
            room = await client.get(f"rooms/{rooms[0]['id']}")

    Or without context manager:
        client = ApiClient(token="...")
        people = await client.get("https://api.example.com/v1/people?max=50")
        await client.aclose()
    """

    def __init__(
        self,
        token: str | None = None,
        *,
        base_url: str | None = None,
        transport: Executor | None = None,
        config: PacingConfig | None = None,
        events: EventBus | None = None,
    ) -> None:
        """Initialize the API client.

        Args:
            token: Bearer token. If not provided, uses API_TOKEN from settings.
            base_url: Base URL for relative paths. Falls back to API_BASE_URL.
            transport: Optional executor. An HttpxTransport is created (and
                       owned) when omitted.
            config: Optional pacing configuration (uses settings if not provided)
            events: Optional event bus shared with other components

        Raises:
            ConfigurationError: If no token is available.
        """
        settings = get_settings()
        self._token = token or settings.api_token
        if not self._token:
            raise ConfigurationError("API token required. Set API_TOKEN environment variable.")

        self._base_url = base_url or settings.api_base_url
        self._config = config or settings.pacing
        self._owned_transport: HttpxTransport | None = None
        if transport is None:
            transport = self._owned_transport = HttpxTransport()
        self._scheduler = ThrottleScheduler(transport, config=self._config, events=events)

    @property
    def scheduler(self) -> ThrottleScheduler:
        """Access the throttle scheduler all requests go through."""
        return self._scheduler

    @property
    def events(self) -> EventBus:
        """Event bus for request, queued and rate-limited notifications."""
        return self._scheduler.events

    @property
    def default_headers(self) -> dict[str, str]:
        """Headers attached to every request."""
        return {
            "Authorization": f"Bearer {self._token}",
            "Accept": "application/json",
        }

    # -------------------------------------------------------------------------
    # Requests
    # -------------------------------------------------------------------------
    async def request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        json: Any = None,
        max_results: int | None = None,
        timeout: float | None = None,
    ) -> Any:
        """Submit a request and wait for its (possibly aggregated) result.

        Args:
            method: HTTP method
            url: Absolute URL, or a path relative to the base URL
            params: Extra query parameters
            headers: Extra headers (override the defaults)
            json: JSON body
            max_results: Total items wanted across pages. Adds the cap query
                         parameter, which turns on pagination for this call,
                         replacing any cap already present in the URL.
            timeout: Per-call timeout override in seconds

        Returns:
            Resource body, list of items, or an empty mapping for 204
        """
        query = dict(params or {})
        if max_results is not None:
            # The explicit cap replaces any cap already in the URL
            url = _drop_query_key(url, self._config.cap_param)
            query[self._config.cap_param] = max_results

        target = self._resolve_url(url, query)
        descriptor = RequestDescriptor(
            method=method.upper(),
            url=target,
            headers={**self.default_headers, **(headers or {})},
            body=json,
            timeout=timeout if timeout is not None else self._config.request_timeout_s,
        )

        bind_request(method, target).debug("Submitting request")
        return await self._scheduler.submit(descriptor)

    async def get(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        max_results: int | None = None,
    ) -> Any:
        """GET a resource or collection."""
        return await self.request("GET", url, params=params, max_results=max_results)

    async def post(self, url: str, json: Any = None) -> Any:
        """POST a JSON body."""
        return await self.request("POST", url, json=json)

    async def put(self, url: str, json: Any = None) -> Any:
        """PUT a JSON body."""
        return await self.request("PUT", url, json=json)

    async def delete(self, url: str) -> Any:
        """DELETE a resource (a 204 response yields an empty mapping)."""
        return await self.request("DELETE", url)

    def _resolve_url(self, url: str, query: dict[str, Any]) -> str:
        if not urlsplit(url).scheme:
            if not self._base_url:
                raise ConfigurationError(
                    f"Relative URL {url!r} requires a base URL. Set API_BASE_URL."
                )
            url = urljoin(self._base_url.rstrip("/") + "/", url.lstrip("/"))

        if query:
            separator = "&" if urlsplit(url).query else "?"
            url = f"{url}{separator}{urlencode(query)}"
        return url

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------
    async def aclose(self) -> None:
        """Close the scheduler and the owned transport."""
        await self._scheduler.aclose()
        if self._owned_transport is not None:
            await self._owned_transport.aclose()

    async def __aenter__(self) -> ApiClient:
        """Async context manager entry."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Async context manager exit."""
        await self.aclose()


def _drop_query_key(url: str, key: str) -> str:
    """Remove every occurrence of a query key (case-insensitive) from a URL."""
    parts = urlsplit(url)
    if not parts.query:
        return url
    kept = [
        param
        for param in parts.query.split("&")
        if param.partition("=")[0].lower() != key.lower()
    ]
    return urlunsplit(parts._replace(query="&".join(kept)))
