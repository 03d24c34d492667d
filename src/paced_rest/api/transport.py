"""Transport executor contract and its httpx implementation.

The pipeline never performs network I/O itself; it awaits an ``Executor``
that turns one RequestDescriptor into one ResponseEnvelope, or raises
TransportError when no response was received.
"""

from __future__ import annotations

import json
from collections.abc import Awaitable, Callable
from typing import Any

import httpx

from paced_rest.logging import get_logger

from .exceptions import TransportError
from .schemas import RequestDescriptor, ResponseEnvelope

logger = get_logger(__name__)

Executor = Callable[[RequestDescriptor], Awaitable[ResponseEnvelope]]


class HttpxTransport:
    """Executor backed by ``httpx.AsyncClient``.

    Usage:
        async with HttpxTransport() as transport:
            envelope = await transport(descriptor)

    Response headers are exposed with lower-cased names, so the pipeline can
    look up ``retry-after`` and ``link`` literally. Bodies are decoded as
    JSON; an empty body becomes an empty mapping and anything that is not
    JSON is passed through as text (and later rejected by classification).
    """

    def __init__(self, client: httpx.AsyncClient | None = None) -> None:
        """Initialize the transport.

        Args:
            client: Optional pre-configured client. When omitted the transport
                    creates and owns one.
        """
        self._owns_client = client is None
        self._client = client

    @property
    def _http(self) -> httpx.AsyncClient:
        """Get or create the httpx client instance."""
        if self._client is None:
            self._client = httpx.AsyncClient()
            self._owns_client = True
        return self._client

    async def __call__(self, descriptor: RequestDescriptor) -> ResponseEnvelope:
        """Perform one network call for the descriptor.

        Raises:
            TransportError: On connection failures, timeouts and protocol errors
        """
        try:
            response = await self._http.request(
                descriptor.method,
                descriptor.url,
                headers=descriptor.headers,
                json=descriptor.body,
                timeout=descriptor.timeout,
            )
        except httpx.HTTPError as e:
            logger.debug("Transport failure for {} {}: {}", descriptor.method, descriptor.url, e)
            raise TransportError(f"{descriptor.method} {descriptor.url} failed: {e}") from e

        return ResponseEnvelope(
            status=response.status_code,
            headers=dict(response.headers.items()),
            body=_decode_body(response),
        )

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this transport owns it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> HttpxTransport:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        await self.aclose()


def _decode_body(response: httpx.Response) -> Any:
    if not response.content:
        return {}
    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return response.text
