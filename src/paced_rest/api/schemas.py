"""Request and response shapes exchanged with the transport.

RequestDescriptor is what travels through the scheduler and queue;
ResponseEnvelope is what the transport hands back for classification.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from typing import Any

DEFAULT_TIMEOUT_S = 30.0


@dataclass(frozen=True)
class RequestDescriptor:
    """A fully-resolved outbound request plus its pagination state.

    ``max_results`` is the chain's requested cap. It is captured once, on the
    first descriptor of a chain, and copied verbatim onto every continuation.
    ``items`` holds the items accumulated so far, in server order.
    """

    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    body: Any = None
    timeout: float = DEFAULT_TIMEOUT_S
    max_results: int | None = None
    items: tuple[Any, ...] | None = None

    @property
    def has_cap(self) -> bool:
        """Whether this descriptor belongs to a capped (paginated) chain."""
        return self.max_results is not None

    @property
    def accumulated(self) -> int:
        """Number of items collected so far in this chain."""
        return len(self.items) if self.items is not None else 0

    def with_page(self, url: str, items: Sequence[Any]) -> RequestDescriptor:
        """Build the continuation descriptor for the next page.

        The URL is replaced verbatim and the cap is kept as-is.
        """
        return replace(self, url=url, items=tuple(items))


@dataclass
class ResponseEnvelope:
    """Raw result of one transport call.

    Fields are intentionally loose; the classifier validates them.
    """

    status: Any
    headers: Any
    body: Any
