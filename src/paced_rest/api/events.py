"""Observable pipeline events.

The scheduler and queue publish fire-and-forget notifications that
logging or metrics sinks can subscribe to without the pipeline knowing
about them.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestEvent:
    """A request is about to be handed to the transport."""

    url: str
    headers: dict[str, str]
    body: Any


@dataclass(frozen=True)
class QueuedEvent:
    """A request was added to the queue; depth is the size after insert."""

    depth: int
    url: str
    headers: dict[str, str]
    body: Any


@dataclass(frozen=True)
class RateLimitedEvent:
    """A 429 was received; the request is resubmitted after ``delay`` seconds."""

    delay: float
    url: str
    headers: dict[str, str]
    body: Any


PipelineEvent = RequestEvent | QueuedEvent | RateLimitedEvent
EventListener = Callable[[PipelineEvent], None]

E = TypeVar("E", RequestEvent, QueuedEvent, RateLimitedEvent)


class EventBus:
    """Registry of event listeners.

    Usage:
        bus = EventBus()
        bus.on_rate_limited(lambda e: print(f"backing off {e.delay}s"))
        unsubscribe = bus.subscribe(lambda e: print(e))
        ...
        unsubscribe()

    A listener that raises is logged and skipped; it never affects the
    request pipeline or other listeners.
    """

    def __init__(self) -> None:
        self._listeners: list[EventListener] = []

    def subscribe(self, listener: EventListener) -> Callable[[], None]:
        """Register a listener for every event.

        Returns:
            Callable that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def on_request(self, listener: Callable[[RequestEvent], None]) -> Callable[[], None]:
        """Register a listener for request events only."""
        return self.subscribe(_only(RequestEvent, listener))

    def on_queued(self, listener: Callable[[QueuedEvent], None]) -> Callable[[], None]:
        """Register a listener for queued events only."""
        return self.subscribe(_only(QueuedEvent, listener))

    def on_rate_limited(
        self, listener: Callable[[RateLimitedEvent], None]
    ) -> Callable[[], None]:
        """Register a listener for rate-limited events only."""
        return self.subscribe(_only(RateLimitedEvent, listener))

    @property
    def listener_count(self) -> int:
        """Number of registered listeners."""
        return len(self._listeners)

    def publish(self, event: PipelineEvent) -> None:
        """Deliver an event to every listener."""
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.warning("Event listener error for %s: %s", type(event).__name__, e)


def _only(kind: type[E], listener: Callable[[E], None]) -> EventListener:
    def _filtered(event: Any) -> None:
        if isinstance(event, kind):
            listener(event)

    return _filtered
