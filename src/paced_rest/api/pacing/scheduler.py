"""Throttle scheduler: the single entry point of the request pipeline.

Each submitted descriptor is either dispatched immediately or handed to
the FIFO RequestQueue, based only on the time since the last hand-off and
on queue occupancy. The verdict of every round decides whether the chain
ends or goes around again (next page, or the same request after a 429
back-off). Rounds are driven by a loop, so long collections and long
retry storms do not grow the call stack.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Any

from paced_rest.api.events import EventBus, RateLimitedEvent, RequestEvent
from paced_rest.api.exceptions import RetryLimitExceededError
from paced_rest.api.pagination import (
    Completed,
    Verdict,
    classify_response,
    prepare_chain,
)
from paced_rest.api.schemas import RequestDescriptor
from paced_rest.api.transport import Executor
from paced_rest.config import PacingConfig, get_settings

from .queue import RequestQueue, SleepFn

logger = logging.getLogger(__name__)


class ThrottleScheduler:
    """Spaces out requests and drives pagination and 429 retries.

    Usage:
        async with HttpxTransport() as transport:
            async with ThrottleScheduler(transport) as scheduler:
                rooms = await scheduler.submit(
                    RequestDescriptor("GET", "https://api.example.com/rooms?max=250")
                )

    The last-dispatch marker is updated on every hand-off, immediate or
    queued, before the response arrives. It is read and written without a
    lock: two near-simultaneous callers may both take the immediate path.
    """

    def __init__(
        self,
        executor: Executor,
        *,
        config: PacingConfig | None = None,
        events: EventBus | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        """Initialize the scheduler.

        Args:
            executor: Transport that performs one network call
            config: Optional pacing configuration (uses settings if not provided)
            events: Optional event bus (a private one is created otherwise)
            clock: Monotonic clock in seconds (injectable for tests)
            sleep: Awaitable sleep (injectable for tests)
        """
        self._executor = executor
        self._config = config or get_settings().pacing
        self._events = events or EventBus()
        self._clock = clock
        self._sleep = sleep

        self._last_dispatch_at: float | None = None
        self._queue = RequestQueue(
            self._dispatch,
            interval=self._config.min_request_interval,
            events=self._events,
            sleep=sleep,
        )

        # Statistics
        self._total_submitted = 0
        self._total_dispatched = 0
        self._total_queued = 0
        self._total_rate_limited = 0
        self._total_completed = 0
        self._total_failed = 0

    @property
    def config(self) -> PacingConfig:
        """Get the pacing configuration."""
        return self._config

    @property
    def events(self) -> EventBus:
        """Event bus that pipeline notifications are published to."""
        return self._events

    @property
    def queue(self) -> RequestQueue:
        """The FIFO queue of waiting requests."""
        return self._queue

    @property
    def queue_size(self) -> int:
        """Number of requests waiting in the queue."""
        return len(self._queue)

    # -------------------------------------------------------------------------
    # Submission
    # -------------------------------------------------------------------------
    async def submit(self, descriptor: RequestDescriptor) -> Any:
        """Run a request chain to completion and return its result.

        Args:
            descriptor: First descriptor of the chain

        Returns:
            The single resource, the (possibly capped) list of items, or an
            empty mapping for 204 responses

        Raises:
            ApiClientError: Any terminal failure of the chain
        """
        self._total_submitted += 1
        current = prepare_chain(descriptor, self._config.page_size, self._config.cap_param)
        pages = 0
        rate_limit_retries = 0

        try:
            while True:
                verdict = await self._route(current)
                if isinstance(verdict, Completed):
                    self._total_completed += 1
                    return verdict.value

                if verdict.rate_limited:
                    rate_limit_retries += 1
                    self._on_rate_limited(verdict.descriptor, verdict.delay, rate_limit_retries)
                    await self._sleep(verdict.delay)
                else:
                    pages += 1
                    max_pages = self._config.max_pages
                    if max_pages is not None and pages >= max_pages:
                        logger.warning(
                            "Page ceiling (%d) reached for %s, returning %d item(s)",
                            max_pages,
                            current.url,
                            verdict.descriptor.accumulated,
                        )
                        self._total_completed += 1
                        return list(verdict.descriptor.items or ())

                current = verdict.descriptor
        except Exception:
            self._total_failed += 1
            raise

    def _on_rate_limited(self, descriptor: RequestDescriptor, delay: float, attempt: int) -> None:
        self._total_rate_limited += 1

        max_retries = self._config.max_rate_limit_retries
        if max_retries is not None and attempt > max_retries:
            raise RetryLimitExceededError(
                f"rate limited {attempt} time(s) for {descriptor.url}", attempts=attempt
            )

        if delay > 0:
            logger.info(
                "API rate limit exceeded, request delayed %.1fs before being reattempted",
                delay,
            )
            self._events.publish(
                RateLimitedEvent(delay, descriptor.url, descriptor.headers, descriptor.body)
            )

    # -------------------------------------------------------------------------
    # Routing & dispatch
    # -------------------------------------------------------------------------
    async def _route(self, descriptor: RequestDescriptor) -> Verdict:
        """Dispatch now or queue, then return the round's verdict."""
        now = self._clock()
        spaced = (
            self._last_dispatch_at is None
            or now - self._last_dispatch_at > self._config.min_request_interval
        )
        self._last_dispatch_at = now

        if spaced and len(self._queue) == 0:
            return await self._dispatch(descriptor)

        self._total_queued += 1
        verdict: Verdict = await self._queue.enqueue(descriptor)
        return verdict

    async def _dispatch(self, descriptor: RequestDescriptor) -> Verdict:
        """Send one request through the transport and classify the response."""
        self._total_dispatched += 1
        logger.debug("API request sent to %s %s", descriptor.method, descriptor.url)
        self._events.publish(RequestEvent(descriptor.url, descriptor.headers, descriptor.body))

        envelope = await self._executor(descriptor)
        return classify_response(
            envelope,
            descriptor,
            default_retry_after=self._config.default_retry_after_s,
            items_key=self._config.items_key,
        )

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------
    async def aclose(self) -> None:
        """Stop the queue drain timer and reject requests still waiting."""
        await self._queue.aclose()
        logger.debug(
            "Throttle scheduler closed (completed=%d, failed=%d)",
            self._total_completed,
            self._total_failed,
        )

    async def __aenter__(self) -> ThrottleScheduler:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        await self.aclose()

    def get_stats(self) -> dict[str, int]:
        """Get scheduler statistics.

        Returns:
            Dict with queue_size, total_submitted, total_dispatched, etc.
        """
        return {
            "queue_size": len(self._queue),
            "total_submitted": self._total_submitted,
            "total_dispatched": self._total_dispatched,
            "total_queued": self._total_queued,
            "total_rate_limited": self._total_rate_limited,
            "total_completed": self._total_completed,
            "total_failed": self._total_failed,
        }
