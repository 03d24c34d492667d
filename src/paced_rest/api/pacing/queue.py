"""FIFO request queue with an occupancy-driven drain timer.

Requests that cannot be dispatched immediately wait here. A drain task
exists only while the queue holds entries: it is started by the first
insert into an empty queue and ends on the first tick that finds the
queue empty. Every tick pops the head entry and dispatches it.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from paced_rest.api.events import EventBus, QueuedEvent
from paced_rest.api.exceptions import QueueClosedError
from paced_rest.api.schemas import RequestDescriptor

logger = logging.getLogger(__name__)

DispatchFn = Callable[[RequestDescriptor], Awaitable[Any]]
SleepFn = Callable[[float], Awaitable[Any]]


@dataclass
class QueueEntry:
    """A waiting descriptor and the single-use handle its caller awaits."""

    descriptor: RequestDescriptor
    future: asyncio.Future[Any]


class RequestQueue:
    """Strict FIFO buffer of pending request descriptors.

    Usage:
        queue = RequestQueue(dispatch, interval=0.6)
        verdict = await queue.enqueue(descriptor)
        ...
        await queue.aclose()
    """

    def __init__(
        self,
        dispatch: DispatchFn,
        *,
        interval: float,
        events: EventBus | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        """Initialize the queue.

        Args:
            dispatch: Coroutine function that performs one round for a descriptor
            interval: Seconds between drain ticks
            events: Optional event bus for ``queued`` notifications
            sleep: Awaitable sleep used between ticks (injectable for tests)
        """
        self._dispatch = dispatch
        self._interval = interval
        self._events = events or EventBus()
        self._sleep = sleep

        self._entries: deque[QueueEntry] = deque()
        self._drain_task: asyncio.Task[None] | None = None
        self._active_tasks: set[asyncio.Task[None]] = set()  # Prevent task GC
        self._closed = False

        self._total_enqueued = 0
        self._total_drained = 0

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def interval(self) -> float:
        """Seconds between drain ticks."""
        return self._interval

    @property
    def is_draining(self) -> bool:
        """True while the drain timer is running."""
        return self._drain_task is not None and not self._drain_task.done()

    @property
    def is_closed(self) -> bool:
        """True once aclose() has been called."""
        return self._closed

    # -------------------------------------------------------------------------
    # Insertion
    # -------------------------------------------------------------------------
    def enqueue(self, descriptor: RequestDescriptor) -> asyncio.Future[Any]:
        """Append a descriptor and return the future settled by its dispatch.

        Raises:
            QueueClosedError: If the queue has been closed
        """
        if self._closed:
            raise QueueClosedError("queue is closed")

        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._entries.append(QueueEntry(descriptor, future))
        self._total_enqueued += 1
        self._start()

        depth = len(self._entries)
        self._events.publish(
            QueuedEvent(depth, descriptor.url, descriptor.headers, descriptor.body)
        )
        logger.debug("Queue item **added** and queue depth is now %d", depth)
        return future

    # -------------------------------------------------------------------------
    # Drain timer lifecycle
    # -------------------------------------------------------------------------
    def _start(self) -> None:
        if self.is_draining:
            return
        self._drain_task = asyncio.create_task(self._drain_loop())

    async def _drain_loop(self) -> None:
        while True:
            await self._sleep(self._interval)
            if not self._entries:
                break
            entry = self._entries.popleft()
            task = asyncio.create_task(self._process(entry))
            self._active_tasks.add(task)
            task.add_done_callback(self._active_tasks.discard)
        self._drain_task = None

    async def _process(self, entry: QueueEntry) -> None:
        self._total_drained += 1
        try:
            outcome = await self._dispatch(entry.descriptor)
        except Exception as e:
            if not entry.future.done():
                entry.future.set_exception(e)
            return

        if not entry.future.done():
            entry.future.set_result(outcome)
        logger.debug("Queue item **processed** and queue depth is now %d", len(self._entries))

    # -------------------------------------------------------------------------
    # Teardown
    # -------------------------------------------------------------------------
    async def aclose(self) -> None:
        """Stop the drain timer and reject every entry still waiting.

        Dispatches already in flight are allowed to finish.
        """
        self._closed = True

        if self._drain_task is not None:
            self._drain_task.cancel()
            try:
                await self._drain_task
            except asyncio.CancelledError:
                pass
            self._drain_task = None

        pending = len(self._entries)
        while self._entries:
            entry = self._entries.popleft()
            if not entry.future.done():
                entry.future.set_exception(QueueClosedError("queue closed before dispatch"))

        if self._active_tasks:
            await asyncio.gather(*self._active_tasks, return_exceptions=True)

        if pending:
            logger.info("Request queue closed, rejected %d pending request(s)", pending)

    def get_stats(self) -> dict[str, int | bool]:
        """Get queue statistics."""
        return {
            "depth": len(self._entries),
            "is_draining": self.is_draining,
            "total_enqueued": self._total_enqueued,
            "total_drained": self._total_drained,
        }
