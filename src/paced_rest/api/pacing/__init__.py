"""Request pacing for the remote API.

Components:
- ThrottleScheduler: spacing-based immediate/queued routing, pagination
  and 429 retry loop
- RequestQueue: FIFO buffer drained by an occupancy-driven timer
"""

from .queue import QueueEntry, RequestQueue
from .scheduler import ThrottleScheduler

__all__ = [
    "QueueEntry",
    "RequestQueue",
    "ThrottleScheduler",
]
