"""Remote API client module.

This module provides:
- ApiClient: Async client with bearer auth, pacing and pagination
- Request pacing: ThrottleScheduler, RequestQueue
- Classification: classify_response, prepare_chain, Completed, Resubmit
- Transport: Executor contract, HttpxTransport
- Observability: EventBus and pipeline events
"""

from .client import ApiClient
from .events import EventBus, QueuedEvent, RateLimitedEvent, RequestEvent
from .exceptions import (
    ApiClientError,
    ConfigurationError,
    HttpStatusError,
    InvalidBodyError,
    InvalidHeadersError,
    QueueClosedError,
    RetryLimitExceededError,
    StructuralError,
    TransportError,
)
from .pacing import RequestQueue, ThrottleScheduler
from .pagination import (
    Completed,
    Resubmit,
    classify_response,
    parse_next_link,
    parse_retry_after,
    prepare_chain,
)
from .schemas import RequestDescriptor, ResponseEnvelope
from .transport import Executor, HttpxTransport

__all__ = [
    # Client
    "ApiClient",
    # Exceptions
    "ApiClientError",
    "ConfigurationError",
    "HttpStatusError",
    "InvalidBodyError",
    "InvalidHeadersError",
    "QueueClosedError",
    "RetryLimitExceededError",
    "StructuralError",
    "TransportError",
    # Events
    "EventBus",
    "QueuedEvent",
    "RateLimitedEvent",
    "RequestEvent",
    # Pacing
    "RequestQueue",
    "ThrottleScheduler",
    # Classification & pagination
    "Completed",
    "Resubmit",
    "classify_response",
    "parse_next_link",
    "parse_retry_after",
    "prepare_chain",
    # Transport
    "Executor",
    "HttpxTransport",
    "RequestDescriptor",
    "ResponseEnvelope",
]
