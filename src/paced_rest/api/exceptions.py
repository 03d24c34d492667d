"""API client exceptions."""


class ApiClientError(Exception):
    """Base exception for API client errors."""

    pass


class ConfigurationError(ApiClientError):
    """Raised when a required setup value (e.g. the API token) is absent."""

    pass


class TransportError(ApiClientError):
    """Raised when the transport fails before a response is received."""

    pass


class StructuralError(ApiClientError):
    """Base class for responses that lack the shape needed for classification.

    Structural errors are terminal: the response never reaches
    status-based branching and the request is not retried.
    """

    pass


class InvalidHeadersError(StructuralError):
    """Raised when response headers are missing or not a mapping."""

    def __init__(self, message: str = "invalid response headers") -> None:
        super().__init__(message)


class InvalidBodyError(StructuralError):
    """Raised when the response body is missing or not a JSON object/array."""

    def __init__(self, message: str = "invalid response body") -> None:
        super().__init__(message)


class HttpStatusError(ApiClientError):
    """Raised for any terminal status other than 200, 204 and 429."""

    def __init__(self, status: int, url: str | None = None) -> None:
        message = f"request received http error {status}"
        if url:
            message = f"{message} ({url})"
        super().__init__(message)
        self.status = status
        self.url = url


class QueueClosedError(ApiClientError):
    """Raised for queued requests still pending when the queue is closed."""

    pass


class RetryLimitExceededError(ApiClientError):
    """Raised when the optional rate-limit retry ceiling is exceeded."""

    def __init__(self, message: str, attempts: int) -> None:
        super().__init__(message)
        self.attempts = attempts
