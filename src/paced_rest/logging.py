"""Centralized logging configuration using loguru.

Provides:
- Console and optional rotating file sinks, level from Settings or CLI flags
- Standard library interception (pacing modules, httpx, httpcore)
- Request context binding (method, url)
- An EventBus listener that logs pipeline events with their fields bound
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal

from loguru import logger

if TYPE_CHECKING:
    from loguru import Logger, Record

    from paced_rest.api.events import EventBus, PipelineEvent

LogLevel = Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

# Third-party loggers that only speak up at DEBUG/TRACE
_NOISY_LOGGERS = ("httpx", "httpcore")

_CONSOLE_FORMAT = (
    "<dim>{time:HH:mm:ss.SSS}</dim> | "
    "<level>{level: <8}</level> | "
    "<cyan>{source}</cyan> - "
    "<level>{message}</level>\n{exception}"
)

_FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {extra} | {message}"


class InterceptHandler(logging.Handler):
    """Forward standard library records to loguru.

    The scheduler, queue and event bus log through ``logging.getLogger``,
    as does httpx. This keeps all of them on the loguru sinks.
    """

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Walk out of the logging module so loguru reports the real caller
        frame = logging.currentframe()
        depth = 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def _console_format(record: Record) -> str:
    # Loggers from get_logger()/bind_request() carry their own label
    source = "{extra[name]}" if "name" in record["extra"] else "{name}"
    return _CONSOLE_FORMAT.replace("{source}", source)


def setup_logging(
    level: LogLevel = "INFO",
    *,
    verbose: bool = False,
    quiet: bool = False,
    log_file: Path | None = None,
    rotation: str = "10 MB",
    retention: str = "7 days",
    serialize: bool = False,
) -> Logger:
    """Configure logging for the application.

    Args:
        level: Base log level from config
        verbose: If True, use DEBUG level (overrides level and quiet)
        quiet: If True, use WARNING level
        log_file: Optional path for file logging with rotation
        rotation: When to rotate log file (e.g., "10 MB", "1 day")
        retention: How long to keep rotated logs
        serialize: If True, write JSON records to the file

    Returns:
        Configured logger instance
    """
    effective_level: LogLevel = "DEBUG" if verbose else "WARNING" if quiet else level

    logger.remove()
    logger.add(
        sys.stderr,
        level=effective_level,
        format=_console_format,
        colorize=True,
        backtrace=True,
        diagnose=True,
    )

    if log_file:
        # The file always captures DEBUG, whatever the console shows
        logger.add(
            log_file,
            level="DEBUG",
            format=_FILE_FORMAT,
            rotation=rotation,
            retention=retention,
            compression="gz",
            serialize=serialize,
        )

    _intercept_stdlib_logging(effective_level)
    return logger


def _intercept_stdlib_logging(level: LogLevel) -> None:
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    noisy_level = logging.DEBUG if level in ("TRACE", "DEBUG") else logging.WARNING
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(noisy_level)


def get_logger(name: str) -> Logger:
    """Get a loguru logger labelled with ``name`` (typically ``__name__``)."""
    return logger.bind(name=name)


def bind_request(method: str, url: str) -> Logger:
    """Bind request context to logger.

    Args:
        method: HTTP method
        url: Destination URL

    Returns:
        Logger with method and url context bound
    """
    return logger.bind(name="request", method=method.upper(), url=url)


def log_pipeline_events(bus: EventBus) -> Callable[[], None]:
    """Log every event published on ``bus``.

    Each record carries ``event`` and ``url`` in its extra context, plus
    ``depth`` for queued events and ``delay`` for rate-limited ones, so a
    serialized file sink gets them as structured fields.

    Usage:
        async with ApiClient() as client:
            log_pipeline_events(client.events)

    Returns:
        Callable that detaches the listener again
    """
    from paced_rest.api.events import QueuedEvent, RateLimitedEvent

    events_logger = logger.bind(name="events")

    def _log(event: PipelineEvent) -> None:
        context: dict[str, Any] = {"event": type(event).__name__, "url": event.url}
        if isinstance(event, RateLimitedEvent):
            context["delay"] = event.delay
            events_logger.bind(**context).debug(
                "Rate limited, resubmitting in {:.1f}s", event.delay
            )
        elif isinstance(event, QueuedEvent):
            context["depth"] = event.depth
            events_logger.bind(**context).debug("Queued at depth {}", event.depth)
        else:
            events_logger.bind(**context).debug("Dispatching request")

    return bus.subscribe(_log)


def reset_logging() -> None:
    """Remove every loguru sink (primarily for testing)."""
    logger.remove()
