"""Response classification and pagination state transitions.

Every response envelope is turned into exactly one verdict:

- ``Completed``: the chain is over and ``value`` goes back to the caller
- ``Resubmit``: feed ``descriptor`` back through the scheduler, after
  ``delay`` seconds for rate-limited responses
- an ``ApiClientError`` is raised for terminal failures

Classification is a pure function of (envelope, descriptor). All state a
chain carries between pages lives on the descriptor itself.

Chain lifecycle:
    first descriptor --prepare_chain--> capped descriptor (page size rewritten)
    200 page, below cap, next link --> Resubmit(with_page(next, merged))
    200 page, cap reached or no link --> Completed(merged[:cap])
    429 --> Resubmit(same descriptor, delay=retry-after)
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Mapping
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing import Any
from urllib.parse import urlsplit, urlunsplit

from .exceptions import HttpStatusError, InvalidBodyError, InvalidHeadersError
from .schemas import RequestDescriptor, ResponseEnvelope

logger = logging.getLogger(__name__)

DEFAULT_RETRY_AFTER_S = 15.0
DEFAULT_PAGE_SIZE = 100

_LINK_ENTRY_RE = re.compile(r"<\s*([^>]+?)\s*>([^<]*)")
_REL_RE = re.compile(r'rel\s*=\s*"?([^";,]+)"?', re.IGNORECASE)


@dataclass(frozen=True)
class Completed:
    """Terminal success for a chain."""

    value: Any


@dataclass(frozen=True)
class Resubmit:
    """The chain needs another round through the scheduler."""

    descriptor: RequestDescriptor
    delay: float = 0.0
    rate_limited: bool = False


Verdict = Completed | Resubmit


# -----------------------------------------------------------------------------
# Chain preparation
# -----------------------------------------------------------------------------
def prepare_chain(
    descriptor: RequestDescriptor,
    page_size: int = DEFAULT_PAGE_SIZE,
    cap_param: str = "max",
) -> RequestDescriptor:
    """Capture the requested cap from the URL and rewrite it to the page size.

    Only the first descriptor of a chain is rewritten. A descriptor that
    already carries a cap (a continuation or a 429 resubmission) is
    returned unchanged, as is one whose cap value is not a non-negative
    integer.

    Args:
        descriptor: First descriptor of a chain
        page_size: Items to request per round trip
        cap_param: Query key (case-insensitive) expressing the cap

    Returns:
        Descriptor with ``max_results`` set and the query rewritten, or the
        original descriptor when there is nothing to capture
    """
    if descriptor.has_cap:
        return descriptor

    parts = urlsplit(descriptor.url)
    if not parts.query:
        return descriptor

    params = parts.query.split("&")
    cap: int | None = None
    for index, param in enumerate(params):
        key, _, value = param.partition("=")
        if cap is not None or key.lower() != cap_param.lower():
            continue
        try:
            parsed = int(value)
        except ValueError:
            continue
        if parsed < 0:
            continue
        cap = parsed
        params[index] = f"{key}={page_size}"

    if cap is None:
        return descriptor

    url = urlunsplit(parts._replace(query="&".join(params)))
    logger.debug("Captured cap %d, requesting pages of %d", cap, page_size)
    return replace(descriptor, url=url, max_results=cap)


# -----------------------------------------------------------------------------
# Header parsing
# -----------------------------------------------------------------------------
def parse_next_link(value: Any) -> str | None:
    """Extract the continuation URL from a Link-style header value.

    Format: ``<https://api.example.com/items?cursor=abc>; rel="next"``

    The entry whose rel includes ``next`` wins. When no entry declares a
    rel at all, the first URL is used.
    """
    if not isinstance(value, str) or not value:
        return None

    first_without_rel: str | None = None
    for match in _LINK_ENTRY_RE.finditer(value):
        url, params = match.group(1), match.group(2)
        rel = _REL_RE.search(params)
        if rel is None:
            if first_without_rel is None:
                first_without_rel = url
            continue
        if "next" in rel.group(1).lower().split():
            return url

    return first_without_rel


def parse_retry_after(
    headers: Mapping[str, Any],
    default: float = DEFAULT_RETRY_AFTER_S,
) -> float:
    """Read the retry delay in seconds from the literal ``retry-after`` header.

    Accepts delta-seconds (integer or decimal) or an HTTP-date. Missing or
    unparseable values fall back to ``default``. Never negative.
    """
    raw = headers.get("retry-after")
    if raw is None:
        return default

    if isinstance(raw, int | float) and not isinstance(raw, bool):
        seconds = float(raw)
    else:
        text = str(raw).strip()
        try:
            seconds = float(text)
        except ValueError:
            try:
                when = parsedate_to_datetime(text)
            except (TypeError, ValueError):
                logger.warning("Unparseable retry-after %r, using %.1fs", raw, default)
                return default
            if when.tzinfo is None:
                when = when.replace(tzinfo=UTC)
            seconds = (when - datetime.now(UTC)).total_seconds()

    if not math.isfinite(seconds):
        return default
    return max(0.0, seconds)


# -----------------------------------------------------------------------------
# Classification
# -----------------------------------------------------------------------------
def _status_of(envelope: ResponseEnvelope) -> int:
    status = envelope.status
    if isinstance(status, int) and not isinstance(status, bool):
        return status
    return 500


def classify_response(
    envelope: ResponseEnvelope,
    descriptor: RequestDescriptor,
    *,
    default_retry_after: float = DEFAULT_RETRY_AFTER_S,
    items_key: str = "items",
) -> Verdict:
    """Classify one response for the descriptor that produced it.

    Args:
        envelope: Raw transport result
        descriptor: The in-flight descriptor (carries the chain state)
        default_retry_after: Delay for 429 responses without retry-after
        items_key: Body key that marks a collection page

    Returns:
        Completed or Resubmit verdict

    Raises:
        InvalidHeadersError: headers missing or not a mapping
        InvalidBodyError: body missing or not a JSON object/array
        HttpStatusError: any status other than 200, 204 and 429
    """
    status = _status_of(envelope)

    headers = envelope.headers
    if not isinstance(headers, Mapping):
        raise InvalidHeadersError()

    body = envelope.body
    if not isinstance(body, Mapping | list):
        raise InvalidBodyError()

    if status == 204:
        return Completed({})

    if status == 429:
        delay = parse_retry_after(headers, default_retry_after)
        return Resubmit(descriptor, delay=delay, rate_limited=True)

    if status == 200:
        page = body.get(items_key) if isinstance(body, Mapping) else None
        if not isinstance(page, list):
            return Completed(body)
        return _next_page_verdict(page, headers, descriptor)

    logger.debug("request received http error %s for %s", status, descriptor.url)
    raise HttpStatusError(status, descriptor.url)


def _next_page_verdict(
    page: list[Any],
    headers: Mapping[str, Any],
    descriptor: RequestDescriptor,
) -> Verdict:
    cap = descriptor.max_results
    if cap is None:
        return Completed(page)

    merged = [*(descriptor.items or ()), *page]
    if len(merged) >= cap:
        return Completed(merged[:cap])

    next_url = parse_next_link(headers.get("link"))
    if next_url is None:
        return Completed(merged)

    return Resubmit(descriptor.with_page(next_url, merged))
