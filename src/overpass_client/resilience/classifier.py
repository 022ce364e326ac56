"""Failure classification for the execution pipeline.

``classify()`` is the only place that looks at raw transport failures.
It turns one failed attempt into a RetryDecision, evaluating in order:

1. Anything that is not a TransportFailure -> Fatal(UNKNOWN_STATUS)
2. attempt >= max_retries -> Exhausted
3. No response at all -> Fatal(NETWORK_FAILURE)
4. 400 -> Fatal(BAD_REQUEST) with details scraped from the body
5. 429 -> RetryAfter(retry-after seconds * 1000, or backoff)
6. 500/502/503/504 -> RetryAfter(backoff)
7. Any other status -> Fatal(UNKNOWN_STATUS)

Backoff is full jitter: uniform in [0, 2**attempt * 1000) ms.
"""

import random
import re
from typing import Mapping, Optional

from overpass_client.errors import (
    UNKNOWN_ERROR_MESSAGE,
    OverpassError,
    OverpassErrorKind,
)
from overpass_client.resilience.models import (
    Exhausted,
    Fatal,
    RetryAfter,
    RetryDecision,
    TransportFailure,
)

BASE_DELAY_MS = 1000.0

SERVER_ERROR_STATUSES = frozenset({500, 502, 503, 504})

# Overpass renders query errors as "<strong ...>Error</strong>: line 1: ... </p>"
_ERROR_DETAIL_RE = re.compile(r"</strong>: ([^<]+) </p>")


def failure_kind(status_code: Optional[int]) -> OverpassErrorKind:
    """Error kind a failure with *status_code* maps to, ignoring the retry budget."""
    if status_code is None:
        return OverpassErrorKind.NETWORK_FAILURE
    if status_code == 400:
        return OverpassErrorKind.BAD_REQUEST
    if status_code == 429:
        return OverpassErrorKind.RATE_LIMITED
    if status_code in SERVER_ERROR_STATUSES:
        return OverpassErrorKind.SERVER_UNAVAILABLE
    return OverpassErrorKind.UNKNOWN_STATUS


def compute_backoff_ms(attempt: int, rng: Optional[random.Random] = None) -> float:
    """Full-jitter exponential backoff.

    Args:
        attempt: 0-indexed attempt number within the request
        rng: Injectable Random instance for deterministic testing

    Returns:
        Delay in milliseconds, uniform in ``[0, 2**attempt * 1000)``
    """
    _rng = rng or random
    return _rng.random() * (2**attempt) * BASE_DELAY_MS


def parse_retry_after_ms(headers: Mapping[str, str]) -> Optional[int]:
    """Parse an integer ``retry-after`` header into milliseconds.

    Date-valued or otherwise malformed headers return None so the caller
    falls back to computed backoff.
    """
    value = headers.get("retry-after")
    if value is None:
        return None
    value = value.strip()
    if not (value.isascii() and value.isdigit()):
        return None
    return int(value) * 1000


def extract_bad_request_details(body: Optional[str]) -> list[str]:
    """Pull the error lines out of an Overpass 400 HTML body.

    Each captured string has ``&quot;`` decoded to a double quote.
    """
    if not body:
        return []
    return [match.replace("&quot;", '"') for match in _ERROR_DETAIL_RE.findall(body)]


def classify(
    failure: BaseException,
    attempt: int,
    max_retries: int,
    query: Optional[str] = None,
    *,
    rng: Optional[random.Random] = None,
) -> RetryDecision:
    """Decide what to do after a failed attempt.

    Args:
        failure: The exception raised by the attempt
        attempt: 0-indexed number of the attempt that failed
        max_retries: Retry budget of the request
        query: Query body, attached to the resulting error
        rng: Injectable Random instance for the backoff jitter

    Returns:
        Fatal, RetryAfter or Exhausted
    """
    if not isinstance(failure, TransportFailure):
        return Fatal(
            OverpassError(
                OverpassErrorKind.UNKNOWN_STATUS,
                UNKNOWN_ERROR_MESSAGE,
                query=query,
            )
        )

    if attempt >= max_retries:
        return Exhausted(
            message=OverpassError.max_retries_exceeded(failure.status_text).message,
            last_status=failure.status_text,
            last_kind=failure_kind(failure.status_code),
        )

    status = failure.status_code
    if status is None:
        return Fatal(OverpassError.network_failure(query=query))

    if status == 400:
        details = extract_bad_request_details(failure.body)
        return Fatal(OverpassError.bad_request(query, details))

    if status == 429:
        retry_after_ms = parse_retry_after_ms(failure.headers)
        if retry_after_ms is not None:
            return RetryAfter(
                delay_ms=retry_after_ms,
                kind=OverpassErrorKind.RATE_LIMITED,
                server_dictated=True,
            )
        return RetryAfter(
            delay_ms=compute_backoff_ms(attempt, rng),
            kind=OverpassErrorKind.RATE_LIMITED,
        )

    if status in SERVER_ERROR_STATUSES:
        return RetryAfter(
            delay_ms=compute_backoff_ms(attempt, rng),
            kind=OverpassErrorKind.SERVER_UNAVAILABLE,
        )

    return Fatal(OverpassError.unknown_status(status, failure.status_text, query=query))
