"""Resilience data models and protocols.

Defines the types the classifier and the execution pipeline exchange:
- TransportFailure, the exception a Transport raises for a failed round trip
- RetryDecision variants (Fatal, RetryAfter, Exhausted)
- RetryContext, the per-request retry counter
- SleepFunc protocol for injectable async sleep
"""

from dataclasses import dataclass, field
from typing import Mapping, Optional, Protocol, Union

from overpass_client.errors import OverpassError, OverpassErrorKind


class TransportFailure(Exception):
    """A failed network round trip.

    ``status_code`` is None when no HTTP response was received
    (connection refused, DNS failure, timeout...).

    Attributes:
        status_code: HTTP status of the response, if any
        status_text: HTTP reason phrase, if any
        headers: Response headers (lower-cased keys)
        body: Response body text
    """

    def __init__(
        self,
        status_code: Optional[int] = None,
        status_text: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
        body: str = "",
        original_error: Optional[BaseException] = None,
    ):
        self.status_code = status_code
        self.status_text = status_text
        self.headers = {k.lower(): v for k, v in (headers or {}).items()}
        self.body = body
        self.original_error = original_error
        if status_code is None:
            message = f"No response received: {original_error or 'connection failed'}"
        else:
            message = f"HTTP {status_code} {status_text or ''}".rstrip()
        super().__init__(message)

    @property
    def has_response(self) -> bool:
        return self.status_code is not None


@dataclass(frozen=True)
class Fatal:
    """Stop now and raise ``error``."""

    error: OverpassError

    @property
    def kind(self) -> OverpassErrorKind:
        return self.error.kind

    @property
    def message(self) -> str:
        return self.error.message


@dataclass(frozen=True)
class RetryAfter:
    """Wait ``delay_ms`` milliseconds, then try again.

    ``server_dictated`` is True when the delay came from a retry-after
    header rather than the backoff formula.
    """

    delay_ms: float
    kind: OverpassErrorKind = OverpassErrorKind.SERVER_UNAVAILABLE
    server_dictated: bool = False

    @property
    def delay_seconds(self) -> float:
        return self.delay_ms / 1000.0

    def to_error(self, query: Optional[str] = None) -> OverpassError:
        """The error this failure would raise if it were not retried."""
        if self.kind is OverpassErrorKind.RATE_LIMITED:
            retry_after_ms = int(self.delay_ms) if self.server_dictated else None
            return OverpassError.rate_limited(retry_after_ms, query=query)
        return OverpassError.server_unavailable(query=query)


@dataclass(frozen=True)
class Exhausted:
    """Retry budget used up on an otherwise retryable failure."""

    message: str
    last_status: Optional[str] = None
    last_kind: Optional[OverpassErrorKind] = None

    def to_error(self, query: Optional[str] = None) -> OverpassError:
        return OverpassError.max_retries_exceeded(
            self.last_status, query=query, last_kind=self.last_kind
        )


RetryDecision = Union[Fatal, RetryAfter, Exhausted]


@dataclass
class RetryContext:
    """Retry state for one logical request.

    ``attempt`` is the 0-indexed number of the attempt in flight.
    """

    max_retries: int
    attempt: int = 0
    delays_ms: list[float] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be non-negative, got {self.max_retries}")

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    @property
    def total_delay_ms(self) -> float:
        return sum(self.delays_ms)

    def advance(self, delay_ms: float) -> None:
        """Record a scheduled retry and move to the next attempt."""
        self.delays_ms.append(delay_ms)
        self.attempt += 1


class SleepFunc(Protocol):
    """Protocol for injectable sleep function."""

    async def __call__(self, seconds: float) -> None: ...
