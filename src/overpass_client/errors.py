"""Overpass client error type.

A single exception class carries every failure the client can surface.
The ``kind`` discriminant tells callers what went wrong; kind-specific
fields (``details``, ``retry_after_ms``, ``status_code``...) are set only
for the kinds that use them.

Usage:
    from overpass_client.errors import OverpassError, OverpassErrorKind

    try:
        await client.get_element("node", 1)
    except OverpassError as e:
        if e.kind is OverpassErrorKind.BAD_REQUEST:
            print(e.details)
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional, Sequence


class OverpassErrorKind(str, Enum):
    """Discriminant for :class:`OverpassError`."""

    BAD_REQUEST = "bad_request"
    RATE_LIMITED = "rate_limited"
    SERVER_UNAVAILABLE = "server_unavailable"
    NETWORK_FAILURE = "network_failure"
    UNKNOWN_STATUS = "unknown_status"
    MAX_RETRIES_EXCEEDED = "max_retries_exceeded"


UNKNOWN_STATUS_TEXT = "Unknown error occured"
UNKNOWN_ERROR_MESSAGE = "Unknown error occurred"
NETWORK_FAILURE_MESSAGE = "Something went wrong"
RATE_LIMITED_MESSAGE = "Too many requests! You are being rate limited by Overpass API."
SERVER_UNAVAILABLE_MESSAGE = "Overpass API is temporarily unavailable."
INVALID_RESPONSE_TEXT = "Invalid JSON response"


class OverpassError(Exception):
    """Terminal error raised by the Overpass client.

    Attributes:
        kind: What went wrong
        message: Human-readable description
        query: The Overpass QL body of the failed request, if known
        details: Error strings extracted from a 400 response body
        retry_after_ms: Server-dictated delay for rate-limit errors
        status_code: HTTP status for unknown-status errors
        status_text: HTTP reason phrase, if any
        last_status: Reason phrase of the last failure before retries ran out
        last_kind: What the last failure before retries ran out would have
            been classified as
    """

    _frozen = False

    def __init__(
        self,
        kind: OverpassErrorKind,
        message: str,
        *,
        query: Optional[str] = None,
        details: Optional[Sequence[str]] = None,
        retry_after_ms: Optional[int] = None,
        status_code: Optional[int] = None,
        status_text: Optional[str] = None,
        last_status: Optional[str] = None,
        last_kind: Optional[OverpassErrorKind] = None,
    ):
        self.kind = kind
        self.message = message
        self.query = query
        self.details: tuple[str, ...] = tuple(details or ())
        self.retry_after_ms = retry_after_ms
        self.status_code = status_code
        self.status_text = status_text
        self.last_status = last_status
        self.last_kind = last_kind
        super().__init__(message)
        self._frozen = True

    def __setattr__(self, name: str, value: Any) -> None:
        # traceback bookkeeping is still allowed after construction
        if self._frozen and not name.startswith("__"):
            raise AttributeError(f"OverpassError is immutable (tried to set {name!r})")
        super().__setattr__(name, value)

    def __repr__(self) -> str:
        return f"OverpassError(kind={self.kind.value!r}, message={self.message!r})"

    # ------------------------------------------------------------------
    # Constructors, one per kind
    # ------------------------------------------------------------------

    @classmethod
    def bad_request(cls, query: Optional[str], details: Sequence[str]) -> "OverpassError":
        detailed = f"\nDetails: {'; '.join(details)}" if details else ""
        return cls(
            OverpassErrorKind.BAD_REQUEST,
            f"Overpass Query Error: {query or ''} {detailed}".rstrip(),
            query=query,
            details=details,
        )

    @classmethod
    def rate_limited(
        cls, retry_after_ms: Optional[int] = None, query: Optional[str] = None
    ) -> "OverpassError":
        return cls(
            OverpassErrorKind.RATE_LIMITED,
            RATE_LIMITED_MESSAGE,
            query=query,
            retry_after_ms=retry_after_ms,
        )

    @classmethod
    def server_unavailable(cls, query: Optional[str] = None) -> "OverpassError":
        return cls(OverpassErrorKind.SERVER_UNAVAILABLE, SERVER_UNAVAILABLE_MESSAGE, query=query)

    @classmethod
    def network_failure(cls, query: Optional[str] = None) -> "OverpassError":
        return cls(OverpassErrorKind.NETWORK_FAILURE, NETWORK_FAILURE_MESSAGE, query=query)

    @classmethod
    def unknown_status(
        cls,
        status_code: Optional[int],
        status_text: Optional[str],
        query: Optional[str] = None,
    ) -> "OverpassError":
        text = status_text or UNKNOWN_STATUS_TEXT
        prefix = f"[{status_code}] - " if status_code else ""
        return cls(
            OverpassErrorKind.UNKNOWN_STATUS,
            f"{prefix}{text}",
            query=query,
            status_code=status_code,
            status_text=text,
        )

    @classmethod
    def max_retries_exceeded(
        cls,
        last_status: Optional[str] = None,
        query: Optional[str] = None,
        last_kind: Optional[OverpassErrorKind] = None,
    ) -> "OverpassError":
        return cls(
            OverpassErrorKind.MAX_RETRIES_EXCEEDED,
            f"Max retries exceeded. Request failed {last_status or ''}".rstrip(),
            query=query,
            last_status=last_status,
            last_kind=last_kind,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a dictionary for structured logging."""
        result: Dict[str, Any] = {"kind": self.kind.value, "message": self.message}
        if self.query is not None:
            result["query"] = self.query
        if self.details:
            result["details"] = list(self.details)
        if self.retry_after_ms is not None:
            result["retry_after_ms"] = self.retry_after_ms
        if self.status_code is not None:
            result["status_code"] = self.status_code
        if self.status_text is not None:
            result["status_text"] = self.status_text
        if self.last_status is not None:
            result["last_status"] = self.last_status
        if self.last_kind is not None:
            result["last_kind"] = self.last_kind.value
        return result
