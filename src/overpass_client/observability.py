"""Structured audit logging for request lifecycle events.

Audit events go to a dedicated child logger so they can be filtered or
routed separately from ordinary diagnostics. Each record carries the
event as a dict in ``extra={"audit": ...}``.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Union

logger = logging.getLogger(__name__)

PACKAGE_LOGGER = "overpass_client"


class AuditEventType(Enum):
    """Types of request lifecycle events."""

    CACHE_HIT = "cache_hit"
    REQUEST_SENT = "request_sent"
    REQUEST_SUCCEEDED = "request_succeeded"
    RETRY_SCHEDULED = "retry_scheduled"
    REQUEST_FAILED = "request_failed"
    RETRIES_EXHAUSTED = "retries_exhausted"


@dataclass
class AuditEvent:
    """Structured audit event."""

    event_type: AuditEventType
    details: Dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    cache_key: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result = {
            "event_type": self.event_type.value,
            "timestamp": self.timestamp,
            "details": self.details,
        }
        if self.cache_key:
            result["cache_key"] = self.cache_key
        return result


class AuditLogger:
    """Writes audit events to the ``overpass_client.observability.audit`` logger."""

    def __init__(self):
        self._logger = logging.getLogger(f"{__name__}.audit")

    def log(self, event: AuditEvent) -> None:
        """Log an audit event."""
        self._logger.info(f"AUDIT: {event.event_type.value}", extra={"audit": event.to_dict()})


_audit = AuditLogger()


def audit_log(event_type: str, cache_key: Optional[str] = None, **details: Any) -> None:
    """Convenience function for audit logging.

    Args:
        event_type: One of the AuditEventType values
        cache_key: Cache key of the request the event belongs to
        **details: Additional details to include in the audit log

    Raises:
        ValueError: If event_type is not a known AuditEventType value
    """
    _audit.log(
        AuditEvent(
            event_type=AuditEventType(event_type),
            cache_key=cache_key,
            details=details,
        )
    )


def configure_logging(level: Union[int, str] = logging.INFO) -> None:
    """Set the log level of the package logger.

    Handlers are left to the application; this only adjusts the level so
    retry warnings and audit events surface (or stay quiet).
    """
    if isinstance(level, str):
        level = level.upper()
    logging.getLogger(PACKAGE_LOGGER).setLevel(level)
