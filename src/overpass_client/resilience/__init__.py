"""Request resilience: failure classification and the retry pipeline.

- ``classify`` maps one failed attempt to a RetryDecision
- ``ExecutionPipeline`` drives cache lookup, sends, and the retry loop
"""

from overpass_client.resilience.classifier import (
    SERVER_ERROR_STATUSES,
    classify,
    compute_backoff_ms,
    extract_bad_request_details,
    failure_kind,
    parse_retry_after_ms,
)
from overpass_client.resilience.models import (
    Exhausted,
    Fatal,
    RetryAfter,
    RetryContext,
    RetryDecision,
    SleepFunc,
    TransportFailure,
)
from overpass_client.resilience.pipeline import (
    DEFAULT_CACHE_HIT_DELAY,
    ExecutionPipeline,
)

__all__ = [
    # Models
    "TransportFailure",
    "Fatal",
    "RetryAfter",
    "Exhausted",
    "RetryDecision",
    "RetryContext",
    "SleepFunc",
    # Classifier
    "SERVER_ERROR_STATUSES",
    "classify",
    "compute_backoff_ms",
    "extract_bad_request_details",
    "failure_kind",
    "parse_retry_after_ms",
    # Pipeline
    "DEFAULT_CACHE_HIT_DELAY",
    "ExecutionPipeline",
]
