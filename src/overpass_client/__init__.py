"""Overpass API client with caching and automatic retries."""

from overpass_client.cache import CacheStore
from overpass_client.client import OverpassClient
from overpass_client.config import DEFAULT_ENDPOINT, OverpassClientConfig
from overpass_client.errors import OverpassError, OverpassErrorKind
from overpass_client.models import (
    OverpassElement,
    OverpassNode,
    OverpassOtherElement,
    OverpassRelation,
    OverpassResponse,
    OverpassWay,
)
from overpass_client.observability import configure_logging
from overpass_client.queries import ElementType
from overpass_client.resilience import ExecutionPipeline, TransportFailure
from overpass_client.transport import HttpxTransport, Transport

__version__ = "1.1.3"

__all__ = [
    "CacheStore",
    "DEFAULT_ENDPOINT",
    "ElementType",
    "ExecutionPipeline",
    "HttpxTransport",
    "OverpassClient",
    "OverpassClientConfig",
    "OverpassElement",
    "OverpassError",
    "OverpassErrorKind",
    "OverpassNode",
    "OverpassOtherElement",
    "OverpassRelation",
    "OverpassResponse",
    "OverpassWay",
    "Transport",
    "TransportFailure",
    "configure_logging",
]
