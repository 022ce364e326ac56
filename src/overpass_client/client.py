"""Overpass API client.

This module implements OverpassClient, which queries an Overpass API
interpreter for OpenStreetMap data by element id, bounding box or radius.

Resilience:
    - Results are cached per query (LRU, 500 entries, 5 minute TTL by
      default); a cached result is returned without a network call
    - 429: retried after the server's retry-after, or with backoff
    - 500/502/503/504: retried with full-jitter exponential backoff
    - 400: not retried; error lines from the response are attached
    - Anything else: not retried

Public Overpass instances are listed at
https://wiki.openstreetmap.org/wiki/Overpass_API#Public_Overpass_API_instances

Example usage:
    client = OverpassClient()
    cafes = await client.get_elements_by_radius(
        {"amenity": ["cafe"]}, lat=52.52, lon=13.405, radius=500
    )
    for node in cafes.nodes():
        print(node.tags.get("name"))
"""

import logging
import random
from typing import Any, Mapping, Optional, Sequence, Union

from pydantic import ValidationError

from overpass_client.cache import CacheStore
from overpass_client.config import (
    DEFAULT_ENDPOINT,
    DEFAULT_MAX_RETRIES,
    DEFAULT_TIMEOUT,
    OverpassClientConfig,
)
from overpass_client.errors import INVALID_RESPONSE_TEXT, OverpassError
from overpass_client.models import OverpassResponse, parse_response
from overpass_client.observability import configure_logging
from overpass_client.queries import (
    DEFAULT_AREA_OUTPUT,
    DEFAULT_ELEMENT_OUTPUT,
    ELEMENT_TYPES,
    ElementType,
    Number,
    OutputFormat,
    bounding_box_query,
    element_query,
    radius_query,
)
from overpass_client.resilience.models import SleepFunc
from overpass_client.resilience.pipeline import ExecutionPipeline
from overpass_client.transport import HttpxTransport, Transport, request_timeout_for

logger = logging.getLogger(__name__)

QueryResult = Union[OverpassResponse, str]


class OverpassClient:
    """Client for the Overpass API with caching and automatic retries.

    Each client owns one cache (unless one is injected) shared by all of
    its requests. Concurrent identical requests are not coalesced.

    Attributes:
        endpoint: Interpreter URL
        format: ``json`` (results validated into OverpassResponse) or
            ``xml`` (results returned as text)
        timeout: Server-side query timeout in seconds (0 omits the clause)
        max_retries: Retries after the first attempt
        cache: The result cache
    """

    def __init__(
        self,
        endpoint: str = DEFAULT_ENDPOINT,
        format: OutputFormat = "json",
        timeout: int = DEFAULT_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
        cache: Optional[CacheStore[Any]] = None,
        *,
        transport: Optional[Transport] = None,
        cache_hit_delay: Optional[float] = None,
        sleep_func: Optional[SleepFunc] = None,
        rng: Optional[random.Random] = None,
    ):
        """Initialize the client.

        Args:
            endpoint: Interpreter URL (default: overpass-api.de)
            format: Response format, ``json`` or ``xml`` (default: json)
            timeout: Query timeout in seconds (default: 60). 0 leaves the
                timeout clause out of the query.
            max_retries: Automatic retries for failed requests (default: 3)
            cache: Optional cache to use instead of a fresh
                ``CacheStore(max_size=500, ttl=300)``
            transport: Optional transport (default: HttpxTransport)
            cache_hit_delay: Seconds to wait before returning a cached
                result (default: 0.2)
            sleep_func: Injectable sleep function for time control in tests
            rng: Injectable Random instance for deterministic backoff
        """
        config = OverpassClientConfig(
            endpoint=endpoint,
            format=format,
            timeout=timeout,
            max_retries=max_retries,
        )
        if cache_hit_delay is not None:
            config.cache_hit_delay = cache_hit_delay
        self._init_from_config(config, cache, transport, sleep_func, rng)

    @classmethod
    def from_config(
        cls,
        config: OverpassClientConfig,
        *,
        cache: Optional[CacheStore[Any]] = None,
        transport: Optional[Transport] = None,
        sleep_func: Optional[SleepFunc] = None,
        rng: Optional[random.Random] = None,
    ) -> "OverpassClient":
        """Build a client from an OverpassClientConfig.

        The config's cache size and TTL apply only when no cache is given;
        its log level is applied to the package logger.
        """
        client = cls.__new__(cls)
        client._init_from_config(config, cache, transport, sleep_func, rng)
        configure_logging(config.log_level)
        return client

    def _init_from_config(
        self,
        config: OverpassClientConfig,
        cache: Optional[CacheStore[Any]],
        transport: Optional[Transport],
        sleep_func: Optional[SleepFunc],
        rng: Optional[random.Random],
    ) -> None:
        config.validate()
        self.config = config
        self.endpoint = config.endpoint
        self.format: OutputFormat = config.format  # type: ignore[assignment]
        self.timeout = config.timeout
        self.max_retries = config.max_retries
        self.cache: CacheStore[Any] = (
            cache if cache is not None else CacheStore(config.cache_max_size, config.cache_ttl)
        )
        self.transport: Transport = transport or HttpxTransport(
            self.endpoint, self.format, request_timeout_for(self.timeout)
        )
        self._pipeline = ExecutionPipeline(
            self.transport,
            self.cache,
            format=self.format,
            timeout=self.timeout,
            max_retries=self.max_retries,
            cache_hit_delay=config.cache_hit_delay,
            sleep_func=sleep_func,
            rng=rng,
        )
        logger.debug(
            "OverpassClient initialized: endpoint=%s, format=%s, timeout=%s, max_retries=%s",
            self.endpoint,
            self.format,
            self.timeout,
            self.max_retries,
        )

    def clear_cache(self) -> None:
        """Clear the cache entirely."""
        self.cache.clear()

    async def get_element(
        self,
        element_type: ElementType,
        element_id: int,
        output_format: str = DEFAULT_ELEMENT_OUTPUT,
    ) -> QueryResult:
        """Fetch a single node, way or relation by id.

        Args:
            element_type: ``node``, ``way`` or ``relation``
            element_id: OSM id of the element
            output_format: Overpass QL output statement (default: ``out;``)

        Returns:
            OverpassResponse (json) or response text (xml)

        Raises:
            ValueError: If element_type is unknown
            OverpassError: If the request fails
        """
        query, key = element_query(element_type, element_id, output_format)
        return await self.query(query, key)

    async def get_elements_by_bounding_box(
        self,
        tags: Mapping[str, Sequence[str]],
        bbox: Sequence[Number],
        elements: Sequence[ElementType] = ELEMENT_TYPES,
        output_format: str = DEFAULT_AREA_OUTPUT,
    ) -> QueryResult:
        """Fetch tagged elements inside a bounding box.

        Args:
            tags: Tag name -> accepted values, e.g.
                ``{"amenity": ["cafe", "restaurant"], "tourism": ["museum"]}``
            bbox: ``(min_lat, min_lon, max_lat, max_lon)``
            elements: Element types to include (default: all)
            output_format: Overpass QL output statement (default: ``out center;``)

        Returns:
            OverpassResponse (json) or response text (xml)
        """
        query, key = bounding_box_query(tags, bbox, elements, output_format)
        return await self.query(query, key)

    async def get_elements_by_radius(
        self,
        tags: Mapping[str, Sequence[str]],
        lat: Number,
        lon: Number,
        radius: Number,
        elements: Sequence[ElementType] = ELEMENT_TYPES,
        output_format: str = DEFAULT_AREA_OUTPUT,
    ) -> QueryResult:
        """Fetch tagged elements within *radius* meters of a point.

        Args:
            tags: Tag name -> accepted values
            lat: Latitude of the center point
            lon: Longitude of the center point
            radius: Search radius in meters
            elements: Element types to include (default: all)
            output_format: Overpass QL output statement (default: ``out center;``)

        Returns:
            OverpassResponse (json) or response text (xml)
        """
        query, key = radius_query(tags, lat, lon, radius, elements, output_format)
        return await self.query(query, key)

    async def query(self, query: str, cache_key: str) -> QueryResult:
        """Run a raw Overpass QL body through the cache and retry pipeline.

        Args:
            query: Query body, without the ``[out:...]`` preamble
            cache_key: Key to cache the result under

        Returns:
            OverpassResponse (json) or response text (xml)

        Raises:
            OverpassError: If the request fails or a json payload is not
                an Overpass response
        """
        payload = await self._pipeline.run(query, cache_key)
        if self.format != "json":
            return payload
        try:
            return parse_response(payload)
        except ValidationError as e:
            self.cache.delete(cache_key)
            logger.error("Invalid Overpass response for %s: %s", cache_key, e)
            raise OverpassError.unknown_status(None, INVALID_RESPONSE_TEXT, query=query) from e
