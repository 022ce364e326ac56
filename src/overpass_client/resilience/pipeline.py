"""Query execution pipeline.

Runs one logical request through cache lookup, network round trips and
the bounded retry loop:

    cache hit  -> return cached payload (no network call)
    cache miss -> send -> success -> cache write -> return
                       -> failure -> classify
                            Fatal      -> raise (cache untouched)
                            RetryAfter -> sleep, send again
                            Exhausted  -> drop cache entry, raise

Both suspension points (the transport call and the retry sleep) are plain
awaits, so cancelling the calling task stops the request with no further
attempts or cache writes.
"""

import asyncio
import logging
import random
from typing import TYPE_CHECKING, Any, Optional

from overpass_client.cache import CacheStore
from overpass_client.observability import audit_log
from overpass_client.queries import (
    OUTPUT_FORMATS,
    OutputFormat,
    build_full_query,
    encode_form_body,
)
from overpass_client.resilience.classifier import classify
from overpass_client.resilience.models import (
    Exhausted,
    Fatal,
    RetryAfter,
    RetryContext,
    SleepFunc,
)

if TYPE_CHECKING:
    from overpass_client.transport import Transport

logger = logging.getLogger(__name__)

DEFAULT_CACHE_HIT_DELAY = 0.2


class ExecutionPipeline:
    """Executes Overpass queries with caching and retries.

    One pipeline serves any number of concurrent requests; each call to
    :meth:`run` owns its own RetryContext. The cache is shared.

    Example:
        pipeline = ExecutionPipeline(HttpxTransport(url), CacheStore())
        payload = await pipeline.run("node(1); out;", "node-1")
    """

    def __init__(
        self,
        transport: "Transport",
        cache: CacheStore[Any],
        *,
        format: OutputFormat = "json",
        timeout: int = 60,
        max_retries: int = 3,
        cache_hit_delay: float = 0.0,
        sleep_func: Optional[SleepFunc] = None,
        rng: Optional[random.Random] = None,
    ):
        """Initialize the pipeline.

        Args:
            transport: Network collaborator
            cache: Shared result cache
            format: Output format for the ``[out:...]`` preamble
            timeout: Server-side query timeout in seconds (0 omits the clause)
            max_retries: Retries after the first attempt (non-negative)
            cache_hit_delay: Seconds to wait before returning a cached payload
            sleep_func: Injectable sleep function for time control in tests
            rng: Injectable Random instance for deterministic backoff
        """
        if format not in OUTPUT_FORMATS:
            raise ValueError(f"format must be one of {OUTPUT_FORMATS}, got {format!r}")
        if timeout < 0:
            raise ValueError(f"timeout must be non-negative, got {timeout}")
        if max_retries < 0:
            raise ValueError(f"max_retries must be non-negative, got {max_retries}")
        self.transport = transport
        self.cache = cache
        self.format = format
        self.timeout = timeout
        self.max_retries = max_retries
        self.cache_hit_delay = cache_hit_delay
        self._sleep = sleep_func or asyncio.sleep
        self._rng = rng

    def build_query(self, query: str) -> str:
        """Return the full query text sent for *query*."""
        return build_full_query(query, self.format, self.timeout)

    async def run(self, query: str, cache_key: str) -> Any:
        """Execute *query*, serving from and populating the cache under *cache_key*.

        Returns:
            The transport payload (decoded JSON or XML text)

        Raises:
            OverpassError: On a fatal failure or when retries run out
        """
        cached = self.cache.get(cache_key)
        if cached is not None:
            audit_log("cache_hit", cache_key=cache_key)
            if self.cache_hit_delay > 0:
                await self._sleep(self.cache_hit_delay)
            return cached

        body = encode_form_body(self.build_query(query))
        context = RetryContext(max_retries=self.max_retries)

        for _ in range(context.max_attempts):
            audit_log("request_sent", cache_key=cache_key, attempt=context.attempt + 1)
            try:
                payload = await self.transport.send(body)
            except Exception as e:
                decision = classify(e, context.attempt, context.max_retries, query, rng=self._rng)

                if isinstance(decision, Fatal):
                    logger.error("Overpass request failed: %s", decision.message)
                    audit_log(
                        "request_failed",
                        cache_key=cache_key,
                        attempt=context.attempt + 1,
                        error=decision.error.to_dict(),
                    )
                    raise decision.error from e

                if isinstance(decision, Exhausted):
                    self.cache.delete(cache_key)
                    logger.error(
                        "Max retries (%d) reached for %s: %s",
                        context.max_retries,
                        cache_key,
                        decision.message,
                    )
                    audit_log(
                        "retries_exhausted",
                        cache_key=cache_key,
                        attempts=context.attempt + 1,
                        last_status=decision.last_status,
                        last_kind=decision.last_kind.value if decision.last_kind else None,
                        total_delay_ms=context.total_delay_ms,
                    )
                    raise decision.to_error(query) from e

                self._log_retry(decision, query, cache_key, context)
                await self._sleep(decision.delay_seconds)
                context.advance(decision.delay_ms)
                continue

            self.cache.set(cache_key, payload)
            audit_log(
                "request_succeeded",
                cache_key=cache_key,
                attempts=context.attempt + 1,
                total_delay_ms=context.total_delay_ms,
            )
            return payload

        raise RuntimeError("ExecutionPipeline.run: unexpected state")

    def _log_retry(
        self, decision: RetryAfter, query: str, cache_key: str, context: RetryContext
    ) -> None:
        seconds = decision.delay_seconds
        if decision.server_dictated:
            logger.warning(f"Overpass API rate limit reached! Retrying in {seconds} seconds...")
        else:
            logger.warning(f"Transient error encountered. Retrying in {seconds:.3f} seconds...")
        audit_log(
            "retry_scheduled",
            cache_key=cache_key,
            attempt=context.attempt + 1,
            max_attempts=context.max_attempts,
            error=decision.to_error(query).to_dict(),
            delay_ms=decision.delay_ms,
        )
