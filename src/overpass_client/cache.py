"""Bounded, time-expiring result cache.

CacheStore keeps at most ``max_size`` entries and treats any entry older
than ``ttl`` seconds as absent. When a new key arrives at capacity the
least-recently-used entry is evicted first.

One store is shared by every in-flight request of a client, so each
operation runs under a single lock. No operation spans more than one
call; callers must not assume a ``get`` followed by a ``set`` is atomic.
"""

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

V = TypeVar("V")

DEFAULT_MAX_SIZE = 500
DEFAULT_TTL_SECONDS = 5 * 60.0


@dataclass
class CacheEntry(Generic[V]):
    """A cached value and the time it was inserted."""

    key: str
    value: V
    inserted_at: float


class CacheStore(Generic[V]):
    """Thread-safe LRU cache with per-entry TTL.

    Expired entries are logically absent immediately; they are physically
    dropped when next accessed or when LRU eviction reaches them.

    Example:
        cache = CacheStore(max_size=500, ttl=300)
        cache.set("node-1", payload)
        cache.get("node-1")  # -> payload, until 300s have passed
    """

    def __init__(
        self,
        max_size: int = DEFAULT_MAX_SIZE,
        ttl: float = DEFAULT_TTL_SECONDS,
        *,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        """Initialize the store.

        Args:
            max_size: Maximum number of entries (must be positive)
            ttl: Entry lifetime in seconds (must be positive)
            clock: Monotonic time source in seconds, injectable for tests
        """
        if max_size <= 0:
            raise ValueError(f"max_size must be positive, got {max_size}")
        if ttl <= 0:
            raise ValueError(f"ttl must be positive, got {ttl}")
        self._max_size = max_size
        self._ttl = ttl
        self._clock = clock or time.monotonic
        self._entries: "OrderedDict[str, CacheEntry[V]]" = OrderedDict()
        self._lock = threading.Lock()

    @property
    def max_size(self) -> int:
        return self._max_size

    @property
    def ttl(self) -> float:
        return self._ttl

    def _is_expired(self, entry: CacheEntry[V], now: float) -> bool:
        return now - entry.inserted_at > self._ttl

    def get(self, key: str) -> Optional[V]:
        """Return the cached value for *key*, or None if absent or expired.

        A hit moves the entry to the most-recently-used position.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._is_expired(entry, self._clock()):
                del self._entries[key]
                logger.debug("Cache entry expired: %s", key)
                return None
            self._entries.move_to_end(key)
            return entry.value

    def set(self, key: str, value: V) -> None:
        """Insert or overwrite *key*, resetting its age and recency."""
        with self._lock:
            now = self._clock()
            if key in self._entries:
                self._entries.move_to_end(key)
            elif len(self._entries) >= self._max_size:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Cache full (%d), evicted LRU entry: %s", self._max_size, evicted)
            self._entries[key] = CacheEntry(key=key, value=value, inserted_at=now)

    def delete(self, key: str) -> None:
        """Remove *key* if present."""
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        """Remove every entry."""
        with self._lock:
            self._entries.clear()

    def __contains__(self, key: Any) -> bool:
        with self._lock:
            entry = self._entries.get(key)
            return entry is not None and not self._is_expired(entry, self._clock())

    def __len__(self) -> int:
        """Number of occupied slots, including expired entries not yet dropped."""
        with self._lock:
            return len(self._entries)
