"""Client configuration.

``OverpassClientConfig`` can be built directly, from environment
variables, or from the ``[overpass]`` table of a TOML file:

    [overpass]
    endpoint = "https://overpass.kumi.systems/api/interpreter"
    format = "json"
    timeout = 60
    max_retries = 3
    cache_max_size = 500
    cache_ttl = 300
    cache_hit_delay = 0.2
    log_level = "INFO"

Environment variables (``OVERPASS_ENDPOINT``, ``OVERPASS_TIMEOUT``, ...)
take precedence over file values when both are loaded via ``load()``.
"""

import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Union

try:
    import tomllib
except ImportError:
    import tomli as tomllib  # Python < 3.11 fallback

from overpass_client.cache import DEFAULT_MAX_SIZE, DEFAULT_TTL_SECONDS
from overpass_client.queries import OUTPUT_FORMATS
from overpass_client.resilience.pipeline import DEFAULT_CACHE_HIT_DELAY

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "https://overpass-api.de/api/interpreter"
DEFAULT_TIMEOUT = 60
DEFAULT_MAX_RETRIES = 3

_ENV_PREFIX = "OVERPASS_"
_VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class OverpassClientConfig:
    """Settings for :class:`~overpass_client.client.OverpassClient`.

    Attributes:
        endpoint: Interpreter URL
        format: ``json`` or ``xml``
        timeout: Server-side query timeout in seconds (0 omits the clause)
        max_retries: Retries after the first attempt
        cache_max_size: Cache capacity
        cache_ttl: Cache entry lifetime in seconds
        cache_hit_delay: Seconds to wait before returning a cached payload
        log_level: Level for the ``overpass_client`` logger
    """

    endpoint: str = DEFAULT_ENDPOINT
    format: str = "json"
    timeout: int = DEFAULT_TIMEOUT
    max_retries: int = DEFAULT_MAX_RETRIES
    cache_max_size: int = DEFAULT_MAX_SIZE
    cache_ttl: float = DEFAULT_TTL_SECONDS
    cache_hit_delay: float = DEFAULT_CACHE_HIT_DELAY
    log_level: str = "INFO"

    def validate(self) -> "OverpassClientConfig":
        """Check value ranges.

        Returns:
            self, for chaining

        Raises:
            ValueError: On the first invalid value
        """
        if not self.endpoint:
            raise ValueError("endpoint must not be empty")
        if self.format not in OUTPUT_FORMATS:
            raise ValueError(f"format must be one of {OUTPUT_FORMATS}, got {self.format!r}")
        if self.timeout < 0:
            raise ValueError(f"timeout must be non-negative, got {self.timeout}")
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be non-negative, got {self.max_retries}")
        if self.cache_max_size <= 0:
            raise ValueError(f"cache_max_size must be positive, got {self.cache_max_size}")
        if self.cache_ttl <= 0:
            raise ValueError(f"cache_ttl must be positive, got {self.cache_ttl}")
        if self.cache_hit_delay < 0:
            raise ValueError(f"cache_hit_delay must be non-negative, got {self.cache_hit_delay}")
        if self.log_level.upper() not in _VALID_LOG_LEVELS:
            raise ValueError(f"log_level must be one of {_VALID_LOG_LEVELS}, got {self.log_level!r}")
        return self

    @classmethod
    def from_toml_dict(cls, data: Dict[str, Any]) -> "OverpassClientConfig":
        """Create config from a TOML dict (the ``[overpass]`` table).

        Args:
            data: Dict from TOML parsing

        Returns:
            OverpassClientConfig instance
        """
        config = cls()
        return config._apply(
            {key: data[key] for key in _FIELD_PARSERS if key in data},
            source="toml",
        )

    @classmethod
    def from_toml(cls, path: Union[str, Path]) -> "OverpassClientConfig":
        """Load config from the ``[overpass]`` table of a TOML file."""
        with open(path, "rb") as f:
            data = tomllib.load(f)
        return cls.from_toml_dict(data.get("overpass", {}))

    @classmethod
    def from_env(cls) -> "OverpassClientConfig":
        """Create config from ``OVERPASS_*`` environment variables."""
        return cls()._with_env()

    @classmethod
    def load(cls, path: Optional[Union[str, Path]] = None) -> "OverpassClientConfig":
        """Load config from an optional TOML file, then apply env overrides."""
        config = cls.from_toml(path) if path is not None else cls()
        return config._with_env().validate()

    def _with_env(self) -> "OverpassClientConfig":
        values = {}
        for key in _FIELD_PARSERS:
            raw = os.environ.get(f"{_ENV_PREFIX}{key.upper()}")
            if raw is not None and raw.strip() != "":
                values[key] = raw.strip()
        return self._apply(values, source="env")

    def _apply(self, values: Dict[str, Any], source: str) -> "OverpassClientConfig":
        updates = {}
        for key, raw in values.items():
            parser = _FIELD_PARSERS[key]
            try:
                updates[key] = parser(raw)
            except (TypeError, ValueError):
                logger.warning(
                    "Invalid %s value for %s: %r, keeping %r",
                    source,
                    key,
                    raw,
                    getattr(self, key),
                )
        return replace(self, **updates)


_FIELD_PARSERS: Dict[str, Callable[[Any], Any]] = {
    "endpoint": str,
    "format": lambda v: str(v).lower(),
    "timeout": int,
    "max_retries": int,
    "cache_max_size": int,
    "cache_ttl": float,
    "cache_hit_delay": float,
    "log_level": lambda v: str(v).upper(),
}
