"""Base types and caching logic for carbon intensity providers."""

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Final

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class IntensityReading:
    """Represents a carbon intensity observation in gCO2/kWh."""

    intensity_gco2_kwh: float
    provider_version: str | None = None
    conversion_version: str | None = None


@dataclass(frozen=True, slots=True)
class CacheStats:
    """Cache hit/miss counters for a provider."""

    hits: int
    misses: int

    def to_dict(self) -> dict[str, int]:
        """Return cache statistics as a dictionary."""

        return {"hits": self.hits, "misses": self.misses}


class IntensityProvider(ABC):
    """Abstract base class implementing TTL caching of provider responses.

    The cache is the only state shared between concurrent queries, so every
    access goes through a lock. The upstream lookup itself runs outside the
    lock; two threads missing the same key may both fetch it.
    """

    def __init__(self, ttl_seconds: int = 300) -> None:
        self._ttl_seconds: Final[int] = ttl_seconds
        self._cache: dict[
            tuple[str | None, str], tuple[float, IntensityReading | None]
        ] = {}
        self._lock = threading.Lock()
        self._cache_hits = 0
        self._cache_misses = 0

    @property
    def name(self) -> str:
        """Short provider label used in logs and fallback reasons."""

        return type(self).__name__

    @abstractmethod
    def _get_reading_uncached(
        self, timestamp: datetime | None, region: str
    ) -> IntensityReading | None:
        """Fetch an intensity reading without consulting the cache."""

    def get_intensity(
        self, timestamp: datetime | None, region: str
    ) -> IntensityReading | None:
        """Return an intensity reading using the built-in TTL cache.

        Args:
            timestamp: Optional timestamp used for cache bucketing.
            region: Provider-specific region identifier.

        Returns:
            An :class:`IntensityReading` when available, otherwise ``None``
            to indicate provider failure.
        """

        cache_key = self._cache_key(timestamp, region)
        now = time.time()
        with self._lock:
            cached = self._cache.get(cache_key)
            if cached is not None:
                cached_at, reading = cached
                if now - cached_at <= self._ttl_seconds:
                    self._cache_hits += 1
                    LOGGER.debug(
                        "Intensity cache hit",
                        extra={
                            "provider": self.name,
                            "region": region,
                            "cache_event": "hit",
                        },
                    )
                    return reading
                self._cache.pop(cache_key, None)
            self._cache_misses += 1

        LOGGER.debug(
            "Intensity cache miss",
            extra={"provider": self.name, "region": region, "cache_event": "miss"},
        )
        reading = self._get_reading_uncached(timestamp, region)
        with self._lock:
            self._cache[cache_key] = (now, reading)
        return reading

    def get_cache_stats(self) -> CacheStats:
        """Return cache hit/miss counters."""

        with self._lock:
            return CacheStats(hits=self._cache_hits, misses=self._cache_misses)

    def _cache_key(
        self, timestamp: datetime | None, region: str
    ) -> tuple[str | None, str]:
        """Return a cache key bucketed at the minute level."""

        if timestamp is None:
            return (None, region)
        bucket = timestamp.replace(second=0, microsecond=0)
        return (bucket.isoformat(), region)
