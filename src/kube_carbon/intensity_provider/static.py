"""Static intensity provider backed by an in-memory mapping."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime

from kube_carbon.intensity_provider.base import IntensityProvider, IntensityReading


class StaticIntensityProvider(IntensityProvider):
    """Return fixed intensities per region, ``default`` for unknown regions.

    Passing ``default=None`` makes unknown regions a lookup failure instead,
    so the resolver substitutes its configured fallback.
    """

    def __init__(
        self,
        mapping: Mapping[str, float],
        default: float | None = None,
        ttl_seconds: int = 3600,
    ) -> None:
        super().__init__(ttl_seconds=ttl_seconds)
        self._mapping = {key: float(value) for key, value in mapping.items()}
        self._default = float(default) if default is not None else None
        self._version = "static-v1"

    def _get_reading_uncached(
        self, timestamp: datetime | None, region: str
    ) -> IntensityReading | None:
        _ = timestamp
        value = self._mapping.get(region, self._default)
        if value is None:
            return None
        return IntensityReading(intensity_gco2_kwh=value, provider_version=self._version)
