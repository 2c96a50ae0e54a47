"""Provider chain that hands a lookup to the next provider on failure."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime

from kube_carbon.intensity_provider.base import IntensityProvider, IntensityReading

LOGGER = logging.getLogger(__name__)


class FallbackIntensityProvider(IntensityProvider):
    """Consult providers in order; the first reading wins.

    A provider that raises is treated like one that has no reading for the
    region, so one broken upstream never takes the rest of the chain down.
    """

    def __init__(
        self, providers: Iterable[IntensityProvider], ttl_seconds: int = 300
    ) -> None:
        super().__init__(ttl_seconds=ttl_seconds)
        self._providers = tuple(providers)

    @property
    def providers(self) -> tuple[IntensityProvider, ...]:
        return self._providers

    def _consult(
        self, provider: IntensityProvider, timestamp: datetime | None, region: str
    ) -> IntensityReading | None:
        try:
            return provider.get_intensity(timestamp, region)
        except Exception as exc:
            LOGGER.warning(
                "Intensity provider failed; trying next in chain",
                extra={
                    "provider": provider.name,
                    "region": region,
                    "error_type": type(exc).__name__,
                },
                exc_info=exc,
            )
            return None

    def _get_reading_uncached(
        self, timestamp: datetime | None, region: str
    ) -> IntensityReading | None:
        for provider in self._providers:
            reading = self._consult(provider, timestamp, region)
            if reading is not None:
                return reading
        LOGGER.debug(
            "No provider in chain produced a reading",
            extra={
                "region": region,
                "providers": [provider.name for provider in self._providers],
            },
        )
        return None
