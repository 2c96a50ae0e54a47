"""ElectricityMaps v3 API provider."""

from __future__ import annotations

import logging
from datetime import datetime

from kube_carbon.intensity_provider._http import fetch_json, positive_float
from kube_carbon.intensity_provider.base import IntensityProvider, IntensityReading
from kube_carbon.settings import KubeCarbonSettings, get_settings

LOGGER = logging.getLogger(__name__)


class ElectricityMapsProvider(IntensityProvider):
    """Fetch real-time carbon intensity data from the ElectricityMaps API."""

    def __init__(
        self,
        base_url: str = "https://api.electricitymap.org/v3",
        ttl_seconds: int = 300,
        *,
        token: str | None = None,
        timeout_seconds: float = 8.0,
        settings: KubeCarbonSettings | None = None,
    ) -> None:
        super().__init__(ttl_seconds=ttl_seconds)
        self._base = base_url.rstrip("/")
        self._explicit_token = token
        self._settings = settings
        self._timeout = timeout_seconds
        self._version = "emaps-v3"

    def _get_reading_uncached(
        self, timestamp: datetime | None, region: str
    ) -> IntensityReading | None:
        """Fetch the most recent intensity for an ElectricityMaps zone."""

        _ = timestamp
        token = self._resolve_token()
        if not token:
            LOGGER.warning(
                "ElectricityMaps token not configured",
                extra={"provider": self.name, "region": region},
            )
            return None

        url = f"{self._base}/carbon-intensity/latest?zone={region}"
        payload = fetch_json(
            url,
            provider="ElectricityMaps",
            region=region,
            timeout=self._timeout,
            headers={"auth-token": token},
        )
        if payload is None:
            return None

        intensity = positive_float(
            payload.get("carbonIntensity") or payload.get("intensity"),
            provider="ElectricityMaps",
            region=region,
            url=url,
        )
        if intensity is None:
            return None
        return IntensityReading(
            intensity_gco2_kwh=intensity, provider_version=self._version
        )

    def _resolve_token(self) -> str | None:
        if self._explicit_token:
            return self._explicit_token
        settings_obj = self._settings or get_settings()
        return settings_obj.electricitymaps_effective_token
