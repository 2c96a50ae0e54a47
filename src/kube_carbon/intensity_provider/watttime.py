"""WattTime MOER provider."""

from __future__ import annotations

import logging
from datetime import datetime

from kube_carbon.intensity_provider._http import fetch_json, positive_float
from kube_carbon.intensity_provider.base import IntensityProvider, IntensityReading
from kube_carbon.settings import KubeCarbonSettings, get_settings
from kube_carbon.units import lb_per_mwh_to_g_per_kwh

LOGGER = logging.getLogger(__name__)


class WattTimeProvider(IntensityProvider):
    """Fetch marginal operating emission rate (MOER) data from WattTime.

    WattTime reports lb/MWh; readings are converted to gCO2/kWh.
    """

    def __init__(
        self,
        base_url: str = "https://api2.watttime.org",
        ttl_seconds: int = 300,
        *,
        username: str | None = None,
        password: str | None = None,
        timeout_seconds: float = 8.0,
        settings: KubeCarbonSettings | None = None,
    ) -> None:
        super().__init__(ttl_seconds=ttl_seconds)
        self._base = base_url.rstrip("/")
        self._explicit_username = username
        self._explicit_password = password
        self._settings = settings
        self._timeout = timeout_seconds
        self._version = "watttime-v2"

    def _get_reading_uncached(
        self, timestamp: datetime | None, region: str
    ) -> IntensityReading | None:
        """Fetch the latest MOER value for a balancing authority."""

        _ = timestamp
        username, password = self._resolve_credentials()
        if not username or not password:
            LOGGER.warning(
                "WattTime credentials not configured",
                extra={"provider": self.name, "region": region},
            )
            return None

        url = f"{self._base}/v2/moer?ba={region}"
        payload = fetch_json(
            url,
            provider="WattTime",
            region=region,
            timeout=self._timeout,
            auth=(username, password),
        )
        if payload is None:
            return None

        lb_per_mwh = positive_float(
            payload.get("moer"), provider="WattTime", region=region, url=url
        )
        if lb_per_mwh is None:
            return None
        return IntensityReading(
            intensity_gco2_kwh=lb_per_mwh_to_g_per_kwh(lb_per_mwh),
            provider_version=self._version,
            conversion_version="lbMWh_to_gkWh@0.453592",
        )

    def _resolve_credentials(self) -> tuple[str | None, str | None]:
        settings_obj = self._settings or get_settings()
        username = self._explicit_username or settings_obj.watttime_username
        password = self._explicit_password or settings_obj.watttime_password
        return username, password
