"""Environment-backed settings primitives for :mod:`kube_carbon`."""

from __future__ import annotations

import math

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

__all__ = ["KubeCarbonSettings", "get_settings"]


def _to_float(value: object) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        parsed = float(value)
    elif isinstance(value, str):
        try:
            parsed = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return parsed if math.isfinite(parsed) else None


class KubeCarbonSettings(BaseSettings):
    """Expose environment-derived configuration knobs for kube-carbon.

    Every environment lookup in the package goes through this class. All
    attributes correspond to documented environment variables and default to
    ``None`` when the variable is not present.

    Attributes:
        config_path: Explicit path to the configuration file.
        default_region: Grid region used when a resource carries none.
        pue: Numeric PUE override or the name of a PUE profile.
        default_grid_intensity: Fallback grid intensity in gCO2/kWh.
        enable_network_accounting: Carry network traffic into metrics.
        enable_storage_accounting: Carry storage usage into metrics.
        carbon_intensity_file: Optional region → intensity JSON override.
        instance_specs_file: Optional instance catalog JSON override.
        electricitymaps_token: Primary ElectricityMaps API token.
        electricitymaps_legacy_token: Legacy ElectricityMaps token alias.
        watttime_username: WattTime username credential.
        watttime_password: WattTime password credential.
    """

    config_path: str | None = Field(default=None, alias="KUBE_CARBON_CONFIG_PATH")
    default_region: str | None = Field(
        default=None, alias="KUBE_CARBON_DEFAULT_REGION"
    )
    pue: float | str | None = Field(default=None, alias="KUBE_CARBON_PUE")
    default_grid_intensity: float | None = Field(
        default=None, alias="KUBE_CARBON_DEFAULT_GRID_INTENSITY"
    )
    enable_network_accounting: bool | None = Field(
        default=None, alias="KUBE_CARBON_ENABLE_NETWORK_ACCOUNTING"
    )
    enable_storage_accounting: bool | None = Field(
        default=None, alias="KUBE_CARBON_ENABLE_STORAGE_ACCOUNTING"
    )
    carbon_intensity_file: str | None = Field(
        default=None, alias="KUBE_CARBON_INTENSITY_FILE"
    )
    instance_specs_file: str | None = Field(
        default=None, alias="KUBE_CARBON_INSTANCE_SPECS_FILE"
    )
    electricitymaps_token: str | None = Field(
        default=None, alias="ELECTRICITYMAPS_TOKEN"
    )
    electricitymaps_legacy_token: str | None = Field(
        default=None, alias="ELECTRICITYMAPS_API_KEY"
    )
    watttime_username: str | None = Field(default=None, alias="WATTTIME_USERNAME")
    watttime_password: str | None = Field(default=None, alias="WATTTIME_PASSWORD")

    model_config = SettingsConfigDict(env_file=None, extra="ignore")

    @field_validator("default_grid_intensity", mode="before")
    @classmethod
    def _parse_optional_float(cls, value: object) -> float | None:
        """Parse the default grid intensity while tolerating malformed input.

        Args:
            value: Raw environment value.

        Returns:
            Parsed intensity when it is a finite, non-negative number,
            otherwise ``None``.
        """

        parsed = _to_float(value)
        if parsed is None or parsed < 0:
            return None
        return parsed

    @field_validator("pue", mode="before")
    @classmethod
    def _parse_pue(cls, value: object) -> float | str | None:
        """Keep numeric PUE overrides numeric and profile names textual.

        Numbers that are not finite or not positive are dropped.
        """

        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                return None
            try:
                number = float(stripped)
            except ValueError:
                return stripped
        elif isinstance(value, (int, float)) and not isinstance(value, bool):
            number = float(value)
        else:
            return None
        if not math.isfinite(number) or number <= 0:
            return None
        return number

    @field_validator(
        "enable_network_accounting", "enable_storage_accounting", mode="before"
    )
    @classmethod
    def _parse_optional_bool(cls, value: object) -> bool | None:
        """Parse optional boolean toggles while tolerating malformed input."""

        if value is None or isinstance(value, bool):
            return value
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in {"true", "1", "yes", "on"}:
                return True
            if lowered in {"false", "0", "no", "off"}:
                return False
        return None

    @property
    def electricitymaps_effective_token(self) -> str | None:
        """Return the ElectricityMaps token considering legacy aliases."""

        return self.electricitymaps_token or self.electricitymaps_legacy_token


def get_settings() -> KubeCarbonSettings:
    """Return a :class:`KubeCarbonSettings` instance parsed from the environment."""

    return KubeCarbonSettings()
