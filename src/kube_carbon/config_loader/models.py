"""Typed configuration dataclasses for :mod:`kube_carbon.config_loader`."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class GridSettings:
    """Grid intensity defaults.

    Attributes:
        region: Region used for intensity lookups when a resource has none.
        default_intensity: Fallback intensity in gCO2/kWh. When unset the
            packaged value for ``region`` is used.
    """

    region: str = "global-average"
    default_intensity: float | None = None


@dataclass(frozen=True, slots=True)
class PUEConfig:
    """Power usage effectiveness configuration.

    ``default`` wins over ``profile`` when set.
    """

    default: float | None = None
    profile: str = "cloud-hyperscale"


@dataclass(frozen=True, slots=True)
class AccountingSettings:
    """Toggles carrying pod storage and network usage into metrics."""

    enable_network_accounting: bool = False
    enable_storage_accounting: bool = False


@dataclass(frozen=True, slots=True)
class ProviderSettings:
    """Settings describing the intensity provider chain.

    Attributes:
        order: Ordered tuple of provider identifiers.
        ttl_seconds: Cache time-to-live applied to provider responses.
    """

    order: tuple[str, ...] = ("static",)
    ttl_seconds: int = 300


@dataclass(frozen=True, slots=True)
class InstanceSpecSettings:
    """Instance catalog configuration."""

    catalog_file: str | None = None


@dataclass(frozen=True, slots=True)
class CarbonConfig:
    """Immutable configuration container for carbon calculations."""

    grid: GridSettings = field(default_factory=GridSettings)
    pue: PUEConfig = field(default_factory=PUEConfig)
    accounting: AccountingSettings = field(default_factory=AccountingSettings)
    providers: ProviderSettings = field(default_factory=ProviderSettings)
    instance_specs: InstanceSpecSettings = field(default_factory=InstanceSpecSettings)
