"""Runtime configuration utilities for :mod:`kube_carbon.estimation`.

This module reconciles caller overrides, the loaded
:class:`~kube_carbon.config_loader.CarbonConfig` and the packaged defaults
into a strict, typed :class:`CalculatorRuntimeConfig`, and wires a
:class:`~kube_carbon.estimation.calculator.CarbonCalculator` from it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

from kube_carbon.estimation import defaults as estimation_defaults
from kube_carbon.estimation.calculator import CarbonCalculator
from kube_carbon.estimation.energy import EnergyEstimator
from kube_carbon.estimation.providers import build_provider_chain
from kube_carbon.estimation.resolvers import GridIntensityResolver, InstanceSpecResolver
from kube_carbon.instance_specs import InstanceSpecProvider, StaticInstanceSpecProvider
from kube_carbon.intensity_provider import IntensityProvider
from kube_carbon.settings import KubeCarbonSettings

if TYPE_CHECKING:
    from kube_carbon.config_loader import CarbonConfig

LOGGER = logging.getLogger(__name__)

__all__ = ["CalculatorRuntimeConfig", "build_calculator", "build_runtime_config"]


@dataclass(slots=True, frozen=True)
class CalculatorRuntimeConfig:
    """Aggregated runtime settings for the carbon calculator.

    Attributes:
        region: Default grid region for intensity lookups.
        pue: Effective power usage effectiveness multiplier.
        default_intensity: Fallback grid intensity in gCO2/kWh.
        enable_network_accounting: Carry network traffic into metrics.
        enable_storage_accounting: Carry storage usage into metrics.
        intensity_provider: Optional intensity provider chain.
        instance_spec_provider: Instance catalog provider.
    """

    region: str
    pue: float
    default_intensity: float
    enable_network_accounting: bool
    enable_storage_accounting: bool
    intensity_provider: IntensityProvider | None
    instance_spec_provider: InstanceSpecProvider | None


def _resolve_pue(config: CarbonConfig | None, pue_values: Mapping[str, float]) -> float:
    fallback = pue_values.get(
        estimation_defaults.DEFAULT_PUE_PROFILE,
        next(iter(pue_values.values()), 1.0),
    )
    if config is None:
        return fallback
    if config.pue.default is not None:
        return float(config.pue.default)
    value = pue_values.get(config.pue.profile)
    if value is None:
        LOGGER.warning(
            "Unknown PUE profile; using default profile",
            extra={"profile": config.pue.profile},
        )
        return fallback
    return value


def _resolve_default_intensity(
    config: CarbonConfig | None, region: str, mapping: Mapping[str, float]
) -> float:
    if config is not None and config.grid.default_intensity is not None:
        return float(config.grid.default_intensity)
    return mapping.get(
        region, mapping.get(estimation_defaults.GLOBAL_AVERAGE_REGION, 475.0)
    )


def _build_provider_from_config(
    config: CarbonConfig | None,
    default_mapping: Mapping[str, float],
    settings: KubeCarbonSettings | None,
) -> IntensityProvider | None:
    if config is None:
        return build_provider_chain(
            provider_keys=("static",),
            ttl_seconds=300,
            default_mapping=default_mapping,
            settings=settings,
        )
    return build_provider_chain(
        provider_keys=config.providers.order,
        ttl_seconds=config.providers.ttl_seconds,
        default_mapping=default_mapping,
        settings=settings,
    )


def build_runtime_config(
    *,
    config: CarbonConfig | None = None,
    region: str | None = None,
    pue: float | None = None,
    default_intensity: float | None = None,
    intensity_provider: IntensityProvider | None = None,
    instance_spec_provider: InstanceSpecProvider | None = None,
    carbon_intensity_mapping: Mapping[str, float] | None = None,
    pue_values: Mapping[str, float] | None = None,
    settings: KubeCarbonSettings | None = None,
) -> CalculatorRuntimeConfig:
    """Resolve effective runtime configuration for the calculator.

    Explicit keyword overrides win over ``config``, which wins over the
    packaged defaults.

    Args:
        config: Optional typed configuration sourced via
            :func:`kube_carbon.config_loader.load_config`.
        region: Explicit default region override.
        pue: Explicit PUE override.
        default_intensity: Explicit fallback intensity in gCO2/kWh.
        intensity_provider: Pre-built provider chain. When ``None`` one is
            built from ``config.providers``.
        instance_spec_provider: Pre-built instance catalog provider. When
            ``None`` the packaged (or configured) catalog is loaded.
        carbon_intensity_mapping: Region → intensity mapping; defaults to the
            packaged mapping.
        pue_values: PUE profile mapping; defaults to the packaged profiles.
        settings: Settings forwarded to credentialed providers.

    Returns:
        A frozen :class:`CalculatorRuntimeConfig`.
    """

    mapping = (
        carbon_intensity_mapping
        if carbon_intensity_mapping is not None
        else estimation_defaults.load_carbon_intensity_mapping()
    )
    profiles = (
        pue_values if pue_values is not None else estimation_defaults.load_pue_values()
    )

    config_region = config.grid.region if config is not None else None
    resolved_region = (
        region or config_region or estimation_defaults.GLOBAL_AVERAGE_REGION
    )
    resolved_pue = pue if pue is not None else _resolve_pue(config, profiles)
    resolved_intensity = (
        default_intensity
        if default_intensity is not None
        else _resolve_default_intensity(config, resolved_region, mapping)
    )

    provider = intensity_provider or _build_provider_from_config(
        config, mapping, settings
    )
    spec_provider = instance_spec_provider
    if spec_provider is None:
        catalog_file = config.instance_specs.catalog_file if config is not None else None
        spec_provider = StaticInstanceSpecProvider.from_mapping(
            estimation_defaults.load_instance_spec_catalog(catalog_file)
        )

    return CalculatorRuntimeConfig(
        region=resolved_region,
        pue=float(resolved_pue),
        default_intensity=float(resolved_intensity),
        enable_network_accounting=(
            config.accounting.enable_network_accounting if config is not None else False
        ),
        enable_storage_accounting=(
            config.accounting.enable_storage_accounting if config is not None else False
        ),
        intensity_provider=provider,
        instance_spec_provider=spec_provider,
    )


def build_calculator(
    runtime: CalculatorRuntimeConfig,
    *,
    clock: Callable[[], datetime] | None = None,
) -> CarbonCalculator:
    """Wire resolvers and the energy model into a :class:`CarbonCalculator`."""

    calculator = CarbonCalculator(
        energy=EnergyEstimator(InstanceSpecResolver(runtime.instance_spec_provider)),
        grid=GridIntensityResolver(runtime.intensity_provider, runtime.default_intensity),
        pue=runtime.pue,
        region=runtime.region,
        enable_storage_accounting=runtime.enable_storage_accounting,
        enable_network_accounting=runtime.enable_network_accounting,
        clock=clock,
    )
    LOGGER.info(
        "CarbonCalculator initialised",
        extra={
            "region": runtime.region,
            "pue": runtime.pue,
            "default_intensity": runtime.default_intensity,
            "provider": (
                runtime.intensity_provider.name
                if runtime.intensity_provider is not None
                else "none"
            ),
        },
    )
    return calculator
