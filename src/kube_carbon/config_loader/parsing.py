"""Parsing and transformation helpers for :mod:`kube_carbon.config_loader`."""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import replace

from kube_carbon.config_loader.models import CarbonConfig
from kube_carbon.settings import KubeCarbonSettings


def apply_environment_overrides(
    config: CarbonConfig, settings: KubeCarbonSettings
) -> CarbonConfig:
    """Apply environment-derived overrides to the configuration.

    Environment values go through the same section appliers as file values,
    so out-of-range numbers are ignored rather than reaching the calculator.

    Args:
        config: Base configuration instance.
        settings: Environment-derived settings.

    Returns:
        Configuration with environment overrides applied.
    """

    pue_section: dict[str, object] = {}
    if isinstance(settings.pue, str):
        pue_section["profile"] = settings.pue
    else:
        pue_section["default"] = settings.pue

    return apply_structured_overrides(
        config,
        {
            "grid": {
                "region": settings.default_region,
                "default_intensity": settings.default_grid_intensity,
            },
            "pue": pue_section,
            "accounting": {
                "enable_network_accounting": settings.enable_network_accounting,
                "enable_storage_accounting": settings.enable_storage_accounting,
            },
            "instance_specs": {"catalog_file": settings.instance_specs_file},
        },
    )


def apply_structured_overrides(
    config: CarbonConfig, data: Mapping[str, object]
) -> CarbonConfig:
    """Apply overrides sourced from a parsed configuration file.

    Unknown sections and values of the wrong type are ignored.

    Args:
        config: Base configuration instance.
        data: Mapping parsed from the configuration file.

    Returns:
        Configuration updated according to the provided mapping.
    """

    updated = config

    grid_section = _expect_mapping(data.get("grid"))
    if grid_section is not None:
        updated = _apply_grid_section(updated, grid_section)

    pue_section = _expect_mapping(data.get("pue"))
    if pue_section is not None:
        updated = _apply_pue_section(updated, pue_section)

    accounting_section = _expect_mapping(data.get("accounting"))
    if accounting_section is not None:
        updated = _apply_accounting_section(updated, accounting_section)

    providers_section = _expect_mapping(data.get("providers"))
    if providers_section is not None:
        updated = _apply_providers_section(updated, providers_section)

    specs_section = _expect_mapping(data.get("instance_specs"))
    if specs_section is not None:
        catalog = _coerce_str(specs_section.get("catalog_file"))
        if catalog is not None:
            updated = replace(
                updated,
                instance_specs=replace(updated.instance_specs, catalog_file=catalog),
            )

    return updated


def _apply_grid_section(
    config: CarbonConfig, section: Mapping[str, object]
) -> CarbonConfig:
    grid = config.grid
    region = _coerce_str(section.get("region"))
    if region is not None:
        grid = replace(grid, region=region)
    intensity = _coerce_float(section.get("default_intensity"))
    if intensity is not None and intensity >= 0:
        grid = replace(grid, default_intensity=intensity)
    return replace(config, grid=grid)


def _apply_pue_section(
    config: CarbonConfig, section: Mapping[str, object]
) -> CarbonConfig:
    pue = config.pue
    default_value = _coerce_float(section.get("default"))
    if default_value is not None and default_value > 0:
        pue = replace(pue, default=default_value)
    profile = _coerce_str(section.get("profile"))
    if profile is not None:
        pue = replace(pue, profile=profile)
    return replace(config, pue=pue)


def _apply_accounting_section(
    config: CarbonConfig, section: Mapping[str, object]
) -> CarbonConfig:
    accounting = config.accounting
    network = _coerce_bool(section.get("enable_network_accounting"))
    if network is not None:
        accounting = replace(accounting, enable_network_accounting=network)
    storage = _coerce_bool(section.get("enable_storage_accounting"))
    if storage is not None:
        accounting = replace(accounting, enable_storage_accounting=storage)
    return replace(config, accounting=accounting)


def _apply_providers_section(
    config: CarbonConfig, section: Mapping[str, object]
) -> CarbonConfig:
    providers = config.providers
    order = _coerce_str_sequence(section.get("order"))
    if order is not None:
        providers = replace(providers, order=order)
    ttl = _coerce_int(section.get("ttl_seconds"))
    if ttl is not None and ttl >= 0:
        providers = replace(providers, ttl_seconds=ttl)
    return replace(config, providers=providers)


def _coerce_float(value: object) -> float | None:
    """Parse a finite float from arbitrary input, ``None`` when impossible."""

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


def _coerce_int(value: object) -> int | None:
    """Parse an integer from arbitrary input, ``None`` when impossible."""

    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def _coerce_bool(value: object) -> bool | None:
    """Parse a boolean from arbitrary input, ``None`` when impossible."""

    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "1", "yes"}:
            return True
        if lowered in {"false", "0", "no"}:
            return False
    if isinstance(value, (int, float)):
        if value == 0:
            return False
        if value == 1:
            return True
    return None


def _coerce_str(value: object) -> str | None:
    """Return stripped non-empty text, otherwise ``None``."""

    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return None


def _coerce_str_sequence(value: object) -> tuple[str, ...] | None:
    """Parse a tuple of strings from a list-like value."""

    if not isinstance(value, Sequence) or isinstance(value, (str, bytes)):
        return None
    items: list[str] = []
    for element in value:
        if not isinstance(element, str):
            return None
        items.append(element)
    return tuple(items)


def _expect_mapping(value: object) -> Mapping[str, object] | None:
    """Return the value when it is a mapping with string keys."""

    if not isinstance(value, Mapping):
        return None
    if not all(isinstance(key, str) for key in value.keys()):
        return None
    return value
