"""Default data loaders for carbon estimation.

The module centralises disk/resource access for the packaged carbon
intensity, power usage effectiveness (PUE) and instance spec defaults.
Results are cached for the life of the process; tests reset them with
``cache_clear()``.
"""

from __future__ import annotations

import importlib.resources as resources
import json
import logging
import pathlib
from functools import lru_cache
from typing import Final

from kube_carbon.settings import get_settings

LOGGER = logging.getLogger(__name__)

_DATA_PACKAGE: Final[str] = "kube_carbon.data"

_FALLBACK_INTENSITIES: Final[dict[str, float]] = {
    "us-east": 400.0,
    "us-west": 350.0,
    "us-central": 450.0,
    "eu-west": 300.0,
    "eu-north": 50.0,
    "asia-pacific": 600.0,
    "global-average": 475.0,
}

_FALLBACK_PUE_VALUES: Final[dict[str, float]] = {
    "cloud-hyperscale": 1.2,
    "enterprise": 1.6,
    "edge": 1.4,
    "on-premise": 1.8,
}

DEFAULT_PUE_PROFILE: Final[str] = "cloud-hyperscale"
GLOBAL_AVERAGE_REGION: Final[str] = "global-average"


def _read_packaged_json(filename: str) -> object:
    text = resources.files(_DATA_PACKAGE).joinpath(filename).read_text(encoding="utf-8")
    return json.loads(text)


def _read_override_json(path_text: str, env_name: str) -> object:
    path = pathlib.Path(path_text)
    if not path.exists():
        msg = f"{env_name} not found: {path}"
        raise FileNotFoundError(msg)
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise RuntimeError(f"Failed to parse {env_name} override JSON") from exc


@lru_cache(maxsize=1)
def load_carbon_intensity_mapping() -> dict[str, float]:
    """Load the region → intensity mapping.

    Returns:
        Mapping of region identifiers to carbon intensity in gCO2/kWh.

    Raises:
        FileNotFoundError: Raised when the path given by
            ``KUBE_CARBON_INTENSITY_FILE`` does not exist.
        RuntimeError: Raised when the override file is not valid JSON.
    """

    settings = get_settings()
    if settings.carbon_intensity_file:
        data = _read_override_json(
            settings.carbon_intensity_file, "KUBE_CARBON_INTENSITY_FILE"
        )
        if not isinstance(data, dict):
            raise RuntimeError("KUBE_CARBON_INTENSITY_FILE must hold a JSON object")
        return {str(key): float(value) for key, value in data.items()}

    try:
        data = _read_packaged_json("carbon_intensity.json")
    except (OSError, json.JSONDecodeError) as exc:  # pragma: no cover - packaging
        LOGGER.error("Failed to load packaged carbon intensity defaults: %s", exc)
        return dict(_FALLBACK_INTENSITIES)
    if not isinstance(data, dict):  # pragma: no cover - packaging
        return dict(_FALLBACK_INTENSITIES)
    return {str(key): float(value) for key, value in data.items()}


@lru_cache(maxsize=1)
def load_pue_values() -> dict[str, float]:
    """Load the power usage effectiveness (PUE) defaults.

    Returns:
        Mapping of PUE profiles to numeric PUE values.
    """

    try:
        defaults_data = _read_packaged_json("defaults.json")
    except (OSError, json.JSONDecodeError) as exc:  # pragma: no cover - packaging
        LOGGER.error("Failed to load packaged PUE defaults: %s", exc)
        return dict(_FALLBACK_PUE_VALUES)

    raw_values = (
        defaults_data.get("PUE_VALUES", {}) if isinstance(defaults_data, dict) else None
    )
    if not isinstance(raw_values, dict):
        LOGGER.warning(
            "Unexpected PUE_VALUES payload type %s; using fallback defaults",
            type(raw_values),
        )
        return dict(_FALLBACK_PUE_VALUES)

    parsed: dict[str, float] = {}
    for key, value in raw_values.items():
        try:
            parsed[str(key)] = float(value)
        except (TypeError, ValueError):
            LOGGER.warning("Skipping invalid PUE value for key %s", key)
    return parsed or dict(_FALLBACK_PUE_VALUES)


@lru_cache(maxsize=4)
def load_instance_spec_catalog(path: str | None = None) -> dict[str, dict[str, object]]:
    """Load the instance type catalog.

    Args:
        path: Optional catalog file. When omitted ``KUBE_CARBON_INSTANCE_SPECS_FILE``
            is consulted before falling back to the packaged catalog.

    Returns:
        Mapping of instance type to ``{"vcpus", "memory_gb", "tdp_watts"}``.

    Raises:
        FileNotFoundError: Raised when an override path does not exist.
        RuntimeError: Raised when an override file is not a JSON object.
    """

    override = path or get_settings().instance_specs_file
    if override:
        data = _read_override_json(override, "KUBE_CARBON_INSTANCE_SPECS_FILE")
        if not isinstance(data, dict):
            raise RuntimeError("Instance spec catalog must hold a JSON object")
    else:
        try:
            data = _read_packaged_json("instance_specs.json")
        except (OSError, json.JSONDecodeError) as exc:  # pragma: no cover - packaging
            LOGGER.error("Failed to load packaged instance specs: %s", exc)
            return {}
        if not isinstance(data, dict):  # pragma: no cover - packaging
            return {}

    return {
        str(key): dict(value) for key, value in data.items() if isinstance(value, dict)
    }
