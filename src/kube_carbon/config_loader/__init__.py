"""Public entry points for the :mod:`kube_carbon` configuration loader."""

from __future__ import annotations

from kube_carbon.config_loader.models import (
    AccountingSettings,
    CarbonConfig,
    GridSettings,
    InstanceSpecSettings,
    PUEConfig,
    ProviderSettings,
)
from kube_carbon.config_loader.parsing import (
    apply_environment_overrides,
    apply_structured_overrides,
)
from kube_carbon.config_loader.sources import load_structured_config
from kube_carbon.settings import KubeCarbonSettings, get_settings

__all__ = [
    "AccountingSettings",
    "CarbonConfig",
    "GridSettings",
    "InstanceSpecSettings",
    "PUEConfig",
    "ProviderSettings",
    "load_config",
]


def load_config(
    path: str | None = None, *, settings: KubeCarbonSettings | None = None
) -> CarbonConfig:
    """Load configuration from environment and optional file sources.

    Environment values are applied first; a configuration file, when one is
    found, overrides them section by section.

    Args:
        path: Optional explicit path to a configuration file. When omitted the
            loader inspects ``KUBE_CARBON_CONFIG_PATH`` and the default
            search locations.
        settings: Optional pre-instantiated environment settings. When omitted
            :func:`kube_carbon.settings.get_settings` is used.

    Returns:
        Fully populated :class:`CarbonConfig` instance.
    """

    env_settings = settings or get_settings()
    base = apply_environment_overrides(CarbonConfig(), env_settings)
    structured = load_structured_config(path, env_settings)
    if structured is None:
        return base
    return apply_structured_overrides(base, structured)
