"""Carbon intensity provider implementations and abstractions."""

from __future__ import annotations

from kube_carbon.intensity_provider.base import (
    CacheStats,
    IntensityProvider,
    IntensityReading,
)
from kube_carbon.intensity_provider.electricitymaps import ElectricityMapsProvider
from kube_carbon.intensity_provider.fallback import FallbackIntensityProvider
from kube_carbon.intensity_provider.static import StaticIntensityProvider
from kube_carbon.intensity_provider.watttime import WattTimeProvider

__all__ = [
    "CacheStats",
    "ElectricityMapsProvider",
    "FallbackIntensityProvider",
    "IntensityProvider",
    "IntensityReading",
    "StaticIntensityProvider",
    "WattTimeProvider",
]
