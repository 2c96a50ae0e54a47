"""Carbon estimation package.

Provides the scope-level :class:`CarbonCalculator` along with the energy
model, fallback resolvers and runtime configuration helpers.
"""

from __future__ import annotations

from .calculator import CarbonCalculator, EnergyOutcome
from .configuration import (
    CalculatorRuntimeConfig,
    build_calculator,
    build_runtime_config,
)
from .energy import EnergyEstimator, NodeEnergy
from .resolvers import GridIntensityResolver, InstanceSpecResolver, Resolution

__all__ = [
    "CalculatorRuntimeConfig",
    "CarbonCalculator",
    "EnergyEstimator",
    "EnergyOutcome",
    "GridIntensityResolver",
    "InstanceSpecResolver",
    "NodeEnergy",
    "Resolution",
    "build_calculator",
    "build_runtime_config",
]
