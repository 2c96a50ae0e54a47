"""Fallback-on-error resolvers for grid intensity and instance specs.

Both resolvers return a :class:`Resolution`: the value to use plus, when a
fallback was substituted, the reason why. Neither ever raises for a lookup
failure, so an estimate is always produced.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Generic, TypeVar

from kube_carbon.context import RequestContext
from kube_carbon.instance_specs import InstanceSpec, InstanceSpecProvider, fallback_spec
from kube_carbon.intensity_provider import IntensityProvider

LOGGER = logging.getLogger(__name__)

__all__ = ["GridIntensityResolver", "InstanceSpecResolver", "Resolution"]

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Resolution(Generic[T]):
    """Resolved value, tagged with the reason when it is a fallback."""

    value: T
    fallback_reason: str | None = None

    @property
    def degraded(self) -> bool:
        """Return ``True`` when the value is a substituted fallback."""

        return self.fallback_reason is not None


class GridIntensityResolver:
    """Resolve grid carbon intensity for a region with a default fallback.

    A cancelled context degrades to the default intensity instead of
    aborting the query; the reason is recorded on the resolution.
    """

    def __init__(
        self, provider: IntensityProvider | None, default_intensity: float
    ) -> None:
        if not math.isfinite(default_intensity) or default_intensity < 0:
            raise ValueError("default_intensity must be a non-negative finite number")
        self._provider = provider
        self._default = float(default_intensity)

    @property
    def default_intensity(self) -> float:
        return self._default

    def resolve(
        self,
        ctx: RequestContext,
        region: str,
        *,
        timestamp: datetime | None = None,
    ) -> Resolution[float]:
        """Return the intensity for ``region`` in gCO2/kWh."""

        if self._provider is None:
            return Resolution(self._default, "no intensity provider configured")

        try:
            ctx.raise_if_cancelled()
            reading = self._provider.get_intensity(timestamp, region)
        except Exception as exc:
            LOGGER.warning(
                "Grid intensity lookup failed; using default",
                extra={
                    "provider": self._provider.name,
                    "region": region,
                    "error_type": type(exc).__name__,
                    "default_intensity": self._default,
                },
            )
            return Resolution(
                self._default, f"grid intensity lookup for {region} failed: {exc}"
            )

        if reading is None:
            LOGGER.info(
                "No grid intensity for region; using default",
                extra={"provider": self._provider.name, "region": region},
            )
            return Resolution(
                self._default, f"no grid intensity available for region {region}"
            )
        return Resolution(float(reading.intensity_gco2_kwh))


class InstanceSpecResolver:
    """Resolve instance specs, substituting the fixed fallback spec."""

    def __init__(self, provider: InstanceSpecProvider | None) -> None:
        self._provider = provider

    def resolve(self, instance_type: str) -> Resolution[InstanceSpec]:
        """Return the spec for ``instance_type``; never raises."""

        if self._provider is None:
            return Resolution(
                fallback_spec(instance_type), "no instance spec provider configured"
            )
        try:
            spec = self._provider.get_spec(instance_type)
        except Exception as exc:
            LOGGER.warning(
                "Instance spec lookup failed; using fallback spec",
                extra={
                    "provider": self._provider.name,
                    "instance_type": instance_type,
                    "error_type": type(exc).__name__,
                },
            )
            return Resolution(
                fallback_spec(instance_type),
                f"instance spec lookup for {instance_type} failed: {exc}",
            )
        if spec is None:
            LOGGER.debug(
                "Unknown instance type; using fallback spec",
                extra={"instance_type": instance_type},
            )
            return Resolution(
                fallback_spec(instance_type), f"unknown instance type {instance_type}"
            )
        return Resolution(spec)
