"""Instance hardware specifications and the provider abstraction."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Final

__all__ = [
    "FALLBACK_MEMORY_GB",
    "FALLBACK_TDP_WATTS",
    "FALLBACK_VCPUS",
    "InstanceSpec",
    "InstanceSpecProvider",
    "fallback_spec",
]

FALLBACK_VCPUS: Final[int] = 2
FALLBACK_MEMORY_GB: Final[float] = 4.0
FALLBACK_TDP_WATTS: Final[float] = 100.0


@dataclass(frozen=True, slots=True)
class InstanceSpec:
    """Power and capacity characteristics of an instance type.

    Attributes:
        instance_type: Provider instance type identifier (e.g. ``m5.large``).
        vcpus: Number of virtual CPUs.
        memory_gb: Memory capacity in gigabytes.
        tdp_watts: Thermal design power used as peak draw.
    """

    instance_type: str
    vcpus: int
    memory_gb: float
    tdp_watts: float

    def __post_init__(self) -> None:
        if self.vcpus <= 0:
            raise ValueError("vcpus must be a positive integer")
        if self.tdp_watts <= 0:
            raise ValueError("tdp_watts must be positive")


def fallback_spec(instance_type: str) -> InstanceSpec:
    """Return the fixed default spec, keeping the requested identifier."""

    return InstanceSpec(
        instance_type=instance_type,
        vcpus=FALLBACK_VCPUS,
        memory_gb=FALLBACK_MEMORY_GB,
        tdp_watts=FALLBACK_TDP_WATTS,
    )


class InstanceSpecProvider(ABC):
    """Strategy mapping instance type identifiers to hardware specs."""

    @property
    def name(self) -> str:
        """Short provider label used in logs and fallback reasons."""

        return type(self).__name__

    @abstractmethod
    def get_spec(self, instance_type: str) -> InstanceSpec | None:
        """Return the spec for ``instance_type`` or ``None`` when unknown."""
