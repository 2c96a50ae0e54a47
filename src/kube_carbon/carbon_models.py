"""Carbon metric records produced by the calculator.

A :class:`CarbonMetric` is created fresh for each query, never mutated and
discarded once the response has been formatted. The emitted mass is never
stored independently: :meth:`CarbonMetric.create` derives it from the energy
and intensity so that ``co2_grams == energy_kwh * grid_intensity`` holds for
every record.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Literal, TypedDict

from kube_carbon.units import co2_grams

__all__ = [
    "CarbonMetric",
    "CarbonMetricDict",
    "MetricSource",
    "SCOPE_KINDS",
    "ScopeKind",
]

ScopeKind = Literal["cluster", "namespace", "node", "pod"]
MetricSource = Literal["calculated", "estimated"]

SCOPE_KINDS: tuple[ScopeKind, ...] = ("cluster", "namespace", "node", "pod")


class CarbonMetricDict(TypedDict):
    """JSON-ready representation of a :class:`CarbonMetric`."""

    timestamp: str
    resourceType: str
    resourceName: str
    namespace: str | None
    nodeName: str | None
    co2Emissions: float
    energyConsumption: float
    gridIntensity: float
    source: str
    labels: dict[str, str]
    cpuUsage: float | None
    memoryUsage: float | None
    storageUsage: float | None
    networkTraffic: float | None
    skippedResources: int
    fallbackReasons: list[str]


@dataclass(frozen=True, slots=True)
class CarbonMetric:
    """Carbon footprint estimate for one resource scope.

    Attributes:
        timestamp: Instant the estimate was produced.
        scope_kind: Level of the resource hierarchy the estimate describes.
        scope_name: Name of the described resource.
        co2_grams: Estimated emitted mass in grams of CO2.
        energy_kwh: Estimated consumed energy (PUE applied) in kWh.
        grid_intensity: Carbon intensity used for the conversion, gCO2/kWh.
        source: ``"estimated"`` when any fallback value was substituted.
        namespace: Namespace of the resource, when applicable.
        node_name: Node the resource runs on, when applicable.
        labels: Opaque annotations copied from the resource.
        cpu_usage: Requested CPU in millicores, display only.
        memory_usage: Requested memory in bytes, display only.
        storage_usage: Storage in bytes, display only.
        network_traffic: Network traffic in bytes, display only.
        skipped_resources: Per-resource failures absorbed while aggregating.
        fallback_reasons: Why each substituted fallback value was used.
    """

    timestamp: datetime
    scope_kind: ScopeKind
    scope_name: str
    co2_grams: float
    energy_kwh: float
    grid_intensity: float
    source: MetricSource = "calculated"
    namespace: str | None = None
    node_name: str | None = None
    labels: Mapping[str, str] = field(default_factory=dict)
    cpu_usage: float | None = None
    memory_usage: float | None = None
    storage_usage: float | None = None
    network_traffic: float | None = None
    skipped_resources: int = 0
    fallback_reasons: tuple[str, ...] = ()

    @classmethod
    def create(
        cls,
        *,
        timestamp: datetime,
        scope_kind: ScopeKind,
        scope_name: str,
        energy_kwh: float,
        grid_intensity: float,
        namespace: str | None = None,
        node_name: str | None = None,
        labels: Mapping[str, str] | None = None,
        cpu_usage: float | None = None,
        memory_usage: float | None = None,
        storage_usage: float | None = None,
        network_traffic: float | None = None,
        skipped_resources: int = 0,
        fallback_reasons: Iterable[str] = (),
    ) -> CarbonMetric:
        """Build a metric whose mass is the product of energy and intensity."""

        reasons = tuple(fallback_reasons)
        return cls(
            timestamp=timestamp,
            scope_kind=scope_kind,
            scope_name=scope_name,
            co2_grams=co2_grams(float(energy_kwh), float(grid_intensity)),
            energy_kwh=float(energy_kwh),
            grid_intensity=float(grid_intensity),
            source="estimated" if reasons else "calculated",
            namespace=namespace,
            node_name=node_name,
            labels=MappingProxyType(dict(labels or {})),
            cpu_usage=cpu_usage,
            memory_usage=memory_usage,
            storage_usage=storage_usage,
            network_traffic=network_traffic,
            skipped_resources=skipped_resources,
            fallback_reasons=reasons,
        )

    def to_dict(self) -> CarbonMetricDict:
        """Return the camelCase dictionary shape used on the wire."""

        return {
            "timestamp": self.timestamp.isoformat(),
            "resourceType": self.scope_kind,
            "resourceName": self.scope_name,
            "namespace": self.namespace,
            "nodeName": self.node_name,
            "co2Emissions": self.co2_grams,
            "energyConsumption": self.energy_kwh,
            "gridIntensity": self.grid_intensity,
            "source": self.source,
            "labels": dict(self.labels),
            "cpuUsage": self.cpu_usage,
            "memoryUsage": self.memory_usage,
            "storageUsage": self.storage_usage,
            "networkTraffic": self.network_traffic,
            "skippedResources": self.skipped_resources,
            "fallbackReasons": list(self.fallback_reasons),
        }
