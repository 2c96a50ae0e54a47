"""Scope-level carbon calculation.

Every ``calculate_*`` method follows the same pipeline: gather the resources
of the scope, estimate their energy, apply PUE, resolve grid intensity and
emit exactly one :class:`~kube_carbon.carbon_models.CarbonMetric`.

Aggregating scopes (cluster, namespace) tolerate per-resource failures: each
resource yields an :class:`EnergyOutcome` that either carries energy or the
error that caused it to be skipped, and only successes are summed. The skip
count is reported on the metric.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime

from kube_carbon.carbon_models import CarbonMetric, ScopeKind
from kube_carbon.context import RequestContext
from kube_carbon.estimation.energy import EnergyEstimator
from kube_carbon.estimation.resolvers import GridIntensityResolver
from kube_carbon.resources import NamespaceDescriptor, NodeDescriptor, PodDescriptor

LOGGER = logging.getLogger(__name__)

__all__ = ["CarbonCalculator", "EnergyOutcome"]


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True)
class EnergyOutcome:
    """Per-resource energy estimate, or the reason it was skipped."""

    resource: str
    energy_kwh: float = 0.0
    error: Exception | None = None
    fallback_reason: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True, slots=True)
class _Totals:
    energy_kwh: float
    skipped: int
    fallback_reasons: tuple[str, ...]


def _accumulate(outcomes: Iterable[EnergyOutcome]) -> _Totals:
    energy = 0.0
    skipped = 0
    reasons: list[str] = []
    for outcome in outcomes:
        if not outcome.ok:
            skipped += 1
            continue
        energy += outcome.energy_kwh
        if outcome.fallback_reason and outcome.fallback_reason not in reasons:
            reasons.append(outcome.fallback_reason)
    return _Totals(energy_kwh=energy, skipped=skipped, fallback_reasons=tuple(reasons))


def _optional_sum(values: Iterable[float | None]) -> float | None:
    present = [value for value in values if value is not None]
    if not present:
        return None
    return float(sum(present))


class CarbonCalculator:
    """Produce carbon metrics for cluster, namespace, node and pod scopes.

    The calculator is configured once and never mutated afterwards, so a
    single instance can serve concurrent queries.

    Args:
        energy: Energy model used for pods and nodes.
        grid: Grid intensity resolver.
        pue: Power usage effectiveness multiplier applied to every energy
            figure before conversion to mass.
        region: Default grid region. Node metrics prefer the node's own
            topology region label.
        enable_storage_accounting: Carry pod storage usage into metrics.
        enable_network_accounting: Carry pod network traffic into metrics.
        clock: Source of metric timestamps.
    """

    def __init__(
        self,
        *,
        energy: EnergyEstimator,
        grid: GridIntensityResolver,
        pue: float,
        region: str = "global-average",
        enable_storage_accounting: bool = False,
        enable_network_accounting: bool = False,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if not math.isfinite(pue) or pue <= 0:
            raise ValueError("pue must be a positive finite number")
        self._energy = energy
        self._grid = grid
        self._pue = float(pue)
        self._region = region
        self._storage = enable_storage_accounting
        self._network = enable_network_accounting
        self._clock = clock or _utc_now

    @property
    def pue(self) -> float:
        return self._pue

    @property
    def region(self) -> str:
        return self._region

    def calculate_cluster(
        self,
        ctx: RequestContext,
        nodes: Iterable[NodeDescriptor],
        pods: Sequence[PodDescriptor],
    ) -> CarbonMetric:
        """Sum node-model energy across ``nodes``.

        Nodes whose estimate fails are skipped and counted.
        """

        totals = _accumulate(self._node_outcome(node, pods, "cluster") for node in nodes)
        return self._build_metric(
            ctx,
            scope_kind="cluster",
            scope_name="cluster",
            energy_kwh=totals.energy_kwh,
            region=self._region,
            cpu_usage=_optional_sum(pod.cpu_request_millicores for pod in pods),
            memory_usage=_optional_sum(pod.memory_request_bytes for pod in pods),
            storage_usage=self._storage_usage(pods),
            network_traffic=self._network_traffic(pods),
            skipped_resources=totals.skipped,
            fallback_reasons=totals.fallback_reasons,
        )

    def calculate_namespace(
        self,
        ctx: RequestContext,
        namespace: NamespaceDescriptor,
        pods: Iterable[PodDescriptor],
    ) -> CarbonMetric:
        """Sum pod-model energy for pods belonging to ``namespace``.

        Pods whose estimate fails (for example unscheduled pods) are skipped
        and counted.
        """

        members = [pod for pod in pods if pod.namespace == namespace.name]
        totals = _accumulate(self._pod_outcome(pod, "namespace") for pod in members)
        return self._build_metric(
            ctx,
            scope_kind="namespace",
            scope_name=namespace.name,
            namespace=namespace.name,
            energy_kwh=totals.energy_kwh,
            region=self._region,
            labels=namespace.labels,
            cpu_usage=_optional_sum(pod.cpu_request_millicores for pod in members),
            memory_usage=_optional_sum(pod.memory_request_bytes for pod in members),
            storage_usage=self._storage_usage(members),
            network_traffic=self._network_traffic(members),
            skipped_resources=totals.skipped,
            fallback_reasons=totals.fallback_reasons,
        )

    def calculate_node(
        self,
        ctx: RequestContext,
        node: NodeDescriptor,
        pods: Iterable[PodDescriptor],
    ) -> CarbonMetric:
        """Apply the node model to ``node`` using the pods scheduled on it."""

        scheduled = [pod for pod in pods if pod.node_name == node.name]
        estimate = self._energy.node_energy(node, scheduled)
        reasons = (estimate.fallback_reason,) if estimate.fallback_reason else ()
        return self._build_metric(
            ctx,
            scope_kind="node",
            scope_name=node.name,
            node_name=node.name,
            energy_kwh=estimate.energy_kwh,
            region=node.region or self._region,
            labels={"instance-type": node.instance_type, "zone": node.zone},
            cpu_usage=estimate.cpu_requested_millicores,
            memory_usage=_optional_sum(pod.memory_request_bytes for pod in scheduled),
            storage_usage=self._storage_usage(scheduled),
            network_traffic=self._network_traffic(scheduled),
            fallback_reasons=reasons,
        )

    def calculate_pod(self, ctx: RequestContext, pod: PodDescriptor) -> CarbonMetric:
        """Apply the pod model to a single pod.

        Raises:
            PodNotScheduledError: If the pod has no node assignment.
        """

        energy_kwh = self._energy.pod_energy_kwh(pod)
        return self._build_metric(
            ctx,
            scope_kind="pod",
            scope_name=pod.name,
            namespace=pod.namespace,
            node_name=pod.node_name,
            energy_kwh=energy_kwh,
            region=self._region,
            labels=pod.labels,
            cpu_usage=pod.cpu_request_millicores,
            memory_usage=pod.memory_request_bytes,
            storage_usage=pod.storage_bytes if self._storage else None,
            network_traffic=pod.network_bytes if self._network else None,
        )

    def _node_outcome(
        self, node: NodeDescriptor, pods: Sequence[PodDescriptor], scope: ScopeKind
    ) -> EnergyOutcome:
        try:
            estimate = self._energy.node_energy(node, pods)
        except Exception as exc:
            self._log_skip(scope, "node", node.name, exc)
            return EnergyOutcome(resource=node.name, error=exc)
        return EnergyOutcome(
            resource=node.name,
            energy_kwh=estimate.energy_kwh,
            fallback_reason=estimate.fallback_reason,
        )

    def _pod_outcome(self, pod: PodDescriptor, scope: ScopeKind) -> EnergyOutcome:
        resource = f"{pod.namespace}/{pod.name}"
        try:
            energy_kwh = self._energy.pod_energy_kwh(pod)
        except Exception as exc:
            self._log_skip(scope, "pod", resource, exc)
            return EnergyOutcome(resource=resource, error=exc)
        return EnergyOutcome(resource=resource, energy_kwh=energy_kwh)

    @staticmethod
    def _log_skip(scope: ScopeKind, kind: str, resource: str, exc: Exception) -> None:
        LOGGER.warning(
            "Skipping resource in aggregate",
            extra={
                "scope": scope,
                "resource_kind": kind,
                "resource": resource,
                "error_type": type(exc).__name__,
                "error": str(exc),
            },
        )

    def _storage_usage(self, pods: Iterable[PodDescriptor]) -> float | None:
        if not self._storage:
            return None
        return _optional_sum(pod.storage_bytes for pod in pods)

    def _network_traffic(self, pods: Iterable[PodDescriptor]) -> float | None:
        if not self._network:
            return None
        return _optional_sum(pod.network_bytes for pod in pods)

    def _build_metric(
        self,
        ctx: RequestContext,
        *,
        scope_kind: ScopeKind,
        scope_name: str,
        energy_kwh: float,
        region: str,
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
        timestamp = self._clock()
        intensity = self._grid.resolve(ctx, region, timestamp=timestamp)
        reasons = list(fallback_reasons)
        if intensity.fallback_reason is not None:
            reasons.append(intensity.fallback_reason)
        metric = CarbonMetric.create(
            timestamp=timestamp,
            scope_kind=scope_kind,
            scope_name=scope_name,
            energy_kwh=energy_kwh * self._pue,
            grid_intensity=intensity.value,
            namespace=namespace,
            node_name=node_name,
            labels=labels,
            cpu_usage=cpu_usage,
            memory_usage=memory_usage,
            storage_usage=storage_usage,
            network_traffic=network_traffic,
            skipped_resources=skipped_resources,
            fallback_reasons=reasons,
        )
        LOGGER.debug(
            "Carbon metric calculated",
            extra={
                "scope": scope_kind,
                "resource": scope_name,
                "energy_kwh": metric.energy_kwh,
                "co2_grams": metric.co2_grams,
                "grid_intensity": metric.grid_intensity,
                "skipped_resources": skipped_resources,
            },
        )
        return metric
