"""Energy models for pods and nodes over the one-hour accounting window.

Two deliberately different views of the same machine are provided:

* the *pod model* is additive and request based: each requested core costs
  :data:`WATTS_PER_CORE` and each requested GiB costs :data:`WATTS_PER_GIB`,
  independent of the host's total draw;
* the *node model* scales the instance TDP between an idle floor of
  :data:`IDLE_POWER_FRACTION` and full TDP by the ratio of requested CPU to
  CPU capacity.

Neither model applies PUE; the calculator does that once per scope.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Final

from kube_carbon.errors import PodNotScheduledError
from kube_carbon.estimation.resolvers import InstanceSpecResolver
from kube_carbon.instance_specs import InstanceSpec
from kube_carbon.resources import NodeDescriptor, PodDescriptor
from kube_carbon.units import (
    bytes_to_gib,
    cores_to_millicores,
    millicores_to_cores,
    window_energy_kwh,
)

LOGGER = logging.getLogger(__name__)

__all__ = [
    "EnergyEstimator",
    "IDLE_POWER_FRACTION",
    "NodeEnergy",
    "WATTS_PER_CORE",
    "WATTS_PER_GIB",
]

WATTS_PER_CORE: Final[float] = 2.5
WATTS_PER_GIB: Final[float] = 0.375
IDLE_POWER_FRACTION: Final[float] = 0.3


@dataclass(frozen=True, slots=True)
class NodeEnergy:
    """Node-model estimate before PUE.

    Attributes:
        energy_kwh: Energy over the accounting window.
        watts: Estimated constant draw.
        utilization: Clamped CPU request ratio in ``[0, 1]``.
        cpu_requested_millicores: Sum of CPU requests of pods on the node.
        spec: Instance spec the estimate is based on.
        fallback_reason: Set when ``spec`` is the fallback spec.
    """

    energy_kwh: float
    watts: float
    utilization: float
    cpu_requested_millicores: float
    spec: InstanceSpec
    fallback_reason: str | None = None


class EnergyEstimator:
    """Estimate energy for pods and nodes.

    The estimator holds no per-call state and may be shared across threads.
    """

    def __init__(self, instance_specs: InstanceSpecResolver) -> None:
        self._instance_specs = instance_specs

    @staticmethod
    def pod_watts(pod: PodDescriptor) -> float:
        """Return the request-based power draw of ``pod`` in watts."""

        watts = 0.0
        for container in pod.containers:
            watts += millicores_to_cores(container.cpu_request_millicores) * WATTS_PER_CORE
            watts += bytes_to_gib(container.memory_request_bytes) * WATTS_PER_GIB
        return watts

    def pod_energy_kwh(self, pod: PodDescriptor) -> float:
        """Return pod energy over the accounting window, in kWh.

        Raises:
            PodNotScheduledError: If the pod has no node assignment.
        """

        if not pod.is_scheduled:
            raise PodNotScheduledError(pod.namespace, pod.name)
        return window_energy_kwh(self.pod_watts(pod))

    def node_energy(
        self, node: NodeDescriptor, pods: Iterable[PodDescriptor]
    ) -> NodeEnergy:
        """Estimate node energy from the pods scheduled on it.

        Pods assigned to other nodes are ignored. When the descriptor has no
        CPU capacity, capacity is derived from the resolved instance spec.
        """

        resolution = self._instance_specs.resolve(node.instance_type)
        spec = resolution.value

        requested = sum(
            pod.cpu_request_millicores for pod in pods if pod.node_name == node.name
        )
        capacity = node.cpu_capacity_millicores or cores_to_millicores(spec.vcpus)
        utilization = min(max(requested / capacity, 0.0), 1.0)
        watts = spec.tdp_watts * (
            IDLE_POWER_FRACTION + (1.0 - IDLE_POWER_FRACTION) * utilization
        )
        LOGGER.debug(
            "Node energy estimated",
            extra={
                "node": node.name,
                "instance_type": spec.instance_type,
                "utilization": utilization,
                "watts": watts,
            },
        )
        return NodeEnergy(
            energy_kwh=window_energy_kwh(watts),
            watts=watts,
            utilization=utilization,
            cpu_requested_millicores=requested,
            spec=spec,
            fallback_reason=resolution.fallback_reason,
        )
