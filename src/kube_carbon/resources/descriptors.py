"""Typed descriptors of cluster resources consumed by the calculator."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Final

from pydantic import BaseModel, ConfigDict, Field

from kube_carbon.resources.quantity import parse_cpu_millicores, parse_memory_bytes

__all__ = [
    "ContainerDescriptor",
    "INSTANCE_TYPE_LABELS",
    "NamespaceDescriptor",
    "NodeDescriptor",
    "PodDescriptor",
    "REGION_LABELS",
    "ZONE_LABELS",
]

INSTANCE_TYPE_LABELS: Final[tuple[str, ...]] = (
    "beta.kubernetes.io/instance-type",
    "node.kubernetes.io/instance-type",
)
ZONE_LABELS: Final[tuple[str, ...]] = (
    "topology.kubernetes.io/zone",
    "failure-domain.beta.kubernetes.io/zone",
)
REGION_LABELS: Final[tuple[str, ...]] = (
    "topology.kubernetes.io/region",
    "failure-domain.beta.kubernetes.io/region",
)


def _first_label(labels: Mapping[str, str], keys: tuple[str, ...]) -> str | None:
    for key in keys:
        value = labels.get(key)
        if value:
            return value
    return None


def _mapping(value: object) -> Mapping[str, object]:
    if isinstance(value, Mapping):
        return value
    return {}


def _labels(value: object) -> dict[str, str]:
    return {str(key): str(item) for key, item in _mapping(value).items()}


class ContainerDescriptor(BaseModel):
    """Resource requests of a single container."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(default="", description="Container name.")
    cpu_request_millicores: float = Field(
        default=0.0, ge=0.0, description="Requested CPU in millicores."
    )
    memory_request_bytes: float = Field(
        default=0.0, ge=0.0, description="Requested memory in bytes."
    )

    @classmethod
    def from_manifest(cls, data: Mapping[str, object]) -> ContainerDescriptor:
        """Build a descriptor from a container spec mapping.

        Requests are read from ``resources.requests`` using Kubernetes
        quantity notation; missing requests count as zero.
        """

        requests = _mapping(_mapping(data.get("resources")).get("requests"))
        cpu = requests.get("cpu")
        memory = requests.get("memory")
        return cls(
            name=str(data.get("name", "")),
            cpu_request_millicores=(
                parse_cpu_millicores(cpu) if cpu is not None else 0.0  # type: ignore[arg-type]
            ),
            memory_request_bytes=(
                parse_memory_bytes(memory) if memory is not None else 0.0  # type: ignore[arg-type]
            ),
        )


class PodDescriptor(BaseModel):
    """A pod with its scheduling assignment and container requests."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., min_length=1, description="Pod name.")
    namespace: str = Field(default="default", description="Owning namespace.")
    node_name: str | None = Field(
        default=None, description="Node the pod is scheduled to, if any."
    )
    labels: dict[str, str] = Field(default_factory=dict)
    containers: tuple[ContainerDescriptor, ...] = ()
    storage_bytes: float | None = Field(default=None, ge=0.0)
    network_bytes: float | None = Field(default=None, ge=0.0)

    @property
    def is_scheduled(self) -> bool:
        """Return ``True`` when the pod has a node assignment."""

        return bool(self.node_name)

    @property
    def cpu_request_millicores(self) -> float:
        """Total requested CPU across containers, in millicores."""

        return sum(container.cpu_request_millicores for container in self.containers)

    @property
    def memory_request_bytes(self) -> float:
        """Total requested memory across containers, in bytes."""

        return sum(container.memory_request_bytes for container in self.containers)

    @classmethod
    def from_manifest(cls, data: Mapping[str, object]) -> PodDescriptor:
        """Build a descriptor from a flat snapshot entry or a pod manifest.

        Both ``{"name", "namespace", "nodeName", "containers"}`` and the
        Kubernetes ``metadata``/``spec`` layout are accepted.
        """

        metadata = _mapping(data.get("metadata")) or data
        spec = _mapping(data.get("spec")) or data
        containers = spec.get("containers") or ()
        node_name = spec.get("nodeName") or spec.get("node_name")
        return cls(
            name=str(metadata.get("name", "")),
            namespace=str(metadata.get("namespace") or "default"),
            node_name=str(node_name) if node_name else None,
            labels=_labels(metadata.get("labels")),
            containers=tuple(
                ContainerDescriptor.from_manifest(_mapping(item))
                for item in containers  # type: ignore[union-attr]
            ),
            storage_bytes=_optional_quantity(data.get("storage")),
            network_bytes=_optional_quantity(data.get("networkTraffic")),
        )


class NodeDescriptor(BaseModel):
    """A node with its labels and allocatable capacity."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., min_length=1, description="Node name.")
    labels: dict[str, str] = Field(default_factory=dict)
    cpu_capacity_millicores: float | None = Field(
        default=None, ge=0.0, description="CPU capacity in millicores."
    )
    memory_capacity_bytes: float | None = Field(
        default=None, ge=0.0, description="Memory capacity in bytes."
    )

    @property
    def instance_type(self) -> str:
        """Instance type from the node labels, ``"unknown"`` when absent."""

        return _first_label(self.labels, INSTANCE_TYPE_LABELS) or "unknown"

    @property
    def zone(self) -> str:
        """Topology zone from the node labels, empty when absent."""

        return _first_label(self.labels, ZONE_LABELS) or ""

    @property
    def region(self) -> str | None:
        """Topology region from the node labels, if present."""

        return _first_label(self.labels, REGION_LABELS)

    @classmethod
    def from_manifest(cls, data: Mapping[str, object]) -> NodeDescriptor:
        """Build a descriptor from a flat snapshot entry or a node manifest."""

        metadata = _mapping(data.get("metadata")) or data
        status = _mapping(data.get("status"))
        capacity = _mapping(status.get("capacity")) or _mapping(data.get("capacity"))
        cpu = capacity.get("cpu")
        memory = capacity.get("memory")
        return cls(
            name=str(metadata.get("name", "")),
            labels=_labels(metadata.get("labels")),
            cpu_capacity_millicores=(
                parse_cpu_millicores(cpu) if cpu is not None else None  # type: ignore[arg-type]
            ),
            memory_capacity_bytes=(
                parse_memory_bytes(memory) if memory is not None else None  # type: ignore[arg-type]
            ),
        )


class NamespaceDescriptor(BaseModel):
    """A namespace and its labels."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., min_length=1, description="Namespace name.")
    labels: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_manifest(cls, data: Mapping[str, object]) -> NamespaceDescriptor:
        """Build a descriptor from a flat snapshot entry or a manifest."""

        metadata = _mapping(data.get("metadata")) or data
        return cls(
            name=str(metadata.get("name", "")),
            labels=_labels(metadata.get("labels")),
        )


def _optional_quantity(value: object) -> float | None:
    if value is None:
        return None
    return float(parse_memory_bytes(value))  # type: ignore[arg-type]
