"""Resource descriptors, quantity parsing and repositories."""

from __future__ import annotations

from kube_carbon.resources.descriptors import (
    ContainerDescriptor,
    NamespaceDescriptor,
    NodeDescriptor,
    PodDescriptor,
)
from kube_carbon.resources.quantity import (
    parse_cpu_millicores,
    parse_memory_bytes,
    parse_quantity,
)
from kube_carbon.resources.repository import (
    InMemoryResourceRepository,
    ResourceRepository,
    load_snapshot,
)

__all__ = [
    "ContainerDescriptor",
    "InMemoryResourceRepository",
    "NamespaceDescriptor",
    "NodeDescriptor",
    "PodDescriptor",
    "ResourceRepository",
    "load_snapshot",
    "parse_cpu_millicores",
    "parse_memory_bytes",
    "parse_quantity",
]
