"""Resource repository protocol and an in-memory snapshot implementation."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path
from typing import Protocol, runtime_checkable

from kube_carbon.resources.descriptors import (
    NamespaceDescriptor,
    NodeDescriptor,
    PodDescriptor,
)

LOGGER = logging.getLogger(__name__)

__all__ = ["InMemoryResourceRepository", "ResourceRepository", "load_snapshot"]


@runtime_checkable
class ResourceRepository(Protocol):
    """Source of resource descriptors for the data source dispatcher.

    Live implementations talk to a cluster-management API; the engine only
    depends on this interface.
    """

    def get_nodes(self) -> Sequence[NodeDescriptor]:
        """Return every node in the cluster."""

    def get_pods(self, namespace: str | None = None) -> Sequence[PodDescriptor]:
        """Return pods, restricted to ``namespace`` when given."""

    def get_namespaces(self) -> Sequence[NamespaceDescriptor]:
        """Return every namespace in the cluster."""

    def get_pods_on_node(self, node_name: str) -> Sequence[PodDescriptor]:
        """Return pods scheduled to ``node_name``."""


class InMemoryResourceRepository:
    """Serve descriptors from an immutable in-memory snapshot.

    Namespaces referenced by pods but missing from the snapshot are
    synthesised with empty labels so namespace-scope queries still cover
    them.
    """

    def __init__(
        self,
        *,
        nodes: Iterable[NodeDescriptor] = (),
        pods: Iterable[PodDescriptor] = (),
        namespaces: Iterable[NamespaceDescriptor] = (),
    ) -> None:
        self._nodes = tuple(nodes)
        self._pods = tuple(pods)
        declared = {namespace.name: namespace for namespace in namespaces}
        for pod in self._pods:
            declared.setdefault(pod.namespace, NamespaceDescriptor(name=pod.namespace))
        self._namespaces = tuple(declared.values())

    @classmethod
    def from_snapshot(cls, data: Mapping[str, object]) -> InMemoryResourceRepository:
        """Build a repository from a ``{"nodes", "pods", "namespaces"}`` mapping.

        Args:
            data: Parsed snapshot. Each list entry may use the flat snapshot
                layout or the Kubernetes manifest layout.

        Returns:
            Repository serving the snapshot contents.

        Raises:
            ValueError: If an entry is not a mapping or carries an invalid
                resource quantity.
        """

        return cls(
            nodes=(NodeDescriptor.from_manifest(item) for item in _entries(data, "nodes")),
            pods=(PodDescriptor.from_manifest(item) for item in _entries(data, "pods")),
            namespaces=(
                NamespaceDescriptor.from_manifest(item)
                for item in _entries(data, "namespaces")
            ),
        )

    def get_nodes(self) -> Sequence[NodeDescriptor]:
        return self._nodes

    def get_pods(self, namespace: str | None = None) -> Sequence[PodDescriptor]:
        if not namespace:
            return self._pods
        return tuple(pod for pod in self._pods if pod.namespace == namespace)

    def get_namespaces(self) -> Sequence[NamespaceDescriptor]:
        return self._namespaces

    def get_pods_on_node(self, node_name: str) -> Sequence[PodDescriptor]:
        return tuple(pod for pod in self._pods if pod.node_name == node_name)


def load_snapshot(path: str | Path) -> InMemoryResourceRepository:
    """Load a JSON snapshot file into an :class:`InMemoryResourceRepository`.

    Raises:
        OSError: If the file cannot be read.
        ValueError: If the content is not a JSON object or holds invalid
            entries.
    """

    text = Path(path).read_text(encoding="utf-8")
    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError("Snapshot JSON must be an object at the top level.")
    repository = InMemoryResourceRepository.from_snapshot(data)
    LOGGER.debug(
        "Resource snapshot loaded",
        extra={
            "path": str(path),
            "nodes": len(repository.get_nodes()),
            "pods": len(repository.get_pods()),
        },
    )
    return repository


def _entries(data: Mapping[str, object], key: str) -> list[Mapping[str, object]]:
    raw = data.get(key) or []
    if not isinstance(raw, list):
        raise ValueError(f"Snapshot section '{key}' must be a list.")
    entries: list[Mapping[str, object]] = []
    for item in raw:
        if not isinstance(item, Mapping):
            raise ValueError(f"Snapshot section '{key}' holds a non-object entry.")
        entries.append(item)
    return entries
