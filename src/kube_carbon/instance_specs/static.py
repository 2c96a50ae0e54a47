"""Catalog-backed instance spec provider."""

from __future__ import annotations

import logging
from collections.abc import Mapping

from kube_carbon.instance_specs.base import InstanceSpec, InstanceSpecProvider

LOGGER = logging.getLogger(__name__)


class StaticInstanceSpecProvider(InstanceSpecProvider):
    """Serve specs from an immutable in-memory catalog."""

    def __init__(self, catalog: Mapping[str, InstanceSpec]) -> None:
        self._catalog = dict(catalog)

    @classmethod
    def from_mapping(
        cls, data: Mapping[str, Mapping[str, object]]
    ) -> StaticInstanceSpecProvider:
        """Build a provider from ``{type: {"vcpus", "memory_gb", "tdp_watts"}}``.

        Entries with missing or invalid fields are skipped with a warning.
        """

        catalog: dict[str, InstanceSpec] = {}
        for instance_type, entry in data.items():
            try:
                catalog[instance_type] = InstanceSpec(
                    instance_type=instance_type,
                    vcpus=int(entry["vcpus"]),  # type: ignore[call-overload]
                    memory_gb=float(entry["memory_gb"]),  # type: ignore[arg-type]
                    tdp_watts=float(entry["tdp_watts"]),  # type: ignore[arg-type]
                )
            except (KeyError, TypeError, ValueError) as exc:
                LOGGER.warning(
                    "Skipping invalid instance spec entry",
                    extra={"instance_type": instance_type, "error": str(exc)},
                )
        return cls(catalog)

    @property
    def instance_types(self) -> tuple[str, ...]:
        """Known instance type identifiers."""

        return tuple(self._catalog)

    def get_spec(self, instance_type: str) -> InstanceSpec | None:
        return self._catalog.get(instance_type)
