"""Query dispatch for the carbon data source.

:class:`CarbonDataSource` routes parsed queries to the collector of their
resource type, fetches descriptors through a
:class:`~kube_carbon.resources.ResourceRepository` and formats the resulting
metrics into frames. Failures never escape :meth:`CarbonDataSource.query`;
they are reported on the returned :class:`DataResponse`.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Literal

from kube_carbon.carbon_models import CarbonMetric
from kube_carbon.context import RequestContext
from kube_carbon.errors import KubeCarbonError, UnknownResourceTypeError
from kube_carbon.estimation import CarbonCalculator
from kube_carbon.formatting import ResultFrame, format_metrics
from kube_carbon.query import Query, parse_query
from kube_carbon.resources import PodDescriptor, ResourceRepository

LOGGER = logging.getLogger(__name__)

__all__ = ["CarbonDataSource", "DataResponse", "HealthCheckResult", "QueryPayload"]

QueryPayload = str | bytes | Mapping[str, object]
HealthStatus = Literal["ok", "error"]

@dataclass(frozen=True, slots=True)
class DataResponse:
    """Frames produced for one query, or the error that prevented them."""

    ref_id: str
    frames: tuple[ResultFrame, ...] = ()
    error: str | None = None
    error_type: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "refId": self.ref_id,
            "frames": [frame.to_dict() for frame in self.frames],
        }
        if self.error is not None:
            payload["error"] = self.error
            payload["errorType"] = self.error_type
        return payload


@dataclass(frozen=True, slots=True)
class HealthCheckResult:
    status: HealthStatus
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"status": self.status, "message": self.message}


def _matches_labels(pod: PodDescriptor, selector: Mapping[str, str]) -> bool:
    return all(pod.labels.get(key) == value for key, value in selector.items())


def _ref_id_of(payload: QueryPayload) -> str:
    if isinstance(payload, Mapping):
        candidate = payload.get("refId")
        if isinstance(candidate, str):
            return candidate
    return ""


class CarbonDataSource:
    """Answer carbon queries against a resource repository.

    Args:
        repository: Source of node, pod and namespace descriptors.
        calculator: Calculator producing one metric per scope.
    """

    def __init__(
        self, repository: ResourceRepository, calculator: CarbonCalculator
    ) -> None:
        self._repository = repository
        self._calculator = calculator
        self._collectors: dict[
            str, Callable[[Query, RequestContext], list[CarbonMetric]]
        ] = {
            "cluster": self._collect_cluster,
            "namespace": self._collect_namespaces,
            "node": self._collect_nodes,
            "pod": self._collect_pods,
        }

    def query(
        self, payload: QueryPayload, ctx: RequestContext | None = None
    ) -> DataResponse:
        """Parse, dispatch and format a single query."""

        context = ctx or RequestContext()
        try:
            query = parse_query(payload)
        except KubeCarbonError as exc:
            LOGGER.warning("Rejected query payload", extra={"error": str(exc)})
            return DataResponse(
                ref_id=_ref_id_of(payload), error=str(exc), error_type=type(exc).__name__
            )

        try:
            metrics = self.collect_metrics(query, context)
            frames = format_metrics(metrics, query)
        except KubeCarbonError as exc:
            LOGGER.warning(
                "Query failed",
                extra={
                    "ref_id": query.ref_id,
                    "resource_type": query.resource_type,
                    "error": str(exc),
                },
            )
            return DataResponse(
                ref_id=query.ref_id, error=str(exc), error_type=type(exc).__name__
            )
        except Exception as exc:
            LOGGER.error(
                "Query failed unexpectedly",
                extra={"ref_id": query.ref_id, "resource_type": query.resource_type},
                exc_info=exc,
            )
            return DataResponse(
                ref_id=query.ref_id, error=str(exc), error_type=type(exc).__name__
            )

        LOGGER.info(
            "Query served",
            extra={
                "ref_id": query.ref_id,
                "resource_type": query.resource_type,
                "query_type": query.query_type,
                "metrics": len(metrics),
            },
        )
        return DataResponse(ref_id=query.ref_id, frames=tuple(frames))

    def query_data(
        self,
        payloads: Iterable[QueryPayload],
        ctx: RequestContext | None = None,
        max_workers: int | None = None,
    ) -> dict[str, DataResponse]:
        """Answer a batch of queries concurrently, keyed by ``refId``.

        Queries sharing a ``refId`` overwrite each other in input order.
        """

        context = ctx or RequestContext()
        batch = list(payloads)
        if not batch:
            return {}
        with ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="kube-carbon-query"
        ) as executor:
            responses = list(
                executor.map(lambda payload: self.query(payload, context), batch)
            )
        return {response.ref_id: response for response in responses}

    def collect_metrics(self, query: Query, ctx: RequestContext) -> list[CarbonMetric]:
        """Return the metrics for ``query`` before formatting.

        Raises:
            UnknownResourceTypeError: If ``query.resource_type`` has no
                collector.
        """

        collector = self._collectors.get(query.resource_type)
        if collector is None:
            raise UnknownResourceTypeError(query.resource_type)
        return collector(query, ctx)

    def check_health(self) -> HealthCheckResult:
        """Probe the repository."""

        try:
            nodes = self._repository.get_nodes()
            self._repository.get_namespaces()
        except Exception as exc:
            LOGGER.warning("Health check failed", extra={"error": str(exc)})
            return HealthCheckResult(
                "error", f"Failed to query resource repository: {exc}"
            )
        LOGGER.info("Health check passed", extra={"nodes": len(nodes)})
        return HealthCheckResult("ok", "Data source is working")

    def _collect_cluster(self, query: Query, ctx: RequestContext) -> list[CarbonMetric]:
        _ = query
        nodes = self._repository.get_nodes()
        pods = self._repository.get_pods(None)
        return [self._calculator.calculate_cluster(ctx, nodes, pods)]

    def _collect_namespaces(
        self, query: Query, ctx: RequestContext
    ) -> list[CarbonMetric]:
        wanted = query.namespace_filter
        metrics: list[CarbonMetric] = []
        for namespace in self._repository.get_namespaces():
            if wanted is not None and namespace.name != wanted:
                continue
            try:
                pods = self._repository.get_pods(namespace.name)
                metrics.append(self._calculator.calculate_namespace(ctx, namespace, pods))
            except Exception as exc:
                self._log_skip("namespace", namespace.name, exc)
        return metrics

    def _collect_nodes(self, query: Query, ctx: RequestContext) -> list[CarbonMetric]:
        _ = query
        metrics: list[CarbonMetric] = []
        for node in self._repository.get_nodes():
            try:
                pods = self._repository.get_pods_on_node(node.name)
                metrics.append(self._calculator.calculate_node(ctx, node, pods))
            except Exception as exc:
                self._log_skip("node", node.name, exc)
        return metrics

    def _collect_pods(self, query: Query, ctx: RequestContext) -> list[CarbonMetric]:
        selector = query.label_filter
        pods: Sequence[PodDescriptor] = self._repository.get_pods(query.namespace_filter)
        metrics: list[CarbonMetric] = []
        for pod in pods:
            if selector and not _matches_labels(pod, selector):
                continue
            try:
                metrics.append(self._calculator.calculate_pod(ctx, pod))
            except Exception as exc:
                self._log_skip("pod", f"{pod.namespace}/{pod.name}", exc)
        return metrics

    @staticmethod
    def _log_skip(kind: str, resource: str, exc: Exception) -> None:
        LOGGER.warning(
            "Skipping resource",
            extra={
                "resource_kind": kind,
                "resource": resource,
                "error_type": type(exc).__name__,
                "error": str(exc),
            },
        )
