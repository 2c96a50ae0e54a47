"""Reshape carbon metrics into column-oriented result frames.

Three shapes are produced, selected by ``Query.query_type``:

``timeseries``
    One row per metric, in input order: ``time``, ``co2_emissions``,
    ``energy_consumption``, ``grid_intensity``. Unknown query types use this
    shape.
``table``
    One row per metric: ``resource``, ``namespace``, ``co2_emissions``,
    ``energy_consumption``.
``single-value``
    A single ``value`` row reducing ``co2_grams`` with the query's
    aggregation; unknown aggregations reduce with ``sum``.

An empty metric list always yields an empty frame list.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Final

from kube_carbon.carbon_models import CarbonMetric
from kube_carbon.query import Query

LOGGER = logging.getLogger(__name__)

__all__ = [
    "FrameField",
    "FrameMeta",
    "ResultFrame",
    "aggregate",
    "format_metrics",
]

UNIT_CO2: Final[str] = "gCO2"
UNIT_ENERGY: Final[str] = "kWh"
UNIT_INTENSITY: Final[str] = "gCO2/kWh"

FRAME_TYPE_TIMESERIES: Final[str] = "timeseries-multi"
FRAME_TYPE_TABLE: Final[str] = "table"
FRAME_TYPE_SINGLE_VALUE: Final[str] = "single-value"


def _mean(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return sum(values) / len(values)


_AGGREGATORS: Final[dict[str, Callable[[Sequence[float]], float]]] = {
    "sum": lambda values: sum(values, 0.0),
    "avg": _mean,
    "max": lambda values: max(values, default=0.0),
    "min": lambda values: min(values, default=0.0),
}


def aggregate(values: Sequence[float], operation: str) -> float:
    """Reduce ``values`` with ``operation``; unknown operations use ``sum``."""

    reducer = _AGGREGATORS.get(operation)
    if reducer is None:
        LOGGER.debug("Unknown aggregation; using sum", extra={"aggregation": operation})
        reducer = _AGGREGATORS["sum"]
    return reducer(values)


@dataclass(frozen=True, slots=True)
class FrameField:
    """A named column of a result frame."""

    name: str
    values: tuple[object, ...]
    unit: str | None = None

    def to_dict(self) -> dict[str, object]:
        values = [
            value.isoformat() if isinstance(value, datetime) else value
            for value in self.values
        ]
        payload: dict[str, object] = {"name": self.name, "values": values}
        if self.unit is not None:
            payload["config"] = {"unit": self.unit}
        return payload


@dataclass(frozen=True, slots=True)
class FrameMeta:
    """Frame-level metadata.

    Attributes:
        frame_type: Shape tag of the frame.
        skipped_resources: Resources dropped while aggregating the metrics
            the frame was built from.
    """

    frame_type: str
    skipped_resources: int = 0

    def to_dict(self) -> dict[str, object]:
        return {"type": self.frame_type, "skippedResources": self.skipped_resources}


@dataclass(frozen=True, slots=True)
class ResultFrame:
    """Shape-tagged, column-oriented result for one query."""

    ref_id: str
    fields: tuple[FrameField, ...]
    meta: FrameMeta

    @property
    def row_count(self) -> int:
        return len(self.fields[0].values) if self.fields else 0

    def field(self, name: str) -> FrameField:
        """Return the column called ``name``.

        Raises:
            KeyError: If the frame has no such column.
        """

        for candidate in self.fields:
            if candidate.name == name:
                return candidate
        raise KeyError(name)

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-ready representation of the frame."""

        return {
            "refId": self.ref_id,
            "fields": [item.to_dict() for item in self.fields],
            "meta": self.meta.to_dict(),
        }


def format_metrics(metrics: Sequence[CarbonMetric], query: Query) -> list[ResultFrame]:
    """Convert ``metrics`` into result frames shaped by ``query``."""

    if not metrics:
        return []
    meta_skipped = sum(metric.skipped_resources for metric in metrics)
    if query.query_type == "table":
        return [_table_frame(metrics, query, meta_skipped)]
    if query.query_type == "single-value":
        return [_single_value_frame(metrics, query, meta_skipped)]
    if query.query_type != "timeseries":
        LOGGER.debug(
            "Unknown query type; formatting as timeseries",
            extra={"query_type": query.query_type, "ref_id": query.ref_id},
        )
    return [_timeseries_frame(metrics, query, meta_skipped)]


def _timeseries_frame(
    metrics: Sequence[CarbonMetric], query: Query, skipped: int
) -> ResultFrame:
    return ResultFrame(
        ref_id=query.ref_id,
        fields=(
            FrameField("time", tuple(metric.timestamp for metric in metrics)),
            FrameField(
                "co2_emissions", tuple(metric.co2_grams for metric in metrics), UNIT_CO2
            ),
            FrameField(
                "energy_consumption",
                tuple(metric.energy_kwh for metric in metrics),
                UNIT_ENERGY,
            ),
            FrameField(
                "grid_intensity",
                tuple(metric.grid_intensity for metric in metrics),
                UNIT_INTENSITY,
            ),
        ),
        meta=FrameMeta(FRAME_TYPE_TIMESERIES, skipped),
    )


def _table_frame(
    metrics: Sequence[CarbonMetric], query: Query, skipped: int
) -> ResultFrame:
    return ResultFrame(
        ref_id=query.ref_id,
        fields=(
            FrameField("resource", tuple(metric.scope_name for metric in metrics)),
            FrameField("namespace", tuple(metric.namespace or "" for metric in metrics)),
            FrameField(
                "co2_emissions", tuple(metric.co2_grams for metric in metrics), UNIT_CO2
            ),
            FrameField(
                "energy_consumption",
                tuple(metric.energy_kwh for metric in metrics),
                UNIT_ENERGY,
            ),
        ),
        meta=FrameMeta(FRAME_TYPE_TABLE, skipped),
    )


def _single_value_frame(
    metrics: Sequence[CarbonMetric], query: Query, skipped: int
) -> ResultFrame:
    value = aggregate([metric.co2_grams for metric in metrics], query.aggregation)
    return ResultFrame(
        ref_id=query.ref_id,
        fields=(FrameField("value", (value,), UNIT_CO2),),
        meta=FrameMeta(FRAME_TYPE_SINGLE_VALUE, skipped),
    )
