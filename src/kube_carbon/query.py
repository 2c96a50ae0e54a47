"""Query payload model and parser.

Payloads use the camelCase JSON field names of the data source protocol::

    {
        "refId": "A",
        "queryType": "timeseries",
        "resourceType": "namespace",
        "aggregation": "sum",
        "groupBy": ["namespace"],
        "filters": {"namespace": "payments", "labels": {"team": "core"}},
        "timeRange": {"from": "2024-01-01T00:00:00Z", "to": "2024-01-01T01:00:00Z"}
    }

``queryType``, ``resourceType`` and ``aggregation`` are kept as plain text:
unknown values are handled where they are used, not rejected here.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from datetime import datetime
from typing import Any, Final

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
)

from kube_carbon.errors import QueryParseError

__all__ = [
    "AGGREGATIONS",
    "QUERY_TYPES",
    "Query",
    "TimeRange",
    "parse_query",
]

QUERY_TYPES: Final[tuple[str, ...]] = ("timeseries", "table", "single-value")
AGGREGATIONS: Final[tuple[str, ...]] = ("sum", "avg", "max", "min")


class TimeRange(BaseModel):
    """ISO-8601 ``from``/``to`` strings as supplied by the caller."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    start: str = Field(default="", alias="from")
    end: str = Field(default="", alias="to")

    def bounds(self) -> tuple[datetime | None, datetime | None]:
        """Parse the range into datetimes; empty strings map to ``None``.

        Raises:
            QueryParseError: If either bound is not an ISO-8601 timestamp.
        """

        return _parse_instant(self.start, "from"), _parse_instant(self.end, "to")


def _parse_instant(value: str, label: str) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError as exc:
        raise QueryParseError(f"timeRange.{label} is not ISO-8601: {value!r}") from exc


class Query(BaseModel):
    """Typed, immutable carbon query."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    ref_id: str = Field(default="", alias="refId")
    query_type: str = Field(default="timeseries", alias="queryType")
    resource_type: str = Field(default="", alias="resourceType")
    aggregation: str = Field(default="sum")
    group_by: tuple[str, ...] = Field(default=(), alias="groupBy")
    filters: dict[str, Any] = Field(default_factory=dict)
    time_range: TimeRange = Field(default_factory=TimeRange, alias="timeRange")

    @field_validator("group_by", "filters", "time_range", mode="before")
    @classmethod
    def _null_as_default(cls, value: object, info: ValidationInfo) -> object:
        """Treat JSON ``null`` like an omitted field."""

        if value is not None:
            return value
        field_name = info.field_name
        if field_name == "group_by":
            return ()
        if field_name == "filters":
            return {}
        return TimeRange()

    @property
    def namespace_filter(self) -> str | None:
        """The ``filters.namespace`` string, if set."""

        value = self.filters.get("namespace")
        if isinstance(value, str) and value:
            return value
        return None

    @property
    def label_filter(self) -> dict[str, str]:
        """The ``filters.labels`` map; non-string values are ignored."""

        value = self.filters.get("labels")
        if not isinstance(value, Mapping):
            return {}
        return {
            str(key): item for key, item in value.items() if isinstance(item, str)
        }


def parse_query(payload: str | bytes | Mapping[str, object]) -> Query:
    """Deserialise a query payload.

    Args:
        payload: JSON text (``str`` or ``bytes``) or an already decoded
            mapping.

    Returns:
        The parsed :class:`Query`.

    Raises:
        QueryParseError: If the payload is not valid JSON, is not a JSON
            object, carries fields of the wrong type, or has a time range
            bound that is not ISO-8601.
    """

    if isinstance(payload, (str, bytes)):
        try:
            data = json.loads(payload)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise QueryParseError(f"failed to parse query: {exc}") from exc
    else:
        data = payload

    if not isinstance(data, Mapping):
        raise QueryParseError("failed to parse query: payload must be a JSON object")

    try:
        query = Query.model_validate(dict(data))
    except ValidationError as exc:
        raise QueryParseError(f"failed to parse query: {exc}") from exc
    query.time_range.bounds()
    return query
