"""kube-carbon - carbon footprint estimation for Kubernetes resources."""

from __future__ import annotations

from importlib import import_module
from typing import Any, TYPE_CHECKING

__all__ = [
    "CarbonCalculator",
    "CarbonDataSource",
    "CarbonMetric",
    "InMemoryResourceRepository",
    "Query",
    "RequestContext",
    "ResultFrame",
    "format_metrics",
    "load_config",
    "parse_query",
]

if TYPE_CHECKING:
    from .carbon_models import CarbonMetric
    from .config_loader import load_config
    from .context import RequestContext
    from .datasource import CarbonDataSource
    from .estimation import CarbonCalculator
    from .formatting import ResultFrame, format_metrics
    from .query import Query, parse_query
    from .resources import InMemoryResourceRepository

_MODULE_MAP: dict[str, str] = {
    "CarbonCalculator": "estimation",
    "CarbonDataSource": "datasource",
    "CarbonMetric": "carbon_models",
    "InMemoryResourceRepository": "resources",
    "Query": "query",
    "RequestContext": "context",
    "ResultFrame": "formatting",
    "format_metrics": "formatting",
    "load_config": "config_loader",
    "parse_query": "query",
}


def __getattr__(name: str) -> Any:
    """Lazily import public names so ``import kube_carbon`` stays cheap."""

    if name not in _MODULE_MAP:
        raise AttributeError(name)

    module = import_module(f".{_MODULE_MAP[name]}", __name__)
    return getattr(module, name)
