"""Exception hierarchy for :mod:`kube_carbon`."""

from __future__ import annotations

__all__ = [
    "KubeCarbonError",
    "LookupCancelledError",
    "PodNotScheduledError",
    "QueryParseError",
    "UnknownResourceTypeError",
]


class KubeCarbonError(Exception):
    """Base class for every error raised by the estimation engine."""


class QueryParseError(KubeCarbonError, ValueError):
    """Raised when a query payload cannot be deserialised."""


class UnknownResourceTypeError(KubeCarbonError):
    """Raised when a query targets a scope the engine does not know."""

    def __init__(self, resource_type: str) -> None:
        super().__init__(f"unknown resource type: {resource_type}")
        self.resource_type = resource_type


class PodNotScheduledError(KubeCarbonError):
    """Raised when a pod has no node assignment to estimate against."""

    def __init__(self, namespace: str, name: str) -> None:
        super().__init__(f"pod {namespace}/{name} is not scheduled to a node")
        self.namespace = namespace
        self.name = name


class LookupCancelledError(KubeCarbonError):
    """Raised when a request context was cancelled or its deadline passed."""
