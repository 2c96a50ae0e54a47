"""Kubernetes resource quantities ("500m", "1Gi", "2") in base units."""

from __future__ import annotations

import math
from decimal import Decimal

from kubernetes.utils import parse_quantity as _k8s_parse_quantity

__all__ = ["parse_cpu_millicores", "parse_memory_bytes", "parse_quantity"]


def parse_quantity(value: str | int | float) -> Decimal:
    """Parse a Kubernetes quantity into its base-unit value.

    Suffix handling is delegated to :func:`kubernetes.utils.parse_quantity`.

    Args:
        value: Quantity string such as ``"250m"`` or ``"1.5Gi"``, or a bare
            number already expressed in base units.

    Returns:
        Exact decimal value in base units (cores for CPU, bytes for memory).

    Raises:
        ValueError: If the quantity is malformed, uses an unknown suffix or
            is not finite.
    """

    if isinstance(value, bool):
        raise ValueError(f"invalid quantity: {value!r}")
    if isinstance(value, float):
        # str() keeps 0.1 as 0.1 instead of its binary expansion
        value = str(value)
    parsed = _k8s_parse_quantity(value.strip() if isinstance(value, str) else value)
    if not parsed.is_finite():
        raise ValueError(f"invalid quantity: {value!r}")
    return parsed


def parse_cpu_millicores(value: str | int | float) -> int:
    """Return a CPU quantity in millicores, rounding fractions up."""

    return int(math.ceil(parse_quantity(value) * 1000))


def parse_memory_bytes(value: str | int | float) -> int:
    """Return a memory quantity in bytes, rounding fractions up."""

    return int(math.ceil(parse_quantity(value)))
