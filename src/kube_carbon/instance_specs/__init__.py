"""Instance spec providers."""

from __future__ import annotations

from kube_carbon.instance_specs.base import (
    InstanceSpec,
    InstanceSpecProvider,
    fallback_spec,
)
from kube_carbon.instance_specs.static import StaticInstanceSpecProvider

__all__ = [
    "InstanceSpec",
    "InstanceSpecProvider",
    "StaticInstanceSpecProvider",
    "fallback_spec",
]
