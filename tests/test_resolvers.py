"""Tests for the grid intensity and instance spec resolvers."""

from __future__ import annotations

from datetime import datetime

import httpx
import pytest

from kube_carbon.context import RequestContext
from kube_carbon.errors import LookupCancelledError
from kube_carbon.estimation import GridIntensityResolver, InstanceSpecResolver
from kube_carbon.instance_specs import (
    InstanceSpec,
    InstanceSpecProvider,
    StaticInstanceSpecProvider,
    fallback_spec,
)
from kube_carbon.intensity_provider import (
    IntensityProvider,
    IntensityReading,
    StaticIntensityProvider,
)


class _ExplodingProvider(IntensityProvider):
    def __init__(self, exc: Exception) -> None:
        super().__init__(ttl_seconds=0)
        self._exc = exc
        self.calls = 0

    def _get_reading_uncached(
        self, timestamp: datetime | None, region: str
    ) -> IntensityReading | None:
        self.calls += 1
        raise self._exc


class _BrokenCatalog(InstanceSpecProvider):
    def __init__(self, exc: Exception) -> None:
        self._exc = exc

    def get_spec(self, instance_type: str) -> InstanceSpec | None:
        raise self._exc


def test_grid_resolver_returns_provider_value() -> None:
    resolver = GridIntensityResolver(StaticIntensityProvider({"eu-west": 300.0}), 475.0)
    result = resolver.resolve(RequestContext(), "eu-west")
    assert result.value == 300.0
    assert not result.degraded


def test_grid_resolver_falls_back_for_unknown_region() -> None:
    resolver = GridIntensityResolver(StaticIntensityProvider({"eu-west": 300.0}), 475.0)
    result = resolver.resolve(RequestContext(), "mars-north")
    assert result.value == 475.0
    assert result.degraded
    assert "mars-north" in (result.fallback_reason or "")


@pytest.mark.parametrize(
    "exc",
    [
        ConnectionError("down"),
        ValueError("bad payload"),
        httpx.ConnectError("refused"),
        RuntimeError("upstream client bug"),
        KeyError("us-east"),
    ],
)
def test_grid_resolver_never_raises(exc: Exception) -> None:
    resolver = GridIntensityResolver(_ExplodingProvider(exc), 410.0)
    result = resolver.resolve(RequestContext(), "us-east")
    assert result.value == 410.0
    assert result.degraded
    assert "us-east" in (result.fallback_reason or "")


def test_grid_resolver_without_provider_uses_default() -> None:
    result = GridIntensityResolver(None, 200.0).resolve(RequestContext(), "any")
    assert result.value == 200.0
    assert result.fallback_reason == "no intensity provider configured"


def test_cancelled_context_degrades_to_default() -> None:
    provider = _ExplodingProvider(RuntimeError("must not be called"))
    ctx = RequestContext()
    ctx.cancel()

    result = GridIntensityResolver(provider, 475.0).resolve(ctx, "us-east")

    assert result.value == 475.0
    assert "cancelled" in (result.fallback_reason or "")
    assert provider.calls == 0


def test_expired_deadline_counts_as_cancelled() -> None:
    ctx = RequestContext.with_timeout(-1.0)
    assert ctx.cancelled
    with pytest.raises(LookupCancelledError):
        ctx.raise_if_cancelled()


@pytest.mark.parametrize("value", [-1.0, float("nan"), float("inf")])
def test_invalid_default_intensity_is_rejected(value: float) -> None:
    with pytest.raises(ValueError):
        GridIntensityResolver(None, value)


def test_instance_resolver_known_type() -> None:
    spec = InstanceSpec("m5.large", vcpus=2, memory_gb=8.0, tdp_watts=90.0)
    resolver = InstanceSpecResolver(StaticInstanceSpecProvider({"m5.large": spec}))
    result = resolver.resolve("m5.large")
    assert result.value is spec
    assert not result.degraded


def test_instance_resolver_unknown_type_uses_fallback() -> None:
    resolver = InstanceSpecResolver(StaticInstanceSpecProvider({}))
    result = resolver.resolve("z9.huge")
    assert result.value == fallback_spec("z9.huge")
    assert result.value.vcpus == 2
    assert result.value.memory_gb == 4.0
    assert result.value.tdp_watts == 100.0
    assert result.value.instance_type == "z9.huge"
    assert result.degraded


@pytest.mark.parametrize(
    "exc",
    [ValueError("catalog unavailable"), KeyError("m5.large"), RuntimeError("catalog unavailable")],
)
def test_instance_resolver_swallows_provider_errors(exc: Exception) -> None:
    result = InstanceSpecResolver(_BrokenCatalog(exc)).resolve("m5.large")
    assert result.value == fallback_spec("m5.large")
    assert result.value.tdp_watts == 100.0
    assert "m5.large" in (result.fallback_reason or "")


def test_static_catalog_skips_invalid_entries() -> None:
    provider = StaticInstanceSpecProvider.from_mapping(
        {
            "good": {"vcpus": 4, "memory_gb": 16, "tdp_watts": 150},
            "missing": {"vcpus": 4},
            "zero": {"vcpus": 0, "memory_gb": 1, "tdp_watts": 10},
        }
    )
    assert provider.instance_types == ("good",)
    assert provider.get_spec("good") == InstanceSpec("good", 4, 16.0, 150.0)
