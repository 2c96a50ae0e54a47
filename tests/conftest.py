"""Pytest configuration and fixtures."""

from __future__ import annotations

import os
import sys
from collections.abc import Callable, Iterator
from datetime import datetime, timezone

import pytest

# Ensure src/ is on sys.path for tests so the src layout is used during test runs
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from kube_carbon.estimation import (  # noqa: E402
    CarbonCalculator,
    EnergyEstimator,
    GridIntensityResolver,
    InstanceSpecResolver,
)
from kube_carbon.estimation import defaults as estimation_defaults  # noqa: E402
from kube_carbon.instance_specs import (  # noqa: E402
    InstanceSpec,
    StaticInstanceSpecProvider,
)
from kube_carbon.intensity_provider import StaticIntensityProvider  # noqa: E402
from kube_carbon.resources import (  # noqa: E402
    ContainerDescriptor,
    NodeDescriptor,
    PodDescriptor,
)

FIXED_NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
GIB = 1024**3

_ENV_VARS = (
    "KUBE_CARBON_CONFIG_PATH",
    "KUBE_CARBON_DEFAULT_REGION",
    "KUBE_CARBON_PUE",
    "KUBE_CARBON_DEFAULT_GRID_INTENSITY",
    "KUBE_CARBON_ENABLE_NETWORK_ACCOUNTING",
    "KUBE_CARBON_ENABLE_STORAGE_ACCOUNTING",
    "KUBE_CARBON_INTENSITY_FILE",
    "KUBE_CARBON_INSTANCE_SPECS_FILE",
    "ELECTRICITYMAPS_TOKEN",
    "ELECTRICITYMAPS_API_KEY",
    "WATTTIME_USERNAME",
    "WATTTIME_PASSWORD",
)


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Clear kube-carbon environment variables and cached defaults."""

    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    estimation_defaults.load_carbon_intensity_mapping.cache_clear()
    estimation_defaults.load_pue_values.cache_clear()
    estimation_defaults.load_instance_spec_catalog.cache_clear()
    yield
    estimation_defaults.load_carbon_intensity_mapping.cache_clear()
    estimation_defaults.load_pue_values.cache_clear()
    estimation_defaults.load_instance_spec_catalog.cache_clear()


def make_pod(
    name: str = "web",
    *,
    namespace: str = "default",
    node_name: str | None = "node-a",
    cpu_millicores: float = 500.0,
    memory_bytes: float = float(GIB),
    labels: dict[str, str] | None = None,
    storage_bytes: float | None = None,
    network_bytes: float | None = None,
) -> PodDescriptor:
    """Build a single-container pod descriptor."""

    return PodDescriptor(
        name=name,
        namespace=namespace,
        node_name=node_name,
        labels=labels or {},
        containers=(
            ContainerDescriptor(
                name="main",
                cpu_request_millicores=cpu_millicores,
                memory_request_bytes=memory_bytes,
            ),
        ),
        storage_bytes=storage_bytes,
        network_bytes=network_bytes,
    )


def make_node(
    name: str = "node-a",
    *,
    instance_type: str | None = "test.small",
    cpu_capacity_millicores: float | None = 2000.0,
    labels: dict[str, str] | None = None,
) -> NodeDescriptor:
    """Build a node descriptor labelled with ``instance_type``."""

    node_labels = dict(labels or {})
    if instance_type is not None:
        node_labels.setdefault("node.kubernetes.io/instance-type", instance_type)
    return NodeDescriptor(
        name=name,
        labels=node_labels,
        cpu_capacity_millicores=cpu_capacity_millicores,
        memory_capacity_bytes=8.0 * GIB,
    )


TEST_CATALOG = {
    "test.small": InstanceSpec("test.small", vcpus=2, memory_gb=4.0, tdp_watts=100.0),
    "test.large": InstanceSpec("test.large", vcpus=8, memory_gb=32.0, tdp_watts=240.0),
}


CalculatorFactory = Callable[..., CarbonCalculator]


@pytest.fixture
def calculator_factory() -> CalculatorFactory:
    """Return a factory building calculators around a static test grid."""

    def _build(
        *,
        pue: float = 1.5,
        intensity: float = 500.0,
        regions: dict[str, float] | None = None,
        default_intensity: float | None = None,
        storage: bool = False,
        network: bool = False,
    ) -> CarbonCalculator:
        provider = StaticIntensityProvider(
            regions if regions is not None else {"global-average": intensity}
        )
        return CarbonCalculator(
            energy=EnergyEstimator(
                InstanceSpecResolver(StaticInstanceSpecProvider(TEST_CATALOG))
            ),
            grid=GridIntensityResolver(
                provider,
                default_intensity if default_intensity is not None else intensity,
            ),
            pue=pue,
            region="global-average",
            enable_storage_accounting=storage,
            enable_network_accounting=network,
            clock=lambda: FIXED_NOW,
        )

    return _build


@pytest.fixture
def calculator(calculator_factory: CalculatorFactory) -> CarbonCalculator:
    """Calculator with PUE 1.5 and a 500 gCO2/kWh grid."""

    return calculator_factory()
