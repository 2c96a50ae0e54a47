"""Tests for scope-level carbon calculation."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime

import pytest

from conftest import FIXED_NOW, GIB, TEST_CATALOG, CalculatorFactory, make_node, make_pod
from kube_carbon.carbon_models import CarbonMetric
from kube_carbon.context import RequestContext
from kube_carbon.errors import PodNotScheduledError
from kube_carbon.estimation import (
    CarbonCalculator,
    EnergyEstimator,
    GridIntensityResolver,
    InstanceSpecResolver,
)
from kube_carbon.instance_specs import StaticInstanceSpecProvider
from kube_carbon.intensity_provider import IntensityProvider, IntensityReading
from kube_carbon.resources import NamespaceDescriptor, NodeDescriptor


def _assert_mass_identity(metric: CarbonMetric) -> None:
    assert metric.co2_grams == metric.energy_kwh * metric.grid_intensity


def test_pod_end_to_end(calculator: CarbonCalculator) -> None:
    pod = make_pod(cpu_millicores=500, memory_bytes=GIB, labels={"app": "web"})

    metric = calculator.calculate_pod(RequestContext(), pod)

    assert metric.energy_kwh == pytest.approx(0.0024375)
    assert metric.co2_grams == pytest.approx(1.21875)
    assert metric.grid_intensity == 500.0
    assert metric.scope_kind == "pod"
    assert metric.scope_name == "web"
    assert metric.namespace == "default"
    assert metric.node_name == "node-a"
    assert metric.timestamp == FIXED_NOW
    assert metric.source == "calculated"
    assert dict(metric.labels) == {"app": "web"}
    assert metric.cpu_usage == 500
    assert metric.memory_usage == GIB
    _assert_mass_identity(metric)


def test_node_end_to_end(calculator: CarbonCalculator) -> None:
    node = make_node(
        labels={"topology.kubernetes.io/zone": "zone-1"}, cpu_capacity_millicores=2000
    )
    pods = [make_pod(cpu_millicores=500)]

    metric = calculator.calculate_node(RequestContext(), node, pods)

    assert metric.energy_kwh == pytest.approx(0.07125)
    assert metric.co2_grams == pytest.approx(35.625)
    assert dict(metric.labels) == {"instance-type": "test.small", "zone": "zone-1"}
    assert metric.node_name == "node-a"
    assert metric.source == "calculated"
    _assert_mass_identity(metric)


def test_node_labels_prefer_beta_instance_type(calculator: CarbonCalculator) -> None:
    node = NodeDescriptor(
        name="node-a",
        labels={
            "beta.kubernetes.io/instance-type": "test.large",
            "node.kubernetes.io/instance-type": "test.small",
        },
        cpu_capacity_millicores=8000,
    )
    metric = calculator.calculate_node(RequestContext(), node, [])
    assert metric.labels["instance-type"] == "test.large"
    assert metric.labels["zone"] == ""
    # idle floor of the 240 W spec
    assert metric.energy_kwh == pytest.approx(0.3 * 240 / 1000 * 1.5)


def test_node_uses_topology_region(calculator_factory: CalculatorFactory) -> None:
    calculator = calculator_factory(
        regions={"global-average": 500.0, "eu-north": 50.0}
    )
    node = make_node(labels={"topology.kubernetes.io/region": "eu-north"})
    metric = calculator.calculate_node(RequestContext(), node, [])
    assert metric.grid_intensity == 50.0


def test_node_with_unknown_instance_type_is_estimated(
    calculator: CarbonCalculator,
) -> None:
    metric = calculator.calculate_node(RequestContext(), make_node(instance_type="x9"), [])
    assert metric.source == "estimated"
    assert any("x9" in reason for reason in metric.fallback_reasons)


def test_unscheduled_pod_propagates(calculator: CarbonCalculator) -> None:
    with pytest.raises(PodNotScheduledError):
        calculator.calculate_pod(RequestContext(), make_pod(node_name=None))


def test_cluster_sums_nodes(calculator: CarbonCalculator) -> None:
    nodes = [make_node("node-a"), make_node("node-b")]
    pods = [make_pod("a", node_name="node-a", cpu_millicores=500)]

    metric = calculator.calculate_cluster(RequestContext(), nodes, pods)

    # node-a at 25 % utilisation, node-b idle
    expected = (47.5 + 30.0) / 1000 * 1.5
    assert metric.energy_kwh == pytest.approx(expected)
    assert metric.scope_kind == "cluster"
    assert metric.scope_name == "cluster"
    assert metric.skipped_resources == 0
    _assert_mass_identity(metric)


@pytest.mark.parametrize(
    "error", [ValueError("label lookup failed"), KeyError("instance-type")]
)
def test_cluster_skips_failing_nodes(
    calculator: CarbonCalculator, caplog: pytest.LogCaptureFixture, error: Exception
) -> None:
    class _BrokenNode(NodeDescriptor):
        @property
        def instance_type(self) -> str:
            raise error

    nodes = [make_node("node-a"), _BrokenNode(name="node-b")]

    with caplog.at_level(logging.WARNING, logger="kube_carbon.estimation.calculator"):
        metric = calculator.calculate_cluster(RequestContext(), nodes, [])

    assert metric.skipped_resources == 1
    assert metric.energy_kwh == pytest.approx(30.0 / 1000 * 1.5)
    assert "Skipping resource in aggregate" in caplog.text


def test_namespace_skips_unscheduled_pods(calculator: CarbonCalculator) -> None:
    namespace = NamespaceDescriptor(name="jobs", labels={"team": "data"})
    pods = [
        make_pod("ok", namespace="jobs", cpu_millicores=1000, memory_bytes=0),
        make_pod("pending", namespace="jobs", node_name=None),
        make_pod("other", namespace="web", cpu_millicores=4000),
    ]

    metric = calculator.calculate_namespace(RequestContext(), namespace, pods)

    assert metric.energy_kwh == pytest.approx(2.5 / 1000 * 1.5)
    assert metric.skipped_resources == 1
    assert metric.namespace == "jobs"
    assert dict(metric.labels) == {"team": "data"}
    assert metric.cpu_usage == 1000 + 500


def test_empty_namespace_yields_zero_metric(calculator: CarbonCalculator) -> None:
    metric = calculator.calculate_namespace(
        RequestContext(), NamespaceDescriptor(name="empty"), []
    )
    assert metric.energy_kwh == 0.0
    assert metric.co2_grams == 0.0
    assert metric.cpu_usage is None


@pytest.mark.parametrize("pue", [1.0, 1.2, 1.5, 2.0])
def test_pue_scales_energy_linearly(
    calculator_factory: CalculatorFactory, pue: float
) -> None:
    pod = make_pod(cpu_millicores=750, memory_bytes=3 * GIB)
    baseline = calculator_factory(pue=1.0).calculate_pod(RequestContext(), pod)
    scaled = calculator_factory(pue=pue).calculate_pod(RequestContext(), pod)
    assert scaled.energy_kwh == pytest.approx(pue * baseline.energy_kwh)


def test_higher_cpu_pod_emits_more(calculator: CarbonCalculator) -> None:
    ctx = RequestContext()
    low = calculator.calculate_pod(ctx, make_pod(cpu_millicores=250))
    high = calculator.calculate_pod(ctx, make_pod(cpu_millicores=1250))
    assert high.energy_kwh > low.energy_kwh
    assert high.co2_grams > low.co2_grams


def test_cancelled_context_still_produces_metric(calculator: CarbonCalculator) -> None:
    ctx = RequestContext()
    ctx.cancel()
    metric = calculator.calculate_pod(ctx, make_pod())
    assert metric.grid_intensity == 500.0
    assert metric.source == "estimated"
    assert any("cancelled" in reason for reason in metric.fallback_reasons)


def test_accounting_toggles_control_usage_fields(
    calculator_factory: CalculatorFactory,
) -> None:
    pod = make_pod(storage_bytes=10 * GIB, network_bytes=2 * GIB)

    hidden = calculator_factory().calculate_pod(RequestContext(), pod)
    shown = calculator_factory(storage=True, network=True).calculate_pod(
        RequestContext(), pod
    )

    assert hidden.storage_usage is None
    assert hidden.network_traffic is None
    assert shown.storage_usage == 10 * GIB
    assert shown.network_traffic == 2 * GIB
    assert shown.energy_kwh == hidden.energy_kwh


@pytest.mark.parametrize("pue", [0.0, -1.0, float("nan"), float("inf")])
def test_invalid_pue_is_rejected(
    calculator_factory: CalculatorFactory, pue: float
) -> None:
    with pytest.raises(ValueError):
        calculator_factory(pue=pue)


def test_concurrent_pod_calculations_are_independent(
    calculator: CarbonCalculator,
) -> None:
    pod = make_pod(cpu_millicores=500, memory_bytes=GIB)
    ctx = RequestContext()

    with ThreadPoolExecutor(max_workers=16) as executor:
        metrics = list(
            executor.map(lambda _: calculator.calculate_pod(ctx, pod), range(200))
        )

    assert len(metrics) == 200
    for metric in metrics:
        assert metric.energy_kwh == pytest.approx(0.0024375)
        assert metric.co2_grams == pytest.approx(1.21875)
    assert len({id(metric) for metric in metrics}) == 200


def test_metric_to_dict_uses_wire_names(calculator: CarbonCalculator) -> None:
    payload = calculator.calculate_pod(RequestContext(), make_pod()).to_dict()
    assert payload["resourceType"] == "pod"
    assert payload["co2Emissions"] == pytest.approx(1.21875)
    assert payload["timestamp"] == FIXED_NOW.isoformat()
    assert payload["fallbackReasons"] == []


class _FaultyIntensityProvider(IntensityProvider):
    def _get_reading_uncached(
        self, timestamp: datetime | None, region: str
    ) -> IntensityReading | None:
        raise RuntimeError("upstream client bug")


def test_misbehaving_intensity_provider_degrades_to_default() -> None:
    calculator = CarbonCalculator(
        energy=EnergyEstimator(
            InstanceSpecResolver(StaticInstanceSpecProvider(TEST_CATALOG))
        ),
        grid=GridIntensityResolver(_FaultyIntensityProvider(ttl_seconds=0), 500.0),
        pue=1.5,
        clock=lambda: FIXED_NOW,
    )

    metric = calculator.calculate_pod(RequestContext(), make_pod())
    cluster = calculator.calculate_cluster(RequestContext(), [make_node()], [make_pod()])

    assert metric.grid_intensity == 500.0
    assert metric.co2_grams == pytest.approx(1.21875)
    assert metric.source == "estimated"
    assert any("upstream client bug" in reason for reason in metric.fallback_reasons)
    assert cluster.grid_intensity == 500.0
    assert cluster.skipped_resources == 0
