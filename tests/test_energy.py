"""Tests for the pod and node energy models."""

from __future__ import annotations

import pytest
from hypothesis import given, strategies as st

from conftest import GIB, TEST_CATALOG, make_node, make_pod
from kube_carbon.errors import PodNotScheduledError
from kube_carbon.estimation import EnergyEstimator, InstanceSpecResolver
from kube_carbon.instance_specs import StaticInstanceSpecProvider
from kube_carbon.resources import ContainerDescriptor, PodDescriptor


@pytest.fixture
def estimator() -> EnergyEstimator:
    return EnergyEstimator(InstanceSpecResolver(StaticInstanceSpecProvider(TEST_CATALOG)))


def test_pod_watts_sums_containers() -> None:
    pod = PodDescriptor(
        name="multi",
        node_name="node-a",
        containers=(
            ContainerDescriptor(cpu_request_millicores=1000, memory_request_bytes=GIB),
            ContainerDescriptor(cpu_request_millicores=500),
        ),
    )
    assert EnergyEstimator.pod_watts(pod) == pytest.approx(2.5 + 0.375 + 1.25)


def test_pod_energy_is_one_hour_in_kwh(estimator: EnergyEstimator) -> None:
    pod = make_pod(cpu_millicores=500, memory_bytes=GIB)
    assert estimator.pod_energy_kwh(pod) == pytest.approx(0.001625)


def test_unscheduled_pod_raises(estimator: EnergyEstimator) -> None:
    pod = make_pod("lonely", namespace="jobs", node_name=None)
    with pytest.raises(PodNotScheduledError, match="jobs/lonely"):
        estimator.pod_energy_kwh(pod)


def test_node_idle_floor(estimator: EnergyEstimator) -> None:
    result = estimator.node_energy(make_node(), [])
    assert result.utilization == 0.0
    assert result.watts == pytest.approx(30.0)
    assert result.energy_kwh == pytest.approx(0.03)


def test_node_utilization_is_clamped(estimator: EnergyEstimator) -> None:
    pods = [make_pod(f"p{i}", cpu_millicores=1500) for i in range(3)]
    result = estimator.node_energy(make_node(), pods)
    assert result.utilization == 1.0
    assert result.watts == pytest.approx(100.0)


def test_node_ignores_pods_scheduled_elsewhere(estimator: EnergyEstimator) -> None:
    pods = [make_pod("here", cpu_millicores=500), make_pod("away", node_name="node-z")]
    result = estimator.node_energy(make_node(), pods)
    assert result.cpu_requested_millicores == 500
    assert result.utilization == pytest.approx(0.25)
    assert result.watts == pytest.approx(47.5)


def test_node_without_capacity_uses_spec_vcpus(estimator: EnergyEstimator) -> None:
    node = make_node(instance_type="test.large", cpu_capacity_millicores=None)
    result = estimator.node_energy(node, [make_pod(cpu_millicores=4000)])
    assert result.utilization == pytest.approx(0.5)
    assert result.watts == pytest.approx(240.0 * 0.65)


def test_unknown_instance_type_uses_fallback_tdp(estimator: EnergyEstimator) -> None:
    node = make_node(instance_type=None)
    result = estimator.node_energy(node, [])
    assert result.spec.tdp_watts == 100.0
    assert result.spec.instance_type == "unknown"
    assert result.fallback_reason is not None


@given(
    low=st.integers(min_value=0, max_value=64_000),
    delta=st.integers(min_value=1, max_value=64_000),
    memory=st.integers(min_value=0, max_value=256 * GIB),
)
def test_pod_energy_strictly_increases_with_cpu(low: int, delta: int, memory: int) -> None:
    estimator = EnergyEstimator(InstanceSpecResolver(None))
    smaller = make_pod(cpu_millicores=low, memory_bytes=memory)
    larger = make_pod(cpu_millicores=low + delta, memory_bytes=memory)
    assert estimator.pod_energy_kwh(larger) > estimator.pod_energy_kwh(smaller)


@given(requested=st.floats(min_value=0, max_value=1e7, allow_nan=False))
def test_node_watts_stay_within_idle_and_tdp(requested: float) -> None:
    estimator = EnergyEstimator(InstanceSpecResolver(None))
    result = estimator.node_energy(make_node(), [make_pod(cpu_millicores=requested)])
    assert 30.0 - 1e-9 <= result.watts <= 100.0 + 1e-9
