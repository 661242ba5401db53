# tests/orchestrator/test_executor.py

import asyncio

import pytest

from kube_topology.core.exceptions import (
    AddressNotAssignedError,
    ConfigurationError,
    DependencyFailedError,
    PlanError,
    ProvisioningError,
)
from kube_topology.orchestrator.dry_run import DEFAULT_CA_CERTIFICATE, DEFAULT_ENDPOINT, DryRunProvisioner
from kube_topology.orchestrator.executor import PlanExecutor, default_provisioners
from kube_topology.orchestrator.gke import GkeProvisioner
from kube_topology.orchestrator.kubernetes_orchestrator import KubernetesOrchestrator
from kube_topology.plan.graph import ResourceKind
from kube_topology.plan.kubeconfig import build_credential_document
from kube_topology.plan.scenarios import autoscaled, fixed


def _executor(recorder):
    return PlanExecutor({"gcp": recorder, "kubernetes": recorder})


class FailOn:
    """Delegates to a recorder but fails one resource kind."""

    def __init__(self, kind, error, inner):
        self.kind = kind
        self.error = error
        self.inner = inner

    async def create(self, node, args):
        if node.kind is self.kind:
            raise self.error
        return await self.inner.create(node, args)


@pytest.mark.asyncio
async def test_autoscaled_dry_run_end_to_end(fixed_suffix):
    recorder = DryRunProvisioner()
    plan = autoscaled(name_suffix=fixed_suffix)

    result = await _executor(recorder).execute(plan)

    assert result.exports == {"url": "198.51.100.20"}
    assert sorted(r.name for r in recorder.resource_requests()) == sorted(
        n.name for n in plan.resource_requests()
    )
    issued = [r.name for r in recorder.requests]
    for node in plan.graph:
        for dep in node.depends_on:
            assert issued.index(dep) < issued.index(node.name)
    assert set(result.resources) == {node.name for node in plan.graph}


@pytest.mark.asyncio
async def test_fixed_dry_run_issues_five_requests():
    recorder = DryRunProvisioner()
    await _executor(recorder).execute(fixed())
    assert len(recorder.resource_requests()) == 5


@pytest.mark.asyncio
async def test_resolved_arguments_reach_provisioner(fixed_suffix):
    recorder = DryRunProvisioner()
    await _executor(recorder).execute(autoscaled(name_suffix=fixed_suffix))
    by_name = {r.name: r.args for r in recorder.requests}

    assert by_name["primary-node-pool"]["cluster"] == "load-testing"
    assert by_name["k8sprovider"]["kubeconfig"] == build_credential_document(
        DEFAULT_ENDPOINT, "load-testing", DEFAULT_CA_CERTIFICATE
    )
    assert by_name["load-testing-app"]["namespace"] == "load-testing-ns"
    assert by_name["load-testing-hpa"]["deployment_name"] == "load-testing-app-abcd1234"
    assert by_name["app-service"]["selector"] == by_name["load-testing-app"]["labels"]


@pytest.mark.asyncio
async def test_hostname_is_exported_when_present():
    recorder = DryRunProvisioner(ingress=[{"hostname": "lb.example.com", "ip": "1.2.3.4"}])
    result = await _executor(recorder).execute(fixed())
    assert result.exports["url"] == "lb.example.com"


@pytest.mark.asyncio
async def test_missing_ingress_surfaces_named_error():
    recorder = DryRunProvisioner(ingress=[])
    with pytest.raises(AddressNotAssignedError):
        await _executor(recorder).execute(fixed())
    # every resource was still created
    assert len(recorder.resource_requests()) == 5


@pytest.mark.asyncio
async def test_first_failure_aborts_and_is_raised_unchanged():
    recorder = DryRunProvisioner()
    error = ProvisioningError("quota exceeded", resource="primary-node-pool")
    provisioner = FailOn(ResourceKind.NODE_POOL, error, recorder)
    plan = autoscaled()

    with pytest.raises(ProvisioningError) as exc_info:
        await PlanExecutor({"gcp": provisioner, "kubernetes": provisioner}).execute(plan)

    assert exc_info.value is error
    assert [r.name for r in recorder.requests] == ["load-testing"]

    with pytest.raises(DependencyFailedError) as skipped:
        plan.graph.get("k8sprovider").outputs.result()
    assert skipped.value.cause is error
    with pytest.raises(ProvisioningError):
        plan.graph.get("primary-node-pool").outputs.result()


@pytest.mark.asyncio
async def test_in_flight_siblings_finish_after_failure():
    recorder = DryRunProvisioner()
    error = ProvisioningError("forbidden")
    provisioner = FailOn(ResourceKind.HORIZONTAL_POD_AUTOSCALER, error, recorder)

    with pytest.raises(ProvisioningError):
        await PlanExecutor({"gcp": provisioner, "kubernetes": provisioner}).execute(autoscaled())

    # the service does not depend on the autoscaler and still completes
    kinds = [r.kind for r in recorder.requests]
    assert ResourceKind.SERVICE in kinds
    assert ResourceKind.HORIZONTAL_POD_AUTOSCALER not in kinds


@pytest.mark.asyncio
async def test_independent_nodes_run_concurrently():
    recorder = DryRunProvisioner()
    in_flight = []
    peak = []

    class Slow:
        async def create(self, node, args):
            in_flight.append(node.name)
            peak.append(len(in_flight))
            await asyncio.sleep(0.01)
            in_flight.remove(node.name)
            return await recorder.create(node, args)

    slow = Slow()
    await PlanExecutor({"gcp": slow, "kubernetes": slow}).execute(autoscaled())

    # deployment and service are both ready once the namespace exists
    assert max(peak) == 2


@pytest.mark.asyncio
async def test_missing_provisioner_is_a_configuration_error():
    with pytest.raises(ConfigurationError, match="kubernetes"):
        await PlanExecutor({"gcp": DryRunProvisioner()}).execute(fixed())


@pytest.mark.asyncio
async def test_plans_are_one_shot():
    plan = fixed()
    executor = _executor(DryRunProvisioner())
    await executor.execute(plan)
    with pytest.raises(PlanError, match="already been executed"):
        await executor.execute(plan)


def test_default_provisioners(config):
    real = default_provisioners(config)
    assert isinstance(real["gcp"], GkeProvisioner)
    assert isinstance(real["kubernetes"], KubernetesOrchestrator)

    dry = default_provisioners(config, dry_run=True)
    assert isinstance(dry["gcp"], DryRunProvisioner)
    assert dry["gcp"] is dry["kubernetes"]
