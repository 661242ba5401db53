# tests/orchestrator/test_kubernetes_orchestrator.py

from unittest.mock import MagicMock, patch

import pytest
import pytest_asyncio
from kubernetes import client

from kube_topology.core.config import KubernetesConfig
from kube_topology.core.exceptions import ProvisioningError
from kube_topology.orchestrator.autoscaler import HPASpec
from kube_topology.orchestrator.deployment_manager import DeploymentSpec
from kube_topology.orchestrator.kubernetes_orchestrator import KubernetesOrchestrator
from kube_topology.plan.graph import ResourceKind, ResourceNode
from kube_topology.plan.kubeconfig import build_credential_document

KUBECONFIG = build_credential_document("35.1.2.3", "load-testing", "Q0E=")


def _node(name, kind):
    return ResourceNode(name, kind, depends_on=("k8sprovider",), provider="k8sprovider")


def _meta(name, namespace=None):
    return client.V1ObjectMeta(name=name, namespace=namespace)


def _service_with_ingress(*points):
    return client.V1Service(
        metadata=_meta("app-service-abcd1234", "load-testing-ns"),
        status=client.V1ServiceStatus(
            load_balancer=client.V1LoadBalancerStatus(ingress=list(points) or None),
        ),
    )


@pytest.fixture
def orchestrator():
    settings = KubernetesConfig(service_ready_timeout=1, service_poll_interval=0)
    return KubernetesOrchestrator(settings)


@pytest_asyncio.fixture
async def connected(orchestrator):
    with patch(
        "kube_topology.orchestrator.kubernetes_orchestrator.config.new_client_from_config_dict"
    ) as mock_new_client:
        mock_new_client.return_value = MagicMock()
        await orchestrator.create(ResourceNode("k8sprovider", ResourceKind.KUBE_CLIENT), {"kubeconfig": KUBECONFIG})

    deployments, autoscalers = orchestrator._managers["k8sprovider"]
    deployments._core_api = MagicMock()
    deployments._apps_api = MagicMock()
    autoscalers._autoscaling_api = MagicMock()
    return orchestrator, deployments, autoscalers


@pytest.mark.asyncio
async def test_connect_parses_generated_kubeconfig(orchestrator):
    with patch(
        "kube_topology.orchestrator.kubernetes_orchestrator.config.new_client_from_config_dict"
    ) as mock_new_client:
        outputs = await orchestrator.connect("k8sprovider", KUBECONFIG)

    assert outputs == {"id": "k8sprovider"}
    loaded = mock_new_client.call_args.args[0]
    assert loaded["current-context"] == "demo_load-testing"
    assert loaded["clusters"][0]["cluster"]["server"] == "https://35.1.2.3"


@pytest.mark.asyncio
async def test_resources_need_a_connected_client(orchestrator):
    with pytest.raises(ProvisioningError, match="No Kubernetes client"):
        await orchestrator.create(_node("app-ns", ResourceKind.NAMESPACE), {"name": "load-testing-ns"})


@pytest.mark.asyncio
async def test_create_namespace(connected):
    orchestrator, deployments, _ = connected
    deployments._core_api.create_namespace.return_value = client.V1Namespace(metadata=_meta("load-testing-ns"))

    outputs = await orchestrator.create(_node("app-ns", ResourceKind.NAMESPACE), {"name": "load-testing-ns"})

    assert outputs == {"id": "load-testing-ns", "name": "load-testing-ns"}
    body = deployments._core_api.create_namespace.call_args.kwargs["body"]
    assert body.metadata.name == "load-testing-ns"


@pytest.mark.asyncio
async def test_create_deployment_returns_namespaced_id(connected):
    orchestrator, deployments, _ = connected
    args = {
        "name": "load-testing-app-abcd1234",
        "namespace": "load-testing-ns",
        "image": "scottxxx666/gin-load-testing:0.0.1",
        "container_name": "load-testing-dep",
        "replicas": 1,
        "container_port": 8080,
        "cpu_request": "100m",
        "labels": {"app": "load-testing"},
    }
    create = deployments._apps_api.create_namespaced_deployment
    create.return_value = deployments.build_deployment(DeploymentSpec(**args))

    outputs = await orchestrator.create(_node("load-testing-app", ResourceKind.DEPLOYMENT), args)

    assert outputs["id"] == "load-testing-ns/load-testing-app-abcd1234"
    assert outputs["name"] == "load-testing-app-abcd1234"


@pytest.mark.asyncio
async def test_create_hpa(connected):
    orchestrator, _, autoscalers = connected
    args = {
        "name": "load-testing-hpa-abcd1234",
        "namespace": "load-testing-ns",
        "deployment_name": "load-testing-app-abcd1234",
        "min_replicas": 1,
        "max_replicas": 50,
        "target_cpu_percent": 50,
        "labels": {"app": "load-testing"},
    }
    create = autoscalers._autoscaling_api.create_namespaced_horizontal_pod_autoscaler
    create.return_value = autoscalers.build_hpa(HPASpec(**args))

    outputs = await orchestrator.create(_node("load-testing-hpa", ResourceKind.HORIZONTAL_POD_AUTOSCALER), args)

    assert outputs["id"] == "load-testing-ns/load-testing-hpa-abcd1234"
    body = autoscalers._autoscaling_api.create_namespaced_horizontal_pod_autoscaler.call_args.kwargs["body"]
    assert body.spec.scale_target_ref.name == "load-testing-app-abcd1234"


SERVICE_ARGS = {
    "name": "app-service-abcd1234",
    "namespace": "load-testing-ns",
    "labels": {"app": "load-testing"},
    "selector": {"app": "load-testing"},
    "port": 80,
    "target_port": 8080,
    "type": "LoadBalancer",
}


@pytest.mark.asyncio
async def test_service_waits_for_load_balancer_address(connected):
    orchestrator, deployments, _ = connected
    core = deployments._core_api
    core.create_namespaced_service.return_value = _service_with_ingress()
    core.read_namespaced_service_status.side_effect = [
        _service_with_ingress(),
        _service_with_ingress(client.V1LoadBalancerIngress(ip="34.80.1.1")),
    ]

    outputs = await orchestrator.create(_node("app-service", ResourceKind.SERVICE), SERVICE_ARGS)

    assert outputs["id"] == "load-testing-ns/app-service-abcd1234"
    assert outputs["status"] == {"load_balancer": {"ingress": [{"hostname": None, "ip": "34.80.1.1"}]}}
    assert core.read_namespaced_service_status.call_count == 2


@pytest.mark.asyncio
async def test_service_without_address_times_out(connected):
    orchestrator, deployments, _ = connected
    orchestrator.settings.service_ready_timeout = 0
    core = deployments._core_api
    core.create_namespaced_service.return_value = _service_with_ingress()
    core.read_namespaced_service_status.return_value = _service_with_ingress()

    with pytest.raises(ProvisioningError, match="no load balancer address"):
        await orchestrator.create(_node("app-service", ResourceKind.SERVICE), SERVICE_ARGS)


@pytest.mark.asyncio
async def test_cluster_ip_service_does_not_wait(connected):
    orchestrator, deployments, _ = connected
    core = deployments._core_api
    core.create_namespaced_service.return_value = _service_with_ingress()
    core.read_namespaced_service_status.return_value = _service_with_ingress()

    outputs = await orchestrator.create(
        _node("app-service", ResourceKind.SERVICE), {**SERVICE_ARGS, "type": "ClusterIP"}
    )

    assert outputs["status"] == {"load_balancer": {"ingress": []}}
    assert core.read_namespaced_service_status.call_count == 1


@pytest.mark.asyncio
async def test_name_collision_propagates(connected):
    orchestrator, deployments, _ = connected
    deployments._core_api.create_namespace.side_effect = client.ApiException(status=409, reason="Conflict")

    with pytest.raises(client.ApiException) as exc_info:
        await orchestrator.create(_node("app-ns", ResourceKind.NAMESPACE), {"name": "load-testing-ns"})
    assert exc_info.value.status == 409
