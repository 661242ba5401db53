"""Deployment manager for Kubernetes.

This module provides the low-level operations that create the namespace,
the workload Deployment and its load-balanced Service.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from kubernetes import client

logger = logging.getLogger(__name__)


@dataclass
class NamespaceSpec:
    """Specification for a Kubernetes namespace."""

    name: str


@dataclass
class DeploymentSpec:
    """Specification for a Kubernetes deployment."""

    name: str
    namespace: str
    image: str
    container_name: str
    replicas: int = 1
    container_port: Optional[int] = None
    cpu_request: str = "100m"
    labels: Dict[str, str] = field(default_factory=dict)


@dataclass
class ServiceSpec:
    """Specification for a Kubernetes service."""

    name: str
    namespace: str
    selector: Dict[str, str]
    port: int = 80
    target_port: int = 8080
    type: str = "LoadBalancer"
    labels: Dict[str, str] = field(default_factory=dict)


def service_status_to_dict(status: Optional[client.V1ServiceStatus]) -> Dict[str, Any]:
    """Flatten a service status into ``{"load_balancer": {"ingress": [...]}}``."""
    ingress: List[Dict[str, Optional[str]]] = []
    if status is not None and status.load_balancer is not None:
        ingress = [
            {"hostname": point.hostname, "ip": point.ip}
            for point in (status.load_balancer.ingress or [])
        ]
    return {"load_balancer": {"ingress": ingress}}


class DeploymentManager:
    """Manages the core workload objects of the topology.

    This class handles the low-level Kubernetes API operations for:
    - Creating the namespace
    - Creating the deployment
    - Creating the service
    - Reading service status
    """

    def __init__(self, api_client: client.ApiClient):
        """Initialize the deployment manager.

        Args:
            api_client: Authenticated client for the target cluster.
        """
        self._core_api = client.CoreV1Api(api_client)
        self._apps_api = client.AppsV1Api(api_client)

    async def create_namespace(self, spec: NamespaceSpec) -> client.V1Namespace:
        """Create a namespace.

        Raises:
            client.ApiException: On any API failure, including name collisions.
        """
        namespace = client.V1Namespace(
            api_version="v1",
            kind="Namespace",
            metadata=client.V1ObjectMeta(name=spec.name),
        )

        try:
            created = self._core_api.create_namespace(body=namespace)
        except client.ApiException as e:
            logger.error(f"Failed to create namespace {spec.name}: {e.status} {e.reason}")
            raise

        logger.info(f"Created namespace: {spec.name}")
        return created

    def build_deployment(self, spec: DeploymentSpec) -> client.V1Deployment:
        """Build the deployment body for ``spec``."""
        container = client.V1Container(
            name=spec.container_name,
            image=spec.image,
            ports=[client.V1ContainerPort(container_port=spec.container_port)] if spec.container_port else None,
            resources=client.V1ResourceRequirements(
                requests={"cpu": spec.cpu_request},
            ),
        )

        template = client.V1PodTemplateSpec(
            metadata=client.V1ObjectMeta(labels=spec.labels),
            spec=client.V1PodSpec(containers=[container]),
        )

        return client.V1Deployment(
            api_version="apps/v1",
            kind="Deployment",
            metadata=client.V1ObjectMeta(name=spec.name, namespace=spec.namespace),
            spec=client.V1DeploymentSpec(
                replicas=spec.replicas,
                selector=client.V1LabelSelector(match_labels=spec.labels),
                template=template,
            ),
        )

    async def deploy(self, spec: DeploymentSpec) -> client.V1Deployment:
        """Create a deployment.

        Raises:
            client.ApiException: On any API failure.
        """
        deployment = self.build_deployment(spec)

        try:
            created = self._apps_api.create_namespaced_deployment(
                namespace=spec.namespace,
                body=deployment,
            )
        except client.ApiException as e:
            logger.error(f"Failed to create deployment {spec.name}: {e.status} {e.reason}")
            raise

        logger.info(f"Created deployment: {spec.namespace}/{spec.name}")
        return created

    def build_service(self, spec: ServiceSpec) -> client.V1Service:
        """Build the service body for ``spec``."""
        return client.V1Service(
            api_version="v1",
            kind="Service",
            metadata=client.V1ObjectMeta(
                name=spec.name,
                namespace=spec.namespace,
                labels=spec.labels,
            ),
            spec=client.V1ServiceSpec(
                selector=spec.selector,
                ports=[
                    client.V1ServicePort(
                        port=spec.port,
                        target_port=spec.target_port,
                    )
                ],
                type=spec.type,
            ),
        )

    async def create_service(self, spec: ServiceSpec) -> client.V1Service:
        """Create a service.

        Raises:
            client.ApiException: On any API failure.
        """
        service = self.build_service(spec)

        try:
            created = self._core_api.create_namespaced_service(
                namespace=spec.namespace,
                body=service,
            )
        except client.ApiException as e:
            logger.error(f"Failed to create service {spec.name}: {e.status} {e.reason}")
            raise

        logger.info(f"Created service: {spec.namespace}/{spec.name}")
        return created

    async def read_service_status(self, name: str, namespace: str) -> Dict[str, Any]:
        """Get the load balancer status of a service."""
        service = self._core_api.read_namespaced_service_status(
            name=name,
            namespace=namespace,
        )
        return service_status_to_dict(service.status)
