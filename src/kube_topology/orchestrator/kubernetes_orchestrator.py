"""Kubernetes orchestrator for the workload side of a plan.

This module turns kube client, namespace, deployment, autoscaler and service
nodes into Kubernetes API calls against the freshly created cluster.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

import yaml
from kubernetes import client, config
from tenacity import retry, retry_if_exception_type, stop_after_delay, wait_fixed

from kube_topology.core.config import KubernetesConfig
from kube_topology.core.exceptions import AddressNotAssignedError, ProvisioningError
from kube_topology.orchestrator.autoscaler import AutoscalerManager, HPASpec
from kube_topology.orchestrator.deployment_manager import (
    DeploymentManager,
    DeploymentSpec,
    NamespaceSpec,
    ServiceSpec,
)
from kube_topology.plan.builder import extract_external_address
from kube_topology.plan.graph import ResourceKind, ResourceNode

logger = logging.getLogger(__name__)


class KubernetesOrchestrator:
    """Creates the Kubernetes resources of a deployment plan.

    This class provides:
    - Authenticated API clients built from generated credential documents
    - Namespace, deployment, service and HPA creation
    - Waiting for a load balancer to report its ingress address
    """

    def __init__(self, settings: Optional[KubernetesConfig] = None):
        """Initialize the orchestrator.

        Args:
            settings: Kubernetes settings (load balancer wait limits).
        """
        self.settings = settings or KubernetesConfig()
        self._managers: Dict[str, Tuple[DeploymentManager, AutoscalerManager]] = {}

    async def create(self, node: ResourceNode, args: Dict[str, Any]) -> Dict[str, Any]:
        """Create the resource for ``node`` and return its platform-assigned fields."""
        if node.kind is ResourceKind.KUBE_CLIENT:
            return await self.connect(node.name, args["kubeconfig"])

        deployments, autoscalers = self._managers_for(node)

        if node.kind is ResourceKind.NAMESPACE:
            created = await deployments.create_namespace(NamespaceSpec(**args))
            return {"id": created.metadata.name, "name": created.metadata.name}

        if node.kind is ResourceKind.DEPLOYMENT:
            created = await deployments.deploy(DeploymentSpec(**args))
            return self._identity(created.metadata)

        if node.kind is ResourceKind.HORIZONTAL_POD_AUTOSCALER:
            created = await autoscalers.create_hpa(HPASpec(**args))
            return self._identity(created.metadata)

        if node.kind is ResourceKind.SERVICE:
            spec = ServiceSpec(**args)
            created = await deployments.create_service(spec)
            outputs = self._identity(created.metadata)
            if spec.type == "LoadBalancer":
                outputs["status"] = await self.wait_for_address(deployments, spec.name, spec.namespace)
            else:
                outputs["status"] = await deployments.read_service_status(spec.name, spec.namespace)
            return outputs

        raise ProvisioningError(f"Unsupported resource kind: {node.kind.value}", resource=node.name)

    async def connect(self, name: str, kubeconfig: str) -> Dict[str, Any]:
        """Build an API client from a kubeconfig document."""
        api_client = config.new_client_from_config_dict(yaml.safe_load(kubeconfig))
        self._managers[name] = (
            DeploymentManager(api_client),
            AutoscalerManager(api_client),
        )
        logger.info(f"Kubernetes client {name} configured")
        return {"id": name}

    async def wait_for_address(
        self,
        deployments: DeploymentManager,
        name: str,
        namespace: str,
    ) -> Dict[str, Any]:
        """Poll a LoadBalancer service until it reports an ingress point.

        Raises:
            ProvisioningError: If no address appears within the configured timeout.
        """

        @retry(
            retry=retry_if_exception_type(AddressNotAssignedError),
            stop=stop_after_delay(self.settings.service_ready_timeout),
            wait=wait_fixed(self.settings.service_poll_interval),
            reraise=True,
        )
        async def _poll() -> Dict[str, Any]:
            status = await deployments.read_service_status(name, namespace)
            address = extract_external_address(status)
            logger.debug(f"Service {namespace}/{name} reports address {address}")
            return status

        try:
            return await _poll()
        except AddressNotAssignedError as e:
            raise ProvisioningError(
                f"Service {namespace}/{name} has no load balancer address after "
                f"{self.settings.service_ready_timeout}s",
                resource=name,
            ) from e

    def _managers_for(self, node: ResourceNode) -> Tuple[DeploymentManager, AutoscalerManager]:
        if node.provider is None or node.provider not in self._managers:
            raise ProvisioningError(
                f"No Kubernetes client available for {node.name}", resource=node.name
            )
        return self._managers[node.provider]

    @staticmethod
    def _identity(metadata: client.V1ObjectMeta) -> Dict[str, Any]:
        return {
            "id": f"{metadata.namespace}/{metadata.name}",
            "name": metadata.name,
            "namespace": metadata.namespace,
        }
