"""Deployment plan builder.

Declares the GKE cluster, its node pool, the authenticated Kubernetes client
and the workload resources as an explicit dependency graph. Nothing is
created here; :class:`~kube_topology.orchestrator.executor.PlanExecutor`
runs the finished plan.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional

from kube_topology.core.config import TopologyConfig
from kube_topology.core.exceptions import AddressNotAssignedError, PlanError
from kube_topology.core.output import Output
from kube_topology.plan.graph import DependencyGraph, ResourceKind, ResourceNode
from kube_topology.plan.kubeconfig import build_credential_document

logger = logging.getLogger(__name__)


def random_suffix() -> str:
    """Suffix appended to auto-named Kubernetes objects."""
    return secrets.token_hex(4)


def resolve_workload_short_name(identifier: str) -> str:
    """Return the last ``/``-separated segment of a resource identifier.

    Deployment identifiers have the form ``<namespace>/<name>``; an identifier
    without a slash is returned unchanged.
    """
    return identifier.split("/")[-1]


def extract_external_address(status: Optional[Mapping[str, Any]]) -> str:
    """Pick the externally visible address from a Service status.

    Uses the first ingress point, preferring its hostname over its IP.

    Raises:
        AddressNotAssignedError: If the load balancer has not reported an
            ingress point (or the first one carries neither field).
    """
    load_balancer = (status or {}).get("load_balancer") or {}
    ingress = load_balancer.get("ingress") or []
    if not ingress:
        raise AddressNotAssignedError("Load balancer address not yet assigned")

    first = ingress[0]
    hostname = first.get("hostname")
    if hostname:
        return hostname
    ip = first.get("ip")
    if ip:
        return ip
    raise AddressNotAssignedError("Load balancer ingress has neither hostname nor IP")


@dataclass
class DeploymentPlan:
    """An ordered set of resource-creation requests plus named exports."""

    scenario: str
    graph: DependencyGraph
    exports: Dict[str, Output[Any]] = field(default_factory=dict)

    def resource_requests(self) -> List[ResourceNode]:
        """Platform resource requests in dependency order (kube client excluded)."""
        return [node for node in self.graph.topological_order() if node.kind.is_resource]

    def describe(self) -> List[str]:
        """One human-readable line per node, in dependency order."""
        lines = []
        for index, node in enumerate(self.graph.topological_order(), start=1):
            deps = ", ".join(node.depends_on) or "-"
            lines.append(f"{index}. {node.kind.value} {node.name} (depends on: {deps})")
        return lines


class TopologyBuilder:
    """Builds a deployment plan from a topology configuration.

    Each ``create_*`` method adds one node and returns it so that later
    resources can reference its outputs and depend on it. Kubernetes
    resources require :meth:`create_kube_client` to have run first.
    """

    def __init__(
        self,
        config: Optional[TopologyConfig] = None,
        name_suffix: Callable[[], str] = random_suffix,
    ):
        self.config = config or TopologyConfig()
        self.graph = DependencyGraph()
        self.exports: Dict[str, Output[Any]] = {}
        self._name_suffix = name_suffix
        self._kube_client: Optional[ResourceNode] = None

    def _autoname(self, logical_name: str) -> str:
        return f"{logical_name}-{self._name_suffix()}"

    def _kube_dependencies(self, *nodes: ResourceNode) -> tuple:
        if self._kube_client is None:
            raise PlanError("create_kube_client must be called before adding Kubernetes resources")
        return (self._kube_client.name, *(node.name for node in nodes))

    def create_cluster(self, autoscaling: bool = True) -> ResourceNode:
        """Request the GKE cluster."""
        cluster = self.config.cluster
        scaling = cluster.autoscaling
        autoscaling_args = None
        if autoscaling and scaling.enabled:
            autoscaling_args = {
                "profile": scaling.profile,
                "resource_limits": [
                    {"resource_type": "cpu", "minimum": scaling.min_cpu, "maximum": scaling.max_cpu},
                    {"resource_type": "memory", "minimum": scaling.min_memory_gb, "maximum": scaling.max_memory_gb},
                ],
            }

        return self.graph.add(ResourceNode(
            name=cluster.name,
            kind=ResourceKind.CLUSTER,
            args={
                "name": cluster.name,
                "location": cluster.location,
                "initial_node_count": cluster.initial_node_count,
                "remove_default_node_pool": cluster.remove_default_node_pool,
                "autoscaling": autoscaling_args,
            },
        ))

    def create_node_pool(self, cluster: ResourceNode, autoscaling: bool = True) -> ResourceNode:
        """Request the node pool backing ``cluster``."""
        pool = self.config.node_pool
        autoscaling_args = None
        if autoscaling:
            autoscaling_args = {
                "min_node_count": pool.min_node_count,
                "max_node_count": pool.max_node_count,
            }

        return self.graph.add(ResourceNode(
            name=pool.name,
            kind=ResourceKind.NODE_POOL,
            args={
                "name": pool.name,
                "cluster": cluster.output("name"),
                "location": self.config.cluster.location,
                "initial_node_count": pool.initial_node_count,
                "autoscaling": autoscaling_args,
                "labels": dict(pool.labels),
                "metadata": dict(pool.metadata),
                "oauth_scopes": list(pool.oauth_scopes),
                "tags": list(pool.tags),
            },
            depends_on=(cluster.name,),
        ))

    def create_kube_client(self, cluster: ResourceNode, node_pool: ResourceNode) -> ResourceNode:
        """Declare the authenticated Kubernetes client for ``cluster``.

        The client is configured from the generated credential document and
        is only usable once the node pool exists.
        """
        kubeconfig = Output.all(
            cluster.output("endpoint"),
            cluster.output("name"),
            cluster.output("cluster_ca_certificate"),
        ).apply(lambda values: build_credential_document(*values))

        self._kube_client = self.graph.add(ResourceNode(
            name=self.config.kubernetes.provider_name,
            kind=ResourceKind.KUBE_CLIENT,
            args={"kubeconfig": kubeconfig},
            depends_on=(cluster.name, node_pool.name),
        ))
        return self._kube_client

    def create_namespace(self) -> ResourceNode:
        """Request the namespace every workload resource is scoped to."""
        workload = self.config.workload
        return self.graph.add(ResourceNode(
            name=workload.namespace_resource_name,
            kind=ResourceKind.NAMESPACE,
            args={"name": workload.namespace},
            depends_on=self._kube_dependencies(),
            provider=self._kube_client.name,
        ))

    def create_workload(self, namespace: ResourceNode, replicas: Optional[int] = None) -> ResourceNode:
        """Request the Deployment running the load-testing container."""
        workload = self.config.workload
        return self.graph.add(ResourceNode(
            name=workload.name,
            kind=ResourceKind.DEPLOYMENT,
            args={
                "name": self._autoname(workload.name),
                "namespace": namespace.output("name"),
                "image": workload.image,
                "container_name": workload.container_name,
                "replicas": workload.replicas if replicas is None else replicas,
                "container_port": self.config.service.target_port,
                "cpu_request": workload.cpu_request,
                "labels": dict(workload.labels),
            },
            depends_on=self._kube_dependencies(namespace),
            provider=self._kube_client.name,
        ))

    def create_autoscaler(self, workload: ResourceNode, namespace: ResourceNode) -> ResourceNode:
        """Request an HPA targeting ``workload`` by its resolved short name."""
        autoscaler = self.config.autoscaler
        return self.graph.add(ResourceNode(
            name=autoscaler.name,
            kind=ResourceKind.HORIZONTAL_POD_AUTOSCALER,
            args={
                "name": self._autoname(autoscaler.name),
                "namespace": namespace.output("name"),
                "deployment_name": workload.output("id").apply(resolve_workload_short_name),
                "min_replicas": autoscaler.min_replicas,
                "max_replicas": autoscaler.max_replicas,
                "target_cpu_percent": autoscaler.target_cpu_percent,
                "labels": dict(self.config.workload.labels),
            },
            depends_on=self._kube_dependencies(namespace, workload),
            provider=self._kube_client.name,
        ))

    def create_service(self, namespace: ResourceNode) -> ResourceNode:
        """Request the load-balanced Service selecting the workload pods."""
        service = self.config.service
        labels = self.config.workload.labels
        return self.graph.add(ResourceNode(
            name=service.name,
            kind=ResourceKind.SERVICE,
            args={
                "name": self._autoname(service.name),
                "namespace": namespace.output("name"),
                "labels": dict(labels),
                "selector": dict(labels),
                "port": service.port,
                "target_port": service.target_port,
                "type": service.type,
            },
            depends_on=self._kube_dependencies(namespace),
            provider=self._kube_client.name,
        ))

    def export(self, name: str, value: Output[Any]) -> None:
        if name in self.exports:
            raise PlanError(f"Duplicate export: {name}")
        self.exports[name] = value

    def declare(self, scenario: str, autoscaling: bool) -> DeploymentPlan:
        """Declare the whole topology in dependency order.

        With ``autoscaling`` the cluster, node pool and workload all scale
        automatically; without it the node pool and replica count are fixed
        and no HPA is created.
        """
        cluster = self.create_cluster(autoscaling=autoscaling)
        node_pool = self.create_node_pool(cluster, autoscaling=autoscaling)
        self.create_kube_client(cluster, node_pool)
        namespace = self.create_namespace()
        workload = self.create_workload(namespace)
        if autoscaling:
            self.create_autoscaler(workload, namespace)
        service = self.create_service(namespace)
        self.export("url", service.output("status").apply(extract_external_address))

        logger.info(f"Declared {scenario} plan with {len(self.graph)} nodes")
        return self.build(scenario)

    def build(self, scenario: str = "custom") -> DeploymentPlan:
        return DeploymentPlan(scenario=scenario, graph=self.graph, exports=dict(self.exports))
