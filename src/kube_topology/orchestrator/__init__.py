"""Orchestrator module: executes deployment plans against GKE and Kubernetes."""

from kube_topology.orchestrator.autoscaler import AutoscalerManager, HPASpec
from kube_topology.orchestrator.deployment_manager import (
    DeploymentManager,
    DeploymentSpec,
    NamespaceSpec,
    ServiceSpec,
)
from kube_topology.orchestrator.dry_run import CreateRequest, DryRunProvisioner
from kube_topology.orchestrator.endpoint_probe import EndpointProbe, ProbeResult
from kube_topology.orchestrator.executor import PlanExecutor, PlanResult, default_provisioners
from kube_topology.orchestrator.gke import ClusterSpec, GkeProvisioner, NodePoolSpec
from kube_topology.orchestrator.kubernetes_orchestrator import KubernetesOrchestrator

__all__ = [
    "AutoscalerManager",
    "HPASpec",
    "DeploymentManager",
    "DeploymentSpec",
    "NamespaceSpec",
    "ServiceSpec",
    "CreateRequest",
    "DryRunProvisioner",
    "EndpointProbe",
    "ProbeResult",
    "PlanExecutor",
    "PlanResult",
    "default_provisioners",
    "ClusterSpec",
    "GkeProvisioner",
    "NodePoolSpec",
    "KubernetesOrchestrator",
]
