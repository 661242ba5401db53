"""Deployment plan declaration."""

from kube_topology.plan.builder import (
    DeploymentPlan,
    TopologyBuilder,
    extract_external_address,
    resolve_workload_short_name,
)
from kube_topology.plan.graph import DependencyGraph, ResourceKind, ResourceNode
from kube_topology.plan.kubeconfig import build_credential_document
from kube_topology.plan.scenarios import SCENARIOS, autoscaled, build_plan, fixed

__all__ = [
    "DeploymentPlan",
    "TopologyBuilder",
    "extract_external_address",
    "resolve_workload_short_name",
    "DependencyGraph",
    "ResourceKind",
    "ResourceNode",
    "build_credential_document",
    "SCENARIOS",
    "autoscaled",
    "fixed",
    "build_plan",
]
