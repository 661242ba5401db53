"""kube-topology - Declare and run a dependency-ordered GKE deployment.

This package provides:
- Topology configuration: every cluster, node pool and workload constant in one place
- Plan building: an explicit dependency graph of resource-creation requests
- Credential documents: kubeconfig text for the created cluster
- Execution: asyncio dataflow over gcloud and the Kubernetes API
"""

__version__ = "0.1.0"

# Core components
from kube_topology.core.config import (
    AutoscalerConfig,
    ClusterAutoscalingConfig,
    ClusterConfig,
    GcloudConfig,
    KubernetesConfig,
    NodePoolConfig,
    ProbeConfig,
    ServiceConfig,
    TopologyConfig,
    WorkloadConfig,
    load_config,
)
from kube_topology.core.exceptions import (
    AddressNotAssignedError,
    ConfigurationError,
    DependencyFailedError,
    PlanError,
    ProvisioningError,
    TopologyError,
)
from kube_topology.core.output import Output

# Plan components
from kube_topology.plan import (
    DeploymentPlan,
    TopologyBuilder,
    build_credential_document,
    build_plan,
    extract_external_address,
    resolve_workload_short_name,
)

# Orchestrator components
from kube_topology.orchestrator import (
    DryRunProvisioner,
    PlanExecutor,
    PlanResult,
    default_provisioners,
)

__all__ = [
    # Version
    "__version__",

    # Config
    "TopologyConfig",
    "ClusterConfig",
    "ClusterAutoscalingConfig",
    "NodePoolConfig",
    "WorkloadConfig",
    "AutoscalerConfig",
    "ServiceConfig",
    "GcloudConfig",
    "KubernetesConfig",
    "ProbeConfig",
    "load_config",

    # Errors
    "TopologyError",
    "ConfigurationError",
    "PlanError",
    "ProvisioningError",
    "DependencyFailedError",
    "AddressNotAssignedError",

    # Plan
    "Output",
    "DeploymentPlan",
    "TopologyBuilder",
    "build_credential_document",
    "build_plan",
    "extract_external_address",
    "resolve_workload_short_name",

    # Orchestrator
    "DryRunProvisioner",
    "PlanExecutor",
    "PlanResult",
    "default_provisioners",
]
