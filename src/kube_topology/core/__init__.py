"""Core components of kube-topology."""

from kube_topology.core.config import TopologyConfig, load_config
from kube_topology.core.exceptions import (
    AddressNotAssignedError,
    ConfigurationError,
    DependencyFailedError,
    PlanError,
    ProvisioningError,
    TopologyError,
)
from kube_topology.core.output import Output

__all__ = [
    "TopologyConfig",
    "load_config",
    "Output",
    "TopologyError",
    "ConfigurationError",
    "PlanError",
    "ProvisioningError",
    "DependencyFailedError",
    "AddressNotAssignedError",
]
