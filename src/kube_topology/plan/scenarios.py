"""Named deployment scenarios.

Two alternative configurations of the same topology; they are never composed.
"""

from __future__ import annotations

from typing import Callable, Dict, Optional

from kube_topology.core.config import TopologyConfig
from kube_topology.core.exceptions import ConfigurationError
from kube_topology.plan.builder import DeploymentPlan, TopologyBuilder, random_suffix


def autoscaled(config: Optional[TopologyConfig] = None, name_suffix: Callable[[], str] = random_suffix) -> DeploymentPlan:
    """Cluster autoscaling, node pool autoscaling and an HPA on the workload."""
    return TopologyBuilder(config, name_suffix).declare("autoscaled", autoscaling=True)


def fixed(config: Optional[TopologyConfig] = None, name_suffix: Callable[[], str] = random_suffix) -> DeploymentPlan:
    """Plain node-backed cluster with a fixed replica count."""
    return TopologyBuilder(config, name_suffix).declare("fixed", autoscaling=False)


SCENARIOS: Dict[str, Callable[..., DeploymentPlan]] = {
    "autoscaled": autoscaled,
    "fixed": fixed,
}


def build_plan(
    config: Optional[TopologyConfig] = None,
    scenario: Optional[str] = None,
    name_suffix: Callable[[], str] = random_suffix,
) -> DeploymentPlan:
    """Build the plan for ``scenario`` (defaults to ``config.scenario``).

    Raises:
        ConfigurationError: If the scenario name is unknown.
    """
    config = config or TopologyConfig()
    name = scenario or config.scenario
    try:
        factory = SCENARIOS[name]
    except KeyError:
        raise ConfigurationError(
            f"Unknown scenario {name!r}; expected one of {sorted(SCENARIOS)}"
        ) from None
    return factory(config, name_suffix)
