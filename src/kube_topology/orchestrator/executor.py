"""Plan executor.

Runs a :class:`~kube_topology.plan.builder.DeploymentPlan` with asyncio:
every node whose dependencies have completed is started, its Output
arguments are resolved to plain values, and it is handed to the provisioner
for its platform. The first failure stops the plan; nothing is retried or
rolled back.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol, Set

from kube_topology.core.config import TopologyConfig
from kube_topology.core.exceptions import ConfigurationError, DependencyFailedError, PlanError
from kube_topology.core.output import resolve_value
from kube_topology.orchestrator.dry_run import DryRunProvisioner
from kube_topology.orchestrator.gke import GkeProvisioner
from kube_topology.orchestrator.kubernetes_orchestrator import KubernetesOrchestrator
from kube_topology.plan.builder import DeploymentPlan
from kube_topology.plan.graph import ResourceNode

logger = logging.getLogger(__name__)


class Provisioner(Protocol):
    """Creates resources for one platform."""

    async def create(self, node: ResourceNode, args: Dict[str, Any]) -> Dict[str, Any]:
        ...


@dataclass
class PlanResult:
    """Outputs of an executed plan."""

    scenario: str
    resources: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    exports: Dict[str, Any] = field(default_factory=dict)


def default_provisioners(
    config: Optional[TopologyConfig] = None,
    dry_run: bool = False,
) -> Dict[str, Provisioner]:
    """Provisioners keyed by platform for a real or dry run."""
    config = config or TopologyConfig()
    if dry_run:
        recorder = DryRunProvisioner()
        return {"gcp": recorder, "kubernetes": recorder}
    return {
        "gcp": GkeProvisioner(config.gcloud),
        "kubernetes": KubernetesOrchestrator(config.kubernetes),
    }


class PlanExecutor:
    """Executes deployment plans in dependency order."""

    def __init__(self, provisioners: Dict[str, Provisioner]):
        """
        Args:
            provisioners: Provisioner per platform (``gcp``, ``kubernetes``).
        """
        self.provisioners = provisioners

    async def execute(self, plan: DeploymentPlan) -> PlanResult:
        """Create every resource of ``plan`` and resolve its exports.

        Raises:
            ConfigurationError: If a platform used by the plan has no provisioner.
            PlanError: If the plan has already been executed.
            Exception: The first resource failure, unchanged.
        """
        graph = plan.graph
        missing = {node.kind.platform for node in graph} - set(self.provisioners)
        if missing:
            raise ConfigurationError(f"No provisioner for platform(s): {sorted(missing)}")
        if any(node.outputs.resolved for node in graph):
            raise PlanError("Plan has already been executed")

        logger.info(f"Executing {plan.scenario} plan ({len(graph)} nodes)")

        completed: Dict[str, Dict[str, Any]] = {}
        started: Set[str] = set()
        running: Dict[asyncio.Task, ResourceNode] = {}
        failure: Optional[BaseException] = None

        while True:
            if failure is None:
                for node in graph.ready(completed, started):
                    started.add(node.name)
                    running[asyncio.ensure_future(self._create(node))] = node

            if not running:
                break

            done, _ = await asyncio.wait(running, return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                node = running.pop(task)
                try:
                    outputs = task.result()
                except Exception as e:
                    logger.error(f"Failed to create {node.kind.value} {node.name}: {e}")
                    node.outputs._fail(e)
                    if failure is None:
                        failure = e
                    continue
                completed[node.name] = outputs
                node.outputs._resolve(outputs)

        if failure is not None:
            for node in graph:
                if node.name not in started:
                    node.outputs._fail(DependencyFailedError(node.name, failure))
            raise failure

        exports = {}
        for name, value in plan.exports.items():
            exports[name] = await value
            logger.info(f"Export {name} = {exports[name]}")

        return PlanResult(scenario=plan.scenario, resources=completed, exports=exports)

    async def _create(self, node: ResourceNode) -> Dict[str, Any]:
        args = await resolve_value(node.args)
        provisioner = self.provisioners[node.kind.platform]
        logger.info(f"Creating {node.kind.value} {node.name}")
        outputs = await provisioner.create(node, args)
        logger.info(f"Created {node.kind.value} {node.name}")
        return outputs
