"""Dependency graph of resource-creation requests.

Nodes live in an append-only arena and may only depend on nodes that were
added before them, so every graph is acyclic by construction. Ordering comes
solely from the explicit ``depends_on`` edges of each node.
"""

from __future__ import annotations

import heapq
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from kube_topology.core.exceptions import PlanError
from kube_topology.core.output import Output, iter_outputs

logger = logging.getLogger(__name__)


class ResourceKind(str, Enum):
    """Kinds of resources a plan can request."""

    CLUSTER = "gcp:container/Cluster"
    NODE_POOL = "gcp:container/NodePool"
    KUBE_CLIENT = "kubernetes:Provider"
    NAMESPACE = "kubernetes:core/v1/Namespace"
    DEPLOYMENT = "kubernetes:apps/v1/Deployment"
    HORIZONTAL_POD_AUTOSCALER = "kubernetes:autoscaling/v2/HorizontalPodAutoscaler"
    SERVICE = "kubernetes:core/v1/Service"

    @property
    def platform(self) -> str:
        """Platform that handles this kind: ``gcp`` or ``kubernetes``."""
        return self.value.split(":", 1)[0]

    @property
    def is_resource(self) -> bool:
        """False for the kube client, which is not a platform resource."""
        return self is not ResourceKind.KUBE_CLIENT


@dataclass
class ResourceNode:
    """A single resource-creation request."""

    name: str
    kind: ResourceKind
    args: Dict[str, Any] = field(default_factory=dict)
    depends_on: Tuple[str, ...] = ()
    provider: Optional[str] = None
    outputs: Output[Dict[str, Any]] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.depends_on = tuple(self.depends_on)
        self.outputs = Output.pending(self.name)

    def output(self, key: str) -> Output[Any]:
        """Future value of one field the platform reports for this resource."""
        return self.outputs[key]


class DependencyGraph:
    """Arena of resource nodes plus an explicit edge list."""

    def __init__(self) -> None:
        self._nodes: Dict[str, ResourceNode] = {}
        self._order: List[str] = []

    def add(self, node: ResourceNode) -> ResourceNode:
        """Add a node after validating its edges.

        Raises:
            PlanError: On duplicate names, unknown dependencies, a provider
                that is not a declared dependency, or an Output argument
                derived from a resource that is not an ancestor.
        """
        if node.name in self._nodes:
            raise PlanError(f"Duplicate resource name: {node.name}")

        for dep in node.depends_on:
            if dep not in self._nodes:
                raise PlanError(f"Resource {node.name!r} depends on unknown resource {dep!r}")

        if node.provider is not None:
            if node.provider not in node.depends_on:
                raise PlanError(
                    f"Resource {node.name!r} uses provider {node.provider!r} without depending on it"
                )
            if self._nodes[node.provider].kind is not ResourceKind.KUBE_CLIENT:
                raise PlanError(f"Resource {node.provider!r} is not a kube client")

        ancestors = self.ancestors(node.depends_on)
        for output in iter_outputs(node.args):
            undeclared = output.resources - ancestors
            if undeclared:
                raise PlanError(
                    f"Resource {node.name!r} reads outputs of {sorted(undeclared)} "
                    "without an explicit dependency"
                )

        self._nodes[node.name] = node
        self._order.append(node.name)
        logger.debug(f"Added {node.kind.value} {node.name} (depends on {list(node.depends_on)})")
        return node

    def get(self, name: str) -> ResourceNode:
        try:
            return self._nodes[name]
        except KeyError:
            raise PlanError(f"Unknown resource: {name}") from None

    def __contains__(self, name: object) -> bool:
        return name in self._nodes

    def __len__(self) -> int:
        return len(self._order)

    def __iter__(self):
        return (self._nodes[name] for name in self._order)

    def ancestors(self, names: Iterable[str]) -> Set[str]:
        """All nodes reachable by following dependency edges from ``names``, inclusive."""
        seen: Set[str] = set()
        stack = list(names)
        while stack:
            name = stack.pop()
            if name in seen:
                continue
            seen.add(name)
            stack.extend(self._nodes[name].depends_on)
        return seen

    def edges(self) -> List[Tuple[str, str]]:
        """Edge list as ``(dependency, dependent)`` pairs in insertion order."""
        return [
            (dep, name)
            for name in self._order
            for dep in self._nodes[name].depends_on
        ]

    def dependents(self, name: str) -> List[str]:
        return [dependent for dep, dependent in self.edges() if dep == name]

    def topological_order(self) -> List[ResourceNode]:
        """Kahn's algorithm; among ready nodes the earliest added goes first."""
        position = {name: index for index, name in enumerate(self._order)}
        indegree = {name: len(self._nodes[name].depends_on) for name in self._order}
        heap = [position[name] for name in self._order if indegree[name] == 0]
        heapq.heapify(heap)
        ordered: List[ResourceNode] = []

        while heap:
            name = self._order[heapq.heappop(heap)]
            ordered.append(self._nodes[name])
            for dependent in self.dependents(name):
                indegree[dependent] -= 1
                if indegree[dependent] == 0:
                    heapq.heappush(heap, position[dependent])

        if len(ordered) != len(self._order):
            raise PlanError("Dependency graph contains a cycle")
        return ordered

    def ready(self, completed: Iterable[str], started: Iterable[str] = ()) -> List[ResourceNode]:
        """Nodes not yet started whose dependencies have all completed."""
        done = set(completed)
        skip = done | set(started)
        return [
            self._nodes[name]
            for name in self._order
            if name not in skip and all(dep in done for dep in self._nodes[name].depends_on)
        ]
