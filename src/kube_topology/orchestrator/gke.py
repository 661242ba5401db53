"""GKE provisioning through the gcloud CLI.

Cluster and node pool creation are delegated to ``gcloud container``; this
module only assembles the command lines and reads back the JSON the CLI
prints.
"""

from __future__ import annotations

import asyncio
import functools
import json
import logging
import subprocess
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from kube_topology.core.config import GcloudConfig
from kube_topology.core.exceptions import ProvisioningError
from kube_topology.plan.graph import ResourceKind, ResourceNode

logger = logging.getLogger(__name__)

DEFAULT_POOL_NAME = "default-pool"


@dataclass
class ClusterSpec:
    """Specification for a GKE cluster."""

    name: str
    location: str
    initial_node_count: int = 1
    remove_default_node_pool: bool = True
    autoscaling: Optional[Dict[str, Any]] = None


@dataclass
class NodePoolSpec:
    """Specification for a GKE node pool."""

    name: str
    cluster: str
    location: str
    initial_node_count: int = 1
    autoscaling: Optional[Dict[str, int]] = None
    labels: Dict[str, str] = field(default_factory=dict)
    metadata: Dict[str, str] = field(default_factory=dict)
    oauth_scopes: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)


def _key_values(values: Dict[str, str]) -> str:
    return ",".join(f"{k}={v}" for k, v in values.items())


class GkeProvisioner:
    """Creates GKE clusters and node pools with gcloud."""

    def __init__(self, settings: Optional[GcloudConfig] = None):
        """
        Initialize the provisioner.

        Args:
            settings: gcloud executable, project and per-call timeout.
        """
        self.settings = settings or GcloudConfig()

    async def create(self, node: ResourceNode, args: Dict[str, Any]) -> Dict[str, Any]:
        """Create the resource for ``node`` and return its platform-assigned fields."""
        if node.kind is ResourceKind.CLUSTER:
            return await self.create_cluster(ClusterSpec(**args))
        if node.kind is ResourceKind.NODE_POOL:
            return await self.create_node_pool(NodePoolSpec(**args))
        raise ProvisioningError(f"Unsupported resource kind: {node.kind.value}", resource=node.name)

    def cluster_create_command(self, spec: ClusterSpec) -> List[str]:
        command = [
            "container", "clusters", "create", spec.name,
            "--location", spec.location,
            "--num-nodes", str(spec.initial_node_count),
        ]
        if spec.autoscaling:
            command += ["--enable-autoprovisioning"]
            for limit in spec.autoscaling.get("resource_limits", []):
                resource = limit["resource_type"]
                command += [
                    f"--min-{resource}", str(limit["minimum"]),
                    f"--max-{resource}", str(limit["maximum"]),
                ]
            profile = spec.autoscaling.get("profile")
            if profile:
                command += ["--autoscaling-profile", profile.lower().replace("_", "-")]
        return command

    def node_pool_create_command(self, spec: NodePoolSpec) -> List[str]:
        command = [
            "container", "node-pools", "create", spec.name,
            "--cluster", spec.cluster,
            "--location", spec.location,
            "--num-nodes", str(spec.initial_node_count),
        ]
        if spec.autoscaling:
            command += [
                "--enable-autoscaling",
                "--min-nodes", str(spec.autoscaling["min_node_count"]),
                "--max-nodes", str(spec.autoscaling["max_node_count"]),
            ]
        if spec.labels:
            command += ["--node-labels", _key_values(spec.labels)]
        if spec.metadata:
            command += ["--metadata", _key_values(spec.metadata)]
        if spec.oauth_scopes:
            command += ["--scopes", ",".join(spec.oauth_scopes)]
        if spec.tags:
            command += ["--tags", ",".join(spec.tags)]
        return command

    async def create_cluster(self, spec: ClusterSpec) -> Dict[str, Any]:
        """Create a cluster and return its identity and connection fields."""
        logger.info(f"Creating GKE cluster {spec.name} in {spec.location}")
        created = await self._run(self.cluster_create_command(spec), resource=spec.name)
        cluster = created[0] if isinstance(created, list) else created

        if spec.remove_default_node_pool:
            await self._run(
                [
                    "container", "node-pools", "delete", DEFAULT_POOL_NAME,
                    "--cluster", spec.name,
                    "--location", spec.location,
                ],
                resource=spec.name,
            )
            logger.info(f"Removed {DEFAULT_POOL_NAME} from cluster {spec.name}")

        return {
            "id": cluster.get("selfLink", spec.name),
            "name": cluster.get("name", spec.name),
            "location": cluster.get("location", spec.location),
            "endpoint": cluster.get("endpoint", ""),
            "cluster_ca_certificate": cluster.get("masterAuth", {}).get("clusterCaCertificate", ""),
        }

    async def create_node_pool(self, spec: NodePoolSpec) -> Dict[str, Any]:
        """Create a node pool in an existing cluster."""
        logger.info(f"Creating node pool {spec.name} in cluster {spec.cluster}")
        created = await self._run(self.node_pool_create_command(spec), resource=spec.name)
        pool = created[0] if isinstance(created, list) else created
        return {
            "id": pool.get("selfLink", f"{spec.cluster}/{spec.name}"),
            "name": pool.get("name", spec.name),
            "cluster": spec.cluster,
        }

    async def _run(self, command: List[str], resource: str) -> Any:
        """Run a gcloud command off the event loop and parse its JSON output."""
        full_command = [self.settings.path, *command, "--format=json", "--quiet"]
        if self.settings.project:
            full_command += ["--project", self.settings.project]

        logger.debug(f"Running: {' '.join(full_command)}")
        loop = asyncio.get_event_loop()
        try:
            result = await loop.run_in_executor(
                None,
                functools.partial(
                    subprocess.run,
                    full_command,
                    capture_output=True,
                    text=True,
                    timeout=self.settings.timeout,
                ),
            )
        except subprocess.TimeoutExpired:
            raise ProvisioningError(
                f"gcloud timed out after {self.settings.timeout}s", resource=resource
            )
        except FileNotFoundError:
            raise ProvisioningError(f"{self.settings.path} not found in PATH", resource=resource)

        if result.returncode != 0:
            raise ProvisioningError(
                f"gcloud {' '.join(command[:3])} failed for {resource}: {result.stderr.strip()}",
                resource=resource,
            )

        if not result.stdout.strip():
            return {}
        return json.loads(result.stdout)
