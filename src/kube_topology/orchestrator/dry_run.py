"""Dry-run provisioner.

Records every creation request in the order it is issued and answers with
fabricated platform-assigned fields, so a plan can be executed end to end
without touching GCP or a cluster.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from kube_topology.plan.graph import ResourceKind, ResourceNode

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "203.0.113.10"
DEFAULT_CA_CERTIFICATE = "LS0tLS1CRUdJTiBDRVJUSUZJQ0FURS0tLS0tCg=="


@dataclass
class CreateRequest:
    """A recorded resource-creation request."""

    kind: ResourceKind
    name: str
    args: Dict[str, Any]


@dataclass
class DryRunProvisioner:
    """Answers creation requests for every platform without side effects."""

    endpoint: str = DEFAULT_ENDPOINT
    ca_certificate: str = DEFAULT_CA_CERTIFICATE
    ingress: List[Dict[str, Optional[str]]] = field(
        default_factory=lambda: [{"hostname": None, "ip": "198.51.100.20"}]
    )
    requests: List[CreateRequest] = field(default_factory=list)

    async def create(self, node: ResourceNode, args: Dict[str, Any]) -> Dict[str, Any]:
        self.requests.append(CreateRequest(kind=node.kind, name=node.name, args=args))
        logger.info(f"[dry-run] {node.kind.value} {node.name}")

        if node.kind is ResourceKind.CLUSTER:
            return {
                "id": f"locations/{args['location']}/clusters/{args['name']}",
                "name": args["name"],
                "location": args["location"],
                "endpoint": self.endpoint,
                "cluster_ca_certificate": self.ca_certificate,
            }

        if node.kind is ResourceKind.NODE_POOL:
            return {
                "id": f"{args['cluster']}/{args['name']}",
                "name": args["name"],
                "cluster": args["cluster"],
            }

        if node.kind is ResourceKind.KUBE_CLIENT:
            return {"id": node.name}

        if node.kind is ResourceKind.NAMESPACE:
            return {"id": args["name"], "name": args["name"]}

        outputs = {
            "id": f"{args['namespace']}/{args['name']}",
            "name": args["name"],
            "namespace": args["namespace"],
        }
        if node.kind is ResourceKind.SERVICE:
            outputs["status"] = {"load_balancer": {"ingress": [dict(i) for i in self.ingress]}}
        return outputs

    def resource_requests(self) -> List[CreateRequest]:
        """Recorded requests excluding the kube client."""
        return [r for r in self.requests if r.kind.is_resource]
