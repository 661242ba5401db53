"""Autoscaler manager for Kubernetes HPA.

This module provides creation of the Horizontal Pod Autoscaler that scales
the workload Deployment on CPU utilization.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict

from kubernetes import client

logger = logging.getLogger(__name__)


@dataclass
class HPASpec:
    """Specification for a Horizontal Pod Autoscaler."""

    name: str
    namespace: str
    deployment_name: str
    min_replicas: int = 1
    max_replicas: int = 50
    target_cpu_percent: int = 50
    labels: Dict[str, str] = field(default_factory=dict)


class AutoscalerManager:
    """Manages Kubernetes Horizontal Pod Autoscalers."""

    def __init__(self, api_client: client.ApiClient):
        """Initialize the autoscaler manager.

        Args:
            api_client: Authenticated client for the target cluster.
        """
        self._autoscaling_api = client.AutoscalingV2Api(api_client)

    def build_hpa(self, spec: HPASpec) -> client.V2HorizontalPodAutoscaler:
        """Build the HPA body for ``spec``."""
        metrics = [
            client.V2MetricSpec(
                type="Resource",
                resource=client.V2ResourceMetricSource(
                    name="cpu",
                    target=client.V2MetricTarget(
                        type="Utilization",
                        average_utilization=spec.target_cpu_percent,
                    ),
                ),
            )
        ]

        return client.V2HorizontalPodAutoscaler(
            api_version="autoscaling/v2",
            kind="HorizontalPodAutoscaler",
            metadata=client.V1ObjectMeta(
                name=spec.name,
                namespace=spec.namespace,
                labels=spec.labels,
            ),
            spec=client.V2HorizontalPodAutoscalerSpec(
                scale_target_ref=client.V2CrossVersionObjectReference(
                    api_version="apps/v1",
                    kind="Deployment",
                    name=spec.deployment_name,
                ),
                min_replicas=spec.min_replicas,
                max_replicas=spec.max_replicas,
                metrics=metrics,
            ),
        )

    async def create_hpa(self, spec: HPASpec) -> client.V2HorizontalPodAutoscaler:
        """Create an HPA.

        Raises:
            client.ApiException: On any API failure.
        """
        hpa = self.build_hpa(spec)

        try:
            created = self._autoscaling_api.create_namespaced_horizontal_pod_autoscaler(
                namespace=spec.namespace,
                body=hpa,
            )
        except client.ApiException as e:
            logger.error(f"Failed to create HPA {spec.name}: {e.status} {e.reason}")
            raise

        logger.info(f"Created HPA: {spec.namespace}/{spec.name} -> {spec.deployment_name}")
        return created
