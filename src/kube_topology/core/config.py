"""Topology configuration management."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from kube_topology.core.exceptions import ConfigurationError


class ClusterAutoscalingConfig(BaseModel):
    """Cluster-level (node auto-provisioning) autoscaling bounds."""

    enabled: bool = Field(default=True, description="Enable cluster autoscaling")
    profile: str = Field(default="OPTIMIZE_UTILIZATION", description="Autoscaling profile")
    min_cpu: int = Field(default=1, ge=0, description="Minimum total CPU cores")
    max_cpu: int = Field(default=4, ge=1, description="Maximum total CPU cores")
    min_memory_gb: int = Field(default=1, ge=0, description="Minimum total memory in GB")
    max_memory_gb: int = Field(default=40, ge=1, description="Maximum total memory in GB")

    @model_validator(mode="after")
    def check_bounds(self) -> "ClusterAutoscalingConfig":
        if self.min_cpu > self.max_cpu:
            raise ValueError("min_cpu must not exceed max_cpu")
        if self.min_memory_gb > self.max_memory_gb:
            raise ValueError("min_memory_gb must not exceed max_memory_gb")
        return self


class ClusterConfig(BaseModel):
    """GKE cluster configuration."""

    name: str = Field(default="load-testing", description="Cluster name")
    location: str = Field(default="asia-east1-b", description="Zone or region")
    initial_node_count: int = Field(default=1, ge=1, description="Nodes in the default pool")
    remove_default_node_pool: bool = Field(default=True, description="Delete the default pool after creation")
    autoscaling: ClusterAutoscalingConfig = Field(default_factory=ClusterAutoscalingConfig)


class NodePoolConfig(BaseModel):
    """Node pool configuration."""

    name: str = Field(default="primary-node-pool", description="Node pool name")
    initial_node_count: int = Field(default=1, ge=1)
    min_node_count: int = Field(default=1, ge=0)
    max_node_count: int = Field(default=4, ge=1)
    labels: Dict[str, str] = Field(default_factory=lambda: {"env": "test"})
    metadata: Dict[str, str] = Field(
        default_factory=lambda: {"disable-legacy-endpoints": "true"},
    )
    oauth_scopes: List[str] = Field(
        default_factory=lambda: [
            "https://www.googleapis.com/auth/logging.write",
            "https://www.googleapis.com/auth/monitoring",
        ],
    )
    tags: List[str] = Field(default_factory=lambda: ["foo", "bar"])

    @model_validator(mode="after")
    def check_bounds(self) -> "NodePoolConfig":
        if self.min_node_count > self.max_node_count:
            raise ValueError("min_node_count must not exceed max_node_count")
        return self


class WorkloadConfig(BaseModel):
    """Deployment (workload) configuration."""

    name: str = Field(default="load-testing-app", description="Logical name; object name is auto-generated from it")
    namespace: str = Field(default="load-testing-ns", description="Namespace for all workload resources")
    namespace_resource_name: str = Field(default="app-ns", description="Logical name of the namespace resource")
    container_name: str = Field(default="load-testing-dep")
    image: str = Field(default="scottxxx666/gin-load-testing:0.0.1")
    replicas: int = Field(default=1, ge=0)
    cpu_request: str = Field(default="100m")
    labels: Dict[str, str] = Field(default_factory=lambda: {"app": "load-testing"})


class AutoscalerConfig(BaseModel):
    """Horizontal Pod Autoscaler configuration."""

    name: str = Field(default="load-testing-hpa")
    min_replicas: int = Field(default=1, ge=1)
    max_replicas: int = Field(default=50, ge=1)
    target_cpu_percent: int = Field(default=50, ge=1, le=100, description="Target CPU utilization %")

    @model_validator(mode="after")
    def check_bounds(self) -> "AutoscalerConfig":
        if self.min_replicas > self.max_replicas:
            raise ValueError("min_replicas must not exceed max_replicas")
        return self


class ServiceConfig(BaseModel):
    """Network-exposing Service configuration."""

    name: str = Field(default="app-service")
    port: int = Field(default=80, ge=1, le=65535)
    target_port: int = Field(default=8080, ge=1, le=65535)
    type: str = Field(default="LoadBalancer")


class GcloudConfig(BaseModel):
    """Settings for the gcloud CLI used to provision GKE resources."""

    path: str = Field(default="gcloud", description="gcloud executable")
    project: Optional[str] = Field(default=None, description="GCP project; gcloud default when unset")
    timeout: int = Field(default=1800, description="Seconds allowed per gcloud invocation")


class KubernetesConfig(BaseModel):
    """Settings for the Kubernetes side of the plan."""

    provider_name: str = Field(default="k8sprovider", description="Logical name of the kube client")
    service_ready_timeout: int = Field(default=600, description="Seconds to wait for a load balancer address")
    service_poll_interval: float = Field(default=5.0, description="Seconds between service status polls")


class ProbeConfig(BaseModel):
    """HTTP probe of the exported URL after deployment."""

    scheme: str = Field(default="http")
    path: str = Field(default="/")
    timeout_seconds: float = Field(default=10.0, description="Request timeout")
    max_retries: int = Field(default=5, description="Maximum probe attempts")
    retry_min_wait: float = Field(default=1.0, description="Minimum wait between attempts")
    retry_max_wait: float = Field(default=30.0, description="Maximum wait between attempts")


class TopologyConfig(BaseSettings):
    """Main topology configuration."""

    model_config = SettingsConfigDict(
        env_prefix="KUBE_TOPOLOGY_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    scenario: str = Field(default="autoscaled", description="Scenario name: autoscaled or fixed")

    # Sub-configurations
    cluster: ClusterConfig = Field(default_factory=ClusterConfig)
    node_pool: NodePoolConfig = Field(default_factory=NodePoolConfig)
    workload: WorkloadConfig = Field(default_factory=WorkloadConfig)
    autoscaler: AutoscalerConfig = Field(default_factory=AutoscalerConfig)
    service: ServiceConfig = Field(default_factory=ServiceConfig)
    gcloud: GcloudConfig = Field(default_factory=GcloudConfig)
    kubernetes: KubernetesConfig = Field(default_factory=KubernetesConfig)
    probe: ProbeConfig = Field(default_factory=ProbeConfig)

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")

    @classmethod
    def from_yaml(cls, path: str | Path) -> "TopologyConfig":
        """Load configuration from a YAML file."""
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
        return cls(**data)

    @classmethod
    def from_env(cls) -> "TopologyConfig":
        """Load configuration from environment variables."""
        return cls()

    def to_yaml(self, path: str | Path) -> None:
        """Save configuration to a YAML file."""
        with open(path, "w") as f:
            yaml.safe_dump(self.model_dump(), f, default_flow_style=False, sort_keys=False)


def _from_yaml(path: str | Path) -> TopologyConfig:
    try:
        return TopologyConfig.from_yaml(path)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Malformed YAML in {path}: {e}") from e
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration in {path}: {e}") from e


DEFAULT_CONFIG_PATHS = (
    "./config/topology.yaml",
    "./topology.yaml",
)


def load_config(
    config_path: Optional[str] = None,
    use_env: bool = True,
) -> TopologyConfig:
    """Load topology configuration.

    Priority order:
    1. Explicitly passed config_path
    2. KUBE_TOPOLOGY_CONFIG_PATH environment variable
    3. Default paths: ./config/topology.yaml, ./topology.yaml
    4. Environment variables only (pydantic-settings)

    Args:
        config_path: Optional path to YAML configuration file.
        use_env: Whether to load from environment variables.

    Returns:
        TopologyConfig instance.

    Raises:
        ConfigurationError: If config_path is given but does not exist, or a
            file or environment variable holds malformed YAML or invalid values.
    """
    if config_path:
        if not Path(config_path).exists():
            raise ConfigurationError(f"Config file not found: {config_path}")
        return _from_yaml(config_path)

    env_config_path = os.environ.get("KUBE_TOPOLOGY_CONFIG_PATH")
    if env_config_path and Path(env_config_path).exists():
        return _from_yaml(env_config_path)

    for default_path in DEFAULT_CONFIG_PATHS:
        if Path(default_path).exists():
            return _from_yaml(default_path)

    if use_env:
        try:
            return TopologyConfig.from_env()
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration in environment: {e}") from e

    return TopologyConfig.model_construct()
