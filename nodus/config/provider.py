"""Configuration provider following Black Box Design principles."""
import logging
import math
import os
from dataclasses import dataclass
from typing import Optional, Protocol


@dataclass
class ClusterConfig:
    """Cluster connection configuration."""
    namespace: str
    kubeconfig: Optional[str]
    context: Optional[str]
    in_cluster: bool
    dry_run: bool


@dataclass
class RunnerConfig:
    """Scenario runner configuration."""
    node_config_path: str
    pod_config_path: str
    poll_interval: float
    fail_fast: bool
    log_level: str


class ConfigProvider(Protocol):
    """Protocol for configuration providers."""

    def get_cluster_config(self) -> ClusterConfig:
        """Get cluster configuration."""
        ...

    def get_runner_config(self) -> RunnerConfig:
        """Get runner configuration."""
        ...


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


def check_poll_interval(value: float, source: str = "NODUS_POLL_INTERVAL") -> float:
    """Reject poll intervals that are not finite positive numbers."""
    if not math.isfinite(value) or value <= 0:
        raise ValueError(f"{source} must be a positive number, got {value}")
    return value


def check_log_level(level: str, source: str = "LOG_LEVEL") -> str:
    """Normalize a level name, rejecting names logging does not know."""
    level = level.upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ValueError(f"{source} must be DEBUG, INFO, WARNING, ERROR or CRITICAL, got {level}")
    return level


class EnvConfigProvider:
    """Environment-based configuration provider."""

    def get_cluster_config(self) -> ClusterConfig:
        """Get cluster configuration from environment variables."""
        return ClusterConfig(
            namespace=os.getenv("NODUS_NAMESPACE", "default"),
            kubeconfig=os.getenv("KUBECONFIG") or None,
            context=os.getenv("NODUS_KUBE_CONTEXT") or None,
            in_cluster=_flag("NODUS_IN_CLUSTER", "false"),
            dry_run=_flag("NODUS_DRY_RUN", "false"),
        )

    def get_runner_config(self) -> RunnerConfig:
        """Get runner configuration from environment variables."""
        poll_interval = check_poll_interval(float(os.getenv("NODUS_POLL_INTERVAL", "1.0")))

        return RunnerConfig(
            node_config_path=os.getenv("NODUS_NODE_CONFIG", "nodes.yaml"),
            pod_config_path=os.getenv("NODUS_POD_CONFIG", "pods.yaml"),
            poll_interval=poll_interval,
            fail_fast=_flag("NODUS_FAIL_FAST", "true"),
            log_level=check_log_level(os.getenv("LOG_LEVEL", "INFO")),
        )
