"""Configuration providers for the scenario runner."""

from .provider import (
    ClusterConfig,
    ConfigProvider,
    EnvConfigProvider,
    RunnerConfig,
    check_log_level,
    check_poll_interval,
)

__all__ = [
    "ClusterConfig",
    "ConfigProvider",
    "EnvConfigProvider",
    "RunnerConfig",
    "check_log_level",
    "check_poll_interval",
]
