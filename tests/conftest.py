"""
Shared pytest fixtures for Nodus tests.

This module provides common fixtures including:
- InMemoryGateway: synchronous stand-in for the control plane
- A sample class catalog with node and pod classes
- RecordingSleeper / FixedClock so polling tests never wait
"""

import os
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

import pytest
from kubernetes.client import V1Node, V1ObjectMeta, V1Pod, V1PodStatus

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from nodus.modules.catalog import ClassCatalog, NodeClass, NodeConfig, PodClass, PodConfig
from nodus.modules.executor import ScenarioRunner
from nodus.modules.gateway import InMemoryGateway


# =============================================================================
# Time Helpers
# =============================================================================

@dataclass
class RecordingSleeper:
    """Sleep replacement that records requested delays instead of sleeping."""
    calls: List[float] = field(default_factory=list)

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)

    @property
    def total(self) -> float:
        return sum(self.calls)


FIXED_NOW = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def fixed_clock() -> datetime:
    return FIXED_NOW


# =============================================================================
# Kubernetes Object Helpers
# =============================================================================

def make_pod(
    name: str,
    phase: str = "Pending",
    labels: Optional[Dict[str, str]] = None,
    namespace: str = "default",
) -> V1Pod:
    """Build a V1Pod as a list call would return it."""
    return V1Pod(
        metadata=V1ObjectMeta(name=name, namespace=namespace, labels=labels or {}),
        status=V1PodStatus(phase=phase, conditions=[]),
    )


def make_node(name: str, labels: Optional[Dict[str, str]] = None) -> V1Node:
    return V1Node(metadata=V1ObjectMeta(name=name, labels=labels or {}))


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def gateway():
    """Empty in-memory cluster."""
    return InMemoryGateway()


@pytest.fixture
def node_config():
    return NodeConfig(
        node_classes=[
            NodeClass(
                name="worker",
                labels={"np.class": "worker", "tier": "compute"},
                resources={"cpu": "4", "memory": "8Gi", "pods": "110"},
            ),
            NodeClass(name="gpu", labels={"np.class": "gpu"}, resources={"nvidia.com/gpu": "2"}),
        ]
    )


@pytest.fixture
def pod_config():
    return PodConfig(
        pod_classes=[
            PodClass(
                name="worker",
                labels={"np.class": "worker", "app": "load"},
                spec={"containers": [{"name": "main", "image": "busybox"}]},
            ),
            # No class label in the template; the runner adds it
            PodClass(
                name="batch",
                labels={"app": "batch"},
                spec={"containers": [{"name": "job", "image": "busybox"}]},
            ),
        ]
    )


@pytest.fixture
def catalog(node_config, pod_config):
    return ClassCatalog(node_config, pod_config)


@pytest.fixture
def sleeper():
    return RecordingSleeper()


@pytest.fixture
def runner(gateway, catalog, sleeper):
    """Runner wired to the in-memory gateway with no real sleeping."""
    return ScenarioRunner(gateway, catalog, namespace="default", sleep=sleeper, now=fixed_clock)
