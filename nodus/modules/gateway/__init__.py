"""
Gateway Module - Black Box Interface

Purpose: Talk to the cluster control plane
Interface: list_nodes(), list_pods(), create_pod(), update_pod_status(),
           delete_node(), delete_pod(), register_fake_node()
Hidden: Kubernetes client, credentials, transport errors

Can be replaced with any backend that honours ResourceGateway; an
in-memory backend ships for dry runs and tests.
"""

from .factory import GatewayFactory
from .interfaces import ResourceGateway
from .kube import KubernetesGateway
from .memory import InMemoryGateway

__all__ = ["GatewayFactory", "InMemoryGateway", "KubernetesGateway", "ResourceGateway"]
