"""
Gateway Factory following Black Box Design principles.

This factory:
- Loads cluster credentials based on configuration
- Wires the API client into a gateway
- Returns only the ResourceGateway interface
"""

import logging

from kubernetes import client, config
from kubernetes.config.config_exception import ConfigException

from nodus.config.provider import ClusterConfig
from nodus.errors import GatewayError

from .interfaces import ResourceGateway
from .kube import KubernetesGateway
from .memory import InMemoryGateway

logger = logging.getLogger(__name__)


class GatewayFactory:
    """
    Factory for building the resource gateway.

    This is the composition root that:
    - Picks the in-memory or the Kubernetes backend
    - Loads kubeconfig or in-cluster credentials
    - Returns the gateway interface
    """

    @staticmethod
    def build(cluster_config: ClusterConfig) -> ResourceGateway:
        """
        Build a gateway for the configured cluster.

        Args:
            cluster_config: Cluster connection configuration

        Returns:
            ResourceGateway

        Raises:
            GatewayError: If cluster credentials cannot be loaded
        """
        if cluster_config.dry_run:
            logger.info("Building in-memory gateway (dry run)")
            return InMemoryGateway()

        try:
            if cluster_config.in_cluster:
                logger.info("Building Kubernetes gateway with in-cluster credentials")
                config.load_incluster_config()
            else:
                logger.info(
                    f"Building Kubernetes gateway from kubeconfig "
                    f"{cluster_config.kubeconfig or '(default)'}"
                )
                config.load_kube_config(
                    config_file=cluster_config.kubeconfig,
                    context=cluster_config.context,
                )
        except (ConfigException, OSError) as e:
            raise GatewayError(f"cannot load cluster credentials: {e}", operation="connect") from e

        return KubernetesGateway(client.CoreV1Api())

    @staticmethod
    def build_for_testing(core_v1=None) -> ResourceGateway:
        """
        Build a gateway for tests.

        Args:
            core_v1: Mock CoreV1Api; without one an in-memory gateway is returned
        """
        if core_v1 is not None:
            return KubernetesGateway(core_v1)
        return InMemoryGateway()
