"""
Kubernetes API gateway.

Thin wrapper over CoreV1Api. Every API or transport failure is re-raised
as GatewayError so that executors only deal with one error type.
"""

import copy
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List

from kubernetes import client
from kubernetes.client import V1Node, V1Pod
from kubernetes.client.exceptions import ApiException
from urllib3.exceptions import HTTPError

from nodus.errors import GatewayError
from nodus.modules.selector import CLASS_LABEL_KEY

logger = logging.getLogger("nodus.gateway.kube")

FAKE_NODE_ANNOTATION = "nodus/fake-node"


class KubernetesGateway:
    """ResourceGateway backed by a live cluster."""

    def __init__(self, core_v1: client.CoreV1Api):
        """
        Initialize the gateway.

        Args:
            core_v1: Configured CoreV1Api client
        """
        self.core_v1 = core_v1

    def _call(self, operation: str, fn: Callable, *args, **kwargs) -> Any:
        try:
            return fn(*args, **kwargs)
        except ApiException as e:
            logger.debug(f"{operation} failed: {e.status} {e.reason}")
            raise GatewayError(
                f"{operation} failed: {e.status} {e.reason}", operation=operation, status=e.status
            ) from e
        except HTTPError as e:
            logger.debug(f"{operation} failed: {e}")
            raise GatewayError(f"{operation} failed: {e}", operation=operation) from e

    def list_nodes(self, label_selector: str = "") -> List[V1Node]:
        result = self._call("list nodes", self.core_v1.list_node, label_selector=label_selector)
        return list(result.items or [])

    def list_pods(
        self, namespace: str, label_selector: str = "", field_selector: str = ""
    ) -> List[V1Pod]:
        result = self._call(
            "list pods",
            self.core_v1.list_namespaced_pod,
            namespace,
            label_selector=label_selector,
            field_selector=field_selector,
        )
        return list(result.items or [])

    def create_pod(
        self, namespace: str, name: str, labels: Dict[str, str], spec: Dict[str, Any]
    ) -> V1Pod:
        body = {
            "apiVersion": "v1",
            "kind": "Pod",
            "metadata": {"name": name, "namespace": namespace, "labels": dict(labels)},
            "spec": copy.deepcopy(spec),
        }
        return self._call(f"create pod {name}", self.core_v1.create_namespaced_pod, namespace, body)

    def update_pod_status(self, namespace: str, pod: V1Pod) -> V1Pod:
        name = pod.metadata.name
        return self._call(
            f"update status of pod {name}",
            self.core_v1.replace_namespaced_pod_status,
            name,
            namespace,
            pod,
        )

    def delete_node(self, name: str) -> None:
        self._call(f"delete node {name}", self.core_v1.delete_node, name)

    def delete_pod(self, namespace: str, name: str) -> None:
        self._call(f"delete pod {name}", self.core_v1.delete_namespaced_pod, name, namespace)

    def register_fake_node(
        self, name: str, class_name: str, labels: Dict[str, str], resources: Dict[str, str]
    ) -> None:
        """
        Register a fake node.

        Creates the Node object, then patches its status with the class
        capacity and a Ready condition. Nothing keeps the node heartbeating.
        """
        node_labels = dict(labels)
        node_labels.setdefault(CLASS_LABEL_KEY, class_name)
        body = {
            "apiVersion": "v1",
            "kind": "Node",
            "metadata": {
                "name": name,
                "labels": node_labels,
                "annotations": {FAKE_NODE_ANNOTATION: "true"},
            },
        }
        self._call(f"create node {name}", self.core_v1.create_node, body)

        now = datetime.now(timezone.utc)
        status = {
            "status": {
                "capacity": dict(resources),
                "allocatable": dict(resources),
                "conditions": [
                    {
                        "type": "Ready",
                        "status": "True",
                        "reason": "FakeNodeReady",
                        "message": f"fake node of class {class_name}",
                        "lastHeartbeatTime": now,
                        "lastTransitionTime": now,
                    }
                ],
            }
        }
        self._call(f"update status of node {name}", self.core_v1.patch_node_status, name, status)
        logger.debug(f"Registered fake node {name} (class: {class_name})")
