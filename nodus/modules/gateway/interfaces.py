"""Resource gateway interface following Black Box Design principles."""
from typing import Any, Dict, List, Protocol

from kubernetes.client import V1Node, V1Pod


class ResourceGateway(Protocol):
    """
    Protocol for control plane access - allows swappable implementations.

    Every call is synchronous. Failures are raised as GatewayError; an empty
    list is a successful answer, not an error.
    """

    def list_nodes(self, label_selector: str = "") -> List[V1Node]:
        """List nodes matching a label selector."""
        ...

    def list_pods(
        self, namespace: str, label_selector: str = "", field_selector: str = ""
    ) -> List[V1Pod]:
        """List pods in a namespace matching label and field selectors."""
        ...

    def create_pod(
        self, namespace: str, name: str, labels: Dict[str, str], spec: Dict[str, Any]
    ) -> V1Pod:
        """Create a pod from a spec template."""
        ...

    def update_pod_status(self, namespace: str, pod: V1Pod) -> V1Pod:
        """Persist the status subresource of a pod."""
        ...

    def delete_node(self, name: str) -> None:
        """Delete a node by name."""
        ...

    def delete_pod(self, namespace: str, name: str) -> None:
        """Delete a pod by name."""
        ...

    def register_fake_node(
        self, name: str, class_name: str, labels: Dict[str, str], resources: Dict[str, str]
    ) -> None:
        """Register a node object with no compute behind it."""
        ...
