"""
In-memory gateway.

A synchronous stand-in for the control plane: writes are visible to the
next read, list order is creation order. Used for dry runs and tests.
Returned objects are copies; mutating them does not touch the store.
"""

import copy
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from kubernetes.client import (
    V1Node,
    V1NodeCondition,
    V1NodeStatus,
    V1ObjectMeta,
    V1Pod,
    V1PodStatus,
)

from nodus.errors import GatewayError
from nodus.modules.selector import CLASS_LABEL_KEY

logger = logging.getLogger("nodus.gateway.memory")


def _parse_terms(selector: str) -> List[Tuple[str, str, Optional[str]]]:
    """Split `a=b,c!=d,e` into (key, op, value) terms."""
    terms = []
    for raw in selector.split(","):
        raw = raw.strip()
        if not raw:
            continue
        if "!=" in raw:
            key, value = raw.split("!=", 1)
            terms.append((key.strip(), "!=", value.strip()))
        elif "==" in raw:
            key, value = raw.split("==", 1)
            terms.append((key.strip(), "=", value.strip()))
        elif "=" in raw:
            key, value = raw.split("=", 1)
            terms.append((key.strip(), "=", value.strip()))
        elif raw.startswith("!"):
            terms.append((raw[1:].strip(), "!", None))
        else:
            terms.append((raw, "exists", None))
    return terms


def _matches(values: Dict[str, str], selector: str) -> bool:
    for key, op, expected in _parse_terms(selector):
        actual = values.get(key)
        if op == "=" and actual != expected:
            return False
        if op == "!=" and actual == expected:
            return False
        if op == "exists" and key not in values:
            return False
        if op == "!" and key in values:
            return False
    return True


def _pod_fields(pod: V1Pod) -> Dict[str, str]:
    fields = {
        "metadata.name": pod.metadata.name,
        "metadata.namespace": pod.metadata.namespace,
    }
    if pod.status is not None and pod.status.phase is not None:
        fields["status.phase"] = pod.status.phase
    return fields


class InMemoryGateway:
    """ResourceGateway that keeps nodes and pods in process memory."""

    def __init__(self):
        self._nodes: Dict[str, V1Node] = {}
        self._pods: Dict[Tuple[str, str], V1Pod] = {}
        self._pod_specs: Dict[Tuple[str, str], Dict[str, Any]] = {}

    def list_nodes(self, label_selector: str = "") -> List[V1Node]:
        return [
            copy.deepcopy(n)
            for n in self._nodes.values()
            if _matches(n.metadata.labels or {}, label_selector)
        ]

    def list_pods(
        self, namespace: str, label_selector: str = "", field_selector: str = ""
    ) -> List[V1Pod]:
        return [
            copy.deepcopy(p)
            for (ns, _), p in self._pods.items()
            if ns == namespace
            and _matches(p.metadata.labels or {}, label_selector)
            and _matches(_pod_fields(p), field_selector)
        ]

    def create_pod(
        self, namespace: str, name: str, labels: Dict[str, str], spec: Dict[str, Any]
    ) -> V1Pod:
        key = (namespace, name)
        if key in self._pods:
            raise GatewayError(
                f'create pod {name} failed: pods "{name}" already exists',
                operation=f"create pod {name}",
                status=409,
            )
        pod = V1Pod(
            api_version="v1",
            kind="Pod",
            metadata=V1ObjectMeta(
                name=name,
                namespace=namespace,
                labels=dict(labels),
                creation_timestamp=datetime.now(timezone.utc),
            ),
            status=V1PodStatus(phase="Pending", conditions=[]),
        )
        self._pods[key] = pod
        self._pod_specs[key] = copy.deepcopy(spec)
        return copy.deepcopy(pod)

    def update_pod_status(self, namespace: str, pod: V1Pod) -> V1Pod:
        name = pod.metadata.name
        key = (namespace, name)
        if key not in self._pods:
            raise GatewayError(
                f'update status of pod {name} failed: pods "{name}" not found',
                operation=f"update status of pod {name}",
                status=404,
            )
        stored = self._pods[key]
        stored.status = copy.deepcopy(pod.status)
        return copy.deepcopy(stored)

    def delete_node(self, name: str) -> None:
        if self._nodes.pop(name, None) is None:
            raise GatewayError(
                f'delete node {name} failed: nodes "{name}" not found',
                operation=f"delete node {name}",
                status=404,
            )

    def delete_pod(self, namespace: str, name: str) -> None:
        key = (namespace, name)
        if self._pods.pop(key, None) is None:
            raise GatewayError(
                f'delete pod {name} failed: pods "{name}" not found',
                operation=f"delete pod {name}",
                status=404,
            )
        self._pod_specs.pop(key, None)

    def register_fake_node(
        self, name: str, class_name: str, labels: Dict[str, str], resources: Dict[str, str]
    ) -> None:
        if name in self._nodes:
            raise GatewayError(
                f'create node {name} failed: nodes "{name}" already exists',
                operation=f"create node {name}",
                status=409,
            )
        node_labels = dict(labels)
        node_labels.setdefault(CLASS_LABEL_KEY, class_name)
        now = datetime.now(timezone.utc)
        self._nodes[name] = V1Node(
            api_version="v1",
            kind="Node",
            metadata=V1ObjectMeta(name=name, labels=node_labels, creation_timestamp=now),
            status=V1NodeStatus(
                capacity=dict(resources),
                allocatable=dict(resources),
                conditions=[
                    V1NodeCondition(
                        type="Ready",
                        status="True",
                        reason="FakeNodeReady",
                        last_heartbeat_time=now,
                        last_transition_time=now,
                    )
                ],
            ),
        )
        logger.debug(f"Registered fake node {name} (class: {class_name})")

    def pod_spec(self, namespace: str, name: str) -> Optional[Dict[str, Any]]:
        """Spec template a pod was created from."""
        return copy.deepcopy(self._pod_specs.get((namespace, name)))
