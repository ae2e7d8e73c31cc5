"""
Step executors, one per verb.

Each executor checks the step payload, queries the gateway afresh and
raises the first ScenarioError it meets. Only AssertExecutor retries;
the others fail fast. Multi-item batches stop at the first failing item
and leave earlier items in place.
"""

import logging
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from functools import partial
from typing import Callable, ClassVar, Dict, List, Optional

from kubernetes.client import V1PodCondition, V1PodStatus

from nodus.errors import (
    ClassNotFoundError,
    CountMismatchError,
    GatewayError,
    InsufficientCountError,
    MissingPayloadError,
    NoOpTransitionError,
    NotFoundError,
    UnsupportedObjectError,
)
from nodus.modules.catalog import ClassCatalog
from nodus.modules.gateway import ResourceGateway
from nodus.modules.scenario import (
    AssertStep,
    ChangeStep,
    CreateStep,
    DeleteStep,
    ObjectKind,
    PodPhase,
    Step,
    Verb,
)
from nodus.modules.selector import CLASS_LABEL_KEY, field_selector, label_selector

from .backoff import Backoff, Sleeper, poll_until

logger = logging.getLogger("nodus.executor")

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _plural(kind: ObjectKind) -> str:
    return f"{kind.value}s"


def condition_status(from_phase: PodPhase, to_phase: PodPhase) -> str:
    """
    Status of the condition recorded for a phase change.

    Pending -> Running is True, any move to Succeeded or Failed is False,
    everything else keeps the API default of Unknown.
    """
    if from_phase == PodPhase.PENDING and to_phase == PodPhase.RUNNING:
        return "True"
    if to_phase in (PodPhase.SUCCEEDED, PodPhase.FAILED):
        return "False"
    return "Unknown"


class StepExecutor(ABC):
    """Base class: payload check plus shared collaborators."""

    verb: ClassVar[Verb]
    payload_type: ClassVar[type]

    def __init__(self, gateway: ResourceGateway, catalog: ClassCatalog, namespace: str = "default"):
        self.gateway = gateway
        self.catalog = catalog
        self.namespace = namespace

    def execute(self, step: Step) -> None:
        """Run a step, rejecting it if it has no payload for this verb."""
        payload = step.payload
        if payload is None or not isinstance(payload, self.payload_type):
            raise MissingPayloadError(f"there is no {self.verb.value} in this step")
        self.run(payload)

    @abstractmethod
    def run(self, payload) -> None:
        """Execute the verb-specific payload."""


class AssertExecutor(StepExecutor):
    """Poll until the cluster holds exactly the expected number of resources."""

    verb = Verb.ASSERT
    payload_type = AssertStep

    def __init__(
        self,
        gateway: ResourceGateway,
        catalog: ClassCatalog,
        namespace: str = "default",
        poll_interval: float = 1.0,
        sleep: Sleeper = time.sleep,
    ):
        super().__init__(gateway, catalog, namespace)
        self.poll_interval = poll_interval
        self.sleep = sleep

    def _count(self, step: AssertStep) -> int:
        if step.object == ObjectKind.NODE:
            return len(self.gateway.list_nodes(label_selector(step.class_name)))
        phase = step.phase.value if step.phase else None
        return len(
            self.gateway.list_pods(
                self.namespace, label_selector(step.class_name), field_selector(phase)
            )
        )

    def run(self, step: AssertStep) -> None:
        if step.object not in (ObjectKind.NODE, ObjectKind.POD):
            raise UnsupportedObjectError(f"assert object: {step.object} not supported")
        if step.object == ObjectKind.NODE and step.phase is not None:
            logger.warning(f"Nodes have no phase, ignoring phase {step.phase.value}")

        backoff = Backoff.for_budget(step.within, self.poll_interval)
        observed = 0
        last_error: Optional[GatewayError] = None
        attempts = 0

        def matches() -> bool:
            nonlocal observed, last_error, attempts
            attempts += 1
            try:
                observed = self._count(step)
            except GatewayError as e:
                last_error = e
                logger.warning(f"Poll {attempts}/{backoff.steps} failed: {e}")
                return False
            last_error = None
            if observed == step.count:
                return True
            logger.debug(
                f"Poll {attempts}/{backoff.steps}: found {observed} {_plural(step.object)}, "
                f"{step.count} expected"
            )
            return False

        if poll_until(matches, backoff, self.sleep):
            logger.info(f"Assertion met after {attempts} poll(s)")
            return
        if last_error is not None:
            raise last_error
        raise CountMismatchError(
            self._mismatch_message(step, observed), observed=observed, expected=step.count
        )

    @staticmethod
    def _mismatch_message(step: AssertStep, observed: int) -> str:
        if step.object == ObjectKind.NODE:
            if step.class_name:
                return f"found {observed} nodes of class {step.class_name}, but {step.count} expected"
            return f"found {observed} nodes but {step.count} expected"

        context = []
        if step.class_name:
            context.append(f"of class {step.class_name}")
        if step.phase:
            context.append(f"in phase {step.phase.value}")
        where = f" {' and '.join(context)}" if context else ""
        return f"found {observed} pods{where}, but {step.count} expected"


class CreateExecutor(StepExecutor):
    """Create `count` resources named `<class>-<i>` from a catalog class."""

    verb = Verb.CREATE
    payload_type = CreateStep

    @staticmethod
    def _labels(template: Dict[str, str], class_name: str) -> Dict[str, str]:
        labels = dict(template)
        labels.setdefault(CLASS_LABEL_KEY, class_name)
        return labels

    def run(self, step: CreateStep) -> None:
        if step.object == ObjectKind.NODE:
            self._create_nodes(step)
        elif step.object == ObjectKind.POD:
            self._create_pods(step)
        else:
            raise UnsupportedObjectError(f"create object: {step.object} not supported")

    def _create_nodes(self, step: CreateStep) -> None:
        node_class = self.catalog.node_class(step.class_name)
        if node_class is None:
            raise ClassNotFoundError(step.class_name, "node")

        labels = self._labels(node_class.labels, step.class_name)
        for i in range(step.count):
            name = f"{step.class_name}-{i}"
            try:
                self.gateway.register_fake_node(
                    name, step.class_name, labels, dict(node_class.resources)
                )
            except GatewayError as e:
                raise GatewayError(
                    f"could not create node {name} of class: {step.class_name} (index {i}): {e}",
                    operation=e.operation,
                    status=e.status,
                ) from e
        logger.info(f"Created {step.count} nodes of class {step.class_name}")

    def _create_pods(self, step: CreateStep) -> None:
        pod_class = self.catalog.pod_class(step.class_name)
        if pod_class is None:
            raise ClassNotFoundError(step.class_name, "pod")

        labels = self._labels(pod_class.labels, step.class_name)
        for i in range(step.count):
            name = f"{step.class_name}-{i}"
            try:
                self.gateway.create_pod(self.namespace, name, labels, pod_class.spec)
            except GatewayError as e:
                raise GatewayError(
                    f"could not create pod {name} of class: {step.class_name} (index {i}): {e}",
                    operation=e.operation,
                    status=e.status,
                ) from e
        logger.info(f"Created {step.count} pods of class {step.class_name}")


class ChangeExecutor(StepExecutor):
    """Move `count` pods of a class from one phase to another."""

    verb = Verb.CHANGE
    payload_type = ChangeStep

    def __init__(
        self,
        gateway: ResourceGateway,
        catalog: ClassCatalog,
        namespace: str = "default",
        now: Clock = utc_now,
    ):
        super().__init__(gateway, catalog, namespace)
        self.now = now

    def run(self, step: ChangeStep) -> None:
        if step.object != ObjectKind.POD:
            raise UnsupportedObjectError(f"change object: {step.object.value} not supported")
        if step.from_phase == step.to_phase:
            raise NoOpTransitionError(
                f"the change requested is to the same phase. "
                f"From phase: {step.from_phase.value}, to phase: {step.to_phase.value}"
            )

        pods = self.gateway.list_pods(
            self.namespace,
            label_selector(step.class_name),
            field_selector(step.from_phase.value),
        )
        if not pods:
            raise NotFoundError(
                f"found 0 pods of class: {step.class_name} and phase: {step.from_phase.value}, "
                f"expected: {step.count}",
                found=0,
                required=step.count,
            )
        if len(pods) < step.count:
            raise InsufficientCountError(
                f"expected at least {step.count} pods of class: {step.class_name} "
                f"and phase: {step.from_phase.value}, but found: {len(pods)}",
                found=len(pods),
                required=step.count,
            )

        status = condition_status(step.from_phase, step.to_phase)
        for pod in pods[: step.count]:
            name = pod.metadata.name
            if pod.status is None:
                pod.status = V1PodStatus()
            pod.status.phase = step.to_phase.value
            pod.status.conditions = list(pod.status.conditions or []) + [
                V1PodCondition(
                    type=step.to_phase.value,
                    status=status,
                    last_transition_time=self.now(),
                )
            ]
            try:
                self.gateway.update_pod_status(self.namespace, pod)
            except GatewayError as e:
                raise GatewayError(
                    f"could not change pod {name} to {step.to_phase.value}: {e}",
                    operation=e.operation,
                    status=e.status,
                ) from e
        logger.info(
            f"Changed {step.count} pods of class {step.class_name} "
            f"from {step.from_phase.value} to {step.to_phase.value}"
        )


class DeleteExecutor(StepExecutor):
    """Delete the first `count` resources of a class, in listed order."""

    verb = Verb.DELETE
    payload_type = DeleteStep

    def run(self, step: DeleteStep) -> None:
        selector = label_selector(step.class_name)
        if step.object == ObjectKind.NODE:
            names = [n.metadata.name for n in self.gateway.list_nodes(selector)]
            delete: Callable[[str], None] = self.gateway.delete_node
        elif step.object == ObjectKind.POD:
            names = [p.metadata.name for p in self.gateway.list_pods(self.namespace, selector)]
            delete = partial(self.gateway.delete_pod, self.namespace)
        else:
            raise UnsupportedObjectError(f"delete object: {step.object} not supported")

        kind = _plural(step.object)
        if len(names) < step.count:
            if not names:
                raise NotFoundError(
                    f"no {kind} found for class: {step.class_name}",
                    found=0,
                    required=step.count,
                )
            raise InsufficientCountError(
                f"found {len(names)} {kind} of class: {step.class_name}, but expected: {step.count}",
                found=len(names),
                required=step.count,
            )

        for name in names[: step.count]:
            delete(name)
        logger.info(f"Deleted {step.count} {kind} of class {step.class_name}")


def build_executors(
    gateway: ResourceGateway,
    catalog: ClassCatalog,
    namespace: str = "default",
    poll_interval: float = 1.0,
    sleep: Sleeper = time.sleep,
    now: Clock = utc_now,
) -> Dict[Verb, StepExecutor]:
    """One executor per verb; every Verb member must appear here."""
    executors: List[StepExecutor] = [
        AssertExecutor(gateway, catalog, namespace, poll_interval=poll_interval, sleep=sleep),
        CreateExecutor(gateway, catalog, namespace),
        ChangeExecutor(gateway, catalog, namespace, now=now),
        DeleteExecutor(gateway, catalog, namespace),
    ]
    return {e.verb: e for e in executors}
