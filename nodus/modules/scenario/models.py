"""
Scenario data models.

A scenario is an ordered, immutable tuple of steps. Each step pairs a
verb with the payload for that verb; the runner dispatches on the verb.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple, Union


class Verb(str, Enum):
    """Step verbs understood by the runner."""

    ASSERT = "assert"
    CREATE = "create"
    CHANGE = "change"
    DELETE = "delete"


class ObjectKind(str, Enum):
    """Resource kinds a step can target."""

    NODE = "node"
    POD = "pod"


class PodPhase(str, Enum):
    """Pod lifecycle phases, spelled as the API server reports them."""

    PENDING = "Pending"
    RUNNING = "Running"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    UNKNOWN = "Unknown"


def _plural(kind: ObjectKind, count: int) -> str:
    return kind.value if count == 1 else f"{kind.value}s"


@dataclass(frozen=True)
class AssertStep:
    object: ObjectKind
    count: int
    class_name: Optional[str] = None
    phase: Optional[PodPhase] = None
    within: float = 0.0  # seconds

    def describe(self) -> str:
        parts = ["assert", str(self.count)]
        if self.class_name:
            parts.append(self.class_name)
        parts.append(_plural(self.object, self.count))
        if self.phase:
            parts.extend(["is", self.phase.value])
        if self.within:
            parts.extend(["within", f"{self.within:g}", "seconds"])
        return " ".join(parts)


@dataclass(frozen=True)
class CreateStep:
    object: ObjectKind
    class_name: str
    count: int

    def describe(self) -> str:
        return f"create {self.count} {self.class_name} {_plural(self.object, self.count)}"


@dataclass(frozen=True)
class ChangeStep:
    object: ObjectKind
    class_name: str
    count: int
    from_phase: PodPhase
    to_phase: PodPhase

    def describe(self) -> str:
        return (
            f"change {self.count} {self.class_name} {_plural(self.object, self.count)} "
            f"from {self.from_phase.value} to {self.to_phase.value}"
        )


@dataclass(frozen=True)
class DeleteStep:
    object: ObjectKind
    class_name: str
    count: int

    def describe(self) -> str:
        return f"delete {self.count} {self.class_name} {_plural(self.object, self.count)}"


StepPayload = Union[AssertStep, CreateStep, ChangeStep, DeleteStep]


@dataclass(frozen=True)
class Step:
    """A verb and its payload. The payload type must match the verb."""

    verb: Verb
    payload: Optional[StepPayload] = None
    raw: str = ""

    @property
    def description(self) -> str:
        if self.raw:
            return self.raw
        if self.payload is not None:
            return self.payload.describe()
        return self.verb.value

    @classmethod
    def of(cls, payload: StepPayload, raw: str = "") -> "Step":
        """Build a step whose verb is derived from the payload type."""
        return cls(verb=PAYLOAD_VERBS[type(payload)], payload=payload, raw=raw)


PAYLOAD_VERBS = {
    AssertStep: Verb.ASSERT,
    CreateStep: Verb.CREATE,
    ChangeStep: Verb.CHANGE,
    DeleteStep: Verb.DELETE,
}


@dataclass(frozen=True)
class Scenario:
    name: str
    steps: Tuple[Step, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.steps)
