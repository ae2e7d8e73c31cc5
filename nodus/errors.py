"""
Error taxonomy for scenario execution.

Every executor raises a subclass of ScenarioError. The scenario runner
wraps the first one it sees in StepFailedError and stops.
"""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from nodus.modules.executor.runner import ScenarioReport


class ScenarioError(Exception):
    """Base class for all step execution failures."""


class UnsupportedObjectError(ScenarioError):
    """The verb is not implemented for the requested object kind."""


class UnknownVerbError(ScenarioError):
    """No executor is registered for the step verb."""


class MissingPayloadError(ScenarioError):
    """The step carries no payload matching its verb."""


class ClassNotFoundError(ScenarioError):
    """The class is absent from the catalog for the requested kind."""

    def __init__(self, class_name: str, kind: str):
        self.class_name = class_name
        self.kind = kind
        super().__init__(f"class: {class_name} not found in the {kind} config")


class InsufficientCountError(ScenarioError):
    """A query matched fewer resources than the step requires."""

    def __init__(self, message: str, found: int, required: int):
        self.found = found
        self.required = required
        super().__init__(message)


class NotFoundError(InsufficientCountError):
    """A query matched no resources at all."""


class CountMismatchError(ScenarioError):
    """An assertion still observed the wrong count after every poll."""

    def __init__(self, message: str, observed: int, expected: int):
        self.observed = observed
        self.expected = expected
        super().__init__(message)


class NoOpTransitionError(ScenarioError):
    """A change step asked for identical source and target phases."""


class GatewayError(ScenarioError):
    """A control plane call failed (network, auth, conflict, ...)."""

    def __init__(self, message: str, operation: str = "", status: Optional[int] = None):
        self.operation = operation
        self.status = status
        super().__init__(message)


class StepFailedError(ScenarioError):
    """Raised by the runner when a step fails; the scenario stops here."""

    def __init__(
        self,
        index: int,
        total: int,
        verb: str,
        cause: ScenarioError,
        report: Optional["ScenarioReport"] = None,
    ):
        self.index = index
        self.total = total
        self.verb = verb
        self.cause = cause
        self.report = report
        super().__init__(f"step [{index} / {total}] {verb} failed: {cause}")
