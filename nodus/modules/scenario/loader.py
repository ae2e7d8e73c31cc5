"""
YAML scenario loading.

Scenario files hold one mapping per step:

    name: worker lifecycle
    steps:
      - {verb: create, object: pod, class: worker, count: 3}
      - {verb: assert, object: pod, class: worker, count: 3, within: 5}
      - {verb: change, object: pod, class: worker, count: 1, from: Pending, to: Running}
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .models import (
    AssertStep,
    ChangeStep,
    CreateStep,
    DeleteStep,
    ObjectKind,
    PodPhase,
    Scenario,
    Step,
    Verb,
)

logger = logging.getLogger("nodus.scenario")


class ScenarioLoadError(ValueError):
    """A scenario file could not be read or validated."""


class StepSpec(BaseModel):
    """One step as written in a scenario file."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    verb: Verb
    object: ObjectKind
    count: int = Field(..., ge=0)
    class_name: Optional[str] = Field(None, alias="class", min_length=1)
    phase: Optional[PodPhase] = None
    within: float = Field(default=0.0, ge=0)
    from_phase: Optional[PodPhase] = Field(None, alias="from")
    to_phase: Optional[PodPhase] = Field(None, alias="to")
    description: str = ""

    @model_validator(mode="after")
    def check_verb_fields(self) -> "StepSpec":
        """Make sure each verb gets the fields it needs."""
        if self.verb != Verb.ASSERT and not self.class_name:
            raise ValueError(f"{self.verb.value} step requires a class")
        if self.verb == Verb.CHANGE and (self.from_phase is None or self.to_phase is None):
            raise ValueError("change step requires both 'from' and 'to' phases")
        if self.verb != Verb.ASSERT and (self.phase is not None or self.within):
            raise ValueError("'phase' and 'within' are only valid on assert steps")
        return self

    def to_step(self) -> Step:
        if self.verb == Verb.ASSERT:
            payload = AssertStep(
                object=self.object,
                count=self.count,
                class_name=self.class_name,
                phase=self.phase,
                within=self.within,
            )
        elif self.verb == Verb.CREATE:
            payload = CreateStep(object=self.object, class_name=self.class_name, count=self.count)
        elif self.verb == Verb.CHANGE:
            payload = ChangeStep(
                object=self.object,
                class_name=self.class_name,
                count=self.count,
                from_phase=self.from_phase,
                to_phase=self.to_phase,
            )
        else:
            payload = DeleteStep(object=self.object, class_name=self.class_name, count=self.count)
        return Step(verb=self.verb, payload=payload, raw=self.description)


class ScenarioSpec(BaseModel):
    name: str = Field(..., min_length=1)
    steps: List[StepSpec] = Field(default_factory=list)

    def to_scenario(self) -> Scenario:
        return Scenario(name=self.name, steps=tuple(s.to_step() for s in self.steps))


def parse_scenario(data: Dict[str, Any]) -> Scenario:
    """Validate an already-decoded scenario mapping."""
    return ScenarioSpec.model_validate(data).to_scenario()


def load_scenario(path: Union[str, Path]) -> Scenario:
    """
    Load and validate a scenario file.

    Args:
        path: YAML scenario file

    Returns:
        Immutable Scenario

    Raises:
        ScenarioLoadError: If the file is missing, not YAML, or invalid
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ScenarioLoadError(f"cannot read scenario file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ScenarioLoadError(f"scenario file {path} must contain a mapping")
    data.setdefault("name", path.stem)

    try:
        scenario = parse_scenario(data)
    except ValidationError as e:
        raise ScenarioLoadError(f"invalid scenario file {path}: {e}") from e

    logger.debug(f"Loaded scenario '{scenario.name}' with {len(scenario)} steps from {path}")
    return scenario
