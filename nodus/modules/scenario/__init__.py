"""
Scenario Module - Black Box Interface

Purpose: Describe scenarios as ordered, typed steps
Interface: Scenario, Step, step payloads, load_scenario()
Hidden: YAML layout, validation rules

The textual scenario grammar lives elsewhere; this module only holds the
structured form the runner consumes.
"""

from .loader import ScenarioLoadError, load_scenario, parse_scenario
from .models import (
    AssertStep,
    ChangeStep,
    CreateStep,
    DeleteStep,
    ObjectKind,
    PodPhase,
    Scenario,
    Step,
    StepPayload,
    Verb,
)

__all__ = [
    "AssertStep",
    "ChangeStep",
    "CreateStep",
    "DeleteStep",
    "ObjectKind",
    "PodPhase",
    "Scenario",
    "ScenarioLoadError",
    "Step",
    "StepPayload",
    "Verb",
    "load_scenario",
    "parse_scenario",
]
