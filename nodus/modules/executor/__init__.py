"""
Executor Module - Black Box Interface

Purpose: Execute scenario steps against the control plane
Interface: ScenarioRunner.run_scenario(), ScenarioRunner.run_all(), dispatch()
Hidden: Per-verb selection, validation and polling logic

Steps run strictly in order; the first failure stops the scenario.
"""

from .backoff import Backoff, poll_until
from .runner import ScenarioReport, ScenarioRunner, StepResult
from .steps import (
    AssertExecutor,
    ChangeExecutor,
    CreateExecutor,
    DeleteExecutor,
    StepExecutor,
    build_executors,
    condition_status,
)

__all__ = [
    "AssertExecutor",
    "Backoff",
    "ChangeExecutor",
    "CreateExecutor",
    "DeleteExecutor",
    "ScenarioReport",
    "ScenarioRunner",
    "StepExecutor",
    "StepResult",
    "build_executors",
    "condition_status",
    "poll_until",
]
