"""
Scenario runner.

Walks a scenario's steps in order and hands each to the executor for its
verb. The first failing step stops the scenario; its error is re-raised
as StepFailedError carrying the step index, verb and the partial report.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

from nodus.errors import ScenarioError, StepFailedError, UnknownVerbError
from nodus.modules.catalog import ClassCatalog
from nodus.modules.gateway import ResourceGateway
from nodus.modules.scenario import Scenario, Step, Verb

from .backoff import Sleeper
from .steps import Clock, StepExecutor, build_executors, utc_now

logger = logging.getLogger("nodus.runner")


@dataclass
class StepResult:
    """Outcome of one executed step."""

    index: int
    verb: str
    description: str
    passed: bool
    error: Optional[str] = None
    duration_ms: float = 0.0


@dataclass
class ScenarioReport:
    """Step results of one scenario run."""

    name: str
    total_steps: int
    results: List[StepResult] = field(default_factory=list)

    @property
    def completed(self) -> int:
        return sum(1 for r in self.results if r.passed)

    @property
    def passed(self) -> bool:
        return self.completed == self.total_steps

    @property
    def failed_step(self) -> Optional[StepResult]:
        return next((r for r in self.results if not r.passed), None)

    @property
    def duration_ms(self) -> float:
        return sum(r.duration_ms for r in self.results)

    def add_result(self, result: StepResult) -> None:
        self.results.append(result)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "passed": self.passed,
            "total_steps": self.total_steps,
            "completed": self.completed,
            "results": [
                {
                    "index": r.index,
                    "verb": r.verb,
                    "description": r.description,
                    "passed": r.passed,
                    "error": r.error,
                }
                for r in self.results
            ],
        }


class ScenarioRunner:
    """Executes scenarios step by step against a gateway."""

    def __init__(
        self,
        gateway: ResourceGateway,
        catalog: ClassCatalog,
        namespace: str = "default",
        poll_interval: float = 1.0,
        sleep: Sleeper = time.sleep,
        now: Clock = utc_now,
        executors: Optional[Mapping[Verb, StepExecutor]] = None,
    ):
        """
        Initialize the runner.

        Args:
            gateway: Control plane access
            catalog: Read-only class catalog
            namespace: Namespace pods are created and queried in
            poll_interval: Seconds between assert polls
            sleep: Sleep function used between assert polls
            now: Clock used to stamp pod conditions
            executors: Override the per-verb executors (tests)
        """
        self.namespace = namespace
        self.executors: Dict[Verb, StepExecutor] = dict(
            executors
            if executors is not None
            else build_executors(
                gateway, catalog, namespace, poll_interval=poll_interval, sleep=sleep, now=now
            )
        )

    def dispatch(self, step: Step) -> None:
        """Run one step through the executor registered for its verb."""
        executor = self.executors.get(step.verb)
        if executor is None:
            raise UnknownVerbError(f"unknown verb `{step.verb}`")
        executor.execute(step)

    def run_scenario(self, scenario: Scenario) -> ScenarioReport:
        """
        Run every step of a scenario in order.

        Returns:
            ScenarioReport with one passing result per step

        Raises:
            StepFailedError: On the first failing step; later steps are not run
        """
        total = len(scenario.steps)
        report = ScenarioReport(name=scenario.name, total_steps=total)
        logger.info(f"Run scenario '{scenario.name}' ({total} steps)", extra={"scenario": scenario.name})

        for index, step in enumerate(scenario.steps, 1):
            context = {"scenario": scenario.name, "step": f"{index}/{total}"}
            verb = step.verb.value if isinstance(step.verb, Verb) else str(step.verb)
            logger.info(f"Run step [{index} / {total}]: {step.description}", extra=context)

            start = time.perf_counter()
            try:
                self.dispatch(step)
            except ScenarioError as e:
                duration_ms = (time.perf_counter() - start) * 1000
                report.add_result(
                    StepResult(
                        index=index,
                        verb=verb,
                        description=step.description,
                        passed=False,
                        error=str(e),
                        duration_ms=duration_ms,
                    )
                )
                logger.error(f"Step [{index} / {total}] {verb} failed: {e}", extra=context)
                raise StepFailedError(index, total, verb, e, report) from e

            report.add_result(
                StepResult(
                    index=index,
                    verb=verb,
                    description=step.description,
                    passed=True,
                    duration_ms=(time.perf_counter() - start) * 1000,
                )
            )

        logger.info(f"Scenario '{scenario.name}' passed", extra={"scenario": scenario.name})
        return report

    def run_all(self, scenarios: Sequence[Scenario], fail_fast: bool = True) -> List[ScenarioReport]:
        """
        Run scenarios in order and collect their reports.

        A failed scenario contributes its partial report. With fail_fast the
        remaining scenarios are skipped after the first failure.
        """
        reports = []
        for scenario in scenarios:
            try:
                reports.append(self.run_scenario(scenario))
            except StepFailedError as e:
                reports.append(e.report)
                if fail_fast:
                    logger.info(f"Stopping after failed scenario '{scenario.name}'")
                    break
        return reports
