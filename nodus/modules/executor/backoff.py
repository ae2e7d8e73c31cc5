"""
Bounded polling.

A Backoff describes how many times to try and how long to wait between
tries; poll_until runs a condition under it. The sleep function is
injectable so tests never wait on the wall clock.
"""

import math
import time
from dataclasses import dataclass
from typing import Callable, Iterator

Sleeper = Callable[[float], None]


def _check_interval(interval: float) -> None:
    if not math.isfinite(interval) or interval <= 0:
        raise ValueError(f"interval must be a positive number, got {interval}")


@dataclass(frozen=True)
class Backoff:
    """Fixed-count retry schedule."""

    interval: float = 1.0
    steps: int = 1
    factor: float = 1.0

    def __post_init__(self):
        _check_interval(self.interval)
        if self.steps < 1:
            raise ValueError(f"steps must be at least 1, got {self.steps}")

    @classmethod
    def for_budget(cls, budget_seconds: float, interval: float = 1.0) -> "Backoff":
        """
        One attempt per whole interval of the budget.

        A budget shorter than one interval still gets a single attempt.
        """
        _check_interval(interval)
        steps = math.floor(budget_seconds / interval + 1e-9) if budget_seconds > 0 else 0
        return cls(interval=interval, steps=max(1, steps))

    def delays(self) -> Iterator[float]:
        """Delay to sleep after each failed attempt, except the last."""
        delay = self.interval
        for _ in range(self.steps - 1):
            yield delay
            delay *= self.factor


def poll_until(
    condition: Callable[[], bool], backoff: Backoff, sleep: Sleeper = time.sleep
) -> bool:
    """
    Call condition until it returns True or the attempts run out.

    Returns:
        True on the first successful attempt, False if none succeeded
    """
    delays = backoff.delays()
    for attempt in range(backoff.steps):
        if condition():
            return True
        if attempt < backoff.steps - 1:
            sleep(next(delays))
    return False
