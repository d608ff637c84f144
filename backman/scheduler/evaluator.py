"""
Due-set evaluation — which tasks should run on this tick.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable

from backman.scheduler.task import ScheduleType, Task


@dataclass
class DueSet:
    """Due tasks split by privilege, each group in stored order."""

    regular: list[Task] = field(default_factory=list)
    elevated: list[Task] = field(default_factory=list)

    @property
    def all(self) -> list[Task]:
        return self.regular + self.elevated

    def __len__(self) -> int:
        return len(self.regular) + len(self.elevated)


def evaluate(tasks: Iterable[Task], now: datetime) -> DueSet:
    """
    Partition the due tasks into regular and elevated groups.

    Startup tasks are never part of a due set; only the engine's startup
    pass runs them.
    """
    due = DueSet()
    for task in tasks:
        if task.schedule_type is ScheduleType.STARTUP or not task.is_due(now):
            continue
        (due.elevated if task.run_as_admin else due.regular).append(task)
    return due
