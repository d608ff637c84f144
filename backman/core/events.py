"""
BackMan events — what the scheduler tells the outside world.

The engine and dispatcher publish events; presentation shells (the CLI,
a tray icon) subscribe to them instead of polling scheduler internals.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any
import time
import uuid


class EventType:
    """
    Event type constants.

    Hierarchical naming: "category:action"
    Supports wildcard matching: "task:*" matches "task:launched"
    """

    # Scheduler lifecycle
    SCHEDULER_START = "scheduler:start"
    SCHEDULER_STOP = "scheduler:stop"
    SCHEDULER_TICK = "scheduler:tick"
    SCHEDULER_RELOAD = "scheduler:reload"

    # Task execution
    TASK_LAUNCHED = "task:launched"
    TASK_FAILED = "task:failed"
    TASK_RESCHEDULED = "task:rescheduled"

    # Persistence
    STORE_ERROR = "store:error"

    # Wildcard
    ALL = "*"


@dataclass(slots=True)
class Event:
    """A single event published on the bus."""

    type: str
    data: dict[str, Any] = field(default_factory=dict)
    source: str = ""
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:16])
    timestamp: float = field(default_factory=time.time)
