"""
BackMan — a local task scheduler that starts programs on a schedule.

Public API:
    from backman import SchedulerEngine, TaskStore, Dispatcher, Task
"""

__version__ = "0.1.0"

# Core
from backman.core.config import BackmanConfig
from backman.core.bus import EventBus
from backman.core.events import Event, EventType
from backman.core.errors import BackmanError, ConfigError, LaunchError, StoreError

# Scheduler
from backman.scheduler.task import FOREVER, NEVER, ScheduleType, Task, TaskType
from backman.scheduler.triggers import compute_next_run
from backman.scheduler.evaluator import DueSet, evaluate
from backman.scheduler.store import TaskStore
from backman.scheduler.dispatcher import Dispatcher
from backman.scheduler.engine import Command, SchedulerEngine, SchedulerState

# Launchers
from backman.launch.base import LaunchSpec, Launcher, WindowStyle
from backman.launch.detect import detect_launcher

__all__ = [
    # Core
    "BackmanConfig",
    "EventBus",
    "Event",
    "EventType",
    "BackmanError",
    "ConfigError",
    "LaunchError",
    "StoreError",
    # Scheduler
    "Task",
    "TaskType",
    "ScheduleType",
    "NEVER",
    "FOREVER",
    "compute_next_run",
    "DueSet",
    "evaluate",
    "TaskStore",
    "Dispatcher",
    "SchedulerEngine",
    "SchedulerState",
    "Command",
    # Launchers
    "Launcher",
    "LaunchSpec",
    "WindowStyle",
    "detect_launcher",
]
