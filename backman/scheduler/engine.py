"""
SchedulerEngine — owns the task list and fires tasks when they are due.

Lifecycle:

    IDLE ──start()──▶ STARTUP_PASS ──▶ TICKING ──TERMINATE──▶ STOPPED
                                         ▲   │
                                         └───┘ RELOAD / RESTART

- start(): loads the task file, runs every enabled startup task once (in
  stored order, elevated ones serialized with the settling delay), then
  arms the periodic tick.
- Every POLL_INTERVAL seconds: due non-elevated tasks run first, in order,
  each rescheduled and persisted right after it starts; due elevated tasks
  then run one by one in a background phase so a queue of consent prompts
  never stalls the timer.
- Loading (start, reload, restart) re-arms enabled tasks: never-scheduled
  tasks and missed non-startup activations become due immediately.

The engine is the single writer of the task list. Shells talk to it with
Command messages (reload, restart, terminate) that the loop handles between
ticks; they read state through snapshot().
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Callable

from backman.core.errors import StoreError
from backman.core.events import Event, EventType
from backman.scheduler.dispatcher import Dispatcher
from backman.scheduler.evaluator import DueSet, evaluate
from backman.scheduler.store import TaskStore
from backman.scheduler.task import FOREVER, NEVER, ScheduleType, Task, example_task
from backman.scheduler.triggers import compute_next_run, make_trigger

if TYPE_CHECKING:
    from backman.core.bus import EventBus

logger = logging.getLogger(__name__)

POLL_INTERVAL = 30   # seconds between due-task checks


class SchedulerState(str, Enum):
    IDLE = "idle"
    STARTUP_PASS = "startup_pass"
    TICKING = "ticking"
    STOPPED = "stopped"


class Command(str, Enum):
    RELOAD = "reload"        # re-read the task file, keep the tick cadence
    RESTART = "restart"      # re-read the task file, restart the tick timer
    TERMINATE = "terminate"  # stop ticking and exit the loop


@dataclass(frozen=True, slots=True)
class TaskView:
    """Read-only view of one task for display."""

    id: str
    name: str
    schedule: str
    next_run: datetime
    last_run: datetime
    enabled: bool
    due: bool


class SchedulerEngine:
    """
    Background scheduler.

    Usage:
        engine = SchedulerEngine(TaskStore(path), Dispatcher(launcher), bus=bus)
        await engine.start()
        ...
        await engine.reload()      # after the task file was edited
        await engine.stop()
    """

    def __init__(
        self,
        store: TaskStore,
        dispatcher: Dispatcher,
        *,
        poll_interval: float = POLL_INTERVAL,
        seed_example: bool = True,
        run_startup_tasks: bool = True,
        bus: "EventBus | None" = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._store = store
        self._dispatcher = dispatcher
        self._poll_interval = poll_interval
        self._seed_example = seed_example
        self._run_startup_tasks = run_startup_tasks
        self._bus = bus
        self._clock = clock

        self._tasks: list[Task] = []
        self._state = SchedulerState.IDLE
        self._commands: asyncio.Queue[Command] = asyncio.Queue()
        self._loop_task: asyncio.Task | None = None
        self._elevated_phases: set[asyncio.Task] = set()
        self._in_flight: set[str] = set()  # ids of elevated tasks queued or launching
        self._startup_done = False

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def tasks(self) -> list[Task]:
        return list(self._tasks)

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    async def start(self) -> None:
        """Load tasks, run the startup pass, then start the periodic loop."""
        if self._state is not SchedulerState.IDLE:
            return
        await self.load_tasks()
        if self._run_startup_tasks:
            await self.run_startup_pass()
        self._state = SchedulerState.TICKING
        self._loop_task = asyncio.create_task(self._loop(), name="backman-scheduler")
        logger.info("SchedulerEngine started")
        await self._emit(EventType.SCHEDULER_START, tasks=len(self._tasks))

    async def send(self, command: Command) -> None:
        """Queue a command for the loop."""
        await self._commands.put(command)

    async def reload(self) -> None:
        await self.send(Command.RELOAD)

    async def restart(self) -> None:
        await self.send(Command.RESTART)

    async def terminate(self) -> None:
        await self.send(Command.TERMINATE)

    async def stop(self) -> None:
        """Terminate and wait for the loop to finish."""
        if self._loop_task is None:
            self._state = SchedulerState.STOPPED
            return
        await self.terminate()
        await self.wait_closed()

    async def wait_closed(self) -> None:
        """Block until the loop has exited."""
        if self._loop_task is not None:
            await self._loop_task

    async def wait_idle(self) -> None:
        """Block until every queued elevated launch has been handled."""
        while self._elevated_phases:
            await asyncio.gather(*list(self._elevated_phases), return_exceptions=True)

    # ── Internal loop ─────────────────────────────────────────────────────────

    async def _loop(self) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._poll_interval
        while self._state is SchedulerState.TICKING:
            timeout = max(0.0, deadline - loop.time())
            try:
                command = await asyncio.wait_for(self._commands.get(), timeout)
            except asyncio.TimeoutError:
                await self._safe_tick()
                deadline = max(deadline + self._poll_interval, loop.time())
                continue

            logger.info(f"Scheduler command: {command.value}")
            if command is Command.TERMINATE:
                await self._shutdown()
                continue
            try:
                await self._reload()
            except Exception as e:
                logger.warning(f"Scheduler {command.value} failed (non-fatal): {e}")
            if command is Command.RESTART:
                deadline = loop.time() + self._poll_interval

    async def _safe_tick(self) -> None:
        try:
            await self.tick()
        except Exception as e:
            logger.warning(f"Scheduler tick error (non-fatal): {e}")

    async def _reload(self) -> None:
        await self.wait_idle()
        await self.load_tasks()
        await self._emit(EventType.SCHEDULER_RELOAD, tasks=len(self._tasks))

    async def _shutdown(self) -> None:
        self._state = SchedulerState.STOPPED
        phases = list(self._elevated_phases)
        for phase in phases:
            phase.cancel()
        if phases:
            await asyncio.gather(*phases, return_exceptions=True)
        self._in_flight.clear()
        logger.info("SchedulerEngine stopped")
        await self._emit(EventType.SCHEDULER_STOP)

    # ── Loading ───────────────────────────────────────────────────────────────

    async def load_tasks(self) -> None:
        """
        Replace the in-memory list with the stored one.

        A missing file is seeded with the example task. An unreadable or
        malformed file leaves the engine running with no tasks.
        """
        now = self._clock()
        if not self._store.exists():
            self._tasks = [example_task()] if self._seed_example else []
            logger.info(f"No task file at {self._store.path}, writing defaults")
            await self._persist()
            return

        try:
            tasks = await self._store.load()
        except StoreError as e:
            logger.error(f"Error loading tasks: {e}")
            await self._emit(EventType.STORE_ERROR, error=str(e), operation="load")
            self._tasks = []
            return

        for task in tasks:
            if not task.enabled:
                continue
            if task.next_run == NEVER:
                task.next_run = now
            elif task.next_run < now and task.schedule_type is not ScheduleType.STARTUP:
                task.next_run = now  # missed while BackMan was not running
        self._tasks = tasks
        logger.info(f"Loaded {len(tasks)} tasks from {self._store.path}")
        await self._persist()

    # ── Startup pass ──────────────────────────────────────────────────────────

    async def run_startup_pass(self) -> None:
        """Run each enabled startup task once, in stored order."""
        if self._startup_done:
            logger.debug("Startup pass already ran in this process")
            return
        self._startup_done = True
        previous = self._state
        self._state = SchedulerState.STARTUP_PASS
        try:
            startup_tasks = [
                t for t in self._tasks
                if t.enabled and t.schedule_type is ScheduleType.STARTUP
            ]
            logger.info(f"Running {len(startup_tasks)} startup tasks")
            for task in startup_tasks:
                await self._dispatcher.execute(task)
                task.last_run = self._clock()
                task.next_run = FOREVER
            await self._persist()
        finally:
            self._state = previous

    # ── Tick ──────────────────────────────────────────────────────────────────

    async def tick(self) -> DueSet:
        """
        Run everything that is due now.

        Non-elevated tasks are executed before this returns. Elevated tasks
        are handed to a background phase; use wait_idle() to await it.
        """
        now = self._clock()
        for task in self._tasks:
            if task.enabled:
                logger.debug(
                    f"Task {task.name!r}: next_run={task.next_run}, "
                    f"due={task.is_due(now)}, now={now}"
                )
        due = evaluate(self._tasks, now)
        logger.info(f"Found {len(due)} due tasks")
        await self._emit(
            EventType.SCHEDULER_TICK,
            due=len(due),
            elevated=len(due.elevated),
        )

        for task in due.regular:
            await self._dispatcher.execute(task)
            await self._reschedule(task)

        elevated = [t for t in due.elevated if t.id not in self._in_flight]
        if elevated:
            self._in_flight.update(t.id for t in elevated)
            phase = asyncio.create_task(self._run_elevated(elevated), name="backman-elevated")
            self._elevated_phases.add(phase)
            phase.add_done_callback(self._elevated_phases.discard)
        return due

    async def _run_elevated(self, tasks: list[Task]) -> None:
        try:
            for task in tasks:
                await self._dispatcher.execute(task)
                await self._reschedule(task)
                self._in_flight.discard(task.id)
        finally:
            for task in tasks:
                self._in_flight.discard(task.id)

    async def _reschedule(self, task: Task) -> None:
        now = self._clock()
        task.last_run = now
        if task.schedule_type is ScheduleType.STARTUP:
            task.next_run = FOREVER
        else:
            try:
                task.next_run = compute_next_run(task, now)
            except (OverflowError, ValueError) as e:
                logger.warning(f"Cannot schedule task {task.name!r}, disabling its timer: {e}")
                task.next_run = FOREVER
        logger.debug(f"Task {task.name!r} next_run set to {task.next_run}")
        await self._emit(
            EventType.TASK_RESCHEDULED,
            task_id=task.id,
            task_name=task.name,
            next_run=task.next_run.isoformat(),
        )
        await self._persist()

    # ── Persistence ───────────────────────────────────────────────────────────

    async def _persist(self) -> None:
        """Save the whole list. Failures keep the in-memory schedule."""
        try:
            await self._store.save(self._tasks)
        except StoreError as e:
            logger.warning(f"Could not save tasks: {e}")
            await self._emit(EventType.STORE_ERROR, error=str(e), operation="save")

    # ── Presentation ──────────────────────────────────────────────────────────

    def snapshot(self) -> list[TaskView]:
        """Current tasks as display-only views."""
        now = self._clock()
        return [
            TaskView(
                id=t.id,
                name=t.name,
                schedule=make_trigger(t).description,
                next_run=t.next_run,
                last_run=t.last_run,
                enabled=t.enabled,
                due=t.is_due(now),
            )
            for t in self._tasks
        ]

    def status_line(self) -> str:
        now = self._clock()
        enabled = sum(1 for t in self._tasks if t.enabled)
        due = sum(1 for t in self._tasks if t.is_due(now))
        return f"BackMan - {enabled} tasks ({due} due)"

    async def _emit(self, event_type: str, **data) -> None:
        if self._bus is not None:
            await self._bus.emit(Event(type=event_type, source="scheduler", data=data))
