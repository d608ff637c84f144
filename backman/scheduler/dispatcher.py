"""
Dispatcher — turns a Task into a process launch.

Launch strategy:

    run_as_admin=False, run_in_background=True
        Direct invocation, no window, no shell.

    run_as_admin=False, run_in_background=False
        Shell-interpreted, window minimized or normal per start_minimized.

    run_as_admin=True
        Shell-interpreted with an elevation request (UAC / pkexec prompt),
        window per start_minimized. Batch scripts are run through cmd.exe
        and PowerShell scripts through the PowerShell executable.

Elevated launches are strictly one at a time: each one holds a lock for
the launch plus a settling delay, so at most one consent prompt is
pending at any moment.

Launch failures are logged and published as task:failed events, never
raised. Nothing is retried.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
from typing import TYPE_CHECKING

from backman.core.events import Event, EventType
from backman.launch.base import LaunchSpec, Launcher, WindowStyle
from backman.scheduler.task import Task, TaskType

if TYPE_CHECKING:
    from backman.core.bus import EventBus

logger = logging.getLogger(__name__)

ELEVATION_DELAY = 3.0  # seconds between consecutive elevated launches

COMMAND_INTERPRETER = "cmd.exe"
BATCH_EXTENSIONS = (".bat", ".cmd")
POWERSHELL_EXTENSIONS = (".ps1",)


def working_directory(task: Task) -> str:
    """Directory of the program, or the current directory when it has none."""
    return os.path.dirname(task.program_path) or os.getcwd()


def _window(task: Task) -> WindowStyle:
    return WindowStyle.MINIMIZED if task.start_minimized else WindowStyle.NORMAL


def build_user_launch(task: Task) -> LaunchSpec:
    """Launch parameters for a task running with the user's own rights."""
    if task.run_in_background:
        return LaunchSpec(
            target=task.program_path,
            arguments=task.arguments,
            working_dir=working_directory(task),
            window=WindowStyle.HIDDEN,
            elevated=False,
            use_shell=False,
        )
    return LaunchSpec(
        target=task.program_path,
        arguments=task.arguments,
        working_dir=working_directory(task),
        window=_window(task),
        elevated=False,
        use_shell=True,
    )


def build_elevated_launch(task: Task, powershell: str | None = None) -> LaunchSpec:
    """Launch parameters for a task that must run elevated."""
    script = task.program_path
    lowered = script.lower()
    target = script
    arguments = task.arguments

    if task.type is TaskType.BATCH or lowered.endswith(BATCH_EXTENSIONS):
        target = COMMAND_INTERPRETER
        if task.arguments:
            arguments = f'/c ""{script}" {task.arguments}"'
        else:
            arguments = f'/c "{script}"'
    elif task.type is TaskType.POWERSHELL or lowered.endswith(POWERSHELL_EXTENSIONS):
        target = powershell or find_powershell()
        arguments = f'-NoProfile -ExecutionPolicy Bypass -File "{script}" {task.arguments}'.strip()

    return LaunchSpec(
        target=target,
        arguments=arguments,
        working_dir=working_directory(task),
        window=_window(task),
        elevated=True,
        use_shell=True,
    )


def find_powershell() -> str:
    """Find the best PowerShell executable."""
    if shutil.which("pwsh"):
        return "pwsh"
    if shutil.which("powershell"):
        return "powershell"
    return "powershell.exe"


class Dispatcher:
    """
    Executes tasks through a Launcher.

    Usage:
        dispatcher = Dispatcher(detect_launcher(), bus=bus)
        started = await dispatcher.execute(task)
    """

    def __init__(
        self,
        launcher: Launcher,
        elevation_delay: float = ELEVATION_DELAY,
        bus: "EventBus | None" = None,
        powershell: str | None = None,
    ) -> None:
        self._launcher = launcher
        self._elevation_delay = elevation_delay
        self._bus = bus
        self._powershell = powershell
        self._elevation_lock = asyncio.Lock()

    @property
    def launcher(self) -> Launcher:
        return self._launcher

    async def execute(self, task: Task) -> bool:
        """Run a task with the strategy its run_as_admin flag selects."""
        if task.run_as_admin:
            return await self.execute_elevated(task)
        return await self.launch(task)

    async def launch(self, task: Task) -> bool:
        """Start a task with the user's own rights."""
        return await self._start(task, elevated=False)

    async def execute_elevated(self, task: Task) -> bool:
        """
        Start a task elevated, then hold the elevation lock for the
        settling delay before the next elevated launch may begin.
        """
        async with self._elevation_lock:
            started = await self._start(task, elevated=True)
            await asyncio.sleep(self._elevation_delay)
            return started

    async def _start(self, task: Task, elevated: bool) -> bool:
        spec: LaunchSpec | None = None
        try:
            if elevated:
                spec = build_elevated_launch(task, self._powershell)
            else:
                spec = build_user_launch(task)
            # ShellExecuteEx blocks while a consent prompt is open.
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, self._launcher.start, spec)
        except Exception as e:
            kind = "admin task" if elevated else "task"
            logger.warning(f"Failed to execute {kind} {task.name!r}: {e}")
            await self._emit(EventType.TASK_FAILED, task, spec, error=str(e))
            return False

        logger.info(f"Started task {task.name!r} (elevated={elevated})")
        await self._emit(EventType.TASK_LAUNCHED, task, spec)
        return True

    async def _emit(
        self,
        event_type: str,
        task: Task,
        spec: LaunchSpec | None,
        error: str | None = None,
    ) -> None:
        if self._bus is None:
            return
        data = {
            "task_id": task.id,
            "task_name": task.name,
            "target": spec.target if spec else task.program_path,
            "elevated": spec.elevated if spec else task.run_as_admin,
        }
        if error is not None:
            data["error"] = error
        await self._bus.emit(Event(type=event_type, source="dispatcher", data=data))
