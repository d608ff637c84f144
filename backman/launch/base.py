"""
Launcher interface — the only place BackMan touches the OS to start processes.

The dispatcher decides *how* a task should start (elevated or not, window
state, shell or direct) and hands a LaunchSpec to a Launcher. Launchers
fire and forget: they never wait for the process or capture its output.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum


class WindowStyle(str, Enum):
    NORMAL = "normal"
    MINIMIZED = "minimized"
    HIDDEN = "hidden"


@dataclass(frozen=True, slots=True)
class LaunchSpec:
    """Everything needed to start one external process."""

    target: str
    arguments: str = ""
    working_dir: str = ""
    window: WindowStyle = WindowStyle.NORMAL
    elevated: bool = False
    use_shell: bool = True

    @property
    def command_line(self) -> str:
        """Target and arguments as one command line."""
        target = f'"{self.target}"' if " " in self.target else self.target
        return f"{target} {self.arguments}".strip()


class Launcher(ABC):
    """
    Abstract base class for process launchers.

    Implementations:
        WindowsLauncher — ShellExecuteEx / CreateProcess
        PosixLauncher — subprocess, pkexec for elevation
        MockLauncher — records launches, starts nothing
    """

    @abstractmethod
    def start(self, spec: LaunchSpec) -> None:
        """
        Start the process described by `spec` and return immediately.

        Raises:
            LaunchError: the process could not be created (missing file,
                permission denied, elevation declined, ...)
        """
        ...

    @abstractmethod
    def get_info(self) -> dict[str, str]:
        """Return launcher environment info: os, launcher, elevation."""
        ...
