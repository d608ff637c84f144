"""
POSIX launcher — Linux and macOS.

There is no window manager contract here, so window styles are advisory
and only logged. Elevation goes through a helper program (pkexec by
default) that shows the desktop's own authentication dialog.
"""

from __future__ import annotations

import logging
import os
import platform
import shlex
import shutil
import subprocess

from backman.core.errors import LaunchError
from backman.launch.base import LaunchSpec, Launcher

logger = logging.getLogger(__name__)


class PosixLauncher(Launcher):
    """Launcher built on subprocess.Popen."""

    def __init__(self, elevation_helper: str = "pkexec", shell: str = "/bin/sh") -> None:
        self._elevation_helper = elevation_helper
        self._shell = shell

    def start(self, spec: LaunchSpec) -> None:
        argv = self.build_argv(spec)
        cwd = spec.working_dir or os.getcwd()
        logger.debug(f"Popen {argv!r} cwd={cwd!r} window={spec.window.value}")
        try:
            subprocess.Popen(
                argv,
                cwd=cwd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                close_fds=True,
                start_new_session=True,
            )
        except OSError as e:
            raise LaunchError(
                f"Failed to start {spec.target}: {e}",
                target=spec.target,
                elevated=spec.elevated,
            ) from e

    def build_argv(self, spec: LaunchSpec) -> list[str]:
        """
        Translate a LaunchSpec into an argv list.

        Direct:    [target, *args]
        Shell:     [sh, -c, "target args"]
        Elevated:  [helper, sh, -c, "cd <dir> && target args"]
        """
        if spec.elevated:
            helper = shutil.which(self._elevation_helper)
            if helper is None:
                raise LaunchError(
                    f"Elevation helper {self._elevation_helper!r} not found",
                    target=spec.target,
                    elevated=True,
                )
            # pkexec resets the working directory, so change into it inside the shell.
            script = self._shell_command(spec)
            if spec.working_dir:
                script = f"cd {shlex.quote(spec.working_dir)} && {script}"
            return [helper, self._shell, "-c", script]

        if spec.use_shell:
            return [self._shell, "-c", self._shell_command(spec)]

        try:
            args = shlex.split(spec.arguments)
        except ValueError as e:
            raise LaunchError(
                f"Cannot parse arguments for {spec.target}: {e}",
                target=spec.target,
            ) from e
        return [spec.target, *args]

    @staticmethod
    def _shell_command(spec: LaunchSpec) -> str:
        return f"{shlex.quote(spec.target)} {spec.arguments}".strip()

    def get_info(self) -> dict[str, str]:
        return {
            "os": platform.system().lower(),
            "launcher": "posix",
            "elevation": self._elevation_helper,
            "platform": platform.platform(),
        }
