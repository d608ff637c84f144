"""
Mock launcher — for tests and dry runs.

Starts nothing. Records every LaunchSpec it receives so callers can
assert on them, and can be told to fail for particular targets.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

from backman.core.errors import LaunchError
from backman.launch.base import LaunchSpec, Launcher

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class LaunchRecord:
    spec: LaunchSpec
    at: float  # time.monotonic() when start() was called


class MockLauncher(Launcher):
    """
    Launcher that only records.

    Usage in tests:
        launcher = MockLauncher()
        launcher.fail_for("missing.exe")

        dispatcher = Dispatcher(launcher, elevation_delay=0)
        await dispatcher.execute(task)

        assert launcher.targets == ["notepad.exe"]
    """

    def __init__(self) -> None:
        self.records: list[LaunchRecord] = []
        self._failing: set[str] = set()

    def fail_for(self, target: str) -> None:
        """Make every later start() for `target` raise LaunchError."""
        self._failing.add(target)

    def start(self, spec: LaunchSpec) -> None:
        if spec.target in self._failing:
            raise LaunchError(
                f"Simulated launch failure for {spec.target}",
                target=spec.target,
                elevated=spec.elevated,
            )
        self.records.append(LaunchRecord(spec=spec, at=time.monotonic()))
        logger.info(f"[dry-run] would start {spec.command_line!r} (elevated={spec.elevated})")

    @property
    def specs(self) -> list[LaunchSpec]:
        return [r.spec for r in self.records]

    @property
    def targets(self) -> list[str]:
        return [r.spec.target for r in self.records]

    def get_info(self) -> dict[str, str]:
        return {"os": "any", "launcher": "mock", "elevation": "none"}
