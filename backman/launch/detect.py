"""
Launcher auto-detection — picks the right launcher for the current OS.
"""

from __future__ import annotations

import logging
import platform

from backman.launch.base import Launcher

logger = logging.getLogger(__name__)


def detect_launcher(preference: str = "auto", elevation_helper: str = "pkexec") -> Launcher:
    """
    Return a launcher for this system.

    Args:
        preference: "auto", "windows", "posix" or "mock".
                    "auto" picks by the current OS.
        elevation_helper: program used for elevation by the POSIX launcher.
    """
    name = preference.lower().strip()
    if name == "auto":
        name = "windows" if platform.system().lower() == "windows" else "posix"
        logger.info(f"Detected {platform.system()} — using {name} launcher")

    if name == "windows":
        from backman.launch.windows import WindowsLauncher

        return WindowsLauncher()
    if name == "posix":
        from backman.launch.posix import PosixLauncher

        return PosixLauncher(elevation_helper=elevation_helper)
    if name == "mock":
        from backman.launch.mock import MockLauncher

        return MockLauncher()
    raise ValueError(
        f"Unknown launcher: '{preference}'. "
        f"Available: windows, posix, mock"
    )
