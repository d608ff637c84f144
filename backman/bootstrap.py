"""
Autostart registration — start BackMan when the user logs on.

Windows only: writes the per-user Run key. Failures are silent; autostart
is a convenience and never blocks the scheduler.
"""

from __future__ import annotations

import logging
import platform

logger = logging.getLogger(__name__)

RUN_KEY = r"Software\Microsoft\Windows\CurrentVersion\Run"
VALUE_NAME = "BackMan"


def register_autostart(command: str) -> bool:
    """Register `command` to run at logon. Returns True on success."""
    if platform.system().lower() != "windows":
        logger.debug("Autostart registration is only supported on Windows")
        return False
    try:
        import winreg

        with winreg.OpenKey(winreg.HKEY_CURRENT_USER, RUN_KEY, 0, winreg.KEY_SET_VALUE) as key:
            winreg.SetValueEx(key, VALUE_NAME, 0, winreg.REG_SZ, command)
    except OSError as e:
        logger.debug(f"Autostart registration failed: {e}")
        return False
    logger.info(f"Registered autostart: {command}")
    return True


def unregister_autostart() -> bool:
    """Remove the logon entry. Returns True if one was removed."""
    if platform.system().lower() != "windows":
        return False
    try:
        import winreg

        with winreg.OpenKey(winreg.HKEY_CURRENT_USER, RUN_KEY, 0, winreg.KEY_SET_VALUE) as key:
            winreg.DeleteValue(key, VALUE_NAME)
    except OSError as e:
        logger.debug(f"Autostart removal failed: {e}")
        return False
    return True
