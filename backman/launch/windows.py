"""
Windows launcher.

Shell-interpreted launches (including elevation) go through
ShellExecuteExW, the same path Explorer uses: the "runas" verb raises the
UAC consent prompt, and nShow controls the initial window state. Direct
launches use CreateProcess via subprocess with no console window.
"""

from __future__ import annotations

import ctypes
import logging
import os
import platform
import subprocess
from ctypes import wintypes

from backman.core.errors import LaunchError
from backman.launch.base import LaunchSpec, Launcher, WindowStyle

logger = logging.getLogger(__name__)

SW_HIDE = 0
SW_SHOWNORMAL = 1
SW_SHOWMINIMIZED = 2

SEE_MASK_NOCLOSEPROCESS = 0x00000040
SEE_MASK_NOASYNC = 0x00000100
SEE_MASK_FLAG_NO_UI = 0x00000400

ERROR_CANCELLED = 1223

_SHOW = {
    WindowStyle.NORMAL: SW_SHOWNORMAL,
    WindowStyle.MINIMIZED: SW_SHOWMINIMIZED,
    WindowStyle.HIDDEN: SW_HIDE,
}


class SHELLEXECUTEINFOW(ctypes.Structure):
    _fields_ = [
        ("cbSize", wintypes.DWORD),
        ("fMask", wintypes.ULONG),
        ("hwnd", wintypes.HWND),
        ("lpVerb", wintypes.LPCWSTR),
        ("lpFile", wintypes.LPCWSTR),
        ("lpParameters", wintypes.LPCWSTR),
        ("lpDirectory", wintypes.LPCWSTR),
        ("nShow", ctypes.c_int),
        ("hInstApp", wintypes.HINSTANCE),
        ("lpIDList", ctypes.c_void_p),
        ("lpClass", wintypes.LPCWSTR),
        ("hkeyClass", wintypes.HKEY),
        ("dwHotKey", wintypes.DWORD),
        ("hIconOrMonitor", wintypes.HANDLE),
        ("hProcess", wintypes.HANDLE),
    ]


class WindowsLauncher(Launcher):
    """Launcher for Windows desktops."""

    def start(self, spec: LaunchSpec) -> None:
        if spec.use_shell or spec.elevated:
            self._shell_execute(spec)
        else:
            self._create_process(spec)

    def get_info(self) -> dict[str, str]:
        return {
            "os": "windows",
            "launcher": "windows",
            "elevation": "runas (UAC)",
            "platform": platform.platform(),
        }

    # ── ShellExecuteEx ───────────────────────────────────────────────────────

    def _shell_execute(self, spec: LaunchSpec) -> None:
        shell32 = ctypes.WinDLL("shell32", use_last_error=True)
        kernel32 = ctypes.WinDLL("kernel32", use_last_error=True)

        info = SHELLEXECUTEINFOW()
        info.cbSize = ctypes.sizeof(info)
        info.fMask = SEE_MASK_NOCLOSEPROCESS | SEE_MASK_NOASYNC | SEE_MASK_FLAG_NO_UI
        info.lpVerb = "runas" if spec.elevated else "open"
        info.lpFile = spec.target
        info.lpParameters = spec.arguments or None
        info.lpDirectory = spec.working_dir or None
        info.nShow = _SHOW[spec.window]

        logger.debug(
            f"ShellExecuteEx verb={info.lpVerb} file={spec.target!r} "
            f"args={spec.arguments!r} cwd={spec.working_dir!r} show={info.nShow}"
        )
        if not shell32.ShellExecuteExW(ctypes.byref(info)):
            code = ctypes.get_last_error()
            if code == ERROR_CANCELLED:
                message = f"Elevation declined for {spec.target}"
            else:
                message = f"Failed to start {spec.target}: {ctypes.FormatError(code)}"
            raise LaunchError(
                message,
                target=spec.target,
                elevated=spec.elevated,
                details={"winerror": code},
            )
        if info.hProcess:
            kernel32.CloseHandle(info.hProcess)

    # ── CreateProcess ────────────────────────────────────────────────────────

    def _create_process(self, spec: LaunchSpec) -> None:
        startupinfo = subprocess.STARTUPINFO()
        startupinfo.dwFlags |= subprocess.STARTF_USESHOWWINDOW
        startupinfo.wShowWindow = _SHOW[spec.window]
        creationflags = 0
        if spec.window is WindowStyle.HIDDEN:
            creationflags |= getattr(subprocess, "CREATE_NO_WINDOW", 0)

        logger.debug(f"CreateProcess {spec.command_line!r} cwd={spec.working_dir!r}")
        try:
            subprocess.Popen(
                spec.command_line,
                cwd=spec.working_dir or os.getcwd(),
                startupinfo=startupinfo,
                creationflags=creationflags,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                close_fds=True,
            )
        except OSError as e:
            raise LaunchError(
                f"Failed to start {spec.target}: {e}",
                target=spec.target,
                elevated=False,
            ) from e
