"""Tests for launcher auto-detection."""

import platform
import pytest
from backman.core.errors import LaunchError
from backman.launch.base import LaunchSpec
from backman.launch.detect import detect_launcher
from backman.launch.mock import MockLauncher


def test_auto_detect():
    """Auto-detect returns a valid launcher for current OS."""
    launcher = detect_launcher("auto")
    info = launcher.get_info()

    if platform.system().lower() == "windows":
        assert info["launcher"] == "windows"
    else:
        assert info["launcher"] == "posix"


def test_explicit_windows():
    """Can explicitly request the Windows launcher."""
    if platform.system().lower() != "windows":
        pytest.skip("Windows launcher test only runs on Windows")

    assert detect_launcher("windows").get_info()["elevation"] == "runas (UAC)"


def test_explicit_posix():
    """Can explicitly request the POSIX launcher."""
    launcher = detect_launcher("posix", elevation_helper="doas")
    assert launcher.get_info()["elevation"] == "doas"


def test_mock():
    assert isinstance(detect_launcher("Mock"), MockLauncher)


def test_invalid_launcher():
    """Invalid launcher name raises ValueError."""
    with pytest.raises(ValueError, match="Unknown launcher"):
        detect_launcher("dos")


def test_mock_records_and_fails():
    launcher = MockLauncher()
    launcher.fail_for("bad.exe")

    launcher.start(LaunchSpec(target="good.exe", arguments="-x"))
    with pytest.raises(LaunchError, match="bad.exe"):
        launcher.start(LaunchSpec(target="bad.exe"))

    assert launcher.targets == ["good.exe"]
    assert launcher.specs[0].command_line == "good.exe -x"


def test_command_line_quotes_spaces():
    spec = LaunchSpec(target=r"C:\Program Files\App\app.exe", arguments="--flag")
    assert spec.command_line == r'"C:\Program Files\App\app.exe" --flag'
