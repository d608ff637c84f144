"""Tests for CLI commands."""

import asyncio
import json
import os
import signal

import pytest
from pathlib import Path
from typer.testing import CliRunner
from backman.cli.main import SIGNAL_COMMANDS, _install_signal_handlers, app


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def home(tmp_path, monkeypatch):
    """Redirect the BackMan home directory and keep config files out."""
    monkeypatch.setattr(Path, "home", lambda: tmp_path)
    monkeypatch.setattr("platform.system", lambda: "Linux")
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("BACKMAN_STORE_PATH", raising=False)
    monkeypatch.delenv("BACKMAN_LOG_DIR", raising=False)
    return tmp_path


def test_version(runner):
    """backman version shows version."""
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert "0.1.0" in result.stdout


def test_list_without_store(runner, home):
    """backman list explains how to create the task file."""
    result = runner.invoke(app, ["list"])

    assert result.exit_code == 0
    assert "No tasks yet" in result.stdout
    assert not (home / ".backman" / "tasks.json").exists()


def test_list_shows_tasks(runner, home, monkeypatch):
    store_path = home / "tasks.json"
    store_path.write_text(json.dumps({
        "Tasks": [
            {"Name": "Backup", "ProgramPath": "b.bat", "ScheduleType": "Daily",
             "ScheduledTime": "09:00:00", "NextRun": "2025-01-16T09:00:00", "RunAsAdmin": True},
            {"Name": "Sync", "ProgramPath": "s.exe", "ScheduleType": "Interval",
             "Interval": "00:15:00", "IsEnabled": False},
        ]
    }), encoding="utf-8")
    monkeypatch.setenv("BACKMAN_STORE_PATH", str(store_path))

    result = runner.invoke(app, ["list"])

    assert result.exit_code == 0
    assert "2 Tasks" in result.stdout
    assert "Backup" in result.stdout
    assert "daily at 09:00" in result.stdout
    assert "2025-01-16 09:00" in result.stdout
    assert "every 15m" in result.stdout
    assert "disabled" in result.stdout


def test_list_malformed_store(runner, home, monkeypatch):
    store_path = home / "tasks.json"
    store_path.write_text("{ nope", encoding="utf-8")
    monkeypatch.setenv("BACKMAN_STORE_PATH", str(store_path))

    result = runner.invoke(app, ["list"])

    assert result.exit_code == 1
    assert "Malformed" in result.stdout


def test_paths(runner, home):
    result = runner.invoke(app, ["paths"])

    assert result.exit_code == 0
    assert "tasks.json" in result.stdout
    assert "config.toml" in result.stdout
    assert "logs" in result.stdout


def test_bad_config_file(runner, home):
    config_file = home / "broken.toml"
    config_file.write_text("[scheduler\n")

    result = runner.invoke(app, ["paths", "--config", str(config_file)])

    assert result.exit_code == 2


def test_autostart_off_windows(runner, home):
    result = runner.invoke(app, ["autostart"])

    assert result.exit_code == 0
    assert "could not be registered" in result.stdout


class FakeEngine:
    """Records which engine command a signal triggered."""

    def __init__(self):
        self.sent = []
        self.delivered = asyncio.Event()

    async def _record(self, name):
        self.sent.append(name)
        self.delivered.set()

    async def reload(self):
        await self._record("reload")

    async def restart(self):
        await self._record("restart")

    async def terminate(self):
        await self._record("terminate")


def test_signal_commands_cover_restart():
    assert SIGNAL_COMMANDS["SIGHUP"] == "reload"
    assert SIGNAL_COMMANDS["SIGUSR1"] == "restart"
    assert SIGNAL_COMMANDS["SIGTERM"] == "terminate"


@pytest.mark.skipif(not hasattr(signal, "SIGUSR1"), reason="needs POSIX signals")
@pytest.mark.asyncio
async def test_signals_reach_the_engine():
    engine = FakeEngine()
    pending = set()
    loop = asyncio.get_running_loop()
    installed = _install_signal_handlers(engine, pending)
    try:
        assert signal.SIGUSR1 in installed
        os.kill(os.getpid(), signal.SIGUSR1)
        await asyncio.wait_for(engine.delivered.wait(), timeout=2)
        assert engine.sent == ["restart"]
        await asyncio.sleep(0.01)
        assert not pending
    finally:
        for signum in installed:
            loop.remove_signal_handler(signum)
