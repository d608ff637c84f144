"""Shared test fixtures for BackMan."""

from datetime import datetime

import pytest
from backman.core.bus import EventBus
from backman.core.config import BackmanConfig
from backman.launch.mock import MockLauncher
from backman.scheduler.dispatcher import Dispatcher
from backman.scheduler.store import TaskStore


class FakeClock:
    """Settable replacement for datetime.now."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def config():
    """Create a default config without loading from disk."""
    return BackmanConfig()


@pytest.fixture
def bus():
    """Create a fresh event bus."""
    return EventBus()


@pytest.fixture
def store(tmp_path):
    return TaskStore(tmp_path / "tasks.json")


@pytest.fixture
def launcher():
    return MockLauncher()


@pytest.fixture
def dispatcher(launcher, bus):
    """Dispatcher with a tiny settling delay so tests stay fast."""
    return Dispatcher(launcher, elevation_delay=0.05, bus=bus)


@pytest.fixture
def clock():
    return FakeClock(datetime(2025, 1, 15, 10, 0, 0))
