"""Tests for backman/core/logging.py"""

import json
import logging

import pytest
from backman.core.events import Event, EventType
from backman.core.logging import EventLogger, setup_logging


@pytest.mark.asyncio
async def test_event_logger_writes_jsonl(tmp_path):
    event_logger = EventLogger(log_dir=tmp_path)

    await event_logger.handle(
        Event(type=EventType.TASK_LAUNCHED, source="dispatcher", data={"task_name": "backup"})
    )
    await event_logger.handle(Event(type=EventType.SCHEDULER_STOP))

    lines = event_logger.path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    first = json.loads(lines[0])
    assert first["type"] == "task:launched"
    assert first["source"] == "dispatcher"
    assert first["data"] == {"task_name": "backup"}


@pytest.mark.asyncio
async def test_event_logger_stringifies_odd_values(tmp_path):
    event_logger = EventLogger(log_dir=tmp_path)
    await event_logger.handle(Event(type="x:y", data={"path": tmp_path}))

    record = json.loads(event_logger.path.read_text(encoding="utf-8"))
    assert record["data"]["path"] == str(tmp_path)


def test_setup_logging_creates_daily_file(tmp_path):
    logger = setup_logging(log_dir=tmp_path / "logs", console_level="ERROR")
    try:
        logger.getChild("test").info("hello from the test")
        for handler in logger.handlers:
            handler.flush()

        files = list((tmp_path / "logs").glob("backman_*.log"))
        assert len(files) == 1
        assert "hello from the test" in files[0].read_text(encoding="utf-8")
        console = next(h for h in logger.handlers if not isinstance(h, logging.FileHandler))
        assert console.level == logging.ERROR
    finally:
        for handler in list(logger.handlers):
            handler.close()
        logger.handlers = []
