"""
Logging setup — console plus a daily log file, and an event recorder.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path

from backman.core.events import Event


def setup_logging(
    log_dir: Path | None = None,
    console_level: int | str = logging.WARNING,
    file_level: int | str = logging.DEBUG,
) -> logging.Logger:
    """
    Configure the "backman" logger.

    Args:
        log_dir: Directory for log files (default: ~/.backman/logs)
        console_level: Minimum level for console output
        file_level: Minimum level for file output

    Returns:
        The configured logger
    """
    log_dir = (log_dir or Path.home() / ".backman" / "logs").expanduser()
    log_dir.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger("backman")
    logger.setLevel(logging.DEBUG)
    logger.handlers = []

    console_handler = logging.StreamHandler()
    console_handler.setLevel(_level(console_level))
    console_handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
    logger.addHandler(console_handler)

    log_file = log_dir / f"backman_{datetime.now().strftime('%Y%m%d')}.log"
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(_level(file_level))
    file_handler.setFormatter(
        logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    logger.addHandler(file_handler)

    logger.info(f"Logging initialized. File: {log_file}")
    return logger


def _level(value: int | str) -> int:
    if isinstance(value, int):
        return value
    return logging.getLevelName(value.upper()) if value else logging.WARNING


class EventLogger:
    """
    Records every bus event as one JSON line.

    Usage:
        event_logger = EventLogger(log_dir=Path("~/.backman/logs"))
        bus.on("*", event_logger.handle)
    """

    def __init__(self, log_dir: Path | None = None) -> None:
        self._log_dir = (log_dir or Path.home() / ".backman" / "logs").expanduser()
        self._log_dir.mkdir(parents=True, exist_ok=True)
        self._events_file = self._log_dir / f"events_{datetime.now().strftime('%Y%m%d')}.jsonl"
        self._logger = logging.getLogger("backman.events")

    @property
    def path(self) -> Path:
        return self._events_file

    async def handle(self, event: Event) -> None:
        self._logger.debug(f"[{event.type}] source={event.source} data={event.data}")
        record = {
            "timestamp": datetime.fromtimestamp(event.timestamp).isoformat(),
            "id": event.id,
            "type": event.type,
            "source": event.source,
            "data": {k: _safe(v) for k, v in event.data.items()},
        }
        try:
            with open(self._events_file, "a", encoding="utf-8") as f:
                f.write(json.dumps(record) + "\n")
        except OSError as e:
            self._logger.warning(f"Failed to write event log: {e}")


def _safe(value):
    try:
        json.dumps(value)
        return value
    except (TypeError, ValueError):
        return str(value)
