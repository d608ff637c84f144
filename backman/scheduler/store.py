"""
TaskStore — JSON file persistence for scheduled tasks.

File: %PROGRAMDATA%\\BackMan\\tasks.json on Windows, ~/.backman/tasks.json
elsewhere (see backman.core.config).

Layout:
    {
      "Tasks": [
        {"Id": "...", "Name": "...", "ProgramPath": "...", ...},
        ...
      ]
    }

The file is meant to be edited by hand, so reading is lenient (see
Task.from_dict) while writing always produces the same canonical form.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Iterable

from backman.core.errors import StoreError
from backman.scheduler.task import Task

logger = logging.getLogger(__name__)


class TaskStore:
    """
    Ordered task list backed by one JSON file. Blocking I/O runs in the
    default executor.

    Usage:
        store = TaskStore(Path("tasks.json"))
        if store.exists():
            tasks = await store.load()
        await store.save(tasks)
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._save_lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.is_file()

    async def load(self) -> list[Task]:
        """Read every task in stored order. Raises StoreError."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._load_sync)

    def _load_sync(self) -> list[Task]:
        try:
            raw = self._path.read_text(encoding="utf-8-sig")
        except OSError as e:
            raise StoreError(f"Cannot read {self._path}: {e}", path=str(self._path)) from e
        try:
            data = json.loads(raw) if raw.strip() else {}
            tasks = [Task.from_dict(d) for d in _task_records(data)]
        except (ValueError, TypeError, OverflowError) as e:
            raise StoreError(f"Malformed task file {self._path}: {e}", path=str(self._path)) from e
        logger.debug(f"Loaded {len(tasks)} tasks from {self._path}")
        return tasks

    async def save(self, tasks: Iterable[Task]) -> None:
        """Replace the stored list. Raises StoreError.

        Saves are applied in call order; the list is serialized once the
        previous write has landed.
        """
        async with self._save_lock:
            payload = dumps(tasks)
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, self._save_sync, payload)

    def _save_sync(self, payload: str) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(
                prefix=f".{self._path.name}.", suffix=".tmp", dir=self._path.parent
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
                    f.write(payload)
                os.replace(tmp, self._path)
            except BaseException:
                Path(tmp).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StoreError(f"Cannot write {self._path}: {e}", path=str(self._path)) from e


def dumps(tasks: Iterable[Task]) -> str:
    """Canonical on-disk text for a task list."""
    return json.dumps(
        {"Tasks": [t.to_dict() for t in tasks]},
        indent=2,
        ensure_ascii=False,
    ) + "\n"


def _task_records(data: Any) -> list[Any]:
    if isinstance(data, list):
        return data
    if not isinstance(data, dict):
        raise ValueError("top-level value must be an object")
    for key, value in data.items():
        if key.lower() == "tasks":
            if value is None:
                return []
            if not isinstance(value, list):
                raise ValueError("'Tasks' must be a list")
            return value
    return []
