"""
Scheduler Task — the core data model.

A Task describes which program to start, how to start it, when it fires,
and its current state.

Timestamps are naive local datetimes. Two sentinels mark special states:
    NEVER   (datetime.min) — not yet run / not yet scheduled
    FOREVER (datetime.max) — will not fire again automatically

On disk a task is a JSON object with PascalCase keys:
    {"Id": "...", "Name": "Backup", "ProgramPath": "C:\\\\tools\\\\backup.bat",
     "ScheduleType": "Daily", "ScheduledTime": "09:00:00",
     "NextRun": "2025-01-06T09:00:00", "IsEnabled": true, ...}
Keys are matched case-insensitively when reading.
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any

NEVER = datetime.min
FOREVER = datetime.max


class TaskType(str, Enum):
    """How the program is interpreted when it has to run elevated."""

    PROGRAM = "Program"
    BATCH = "Batch"
    POWERSHELL = "PowerShell"


class ScheduleType(str, Enum):
    STARTUP = "Startup"
    DAILY = "Daily"
    WEEKLY = "Weekly"
    MONTHLY = "Monthly"
    INTERVAL = "Interval"


@dataclass
class Task:
    """A scheduled program launch."""

    name: str = ""
    program_path: str = ""
    arguments: str = ""
    description: str = ""
    type: TaskType = TaskType.PROGRAM

    start_minimized: bool = False
    run_in_background: bool = False
    run_as_admin: bool = False

    schedule_type: ScheduleType = ScheduleType.STARTUP
    interval: timedelta | None = None      # only used by INTERVAL
    scheduled_time: timedelta = timedelta(0)  # time of day for DAILY/WEEKLY/MONTHLY

    next_run: datetime = NEVER
    last_run: datetime = NEVER
    enabled: bool = True
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def is_due(self, now: datetime) -> bool:
        return self.enabled and self.next_run <= now

    def to_dict(self) -> dict[str, Any]:
        return {
            "Id": self.id,
            "Name": self.name,
            "Description": self.description,
            "ProgramPath": self.program_path,
            "Arguments": self.arguments,
            "Type": self.type.value,
            "StartMinimized": self.start_minimized,
            "RunInBackground": self.run_in_background,
            "RunAsAdmin": self.run_as_admin,
            "ScheduleType": self.schedule_type.value,
            "Interval": format_timespan(self.interval) if self.interval is not None else None,
            "ScheduledTime": format_timespan(self.scheduled_time),
            "NextRun": format_timestamp(self.next_run),
            "LastRun": format_timestamp(self.last_run),
            "IsEnabled": self.enabled,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "Task":
        """
        Build a Task from a stored record.

        Key matching ignores case and underscores, so "programPath",
        "ProgramPath" and "program_path" are all accepted. Unknown keys are
        ignored and missing ones take the dataclass defaults.
        """
        if not isinstance(d, dict):
            raise ValueError(f"Task record must be an object, got {type(d).__name__}")
        norm = {_normalize_key(k): v for k, v in d.items()}

        def get(key: str, default: Any = None) -> Any:
            value = norm.get(key)
            return default if value is None else value

        kwargs: dict[str, Any] = {
            "name": str(get("name", "")),
            "description": str(get("description", "")),
            "program_path": str(get("programpath", "")),
            "arguments": str(get("arguments", "")),
            "type": _parse_enum(TaskType, get("type", TaskType.PROGRAM)),
            "start_minimized": _parse_bool(get("startminimized", False)),
            "run_in_background": _parse_bool(get("runinbackground", False)),
            "run_as_admin": _parse_bool(get("runasadmin", False)),
            "schedule_type": _parse_enum(
                ScheduleType, get("scheduletype", ScheduleType.STARTUP)
            ),
            "interval": parse_timespan(norm["interval"]) if norm.get("interval") is not None else None,
            "scheduled_time": parse_timespan(get("scheduledtime", 0)),
            "next_run": parse_timestamp(get("nextrun", NEVER)),
            "last_run": parse_timestamp(get("lastrun", NEVER)),
            "enabled": _parse_bool(get("isenabled", get("enabled", True))),
        }
        if norm.get("id"):
            kwargs["id"] = str(norm["id"])
        return cls(**kwargs)


def example_task() -> Task:
    """The task written to a fresh store so users have something to edit."""
    return Task(
        name="Example Task - Edit Me",
        program_path="notepad.exe",
        schedule_type=ScheduleType.STARTUP,
        enabled=True,
    )


# ── Wire helpers ─────────────────────────────────────────────────────────────

_TIMESPAN_RE = re.compile(
    r"^(?P<sign>-)?(?:(?P<days>\d+)\.)?(?P<h>\d{1,2}):(?P<m>\d{1,2})"
    r"(?::(?P<s>\d{1,2})(?:\.(?P<frac>\d{1,7}))?)?$"
)
_FRACTION_RE = re.compile(r"(?<=\d{2}:\d{2}:\d{2})\.(\d+)")


def format_timespan(value: timedelta) -> str:
    """Format a duration as [-][d.]hh:mm:ss[.fffffff]."""
    sign = "-" if value < timedelta(0) else ""
    value = abs(value)
    hours, rem = divmod(value.seconds, 3600)
    minutes, seconds = divmod(rem, 60)
    text = f"{hours:02d}:{minutes:02d}:{seconds:02d}"
    if value.days:
        text = f"{value.days}.{text}"
    if value.microseconds:
        text += f".{value.microseconds:06d}0"
    return sign + text


def parse_timespan(value: Any) -> timedelta:
    """
    Parse a duration.

    Accepts timedelta, a number of seconds, "hh:mm[:ss[.fffffff]]" with an
    optional "d." day prefix, or a bare day count ("2").
    """
    if isinstance(value, timedelta):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        try:
            return timedelta(seconds=value)
        except (OverflowError, ValueError) as e:
            raise ValueError(f"Invalid duration: {value!r}") from e
    text = str(value).strip()
    if text.isdigit():
        try:
            return timedelta(days=int(text))
        except OverflowError as e:
            raise ValueError(f"Duration out of range: {value!r}") from e
    m = _TIMESPAN_RE.match(text)
    if not m:
        raise ValueError(f"Invalid duration: {value!r}")
    frac = (m.group("frac") or "").ljust(7, "0")
    try:
        result = timedelta(
            days=int(m.group("days") or 0),
            hours=int(m.group("h")),
            minutes=int(m.group("m")),
            seconds=int(m.group("s") or 0),
            microseconds=int(frac) // 10,
        )
    except OverflowError as e:
        raise ValueError(f"Duration out of range: {value!r}") from e
    return -result if m.group("sign") else result


def format_timestamp(value: datetime) -> str:
    return value.isoformat()


def parse_timestamp(value: Any) -> datetime:
    """
    Parse an ISO-8601 instant into a naive local datetime.

    Fractions beyond microseconds are truncated. Values carrying an offset
    are converted to local time; anything that falls outside the
    representable range clamps to NEVER or FOREVER.
    """
    if isinstance(value, datetime):
        return value
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    text = _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text)
    dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
        return dt
    try:
        return dt.astimezone().replace(tzinfo=None)
    except (OverflowError, ValueError):
        return NEVER if dt.year < 2 else FOREVER


def _normalize_key(key: str) -> str:
    return str(key).replace("_", "").lower()


def _parse_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1")
    return bool(value)


def _parse_enum(enum_cls: type[Enum], value: Any) -> Any:
    if isinstance(value, enum_cls):
        return value
    members = list(enum_cls)
    if isinstance(value, int) and not isinstance(value, bool):
        if 0 <= value < len(members):
            return members[value]
        raise ValueError(f"Invalid {enum_cls.__name__} ordinal: {value}")
    text = str(value).strip().lower()
    for member in members:
        if text in (member.value.lower(), member.name.lower()):
            return member
    raise ValueError(f"Unknown {enum_cls.__name__}: {value!r}")
