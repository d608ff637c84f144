"""
Trigger implementations — compute the next run time for a task.

Usage:
    next_run = compute_next_run(task, now=datetime.now())

    trigger = make_trigger(task)
    trigger.description   # "daily at 09:00"

A task that has never been scheduled (last_run and next_run both NEVER)
always fires immediately, whatever its schedule.

Daily and weekly triggers are "sticky": once the time of day has passed,
every evaluation returns `now` again until the day (or week) rolls over,
so such a task is due on every tick for the rest of that period.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timedelta

from backman.scheduler.task import FOREVER, NEVER, ScheduleType, Task

WEEKLY_WEEKDAY = 0  # Monday; not configurable per task


class Trigger(ABC):
    """Computes the next run instant for one schedule kind."""

    @abstractmethod
    def next_fire_time(self, now: datetime) -> datetime:
        """
        Return the next instant at which the task should run.

        Returns FOREVER when the trigger never fires on its own.
        """
        ...

    @property
    @abstractmethod
    def description(self) -> str:
        """Human-readable description, e.g. 'daily at 09:00'."""
        ...


class StartupTrigger(Trigger):
    """Startup tasks are only re-armed by the engine's startup pass."""

    def next_fire_time(self, now: datetime) -> datetime:
        return FOREVER

    @property
    def description(self) -> str:
        return "at startup"


class DailyTrigger(Trigger):
    def __init__(self, at: timedelta) -> None:
        self._at = at

    def next_fire_time(self, now: datetime) -> datetime:
        today_at = _start_of_day(now) + self._at
        return now if today_at <= now else today_at

    @property
    def description(self) -> str:
        return f"daily at {_clock(self._at)}"


class WeeklyTrigger(Trigger):
    """Fires on Monday at the configured time of day."""

    def __init__(self, at: timedelta) -> None:
        self._at = at

    def next_fire_time(self, now: datetime) -> datetime:
        today = _start_of_day(now)
        days_ahead = (WEEKLY_WEEKDAY - today.weekday()) % 7
        target = today + timedelta(days=days_ahead) + self._at
        return now if target <= now else target

    @property
    def description(self) -> str:
        return f"weekly on Monday at {_clock(self._at)}"


class MonthlyTrigger(Trigger):
    """Fires on the first day of the month at the configured time of day."""

    def __init__(self, at: timedelta) -> None:
        self._at = at

    def next_fire_time(self, now: datetime) -> datetime:
        first_of_month = _start_of_day(now).replace(day=1)
        if now.day == 1 and now - _start_of_day(now) <= self._at:
            return first_of_month + self._at

        if first_of_month.month == 12:
            first_of_next = first_of_month.replace(year=first_of_month.year + 1, month=1)
        else:
            first_of_next = first_of_month.replace(month=first_of_month.month + 1)
        target = first_of_next + self._at
        return now if target <= now else target

    @property
    def description(self) -> str:
        return f"monthly on the 1st at {_clock(self._at)}"


class IntervalTrigger(Trigger):
    """Fires every `interval` after the previous run."""

    def __init__(self, interval: timedelta) -> None:
        self._interval = interval

    def next_fire_time(self, now: datetime) -> datetime:
        return now + self._interval

    @property
    def description(self) -> str:
        s = int(self._interval.total_seconds())
        if s and s % 3600 == 0:
            return f"every {s // 3600}h"
        if s and s % 60 == 0:
            return f"every {s // 60}m"
        return f"every {s}s"


class NeverTrigger(Trigger):
    """Fallback for schedules that cannot fire, e.g. an interval task with no interval."""

    def next_fire_time(self, now: datetime) -> datetime:
        return FOREVER

    @property
    def description(self) -> str:
        return "never"


def make_trigger(task: Task) -> Trigger:
    """Build the Trigger matching a task's schedule."""
    kind = task.schedule_type
    if kind is ScheduleType.STARTUP:
        return StartupTrigger()
    if kind is ScheduleType.DAILY:
        return DailyTrigger(task.scheduled_time)
    if kind is ScheduleType.WEEKLY:
        return WeeklyTrigger(task.scheduled_time)
    if kind is ScheduleType.MONTHLY:
        return MonthlyTrigger(task.scheduled_time)
    if kind is ScheduleType.INTERVAL and task.interval is not None:
        return IntervalTrigger(task.interval)
    return NeverTrigger()


def compute_next_run(task: Task, now: datetime) -> datetime:
    """Next scheduled instant for `task`, evaluated at `now`."""
    if task.last_run == NEVER and task.next_run == NEVER:
        return now
    return make_trigger(task).next_fire_time(now)


def _start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def _clock(offset: timedelta) -> str:
    minutes = int(offset.total_seconds()) // 60
    return f"{minutes // 60:02d}:{minutes % 60:02d}"
