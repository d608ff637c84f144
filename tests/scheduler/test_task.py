"""Tests for backman/scheduler/task.py"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from backman.scheduler.task import (
    FOREVER,
    NEVER,
    ScheduleType,
    Task,
    TaskType,
    example_task,
    format_timespan,
    parse_timespan,
    parse_timestamp,
)


class TestTaskDefaults:
    def test_defaults(self):
        task = Task()
        assert task.schedule_type is ScheduleType.STARTUP
        assert task.type is TaskType.PROGRAM
        assert task.next_run == NEVER
        assert task.last_run == NEVER
        assert task.enabled is True
        assert task.interval is None
        assert task.id

    def test_ids_are_unique(self):
        assert Task().id != Task().id

    def test_is_due(self):
        now = datetime(2025, 1, 15, 10, 0)
        assert Task(next_run=now).is_due(now)
        assert not Task(next_run=now + timedelta(seconds=1)).is_due(now)
        assert not Task(next_run=now, enabled=False).is_due(now)

    def test_example_task(self):
        task = example_task()
        assert task.name == "Example Task - Edit Me"
        assert task.program_path == "notepad.exe"
        assert task.schedule_type is ScheduleType.STARTUP
        assert task.enabled


class TestToDict:
    def test_pascal_case_keys(self):
        task = Task(
            name="Backup",
            program_path=r"C:\tools\backup.bat",
            type=TaskType.BATCH,
            schedule_type=ScheduleType.DAILY,
            scheduled_time=timedelta(hours=9),
            next_run=datetime(2025, 1, 16, 9, 0),
        )
        d = task.to_dict()
        assert d["Name"] == "Backup"
        assert d["ProgramPath"] == r"C:\tools\backup.bat"
        assert d["Type"] == "Batch"
        assert d["ScheduleType"] == "Daily"
        assert d["ScheduledTime"] == "09:00:00"
        assert d["NextRun"] == "2025-01-16T09:00:00"
        assert d["LastRun"] == "0001-01-01T00:00:00"
        assert d["Interval"] is None
        assert d["IsEnabled"] is True

    def test_sentinels_survive_a_round_trip(self):
        task = Task(next_run=FOREVER)
        back = Task.from_dict(task.to_dict())
        assert back.next_run == FOREVER
        assert back.last_run == NEVER


class TestFromDict:
    def test_case_insensitive_keys(self):
        task = Task.from_dict({
            "name": "n",
            "programPath": "a.exe",
            "run_as_admin": True,
            "SCHEDULETYPE": "interval",
            "Interval": "00:05:00",
        })
        assert task.program_path == "a.exe"
        assert task.run_as_admin is True
        assert task.schedule_type is ScheduleType.INTERVAL
        assert task.interval == timedelta(minutes=5)

    def test_missing_keys_take_defaults(self):
        task = Task.from_dict({"Name": "only a name"})
        assert task.program_path == ""
        assert task.enabled is True
        assert task.next_run == NEVER

    def test_id_preserved(self):
        assert Task.from_dict({"Id": "abc"}).id == "abc"

    def test_enum_ordinals(self):
        task = Task.from_dict({"Type": 2, "ScheduleType": 4})
        assert task.type is TaskType.POWERSHELL
        assert task.schedule_type is ScheduleType.INTERVAL

    def test_string_booleans(self):
        task = Task.from_dict({"IsEnabled": "false", "RunAsAdmin": "true"})
        assert task.enabled is False
        assert task.run_as_admin is True

    def test_enabled_alias(self):
        assert Task.from_dict({"Enabled": False}).enabled is False

    def test_unknown_schedule_rejected(self):
        with pytest.raises(ValueError):
            Task.from_dict({"ScheduleType": "Hourly"})

    def test_non_object_rejected(self):
        with pytest.raises(ValueError):
            Task.from_dict(["not", "a", "task"])


class TestTimespan:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("09:00:00", timedelta(hours=9)),
            ("09:30", timedelta(hours=9, minutes=30)),
            ("1.02:00:00", timedelta(days=1, hours=2)),
            ("00:00:01.5000000", timedelta(seconds=1, milliseconds=500)),
            ("-00:10:00", -timedelta(minutes=10)),
            ("2", timedelta(days=2)),
            (90, timedelta(seconds=90)),
        ],
    )
    def test_parse(self, text, expected):
        assert parse_timespan(text) == expected

    def test_parse_invalid(self):
        with pytest.raises(ValueError):
            parse_timespan("nine o'clock")

    @pytest.mark.parametrize("value", [1e400, float("nan"), "9999999999.00:00:00", "99999999999"])
    def test_parse_out_of_range(self, value):
        with pytest.raises(ValueError):
            parse_timespan(value)

    def test_format(self):
        assert format_timespan(timedelta(hours=9)) == "09:00:00"
        assert format_timespan(timedelta(days=1, minutes=5)) == "1.00:05:00"
        assert format_timespan(timedelta(milliseconds=250)) == "00:00:00.2500000"


class TestTimestamp:
    def test_naive(self):
        assert parse_timestamp("2025-01-16T09:00:00") == datetime(2025, 1, 16, 9, 0)

    def test_seven_digit_fraction_truncated(self):
        parsed = parse_timestamp("2025-01-16T09:00:00.1234567")
        assert parsed == datetime(2025, 1, 16, 9, 0, 0, 123456)

    def test_short_fraction_padded(self):
        parsed = parse_timestamp("2025-01-16T09:00:00.5")
        assert parsed.microsecond == 500000

    def test_offset_converted_to_local(self):
        parsed = parse_timestamp("2025-01-16T09:00:00Z")
        expected = datetime(2025, 1, 16, 9, 0, tzinfo=timezone.utc).astimezone().replace(tzinfo=None)
        assert parsed.tzinfo is None
        assert parsed == expected

    def test_sentinel_text(self):
        assert parse_timestamp("0001-01-01T00:00:00") == NEVER
        assert parse_timestamp("9999-12-31T23:59:59.9999999") == FOREVER
