"""Unit tests for the task decoder."""

import json

import pytest
from pydantic import ValidationError

from scrypted_monitor.models.task import TaskType
from scrypted_monitor.services.task_decoder import (
    decode_task,
    load_enabled_tasks,
    read_task_names,
)


def _values(**tasks) -> dict:
    """Store snapshot with ``tasks`` listing the given names in order."""
    values = {"tasks": json.dumps(list(tasks))}
    for name, fields in tasks.items():
        for field, value in fields.items():
            values[f"task:{name}:{field}"] = value
    return values


class TestDecodeTask:
    def test_defaults_when_nothing_stored(self):
        task = decode_task("Nightly", {})

        assert task.name == "Nightly"
        assert task.type is None
        assert task.cron_expression == ""
        assert task.enabled is True
        assert task.reboot_on_errors is False
        assert task.skip_notify is False
        assert task.beta is False
        assert task.run_system_diagnostic is True
        assert task.check_all_plugins is True
        assert task.max_stats == 5
        assert task.battery_threshold == 30
        assert task.calendar_days_in_future == 14
        assert task.plugins == []
        assert task.additional_notifiers == []
        assert task.calendar_entity is None

    def test_reads_every_field(self):
        values = _values(
            Batteries={
                "type": "ReportHaBatteryStatus",
                "cron": "0 9 * * *",
                "enabled": "true",
                "reboot": "true",
                "skipNotify": "true",
                "systemDiagnostic": "false",
                "beta": "true",
                "maxStats": "10",
                "plugins": '["p1"]',
                "devices": '["d1", "d2"]',
                "checkAllPluginsVersion": "false",
                "batteryThreshold": "25.5",
                "calendarDaysInFuture": "7",
                "entitiesToAlwaysReport": '["sensor.phone"]',
                "entitiesToExclude": '["sensor.old"]',
                "additionalNotifiers": '["pushover"]',
                "calendarEntity": "calendar.family",
            }
        )

        task = decode_task("Batteries", values)

        assert task.type == TaskType.REPORT_HA_BATTERY_STATUS
        assert task.cron_expression == "0 9 * * *"
        assert task.reboot_on_errors is True
        assert task.skip_notify is True
        assert task.run_system_diagnostic is False
        assert task.beta is True
        assert task.max_stats == 10
        assert task.plugins == ["p1"]
        assert task.devices == ["d1", "d2"]
        assert task.check_all_plugins is False
        assert task.battery_threshold == 25.5
        assert task.calendar_days_in_future == 7
        assert task.entities_to_always_report == ["sensor.phone"]
        assert task.entities_to_exclude == ["sensor.old"]
        assert task.additional_notifiers == ["pushover"]
        assert task.calendar_entity == "calendar.family"

    def test_malformed_values_fall_back_to_defaults(self):
        values = _values(
            Broken={
                "type": "NotAType",
                "enabled": "yes please",
                "maxStats": '"ten"',
                "plugins": "not-json",
                "batteryThreshold": "true",
            }
        )

        task = decode_task("Broken", values)

        assert task.type is None
        assert task.enabled is True
        assert task.max_stats == 5
        assert task.plugins == []
        assert task.battery_threshold == 30

    def test_decoding_is_deterministic(self):
        values = _values(A={"type": "Diagnostics", "cron": "*/5 * * * *", "devices": '["x"]'})

        assert decode_task("A", values) == decode_task("A", values)


class TestTaskList:
    def test_read_task_names_keeps_order_and_drops_duplicates(self):
        values = {"tasks": json.dumps(["b", "a", "b", ""])}

        assert read_task_names(values) == ["b", "a"]

    def test_read_task_names_with_malformed_list(self):
        assert read_task_names({"tasks": "{oops"}) == []
        assert read_task_names({}) == []

    def test_load_enabled_tasks_filters_disabled(self):
        values = _values(
            First={"cron": "0 * * * *"},
            Second={"cron": "0 0 * * *", "enabled": "false"},
            Third={"cron": "0 1 * * *"},
        )

        tasks = load_enabled_tasks(values)

        assert [task.name for task in tasks] == ["First", "Third"]


class TestTaskSnapshot:
    def test_decoded_task_is_immutable(self):
        task = decode_task("Nightly", _values(Nightly={"cron": "0 3 * * *"}))

        with pytest.raises(ValidationError):
            task.cron_expression = "0 4 * * *"

        assert task.cron_expression == "0 3 * * *"
