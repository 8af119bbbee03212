"""Decode tasks from a snapshot of the configuration store.

Every field is read from ``task:<name>:<field>``. Absent or malformed values
fall back to the field default; decoding never raises and never touches the
network.
"""

import json
from typing import Any, Callable, List, Mapping, Optional

from scrypted_monitor.models.task import Task, TaskType
from scrypted_monitor.services.storage_service import TASKS_KEY, task_key


def _is_bool(value: Any) -> bool:
    return isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_str_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(item, str) for item in value)


# Storage field -> (Task attribute, validator) for JSON-serialized fields
_JSON_FIELDS: dict[str, tuple[str, Callable[[Any], bool]]] = {
    "enabled": ("enabled", _is_bool),
    "reboot": ("reboot_on_errors", _is_bool),
    "skipNotify": ("skip_notify", _is_bool),
    "systemDiagnostic": ("run_system_diagnostic", _is_bool),
    "beta": ("beta", _is_bool),
    "checkAllPluginsVersion": ("check_all_plugins", _is_bool),
    "maxStats": ("max_stats", _is_int),
    "batteryThreshold": ("battery_threshold", _is_number),
    "calendarDaysInFuture": ("calendar_days_in_future", _is_int),
    "plugins": ("plugins", _is_str_list),
    "devices": ("devices", _is_str_list),
    "entitiesToAlwaysReport": ("entities_to_always_report", _is_str_list),
    "entitiesToExclude": ("entities_to_exclude", _is_str_list),
    "additionalNotifiers": ("additional_notifiers", _is_str_list),
}


def _read_json(raw: Optional[str], validator: Callable[[Any], bool]) -> Any:
    """Parse a stored JSON value; returns None when absent or unusable."""
    if raw is None or raw == "":
        return None
    try:
        value = json.loads(raw)
    except ValueError:
        return None
    return value if validator(value) else None


def _read_type(raw: Optional[str]) -> Optional[TaskType]:
    if not raw:
        return None
    try:
        return TaskType(raw)
    except ValueError:
        return None


def decode_task(name: str, values: Mapping[str, str]) -> Task:
    """Build the Task stored under ``name``, applying defaults."""
    fields: dict[str, Any] = {
        "name": name,
        "type": _read_type(values.get(task_key(name, "type"))),
        "cron_expression": (values.get(task_key(name, "cron")) or "").strip(),
        "calendar_entity": values.get(task_key(name, "calendarEntity")) or None,
    }

    for storage_field, (attribute, validator) in _JSON_FIELDS.items():
        value = _read_json(values.get(task_key(name, storage_field)), validator)
        if value is not None:
            fields[attribute] = value

    return Task(**fields)


def read_task_names(values: Mapping[str, str]) -> List[str]:
    """Configured task names in order, without duplicates."""
    names = _read_json(values.get(TASKS_KEY), _is_str_list) or []
    seen: set[str] = set()
    ordered: List[str] = []
    for name in names:
        if name and name not in seen:
            seen.add(name)
            ordered.append(name)
    return ordered


def load_enabled_tasks(values: Mapping[str, str]) -> List[Task]:
    """Decode every configured task and keep the enabled ones, in order."""
    tasks = [decode_task(name, values) for name in read_task_names(values)]
    return [task for task in tasks if task.enabled]
