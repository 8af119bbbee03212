"""Task models: the configured unit of work and the report a run produces."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class TaskType(str, Enum):
    """Closed set of task behaviors."""

    UPDATE_PLUGINS = "UpdatePlugins"
    RESTART_PLUGINS = "RestartPlugins"
    DIAGNOSTICS = "Diagnostics"
    RESTART_CAMERAS = "RestartCameras"
    REPORT_PLUGINS_STATUS = "ReportPluginsStatus"
    REPORT_HA_BATTERY_STATUS = "ReportHaBatteryStatus"
    REPORT_HA_CONSUMABLES = "ReportHaConsumables"
    TOMORROW_EVENTS_HA = "TomorrowEventsHa"
    RESTART_SCRYPTED = "RestartScrypted"
    REPORT_HA_UNAVAILABLE_ENTITIES = "ReportHaUnavailableEntities"


class Task(BaseModel):
    """A named, scheduled task decoded from the configuration store.

    Only the fields relevant to ``type`` are read by its handler; the rest
    keep their defaults and are ignored.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    type: Optional[TaskType] = None
    cron_expression: str = ""
    enabled: bool = True
    reboot_on_errors: bool = False
    skip_notify: bool = False
    beta: bool = False
    run_system_diagnostic: bool = True
    plugins: List[str] = Field(default_factory=list)
    devices: List[str] = Field(default_factory=list)
    max_stats: int = 5
    check_all_plugins: bool = True
    battery_threshold: float = 30
    calendar_days_in_future: int = 14
    entities_to_always_report: List[str] = Field(default_factory=list)
    entities_to_exclude: List[str] = Field(default_factory=list)
    additional_notifiers: List[str] = Field(default_factory=list)
    calendar_entity: Optional[str] = None


class DeferredActionKind(str, Enum):
    """Disruptive actions that must wait until the notification went out."""

    RESTART_SELF = "restart_self"
    RESTART_HOST = "restart_host"


class DeferredAction(BaseModel):
    """An action the executor runs after the notification step."""

    kind: DeferredActionKind
    description: str = ""


class ExecutionReport(BaseModel):
    """Outcome of a single task run."""

    message: str = ""
    priority: Optional[int] = None
    force_stop: bool = False
    deferred_action: Optional[DeferredAction] = None
    notified_targets: List[str] = Field(default_factory=list)
