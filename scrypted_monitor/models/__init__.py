"""Models package exports."""

from scrypted_monitor.models.home_assistant import CalendarEvent, EntityState
from scrypted_monitor.models.registry import (
    ClusterFork,
    ClusterWorker,
    DeviceInfo,
    DiagnosticStep,
    PackageVersion,
    PluginRuntimeInfo,
    PluginStats,
    StatEntry,
    StepStatus,
)
from scrypted_monitor.models.task import (
    DeferredAction,
    DeferredActionKind,
    ExecutionReport,
    Task,
    TaskType,
)

__all__ = [
    "CalendarEvent",
    "ClusterFork",
    "ClusterWorker",
    "DeferredAction",
    "DeferredActionKind",
    "DeviceInfo",
    "DiagnosticStep",
    "EntityState",
    "ExecutionReport",
    "PackageVersion",
    "PluginRuntimeInfo",
    "PluginStats",
    "StatEntry",
    "StepStatus",
    "Task",
    "TaskType",
]
