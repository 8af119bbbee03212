"""Services package exports."""

from scrypted_monitor.services.executor_service import TaskExecutor
from scrypted_monitor.services.logging_service import configure_logging
from scrypted_monitor.services.reconciler_service import Reconciler, compute_fingerprint
from scrypted_monitor.services.task_decoder import decode_task, load_enabled_tasks

__all__ = [
    "Reconciler",
    "TaskExecutor",
    "compute_fingerprint",
    "configure_logging",
    "decode_task",
    "load_enabled_tasks",
]
