"""Wires the store, executor and reconciler together and runs tasks on demand."""

from typing import List, Optional
from zoneinfo import ZoneInfo

import structlog

from scrypted_monitor.config import get_settings
from scrypted_monitor.handlers.context import ExecutionContext
from scrypted_monitor.models.task import ExecutionReport, Task
from scrypted_monitor.services.executor_service import TaskExecutor
from scrypted_monitor.services.reconciler_service import Reconciler
from scrypted_monitor.services.storage_service import MANUAL_EXECUTION_KEY
from scrypted_monitor.services.task_decoder import decode_task, read_task_names

logger = structlog.get_logger(__name__)


class TaskNotFoundError(Exception):
    """Raised when a task name is not in the configured task list."""


def log_timer_event(event: str, task_name: str, cron_expression: str) -> None:
    logger.info("timer_event", timer_event=event, task_name=task_name, cron=cron_expression)


class TaskService:
    """Owns the reconciler and exposes the manual "run now" trigger."""

    def __init__(
        self,
        store,
        registry,
        diagnostics,
        home_assistant,
        package_registry,
        notifier,
        host,
        interval_seconds: Optional[float] = None,
        on_timer_event=log_timer_event,
    ):
        settings = get_settings()
        tz = ZoneInfo(settings.timezone)
        self.store = store
        self.context = ExecutionContext(
            registry=registry,
            diagnostics=diagnostics,
            home_assistant=home_assistant,
            package_registry=package_registry,
            self_package_names=settings.self_package_names,
            tz=tz,
        )
        self.executor = TaskExecutor(self.context, notifier, host, store=store)
        self.reconciler = Reconciler(
            store,
            self.executor.execute,
            interval_seconds=interval_seconds,
            tz=tz,
            on_timer_event=on_timer_event,
        )

    def start(self) -> None:
        self.reconciler.start()

    async def stop(self) -> None:
        await self.reconciler.stop()

    async def list_tasks(self) -> List[Task]:
        """Every configured task, enabled or not, in configured order."""
        values = await self.store.get_all()
        return [decode_task(name, values) for name in read_task_names(values)]

    async def run_task_now(self, task_name: str) -> ExecutionReport:
        """Execute a configured task immediately, bypassing its timer."""
        values = await self.store.get_all()
        if task_name not in read_task_names(values):
            raise TaskNotFoundError(task_name)

        await self.store.set(MANUAL_EXECUTION_KEY, task_name)
        task = decode_task(task_name, values)
        logger.info("manual_execution_requested", task_name=task_name)
        return await self.executor.execute(task)
