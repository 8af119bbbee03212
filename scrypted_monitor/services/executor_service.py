"""Task executor: dispatch by type, notify, then run deferred actions."""

import time
from typing import List, Optional, assert_never
from uuid import uuid4

import structlog

from scrypted_monitor.config import get_settings
from scrypted_monitor.handlers.context import ExecutionContext
from scrypted_monitor.handlers.devices import run_diagnostics, run_restart_cameras
from scrypted_monitor.handlers.home_assistant import (
    run_report_battery_status,
    run_report_consumables,
    run_report_unavailable_entities,
    run_tomorrow_events,
)
from scrypted_monitor.handlers.plugins import (
    run_report_plugins_status,
    run_restart_plugins,
    run_update_plugins,
)
from scrypted_monitor.handlers.scrypted import run_restart_scrypted
from scrypted_monitor.models.task import (
    DeferredAction,
    DeferredActionKind,
    ExecutionReport,
    Task,
    TaskType,
)
from scrypted_monitor.ports import HostControl, NotificationSink
from scrypted_monitor.services.storage_service import NOTIFIER_KEY

logger = structlog.get_logger(__name__)


class TaskExecutor:
    """Runs one task from start to finish.

    Every call is an independent run: the handler builds the report, the
    notification goes out unless suppressed, and only then does a deferred
    action (self or host restart) run.
    """

    def __init__(
        self,
        context: ExecutionContext,
        notifier: NotificationSink,
        host: HostControl,
        store=None,
    ):
        self.settings = get_settings()
        self.context = context
        self.notifier = notifier
        self.host = host
        self.store = store

    async def execute(self, task: Task) -> ExecutionReport:
        run_id = str(uuid4())
        start_time = time.perf_counter()

        with structlog.contextvars.bound_contextvars(task_name=task.name, run_id=run_id):
            logger.info("task_execution_started", task_type=task.type)

            report = await self._dispatch(task)
            report.notified_targets = await self._notify(task, report)

            if report.deferred_action is not None:
                await self._run_deferred(report.deferred_action)

            logger.info(
                "task_execution_finished",
                duration_ms=int((time.perf_counter() - start_time) * 1000),
                notified=len(report.notified_targets),
            )
            return report

    async def _dispatch(self, task: Task) -> ExecutionReport:
        ctx = self.context
        match task.type:
            case TaskType.DIAGNOSTICS:
                return await run_diagnostics(task, ctx)
            case TaskType.RESTART_PLUGINS:
                return await run_restart_plugins(task, ctx)
            case TaskType.UPDATE_PLUGINS:
                return await run_update_plugins(task, ctx)
            case TaskType.RESTART_CAMERAS:
                return await run_restart_cameras(task, ctx)
            case TaskType.REPORT_PLUGINS_STATUS:
                return await run_report_plugins_status(task, ctx)
            case TaskType.REPORT_HA_BATTERY_STATUS:
                return await run_report_battery_status(task, ctx)
            case TaskType.REPORT_HA_CONSUMABLES:
                return await run_report_consumables(task, ctx)
            case TaskType.TOMORROW_EVENTS_HA:
                return await run_tomorrow_events(task, ctx)
            case TaskType.RESTART_SCRYPTED:
                return await run_restart_scrypted(task, ctx)
            case TaskType.REPORT_HA_UNAVAILABLE_ENTITIES:
                return await run_report_unavailable_entities(task, ctx)
            case None:
                logger.warning("task_type_missing")
                return ExecutionReport(force_stop=True)
            case _:
                assert_never(task.type)

    async def _resolve_targets(self, task: Task) -> List[str]:
        if task.additional_notifiers:
            return list(task.additional_notifiers)

        default: Optional[str] = None
        if self.store is not None:
            try:
                default = await self.store.get(NOTIFIER_KEY)
            except Exception as e:
                logger.warning("default_notifier_lookup_failed", error=str(e))
        default = default or self.settings.default_notifier
        return [default] if default else []

    async def _notify(self, task: Task, report: ExecutionReport) -> List[str]:
        """Send the report to every target; returns the ones that got it."""
        if report.force_stop or task.skip_notify:
            logger.info(
                "notification_skipped",
                force_stop=report.force_stop,
                skip_notify=task.skip_notify,
            )
            return []

        targets = await self._resolve_targets(task)
        if not targets:
            logger.warning("notification_no_target")
            return []

        delivered = []
        for target in targets:
            try:
                await self.notifier.send(
                    target,
                    title=task.name,
                    body=report.message,
                    priority=report.priority,
                )
                delivered.append(target)
            except Exception as e:
                logger.error("notification_failed", target=target, error=str(e))
        return delivered

    async def _run_deferred(self, action: DeferredAction) -> None:
        logger.info("deferred_action_started", action=action.kind, description=action.description)
        match action.kind:
            case DeferredActionKind.RESTART_SELF:
                await self.host.restart_self()
            case DeferredActionKind.RESTART_HOST:
                await self.host.restart_host()
            case _:
                assert_never(action.kind)
