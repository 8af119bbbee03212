"""Host restart handler."""

import structlog

from scrypted_monitor.handlers.context import ExecutionContext
from scrypted_monitor.models.task import (
    DeferredAction,
    DeferredActionKind,
    ExecutionReport,
    Task,
)

logger = structlog.get_logger(__name__)


async def run_restart_scrypted(task: Task, ctx: ExecutionContext) -> ExecutionReport:
    # The restart takes this process down, so it waits for the notification.
    logger.info("restart_scrypted_scheduled", task_name=task.name)
    return ExecutionReport(
        message="Scrypted restarted",
        deferred_action=DeferredAction(
            kind=DeferredActionKind.RESTART_HOST,
            description="Restart the Scrypted server",
        ),
    )
