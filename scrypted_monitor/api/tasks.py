"""Task inspection and manual execution endpoints."""

from fastapi import APIRouter, Depends, HTTPException
import structlog

from scrypted_monitor.api.dependencies import get_task_service
from scrypted_monitor.models.task import ExecutionReport, Task
from scrypted_monitor.services.task_service import TaskNotFoundError, TaskService

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/tasks", tags=["Tasks"])


def _format_task(task: Task, service: TaskService) -> dict:
    """Format a task for API response, with its timer status."""
    timer = service.reconciler.active_timers.get(task.name)
    return {
        "name": task.name,
        "type": task.type.value if task.type else None,
        "cron": task.cron_expression,
        "enabled": task.enabled,
        "skip_notify": task.skip_notify,
        "scheduled": timer is not None and timer.is_running,
        "next_run_at": timer.next_fire_time().isoformat() if timer else None,
    }


def _format_report(task_name: str, report: ExecutionReport) -> dict:
    return {
        "task": task_name,
        "message": report.message,
        "priority": report.priority,
        "notification_suppressed": report.force_stop,
        "notified": report.notified_targets,
        "deferred_action": report.deferred_action.kind.value if report.deferred_action else None,
    }


@router.get("")
async def list_tasks(service: TaskService = Depends(get_task_service)) -> dict:
    """List configured tasks and whether each one currently has a timer."""
    tasks = await service.list_tasks()
    return {
        "items": [_format_task(task, service) for task in tasks],
        "total": len(tasks),
        "active_timers": len(service.reconciler.active_timers),
        "fingerprint": service.reconciler.fingerprint,
    }


@router.post("/reconcile")
async def reconcile(service: TaskService = Depends(get_task_service)) -> dict:
    """Run one reconciliation now instead of waiting for the next tick."""
    changed = await service.reconciler.tick()
    return {
        "changed": changed,
        "active_timers": sorted(service.reconciler.active_timers),
    }


@router.post("/{task_name}/run")
async def run_task(
    task_name: str,
    service: TaskService = Depends(get_task_service),
) -> dict:
    """Execute a task immediately, bypassing its cron timer."""
    try:
        report = await service.run_task_now(task_name)
    except TaskNotFoundError:
        raise HTTPException(status_code=404, detail="Task not found")
    except Exception as e:
        logger.error("manual_execution_failed", task_name=task_name, error=str(e))
        raise HTTPException(status_code=500, detail=f"Task execution failed: {e}")

    return _format_report(task_name, report)
