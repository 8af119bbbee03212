"""Device handlers: diagnostics and camera reboots."""

import structlog

from scrypted_monitor.handlers.context import ExecutionContext
from scrypted_monitor.handlers.formatting import error_line, summarize_steps
from scrypted_monitor.models.registry import StepStatus
from scrypted_monitor.models.task import ExecutionReport, Task

logger = structlog.get_logger(__name__)


async def run_diagnostics(task: Task, ctx: ExecutionContext) -> ExecutionReport:
    """Validate each device, optionally rebooting the ones with errors.

    The report has one line per device, then a ``[System]`` line when the
    task also validates the whole system.
    """
    message = ""

    for device_id in task.devices:
        device = None
        try:
            device = await ctx.registry.get_device(device_id)
            if device is None:
                message += f"[{device_id}]: Device not found\n"
                continue

            logger.info("diagnostics_device_started", device=device.name)
            steps = await ctx.diagnostics.validate_device(device_id)
            summary = summarize_steps(steps)
            logger.info("diagnostics_device_result", device=device.name, summary=summary)
            line = f"[{device.name}]: {summary}"

            has_errors = any(step.status == StepStatus.ERROR for step in steps)
            if has_errors and task.reboot_on_errors and device.can_reboot:
                logger.info("diagnostics_rebooting_device", device=device.name)
                await ctx.registry.reboot_device(device_id)
                line += " | Restarting |"

            message += line + "\n"
        except Exception as e:
            name = device.name if device is not None else device_id
            logger.warning("diagnostics_device_failed", device=name, error=str(e))
            message += error_line(name, e)

    if task.run_system_diagnostic:
        try:
            logger.info("diagnostics_system_started")
            steps = await ctx.diagnostics.validate_system()
            summary = summarize_steps(steps)
            logger.info("diagnostics_system_result", summary=summary)
            message += f"[System]: {summary}\n"
        except Exception as e:
            logger.warning("diagnostics_system_failed", error=str(e))
            message += error_line("System", e)

    return ExecutionReport(message=message)


async def run_restart_cameras(task: Task, ctx: ExecutionContext) -> ExecutionReport:
    logger.info("restarting_cameras", devices=task.devices)
    message = ""

    for device_id in task.devices:
        device = None
        try:
            device = await ctx.registry.get_device(device_id)
            if device is None:
                message += f"[{device_id}]: Device not found\n"
                continue
            await ctx.registry.reboot_device(device_id)
            message += f"[{device.name}] Restarted\n"
        except Exception as e:
            name = device.name if device is not None else device_id
            logger.warning("camera_restart_failed", device=name, error=str(e))
            message += error_line(name, e)

    return ExecutionReport(message=message)
