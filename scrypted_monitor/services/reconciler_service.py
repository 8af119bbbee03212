"""Keeps one cron timer per enabled task in sync with the configuration store."""

import asyncio
import json
from datetime import datetime, tzinfo
from typing import Awaitable, Callable, Dict, List, Optional, Set
from zoneinfo import ZoneInfo

import structlog
from croniter import croniter

from scrypted_monitor.config import get_settings
from scrypted_monitor.models.task import Task
from scrypted_monitor.services.task_decoder import load_enabled_tasks

logger = structlog.get_logger(__name__)

TaskRunner = Callable[[Task], Awaitable[object]]
TimerListener = Callable[[str, str, str], None]


def compute_fingerprint(tasks: List[Task]) -> str:
    """Order-sensitive serialization of the enabled task list."""
    return json.dumps([task.model_dump_json() for task in tasks])


class CronTimer:
    """Fires ``runner(task)`` on every match of the task's cron expression.

    Six-field expressions carry a leading seconds field
    (``0 0 8 * * *`` is 08:00:00 daily); five-field ones fire at second 0.

    The task is captured when the timer is created. Each fire runs in its own
    asyncio task, so a slow run never delays the next fire and stopping the
    timer leaves in-flight runs alone.
    """

    def __init__(self, task: Task, runner: TaskRunner, tz: tzinfo):
        if not croniter.is_valid(task.cron_expression, second_at_beginning=True):
            raise ValueError(f"Invalid cron expression: {task.cron_expression!r}")
        self.task = task
        self._runner = runner
        self._tz = tz
        self._loop_task: Optional[asyncio.Task] = None
        self._runs: Set[asyncio.Task] = set()

    @property
    def is_running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    def next_fire_time(self, now: Optional[datetime] = None) -> datetime:
        now = now or datetime.now(self._tz)
        return croniter(
            self.task.cron_expression, now, second_at_beginning=True
        ).get_next(datetime)

    def start(self) -> None:
        self._loop_task = asyncio.create_task(self._schedule_loop())

    def stop(self) -> None:
        if self._loop_task is not None:
            self._loop_task.cancel()
            self._loop_task = None

    async def _schedule_loop(self) -> None:
        while True:
            now = datetime.now(self._tz)
            delay = (self.next_fire_time(now) - now).total_seconds()
            await asyncio.sleep(max(delay, 0))
            run = asyncio.create_task(self._fire())
            self._runs.add(run)
            run.add_done_callback(self._runs.discard)
            # Step past the matched second so one match fires once
            await asyncio.sleep(1)

    async def _fire(self) -> None:
        try:
            await self._runner(self.task)
        except Exception as e:
            logger.exception(
                "task_execution_failed",
                task_name=self.task.name,
                error=str(e),
            )


class Reconciler:
    """Polls the configuration store and replaces all timers on change.

    Timers are never patched one by one: a changed fingerprint stops every
    timer, then starts one per enabled task.
    """

    def __init__(
        self,
        store,
        runner: TaskRunner,
        interval_seconds: Optional[float] = None,
        tz: Optional[tzinfo] = None,
        on_timer_event: Optional[TimerListener] = None,
    ):
        settings = get_settings()
        self._store = store
        self._runner = runner
        self._interval = (
            interval_seconds
            if interval_seconds is not None
            else settings.reconcile_interval_seconds
        )
        self._tz = tz or ZoneInfo(settings.timezone)
        self._on_timer_event = on_timer_event
        self._timers: Dict[str, CronTimer] = {}
        self._fingerprint: Optional[str] = None
        self._tick_lock = asyncio.Lock()
        self._task: Optional[asyncio.Task] = None
        self._running = False

    @property
    def fingerprint(self) -> Optional[str]:
        return self._fingerprint

    @property
    def active_timers(self) -> Dict[str, CronTimer]:
        return dict(self._timers)

    def start(self):
        """Start the reconcile loop; the first tick runs immediately."""
        self._running = True
        self._task = asyncio.create_task(self._poll_loop())
        logger.info("reconciler_started", interval_seconds=self._interval)

    async def stop(self):
        """Stop the loop and every timer."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        self._stop_all_timers()
        self._fingerprint = None
        logger.info("reconciler_stopped")

    async def _poll_loop(self):
        while self._running:
            try:
                await self.tick()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("reconciler_tick_error", error=str(e))

            try:
                await asyncio.sleep(self._interval)
            except asyncio.CancelledError:
                break

    async def tick(self) -> bool:
        """Reconcile once. Returns True when the timer set was replaced."""
        if self._tick_lock.locked():
            logger.warning("reconciler_tick_skipped", reason="previous tick still running")
            return False

        async with self._tick_lock:
            values = await self._store.get_all()
            tasks = load_enabled_tasks(values)
            fingerprint = compute_fingerprint(tasks)

            if fingerprint == self._fingerprint:
                return False

            logger.info(
                "reconciler_tasks_changed",
                enabled_tasks=[task.name for task in tasks],
            )
            self._stop_all_timers()
            self._fingerprint = fingerprint

            for task in tasks:
                self._start_timer(task)

            return True

    def _start_timer(self, task: Task) -> None:
        if not task.cron_expression:
            logger.debug("task_without_cron", task_name=task.name)
            return

        try:
            timer = CronTimer(task, self._runner, self._tz)
            timer.start()
        except Exception as e:
            logger.error(
                "task_timer_start_failed",
                task_name=task.name,
                cron=task.cron_expression,
                error=str(e),
            )
            return

        self._timers[task.name] = timer
        logger.info("task_timer_started", task_name=task.name, cron=task.cron_expression)
        self._notify("started", task)

    def _stop_all_timers(self) -> None:
        for name, timer in list(self._timers.items()):
            try:
                timer.stop()
            except Exception as e:
                logger.warning("task_timer_stop_failed", task_name=name, error=str(e))
            logger.info("task_timer_stopped", task_name=name)
            self._notify("stopped", timer.task)
        self._timers.clear()

    def _notify(self, event: str, task: Task) -> None:
        if self._on_timer_event is None:
            return
        try:
            self._on_timer_event(event, task.name, task.cron_expression)
        except Exception as e:
            logger.warning("timer_listener_failed", timer_event=event, error=str(e))
