"""Home Assistant report handlers."""

from dataclasses import dataclass, field
from datetime import datetime, time, timedelta
from fnmatch import fnmatchcase
from typing import Iterable, List, Optional

import structlog

from scrypted_monitor.handlers.context import ExecutionContext
from scrypted_monitor.handlers.formatting import DIVIDER, as_datetime, relative_time
from scrypted_monitor.models.home_assistant import EntityState
from scrypted_monitor.models.task import ExecutionReport, Task

logger = structlog.get_logger(__name__)

STATES_UNAVAILABLE_MESSAGE = "Unable to retrieve entity states from Home Assistant\n"
CONSUMABLE_PERCENT_THRESHOLD = 10
CONSUMABLE_DAYS_THRESHOLD = 3
DAY_UNITS = {"d", "day", "days"}


def _as_number(state: Optional[str]) -> Optional[float]:
    try:
        return float(state)
    except (TypeError, ValueError):
        return None


def _matches_any(entity_id: str, patterns: Iterable[str]) -> bool:
    return any(fnmatchcase(entity_id, pattern) for pattern in patterns)


@dataclass
class BatterySummary:
    low: List[str] = field(default_factory=list)
    tracked: List[str] = field(default_factory=list)

    @property
    def at_least_one_low(self) -> bool:
        return bool(self.low)

    def render(self) -> str:
        message = "".join(f"{line}\n" for line in self.low)
        if self.tracked:
            if self.low:
                message += DIVIDER
            message += "".join(f"{line}\n" for line in self.tracked)
        if not self.low and not self.tracked:
            message += "All batteries ok\n"
        return message


def summarize_battery_levels(
    entities: Iterable[EntityState],
    threshold: float,
    always_report: Iterable[str] = (),
    exclude: Iterable[str] = (),
) -> BatterySummary:
    """Split battery entities into low ones and always-reported ones.

    Numeric ``sensor.*`` batteries are low below ``threshold``;
    ``binary_sensor.*`` batteries are low when ``on``. States that are not
    numbers (``unavailable``) never count as low.
    """
    always_report = set(always_report)
    exclude = set(exclude)
    summary = BatterySummary()

    for entity in entities:
        if entity.entity_id in exclude or entity.device_class != "battery":
            continue

        if entity.entity_id.startswith("sensor."):
            line = f"{entity.friendly_name} ({entity.state}%)"
            level = _as_number(entity.state)
            if entity.entity_id in always_report:
                summary.tracked.append(line)
            elif level is not None and level < threshold:
                summary.low.append(line)
        elif entity.entity_id.startswith("binary_sensor."):
            line = entity.friendly_name
            if entity.entity_id in always_report:
                summary.tracked.append(line)
            elif entity.state == "on":
                summary.low.append(line)

    return summary


async def run_report_battery_status(task: Task, ctx: ExecutionContext) -> ExecutionReport:
    logger.info("reporting_ha_battery_status")
    states = await ctx.home_assistant.get_states()
    if states is None:
        return ExecutionReport(message=STATES_UNAVAILABLE_MESSAGE)

    summary = summarize_battery_levels(
        states,
        task.battery_threshold,
        task.entities_to_always_report,
        task.entities_to_exclude,
    )
    logger.info(
        "ha_battery_status",
        low=len(summary.low),
        tracked=len(summary.tracked),
        at_least_one_low=summary.at_least_one_low,
    )
    return ExecutionReport(message=summary.render())


def consumable_warning(entity: EntityState) -> Optional[str]:
    """Report line when a consumable needs attention, else None."""
    if entity.device_class == "problem":
        return f"{entity.friendly_name}: problem" if entity.state == "on" else None

    value = _as_number(entity.state)
    if value is None:
        return None

    unit = (entity.unit or "").strip().lower()
    if unit == "%" and value < CONSUMABLE_PERCENT_THRESHOLD:
        return f"{entity.friendly_name}: {entity.state}%"
    if unit in DAY_UNITS and value <= CONSUMABLE_DAYS_THRESHOLD:
        return f"{entity.friendly_name}: {entity.state} days"
    return None


async def run_report_consumables(task: Task, ctx: ExecutionContext) -> ExecutionReport:
    logger.info("reporting_ha_consumables")
    states = await ctx.home_assistant.get_states()
    if states is None:
        return ExecutionReport(message=STATES_UNAVAILABLE_MESSAGE)

    by_id = {entity.entity_id: entity for entity in states}
    lines = []
    for entity_id in task.entities_to_always_report:
        entity = by_id.get(entity_id)
        if entity is None:
            continue
        warning = consumable_warning(entity)
        if warning:
            lines.append(warning)

    if not lines:
        return ExecutionReport(force_stop=True)
    return ExecutionReport(message="".join(f"{line}\n" for line in lines))


async def run_report_unavailable_entities(
    task: Task, ctx: ExecutionContext
) -> ExecutionReport:
    """List unavailable entities filtered by glob patterns.

    ``entities_to_always_report`` restricts the candidates when non-empty;
    ``entities_to_exclude`` removes matches.
    """
    logger.info("reporting_ha_unavailable_entities")
    states = await ctx.home_assistant.get_states()
    if states is None:
        return ExecutionReport(message=STATES_UNAVAILABLE_MESSAGE)

    now = ctx.now()
    lines = []
    for entity in states:
        if entity.state != "unavailable":
            continue
        if task.entities_to_always_report and not _matches_any(
            entity.entity_id, task.entities_to_always_report
        ):
            continue
        if _matches_any(entity.entity_id, task.entities_to_exclude):
            continue

        line = f"{entity.friendly_name} ({entity.entity_id})"
        if entity.last_changed is not None:
            line += f" - last seen {relative_time(as_datetime(entity.last_changed, ctx.tz), now)}"
        lines.append(line)

    if not lines:
        return ExecutionReport(force_stop=True)
    return ExecutionReport(message="".join(f"{line}\n" for line in lines))


async def run_tomorrow_events(task: Task, ctx: ExecutionContext) -> ExecutionReport:
    """Tomorrow's events, then the following ones up to the configured horizon."""
    logger.info("reporting_ha_calendar_events", calendar=task.calendar_entity)
    if not task.calendar_entity:
        return ExecutionReport(message="No calendar entity configured\n")

    now = ctx.now()
    tomorrow = now.date() + timedelta(days=1)
    start = datetime.combine(tomorrow, time.min, tzinfo=ctx.tz)
    end_of_tomorrow = datetime.combine(tomorrow, time.max, tzinfo=ctx.tz)
    horizon = datetime.combine(
        now.date() + timedelta(days=task.calendar_days_in_future), time.max, tzinfo=ctx.tz
    )

    events = await ctx.home_assistant.get_calendar_events(
        task.calendar_entity, start, end_of_tomorrow
    )
    upcoming = []
    if horizon > end_of_tomorrow:
        upcoming = await ctx.home_assistant.get_calendar_events(
            task.calendar_entity, end_of_tomorrow, horizon
        )

    if events is None or upcoming is None:
        return ExecutionReport(message="Unable to retrieve calendar events\n")

    logger.info("ha_calendar_events_found", tomorrow=len(events), upcoming=len(upcoming))

    message = "".join(f"{event.summary}\n" for event in events)
    if upcoming:
        if events:
            message += DIVIDER
        for event in upcoming:
            when = relative_time(as_datetime(event.start, ctx.tz), now)
            message += f"{event.summary} - {when}\n"

    if not events and not upcoming:
        return ExecutionReport(force_stop=True)

    return ExecutionReport(message=message, priority=1 if events else None)
