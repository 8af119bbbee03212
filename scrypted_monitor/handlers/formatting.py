"""Text helpers shared by the report handlers."""

from datetime import date, datetime, time, tzinfo
from typing import Iterable, List, Union

import arrow

from scrypted_monitor.models.registry import DiagnosticStep, StatEntry, StepStatus

DIVIDER = "-------------\n"


def error_line(name: str, error: Exception) -> str:
    """Report line for a failed per-element call."""
    return f"[{name}]: Error - {error}\n"


def summarize_steps(steps: Iterable[DiagnosticStep]) -> str:
    """``All good`` or ``Warnings: a, b - Errors: c``."""
    steps = list(steps)
    warnings = [s.name for s in steps if s.status == StepStatus.WARN]
    errors = [s.name for s in steps if s.status == StepStatus.ERROR]

    if not warnings and not errors:
        return "All good"

    parts = []
    if warnings:
        parts.append(f"Warnings: {', '.join(warnings)}")
    if errors:
        parts.append(f"Errors: {', '.join(errors)}")
    return " - ".join(parts)


def render_section(title: str, entries: List[StatEntry]) -> str:
    lines = [f"[{title}]\n", DIVIDER]
    for entry in entries:
        count = int(entry.count) if float(entry.count).is_integer() else entry.count
        lines.append(f"{entry.name}: {count}\n")
    return "".join(lines)


def as_datetime(value: Union[datetime, date], tz: tzinfo) -> datetime:
    """Aware datetime for an event start; all-day dates map to local midnight."""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=tz)
    return datetime.combine(value, time.min, tzinfo=tz)


def relative_time(moment: datetime, now: datetime) -> str:
    """Human offset of ``moment`` from ``now``: ``in 3 days``, ``2 hours ago``."""
    return arrow.get(moment).humanize(now)
