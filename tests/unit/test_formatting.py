"""Unit tests for report formatting helpers."""

from datetime import date, datetime, timedelta, timezone

import pytest

from scrypted_monitor.handlers.formatting import (
    as_datetime,
    error_line,
    relative_time,
    render_section,
    summarize_steps,
)
from scrypted_monitor.models.registry import DiagnosticStep, StatEntry, StepStatus

NOW = datetime(2026, 10, 19, 9, 30, tzinfo=timezone.utc)


def test_error_line():
    assert error_line("Garage", RuntimeError("timeout")) == "[Garage]: Error - timeout\n"


class TestSummarizeSteps:
    def test_all_good(self):
        steps = [DiagnosticStep(name="Stream", status=StepStatus.OK)]

        assert summarize_steps(steps) == "All good"
        assert summarize_steps([]) == "All good"

    def test_warnings_and_errors(self):
        steps = [
            DiagnosticStep(name="Stream", status=StepStatus.WARN),
            DiagnosticStep(name="Snapshot", status=StepStatus.ERROR, message="timeout"),
            DiagnosticStep(name="Codec", status=StepStatus.WARN),
        ]

        assert summarize_steps(steps) == "Warnings: Stream, Codec - Errors: Snapshot"

    def test_errors_only(self):
        steps = [DiagnosticStep(name="Snapshot", status=StepStatus.ERROR)]

        assert summarize_steps(steps) == "Errors: Snapshot"


def test_render_section_formats_counts():
    entries = [StatEntry(name="a", count=3.0), StatEntry(name="b", count=1.5)]

    assert render_section("Stats", entries) == "[Stats]\n-------------\na: 3\nb: 1.5\n"


class TestRelativeTime:
    @pytest.mark.parametrize(
        "offset,expected",
        [
            (timedelta(seconds=30), "in 30 seconds"),
            (timedelta(minutes=1), "in a minute"),
            (timedelta(minutes=20), "in 20 minutes"),
            (timedelta(hours=1), "in an hour"),
            (timedelta(hours=5), "in 5 hours"),
            (timedelta(days=1), "in a day"),
            (timedelta(days=3), "in 3 days"),
            (timedelta(days=-2), "2 days ago"),
            (timedelta(days=-20), "2 weeks ago"),
            (timedelta(days=-400), "a year ago"),
        ],
    )
    def test_spans(self, offset, expected):
        assert relative_time(NOW + offset, NOW) == expected


class TestAsDatetime:
    def test_all_day_date_is_local_midnight(self):
        assert as_datetime(date(2026, 10, 20), timezone.utc) == datetime(
            2026, 10, 20, tzinfo=timezone.utc
        )

    def test_naive_datetime_gets_timezone(self):
        result = as_datetime(datetime(2026, 10, 20, 8), timezone.utc)

        assert result.tzinfo is timezone.utc

    def test_aware_datetime_unchanged(self):
        moment = datetime(2026, 10, 20, 8, tzinfo=timezone(timedelta(hours=2)))

        assert as_datetime(moment, timezone.utc) is moment
