"""Tests for the recurrence calculator."""

from datetime import datetime

import pytest

from todo_engine.models.task import RecurrencePattern, RecurrenceRule
from todo_engine.services.recurrence import (
    add_months,
    advance,
    allowed_steps,
    next_allowed_occurrence,
    next_occurrence,
)


def rule(pattern: str, **kwargs) -> RecurrenceRule:
    return RecurrenceRule(pattern=RecurrencePattern(pattern), **kwargs)


class TestNextOccurrence:
    """Calendar arithmetic per pattern."""

    @pytest.mark.parametrize(
        "pattern,interval,expected",
        [
            ("daily", 1, datetime(2024, 3, 11, 9, 30)),
            ("daily", 2, datetime(2024, 3, 12, 9, 30)),
            ("weekly", 1, datetime(2024, 3, 17, 9, 30)),
            ("weekly", 3, datetime(2024, 3, 31, 9, 30)),
            ("monthly", 1, datetime(2024, 4, 10, 9, 30)),
            ("monthly", 12, datetime(2025, 3, 10, 9, 30)),
            ("yearly", 2, datetime(2026, 3, 10, 9, 30)),
        ],
    )
    def test_patterns(self, pattern, interval, expected):
        base = datetime(2024, 3, 10, 9, 30)
        assert next_occurrence(base, rule(pattern, interval=interval)) == expected

    def test_month_end_is_clamped(self):
        """Jan 31 + 1 month is the last day of February, not +30 days."""
        assert next_occurrence(datetime(2024, 1, 31, 8, 0), rule("monthly")) == datetime(2024, 2, 29, 8, 0)
        assert next_occurrence(datetime(2023, 1, 31), rule("monthly")) == datetime(2023, 2, 28)
        assert next_occurrence(datetime(2024, 10, 31), rule("monthly", interval=4)) == datetime(2025, 2, 28)

    def test_leap_day_yearly(self):
        assert next_occurrence(datetime(2024, 2, 29), rule("yearly")) == datetime(2025, 2, 28)
        assert next_occurrence(datetime(2024, 2, 29), rule("yearly", interval=4)) == datetime(2028, 2, 29)

    def test_december_rolls_year(self):
        assert add_months(datetime(2024, 12, 15), 1) == datetime(2025, 1, 15)
        assert add_months(datetime(2024, 11, 30), 3) == datetime(2025, 2, 28)

    def test_custom_returns_none(self):
        assert next_occurrence(datetime(2024, 1, 1), rule("custom", custom_rule="FREQ=HOURLY")) is None

    def test_calculator_ignores_end_and_exceptions(self):
        r = rule("daily", end_date=datetime(2024, 1, 1), exceptions=[datetime(2024, 1, 2)])
        assert next_occurrence(datetime(2024, 1, 1), r) == datetime(2024, 1, 2)


class TestAllowedOccurrence:
    """End dates and exception days."""

    def test_first_candidate(self):
        assert next_allowed_occurrence(datetime(2024, 1, 1, 9), rule("daily")) == datetime(2024, 1, 2, 9)

    def test_skips_exception_days(self):
        r = rule("daily", exceptions=[datetime(2024, 1, 2), datetime(2024, 1, 3, 18, 0)])

        assert allowed_steps(datetime(2024, 1, 1, 9), r) == 3
        assert next_allowed_occurrence(datetime(2024, 1, 1, 9), r) == datetime(2024, 1, 4, 9)

    def test_end_date_stops(self):
        r = rule("daily", interval=2, end_date=datetime(2024, 1, 2, 23, 59))

        assert next_allowed_occurrence(datetime(2024, 1, 1), r) is None

    def test_end_date_reached_while_skipping(self):
        r = rule("weekly", end_date=datetime(2024, 1, 10), exceptions=[datetime(2024, 1, 8)])

        assert next_allowed_occurrence(datetime(2024, 1, 1), r) is None

    def test_skips_do_not_drift_month_end(self):
        """Skipping Feb 29 lands on Mar 31, stepping from the original base."""
        r = rule("monthly", exceptions=[datetime(2024, 2, 29)])

        assert next_allowed_occurrence(datetime(2024, 1, 31), r) == datetime(2024, 3, 31)
        assert advance(datetime(2024, 1, 31), r, 2) == datetime(2024, 3, 31)

    def test_custom_has_no_occurrence(self):
        assert allowed_steps(datetime(2024, 1, 1), rule("custom", custom_rule="x")) is None

    def test_no_occurrence_past_year_9999(self):
        """Results beyond the last representable date end the series."""
        assert allowed_steps(datetime(9999, 12, 30), rule("daily", interval=2)) is None
        assert next_allowed_occurrence(datetime(9999, 6, 1), rule("yearly")) is None
        assert next_allowed_occurrence(datetime(9999, 12, 15), rule("monthly")) is None
