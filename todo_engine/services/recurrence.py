"""Recurrence calculator: next occurrence of a repeating task."""

import calendar
from datetime import datetime, timedelta

from todo_engine.models.task import RecurrencePattern, RecurrenceRule


def add_months(base: datetime, months: int) -> datetime:
    """Add calendar months, clamping the day to the end of the target month.

    Jan 31 + 1 month is Feb 28/29, never a day that spills into March.
    """
    month_index = base.month - 1 + months
    year = base.year + month_index // 12
    month = month_index % 12 + 1
    day = min(base.day, calendar.monthrange(year, month)[1])
    return base.replace(year=year, month=month, day=day)


def next_occurrence(base: datetime, rule: RecurrenceRule) -> datetime | None:
    """Return the occurrence following ``base``, or None if not computable.

    Custom patterns are not evaluated here. End dates and exception dates
    are the caller's concern.
    """
    interval = rule.interval or 1

    if rule.pattern == RecurrencePattern.DAILY:
        return base + timedelta(days=interval)
    if rule.pattern == RecurrencePattern.WEEKLY:
        return base + timedelta(weeks=interval)
    if rule.pattern == RecurrencePattern.MONTHLY:
        return add_months(base, interval)
    if rule.pattern == RecurrencePattern.YEARLY:
        return add_months(base, 12 * interval)
    return None


def advance(base: datetime, rule: RecurrenceRule, steps: int = 1) -> datetime | None:
    """Occurrence ``steps`` intervals after ``base``.

    Stepping straight from ``base`` keeps month clamping from drifting
    (Jan 31 + 2 months is Mar 31, not Feb 29 + 1 month).
    """
    return next_occurrence(base, rule.model_copy(update={"interval": (rule.interval or 1) * steps}))


def allowed_steps(base: datetime, rule: RecurrenceRule, max_skips: int = 366) -> int | None:
    """Smallest step count landing on a non-exception day within the end date.

    Returns:
        Number of intervals to advance, or None if no occurrence is allowed
        (including when the next occurrence would fall past year 9999)
    """
    excluded = {d.date() for d in rule.exceptions}

    for step in range(1, max_skips + 2):
        try:
            candidate = advance(base, rule, step)
        except (OverflowError, ValueError):
            return None
        if candidate is None:
            return None
        if rule.end_date is not None and candidate > rule.end_date:
            return None
        if candidate.date() not in excluded:
            return step
    return None


def next_allowed_occurrence(
    base: datetime,
    rule: RecurrenceRule,
    max_skips: int = 366,
) -> datetime | None:
    """Next occurrence that is not an exception day and not past the end date."""
    steps = allowed_steps(base, rule, max_skips)
    if steps is None:
        return None
    return advance(base, rule, steps)
