"""Query engine: filter, sort and paginate a task collection."""

import math
from collections.abc import Iterable, Mapping
from datetime import datetime
from functools import cmp_to_key
from typing import Any

from todo_engine.exceptions import FieldError, ValidationError
from todo_engine.models.base import local_now
from todo_engine.models.query import Page, Pagination, SortDirection, SortField, SortOptions, TaskFilter
from todo_engine.models.task import PRIORITY_RANK, Task
from todo_engine.services.validators import parse_draft


def matches(task: Task, task_filter: TaskFilter, now: datetime) -> bool:
    """True if ``task`` satisfies every clause of ``task_filter``."""
    if task_filter.status is not None and task.status not in task_filter.status:
        return False

    if task_filter.priority is not None and task.priority not in task_filter.priority:
        return False

    if task_filter.project_id is not None:
        if task.project_id is None or task.project_id not in task_filter.project_id:
            return False

    if task_filter.tags:
        if not all(tag in task.tags for tag in task_filter.tags):
            return False

    # Tasks without a due date are not excluded by the due range
    if task_filter.due_before is not None and task.due_date is not None:
        if task.due_date > task_filter.due_before:
            return False

    if task_filter.due_after is not None and task.due_date is not None:
        if task.due_date < task_filter.due_after:
            return False

    if task_filter.search_term:
        needle = task_filter.search_term.lower()
        in_title = needle in task.title.lower()
        in_description = task.description is not None and needle in task.description.lower()
        if not in_title and not in_description:
            return False

    if task_filter.has_subtasks is not None:
        if task_filter.has_subtasks != bool(task.subtasks):
            return False

    if task_filter.is_overdue is not None:
        if task_filter.is_overdue != task.is_overdue(now):
            return False

    if task_filter.is_recurring is not None:
        if task_filter.is_recurring != (task.recurrence is not None):
            return False

    return True


def _sort_value(task: Task, field: SortField) -> Any:
    if field == SortField.PRIORITY:
        return PRIORITY_RANK[task.priority]
    if field == SortField.DUE_DATE:
        return task.due_date
    if field == SortField.CREATED_AT:
        return task.created_at
    if field == SortField.UPDATED_AT:
        return task.updated_at
    if field == SortField.TITLE:
        return task.title.casefold()
    raise ValueError(f"Unsupported sort field: {field}")


def sort_tasks(tasks: list[Task], options: SortOptions) -> list[Task]:
    """Stable single-field sort.

    Missing values sort last ascending. Descending flips the comparator
    sign, so missing values come first.
    """
    sign = -1 if options.direction == SortDirection.DESC else 1

    def compare(a: Task, b: Task) -> int:
        a_value = _sort_value(a, options.field)
        b_value = _sort_value(b, options.field)
        if a_value is None and b_value is None:
            result = 0
        elif a_value is None:
            result = 1
        elif b_value is None:
            result = -1
        elif a_value < b_value:
            result = -1
        elif a_value > b_value:
            result = 1
        else:
            result = 0
        return sign * result

    return sorted(tasks, key=cmp_to_key(compare))


def paginate(items: list[Task], pagination: Pagination | None) -> Page[Task]:
    """Slice a 1-indexed page out of ``items``."""
    if pagination is None:
        return Page(items=items, total=len(items), page=1, total_pages=1)

    errors: list[FieldError] = []
    if pagination.page < 1:
        errors.append(FieldError("page", "Page must be 1 or greater", pagination.page))
    if pagination.limit < 1:
        errors.append(FieldError("limit", "Page size must be a positive number", pagination.limit))
    if errors:
        raise ValidationError(errors)

    start = (pagination.page - 1) * pagination.limit
    return Page(
        items=items[start : start + pagination.limit],
        total=len(items),
        page=pagination.page,
        total_pages=math.ceil(len(items) / pagination.limit),
    )


def apply_query(
    items: Iterable[Task],
    task_filter: TaskFilter | Mapping[str, Any] | None = None,
    sort: SortOptions | Mapping[str, Any] | None = None,
    pagination: Pagination | Mapping[str, Any] | None = None,
    now: datetime | None = None,
) -> Page[Task]:
    """Filter, sort and paginate ``items``.

    Args:
        items: Tasks to query (not modified)
        task_filter: Filter clauses, ANDed together
        sort: Single-field sort
        pagination: Page request; None returns everything as one page
        now: Reference time for the overdue clause

    Returns:
        Page with the selected items and total counts
    """
    now = now or local_now()
    result = list(items)

    if task_filter is not None:
        task_filter = parse_draft(TaskFilter, task_filter)
        result = [task for task in result if matches(task, task_filter, now)]

    if sort is not None:
        result = sort_tasks(result, parse_draft(SortOptions, sort))

    return paginate(result, parse_draft(Pagination, pagination) if pagination is not None else None)
