"""Tests for the query engine (filter, sort, paginate)."""

from datetime import datetime

import pytest

from todo_engine.exceptions import ValidationError
from todo_engine.models.query import Pagination, SortDirection, SortField, SortOptions, TaskFilter
from todo_engine.models.task import Priority, RecurrencePattern, RecurrenceRule, Subtask, Task, TaskStatus
from todo_engine.services.query import apply_query, matches, paginate, sort_tasks

NOW = datetime(2024, 6, 12, 12, 0)


def titles(tasks):
    return [t.title for t in tasks]


# ============================================================================
# Filters
# ============================================================================

class TestFilter:
    """Each clause narrows the result; clauses are ANDed."""

    def test_tags_require_all(self):
        """A task must carry every requested tag."""
        abc = Task(title="abc", tags=["a", "b", "c"])
        only_a = Task(title="only a", tags=["a"])
        ba = Task(title="ba", tags=["b", "a"])

        page = apply_query([abc, only_a, ba], {"tags": ["a", "b"]}, now=NOW)

        assert titles(page.items) == ["abc", "ba"]

    def test_single_tag_accepted_as_scalar(self):
        tasks = [Task(title="tagged", tags=["a", "b"]), Task(title="other", tags=["b"])]

        assert titles(apply_query(tasks, {"tags": "a"}).items) == ["tagged"]
        assert TaskFilter(tags="a").tags == ["a"]

    def test_status_and_priority_accept_scalars(self):
        tasks = [
            Task(title="active high", priority=Priority.HIGH),
            Task(title="pending high", status=TaskStatus.PENDING, priority=Priority.HIGH),
            Task(title="active low", priority=Priority.LOW),
        ]

        assert titles(apply_query(tasks, {"status": "active"}).items) == ["active high", "active low"]
        assert titles(apply_query(tasks, {"status": ["active"], "priority": "high"}).items) == [
            "active high"
        ]
        assert titles(
            apply_query(tasks, TaskFilter(priority=[Priority.HIGH, Priority.LOW], status=None)).items
        ) == ["active high", "pending high", "active low"]

    def test_project_excludes_unassigned(self):
        tasks = [Task(title="in p1", project_id="p1"), Task(title="none"), Task(title="in p2", project_id="p2")]

        assert titles(apply_query(tasks, {"projectId": ["p1", "p2"]}).items) == ["in p1", "in p2"]
        assert titles(apply_query(tasks, {"projectId": "p2"}).items) == ["in p2"]

    def test_due_range_keeps_undated(self):
        """Tasks without a due date are not excluded by due_before/due_after."""
        tasks = [
            Task(title="early", due_date=datetime(2024, 6, 1)),
            Task(title="mid", due_date=datetime(2024, 6, 10)),
            Task(title="late", due_date=datetime(2024, 6, 20)),
            Task(title="undated"),
        ]

        page = apply_query(
            tasks,
            {"dueAfter": datetime(2024, 6, 5), "dueBefore": datetime(2024, 6, 10)},
        )

        assert titles(page.items) == ["mid", "undated"]

    def test_search_term(self):
        tasks = [
            Task(title="Buy MILK"),
            Task(title="Groceries", description="eggs and milk"),
            Task(title="Laundry"),
        ]

        assert titles(apply_query(tasks, {"searchTerm": "milk"}).items) == ["Buy MILK", "Groceries"]

    def test_boolean_clauses(self):
        rule = RecurrenceRule(pattern=RecurrencePattern.DAILY)
        with_sub = Task(title="with sub", subtasks=[Subtask(title="s")])
        recurring = Task(title="recurring", recurrence=rule, due_date=datetime(2024, 6, 1))
        overdue_done = Task(title="done late", status=TaskStatus.COMPLETED, due_date=datetime(2024, 6, 1))
        tasks = [with_sub, recurring, overdue_done]

        assert titles(apply_query(tasks, {"hasSubtasks": True}).items) == ["with sub"]
        assert titles(apply_query(tasks, {"hasSubtasks": False}).items) == ["recurring", "done late"]
        assert titles(apply_query(tasks, {"isRecurring": True}).items) == ["recurring"]
        assert titles(apply_query(tasks, {"isOverdue": True}, now=NOW).items) == ["recurring"]
        assert titles(apply_query(tasks, {"isOverdue": False}, now=NOW).items) == ["with sub", "done late"]

    def test_empty_filter_matches_everything(self):
        task = Task(title="any")
        assert matches(task, TaskFilter(), NOW) is True
        assert matches(task, TaskFilter(tags=[]), NOW) is True

    def test_invalid_filter_raises(self):
        with pytest.raises(ValidationError):
            apply_query([], {"status": "sleeping"})


# ============================================================================
# Sorting
# ============================================================================

class TestSort:
    """Single-field stable sort."""

    def test_priority_by_rank(self):
        tasks = [
            Task(title="m", priority=Priority.MEDIUM),
            Task(title="c", priority=Priority.CRITICAL),
            Task(title="l", priority=Priority.LOW),
            Task(title="h", priority=Priority.HIGH),
        ]

        asc = sort_tasks(tasks, SortOptions(field=SortField.PRIORITY))
        desc = sort_tasks(tasks, SortOptions(field=SortField.PRIORITY, direction=SortDirection.DESC))

        assert titles(asc) == ["l", "m", "h", "c"]
        assert titles(desc) == ["c", "h", "m", "l"]

    def test_missing_values_last_ascending_first_descending(self):
        tasks = [
            Task(title="undated"),
            Task(title="late", due_date=datetime(2024, 7, 1)),
            Task(title="early", due_date=datetime(2024, 6, 1)),
        ]

        asc = apply_query(tasks, sort={"field": "dueDate"}).items
        desc = apply_query(tasks, sort={"field": "dueDate", "direction": "desc"}).items

        assert titles(asc) == ["early", "late", "undated"]
        assert titles(desc) == ["undated", "late", "early"]

    def test_title_ignores_case(self):
        tasks = [Task(title="banana"), Task(title="Apple"), Task(title="cherry")]

        assert titles(apply_query(tasks, sort={"field": "title"}).items) == ["Apple", "banana", "cherry"]

    def test_stable_for_ties(self):
        tasks = [Task(title=f"t{i}", priority=Priority.HIGH) for i in range(5)]

        assert titles(sort_tasks(tasks, SortOptions(field=SortField.PRIORITY))) == titles(tasks)
        assert titles(
            sort_tasks(tasks, SortOptions(field=SortField.PRIORITY, direction=SortDirection.DESC))
        ) == titles(tasks)

    def test_input_not_modified(self):
        tasks = [Task(title="b"), Task(title="a")]
        apply_query(tasks, sort={"field": "title"})

        assert titles(tasks) == ["b", "a"]


# ============================================================================
# Pagination
# ============================================================================

class TestPagination:

    def test_last_partial_page(self):
        """25 items, 10 per page: page 3 has 5 items and there are 3 pages."""
        tasks = [Task(title=f"t{i:02d}") for i in range(25)]

        page = apply_query(tasks, pagination={"page": 3, "limit": 10})

        assert len(page.items) == 5
        assert page.total == 25
        assert page.page == 3
        assert page.total_pages == 3
        assert titles(page.items) == [f"t{i}" for i in range(20, 25)]

    def test_no_pagination_returns_everything(self):
        tasks = [Task(title=str(i)) for i in range(3)]

        page = apply_query(tasks)

        assert len(page.items) == 3
        assert page.page == 1
        assert page.total_pages == 1

    def test_page_past_the_end_is_empty(self):
        page = paginate([Task(title="only")], Pagination(page=4, limit=10))

        assert page.items == []
        assert page.total == 1
        assert page.total_pages == 1

    def test_invalid_pagination(self):
        with pytest.raises(ValidationError) as exc_info:
            paginate([], Pagination(page=0, limit=0))

        assert {e.field for e in exc_info.value.errors} == {"page", "limit"}

    def test_to_dict_uses_camel_case(self):
        page = apply_query([Task(title="x")], pagination={"page": 1, "limit": 5})
        data = page.to_dict()

        assert data["totalPages"] == 1
        assert data["items"][0]["title"] == "x"
        assert "createdAt" in data["items"][0]
