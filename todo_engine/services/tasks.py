"""Task manager: CRUD, completion lifecycle, recurrence and task views."""

import logging
from collections.abc import Mapping
from datetime import datetime, timedelta
from typing import Any

from todo_engine.config import get_settings
from todo_engine.db.store import JsonStore
from todo_engine.events.consumers import EventDispatcher
from todo_engine.events.types import DomainEvent, EventType
from todo_engine.exceptions import FieldError, NotFoundError, ValidationError
from todo_engine.models.base import local_now
from todo_engine.models.query import Page, Pagination, SortOptions, TaskFilter
from todo_engine.models.task import (
    Priority,
    Subtask,
    Task,
    TaskCreate,
    TaskStatus,
    TaskUpdate,
)
from todo_engine.services.query import apply_query
from todo_engine.services.recurrence import advance, allowed_steps
from todo_engine.services.tags import sync_tag_usage
from todo_engine.services.validators import (
    MAX_TITLE_LENGTH,
    check_reminder_before_due,
    parse_draft,
    raise_if_invalid,
    validate_task_create,
    validate_task_update,
)

logger = logging.getLogger(__name__)

_OPEN_EXCLUDED = (TaskStatus.COMPLETED, TaskStatus.ARCHIVED)
_LIST_FIELDS = ("tags", "subtasks", "attachments")


def _dedupe(tags: list[str]) -> list[str]:
    return list(dict.fromkeys(tags))


class TaskManager:
    """Entry point for every task mutation.

    Each operation validates first, then runs its read-modify-write under
    ``store.lock``. ``create``, ``update`` and ``delete`` dispatch their
    events after releasing it. The helpers built on ``update``
    (``toggle_complete``, ``add_subtask``, ``toggle_subtask`` and
    ``archive_old_completed``) keep the lock across the read and the
    delegated update, so their consumers run with the lock still held
    (it is re-entrant, so they may call back into the manager).
    """

    def __init__(self, store: JsonStore, dispatcher: EventDispatcher | None = None) -> None:
        self.store = store
        self.dispatcher = dispatcher

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def create(self, draft: TaskCreate | Mapping[str, Any]) -> Task:
        """Create a new task.

        Args:
            draft: Task draft (model or mapping with snake_case or camelCase keys)

        Returns:
            The stored task

        Raises:
            ValidationError: If the draft has any invalid field
        """
        draft = parse_draft(TaskCreate, draft)
        now = local_now()
        raise_if_invalid(validate_task_create(draft, now))

        with self.store.lock:
            project = self.store.get_project(draft.project_id) if draft.project_id else None
            project_settings = project.settings if project is not None else None

            priority = draft.priority
            if priority is None and project_settings is not None:
                priority = project_settings.default_priority
            tags = draft.tags
            if tags is None:
                tags = list(project_settings.default_tags) if project_settings is not None else []

            task = Task(
                title=draft.title,
                description=draft.description,
                status=TaskStatus.ACTIVE,
                priority=priority or Priority.MEDIUM,
                project_id=draft.project_id,
                tags=_dedupe(tags),
                due_date=draft.due_date,
                reminder_date=draft.reminder_date,
                created_at=now,
                updated_at=now,
                subtasks=[
                    Subtask(title=subtask.title, order_index=index, created_at=now)
                    for index, subtask in enumerate(draft.subtasks)
                ],
                recurrence=draft.recurrence,
            )
            created = self._insert(task)

        logger.info("Task created", extra={"task_id": created.id, "project_id": created.project_id})
        self._emit(EventType.TASK_CREATED, created, {"title": created.title})
        return created

    def update(self, task_id: str, patch: TaskUpdate | Mapping[str, Any]) -> Task:
        """Apply a partial update.

        Fields absent from ``patch`` are left untouched; fields explicitly
        set to None are cleared. Completing a recurring task spawns its
        next occurrence.

        Raises:
            NotFoundError: If the task does not exist
            ValidationError: If the patch or the merged record is invalid
        """
        patch = parse_draft(TaskUpdate, patch)
        now = local_now()
        errors = validate_task_update(patch, now)

        with self.store.lock:
            existing = self.store.get_task(task_id)
            if existing is None:
                raise NotFoundError(f"Task not found: {task_id}")

            changes: dict[str, Any] = {name: getattr(patch, name) for name in patch.model_fields_set}
            for name in _LIST_FIELDS:
                if name in changes and changes[name] is None:
                    changes[name] = []
            if "tags" in changes:
                changes["tags"] = _dedupe(changes["tags"])

            merged = existing.model_copy(update=changes)
            check_reminder_before_due(errors, merged.reminder_date, merged.due_date)
            raise_if_invalid(errors)

            completing = (
                merged.status == TaskStatus.COMPLETED and existing.status != TaskStatus.COMPLETED
            )
            if completing:
                changes["completed_at"] = now
            elif merged.status != TaskStatus.COMPLETED and existing.completed_at is not None:
                changes["completed_at"] = None

            # updated_at never goes backwards, even within one clock tick
            changes["updated_at"] = max(now, existing.updated_at + timedelta(microseconds=1))

            # Built before any write; an error here leaves the document unchanged
            follow_up = None
            if completing and merged.recurrence is not None:
                follow_up = self._next_occurrence_of(merged, now)

            updated = self.store.update_task(task_id, changes)
            sync_tag_usage(self.store, updated.tags, existing.tags)

            spawned = None
            if follow_up is not None:
                spawned = self._insert(follow_up)
                logger.info(
                    "Recurring task spawned",
                    extra={
                        "task_id": spawned.id,
                        "source_id": task_id,
                        "due_date": spawned.due_date.isoformat(),
                    },
                )

        logger.info(
            "Task updated",
            extra={"task_id": task_id, "fields": sorted(patch.model_fields_set)},
        )
        self._emit(EventType.TASK_UPDATED, updated, {"fields": sorted(patch.model_fields_set)})
        if completing:
            self._emit(EventType.TASK_COMPLETED, updated, {"title": updated.title})
        if spawned is not None:
            self._emit(EventType.TASK_RECURRED, spawned, {"source_id": updated.id})
        return updated

    def delete(self, task_id: str) -> bool:
        """Delete a task and release its tags.

        Returns:
            True if deleted, False if the task does not exist
        """
        with self.store.lock:
            existing = self.store.get_task(task_id)
            if existing is None:
                return False
            self.store.delete_task(task_id)
            sync_tag_usage(self.store, [], existing.tags)

        logger.info("Task deleted", extra={"task_id": task_id})
        self._emit(EventType.TASK_DELETED, existing, {"title": existing.title})
        return True

    def find_by_id(self, task_id: str) -> Task | None:
        return self.store.get_task(task_id)

    def find_all(self) -> list[Task]:
        return self.store.get_tasks()

    def count(self) -> int:
        return len(self.store.get_tasks())

    def find(
        self,
        task_filter: TaskFilter | Mapping[str, Any] | None = None,
        sort: SortOptions | Mapping[str, Any] | None = None,
        pagination: Pagination | Mapping[str, Any] | None = None,
        now: datetime | None = None,
    ) -> Page[Task]:
        """Filter, sort and paginate all tasks."""
        return apply_query(self.find_all(), task_filter, sort, pagination, now)

    # ------------------------------------------------------------------
    # Completion and subtasks
    # ------------------------------------------------------------------

    def toggle_complete(self, task_id: str) -> Task:
        """Flip a task between completed and active."""
        with self.store.lock:
            task = self._require(task_id)
            status = (
                TaskStatus.ACTIVE if task.status == TaskStatus.COMPLETED else TaskStatus.COMPLETED
            )
            return self.update(task_id, TaskUpdate(status=status))

    def add_subtask(self, task_id: str, title: str) -> Task:
        """Append a subtask to the end of the checklist."""
        if not title or not title.strip():
            raise ValidationError([FieldError("title", "Subtask title cannot be empty")])
        if len(title) > MAX_TITLE_LENGTH:
            raise ValidationError(
                [
                    FieldError(
                        "title",
                        f"Subtask title cannot exceed {MAX_TITLE_LENGTH} characters",
                        len(title),
                    )
                ]
            )

        with self.store.lock:
            task = self._require(task_id)
            subtasks = list(task.subtasks)
            subtasks.append(Subtask(title=title, order_index=len(subtasks)))
            return self.update(task_id, TaskUpdate(subtasks=subtasks))

    def toggle_subtask(self, task_id: str, subtask_id: str) -> Task:
        """Flip one subtask's completion flag."""
        with self.store.lock:
            task = self._require(task_id)
            subtasks = list(task.subtasks)
            for index, subtask in enumerate(subtasks):
                if subtask.id == subtask_id:
                    done = not subtask.is_completed
                    subtasks[index] = subtask.model_copy(
                        update={
                            "is_completed": done,
                            "completed_at": local_now() if done else None,
                        }
                    )
                    break
            else:
                raise NotFoundError(f"Subtask not found: {subtask_id}")

            return self.update(task_id, TaskUpdate(subtasks=subtasks))

    def archive_old_completed(self, days: int | None = None) -> int:
        """Archive tasks completed more than ``days`` days ago.

        Args:
            days: Age threshold; defaults to TODO_ARCHIVE_AFTER_DAYS

        Returns:
            Number of tasks archived
        """
        if days is None:
            days = get_settings().ARCHIVE_AFTER_DAYS
        if days < 0:
            raise ValidationError([FieldError("days", "Days cannot be negative", days)])

        cutoff = local_now() - timedelta(days=days)
        archived = 0
        with self.store.lock:
            for task in self.store.get_tasks():
                if (
                    task.status == TaskStatus.COMPLETED
                    and task.completed_at is not None
                    and task.completed_at < cutoff
                ):
                    self.update(task.id, TaskUpdate(status=TaskStatus.ARCHIVED))
                    archived += 1

        if archived:
            logger.info("Archived completed tasks", extra={"count": archived, "days": days})
        return archived

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def get_overdue(self, now: datetime | None = None) -> list[Task]:
        now = now or local_now()
        return [task for task in self.find_all() if task.is_overdue(now)]

    def get_today(self, now: datetime | None = None) -> list[Task]:
        """Open tasks due between midnight today and midnight tomorrow."""
        start = (now or local_now()).replace(hour=0, minute=0, second=0, microsecond=0)
        return self._due_between(start, start + timedelta(days=1))

    def get_this_week(self, now: datetime | None = None) -> list[Task]:
        """Open tasks due in the current Sunday-to-Saturday week."""
        now = now or local_now()
        midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
        start = midnight - timedelta(days=(now.weekday() + 1) % 7)
        return self._due_between(start, start + timedelta(days=7))

    def count_by_status(self) -> dict[TaskStatus, int]:
        counts = {status: 0 for status in TaskStatus}
        for task in self.find_all():
            counts[task.status] += 1
        return counts

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require(self, task_id: str) -> Task:
        task = self.store.get_task(task_id)
        if task is None:
            raise NotFoundError(f"Task not found: {task_id}")
        return task

    def _insert(self, task: Task) -> Task:
        created = self.store.create_task(task)
        sync_tag_usage(self.store, created.tags)
        return created

    def _due_between(self, start: datetime, end: datetime) -> list[Task]:
        return [
            task
            for task in self.find_all()
            if task.status not in _OPEN_EXCLUDED
            and task.due_date is not None
            and start <= task.due_date < end
        ]

    def _next_occurrence_of(self, source: Task, now: datetime) -> Task | None:
        """Build (but do not store) the follow-up of a completed recurring task.

        The source record was validated when stored, so the follow-up skips
        draft validation (an end date in the past must not block it).
        """
        rule = source.recurrence
        basis = source.due_date or now
        steps = allowed_steps(basis, rule)
        if steps is None:
            logger.debug(
                "No further occurrence",
                extra={"task_id": source.id, "pattern": rule.pattern.value},
            )
            return None

        due_date = advance(basis, rule, steps)
        reminder_date = None
        if source.reminder_date is not None:
            reminder_date = min(advance(source.reminder_date, rule, steps), due_date)

        return Task(
            title=source.title,
            description=source.description,
            status=TaskStatus.ACTIVE,
            priority=source.priority,
            project_id=source.project_id,
            tags=list(source.tags),
            due_date=due_date,
            reminder_date=reminder_date,
            created_at=now,
            updated_at=now,
            recurrence=rule.model_copy(deep=True),
        )

    def _emit(self, event_type: EventType, task: Task, data: dict[str, Any]) -> None:
        if self.dispatcher is None:
            return
        self.dispatcher.dispatch(
            DomainEvent(
                event_type=event_type,
                aggregate_type="task",
                aggregate_id=task.id,
                data=data,
            )
        )
