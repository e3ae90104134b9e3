"""Project manager: CRUD, hierarchy and per-project statistics."""

import logging
import random
from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta
from typing import Any

from todo_engine.db.store import JsonStore
from todo_engine.events.consumers import EventDispatcher
from todo_engine.events.types import DomainEvent, EventType
from todo_engine.exceptions import ConstraintError
from todo_engine.models.base import local_now
from todo_engine.models.project import (
    Project,
    ProjectCreate,
    ProjectNode,
    ProjectSettings,
    ProjectStatistics,
    ProjectUpdate,
)
from todo_engine.models.task import TaskStatus
from todo_engine.services.validators import (
    parse_draft,
    raise_if_invalid,
    validate_project_create,
    validate_project_update,
)

logger = logging.getLogger(__name__)

# Picked at random for projects created without a colour
PROJECT_COLORS = (
    "#FF6B6B", "#4ECDC4", "#45B7D1", "#96CEB4", "#FFEAA7",
    "#DDA5E9", "#6C5CE7", "#A29BFE", "#FD79A8", "#FDCB6E",
    "#6AB04A", "#22A6B3", "#F0932B", "#EB4D4B", "#686DE0",
)


def random_color() -> str:
    return random.choice(PROJECT_COLORS)


def _merge_settings(base: ProjectSettings, patch: ProjectSettings | None) -> ProjectSettings:
    """Overlay the fields explicitly given in ``patch`` onto ``base``."""
    if patch is None:
        return base.model_copy(deep=True)
    return base.model_copy(
        update={name: getattr(patch, name) for name in patch.model_fields_set},
        deep=True,
    )


def descendant_ids(project_id: str, projects: Iterable[Project]) -> set[str]:
    """Ids of every project below ``project_id`` in the parent graph."""
    children_of: dict[str, list[str]] = {}
    for project in projects:
        if project.parent_id is not None:
            children_of.setdefault(project.parent_id, []).append(project.id)

    found: set[str] = set()
    stack = list(children_of.get(project_id, []))
    while stack:
        current = stack.pop()
        if current in found:
            continue
        found.add(current)
        stack.extend(children_of.get(current, []))
    return found


class ProjectManager:
    """Entry point for every project mutation.

    Unknown project ids yield None/False rather than raising; structural
    violations (duplicate names, cycles, blocked deletes) raise
    ConstraintError.
    """

    def __init__(self, store: JsonStore, dispatcher: EventDispatcher | None = None) -> None:
        self.store = store
        self.dispatcher = dispatcher

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def create(self, draft: ProjectCreate | Mapping[str, Any]) -> Project:
        """Create a new project.

        Raises:
            ValidationError: If the draft has any invalid field
            ConstraintError: If the name is taken or the parent does not exist
        """
        draft = parse_draft(ProjectCreate, draft)
        raise_if_invalid(validate_project_create(draft))

        with self.store.lock:
            if self._find_by_name(draft.name) is not None:
                raise ConstraintError(f'Project with name "{draft.name}" already exists')
            if draft.parent_id is not None and self.store.get_project(draft.parent_id) is None:
                raise ConstraintError(f'Parent project with ID "{draft.parent_id}" not found')

            now = local_now()
            project = Project(
                name=draft.name,
                description=draft.description,
                color=draft.color or random_color(),
                icon=draft.icon,
                parent_id=draft.parent_id,
                order_index=len(self.store.get_projects()),
                is_archived=False,
                created_at=now,
                updated_at=now,
                settings=_merge_settings(ProjectSettings(), draft.settings),
            )
            created = self.store.create_project(project)

        logger.info("Project created", extra={"project_id": created.id, "project_name": created.name})
        self._emit(EventType.PROJECT_CREATED, created, {"name": created.name})
        return created

    def update(self, project_id: str, patch: ProjectUpdate | Mapping[str, Any]) -> Project | None:
        """Apply a partial update.

        Returns:
            The updated project, or None if it does not exist

        Raises:
            ValidationError: If the patch has any invalid field
            ConstraintError: On a duplicate name or an unknown/circular parent
        """
        patch = parse_draft(ProjectUpdate, patch)
        raise_if_invalid(validate_project_update(patch))
        fields = patch.model_fields_set

        with self.store.lock:
            existing = self.store.get_project(project_id)
            if existing is None:
                return None

            if "name" in fields:
                duplicate = self._find_by_name(patch.name)
                if duplicate is not None and duplicate.id != project_id:
                    raise ConstraintError(f'Project with name "{patch.name}" already exists')

            if "parent_id" in fields and patch.parent_id is not None:
                self._check_parent(project_id, patch.parent_id)

            changes: dict[str, Any] = {
                name: getattr(patch, name) for name in fields if name != "settings"
            }
            if "settings" in fields:
                changes["settings"] = _merge_settings(existing.settings, patch.settings)
            changes["updated_at"] = max(local_now(), existing.updated_at + timedelta(microseconds=1))

            updated = self.store.update_project(project_id, changes)

        logger.info("Project updated", extra={"project_id": project_id, "fields": sorted(fields)})
        self._emit(EventType.PROJECT_UPDATED, updated, {"fields": sorted(fields)})
        return updated

    def delete(self, project_id: str) -> bool:
        """Delete a leaf project that no task references.

        Returns:
            True if deleted, False if the project does not exist

        Raises:
            ConstraintError: If the project has children or tasks
        """
        with self.store.lock:
            existing = self.store.get_project(project_id)
            if existing is None:
                return False

            if self.find_children(project_id):
                raise ConstraintError(
                    "Cannot delete project with child projects. "
                    "Delete children first or move them to another parent."
                )
            task_count = sum(1 for t in self.store.get_tasks() if t.project_id == project_id)
            if task_count:
                raise ConstraintError(
                    f"Cannot delete project with {task_count} associated todos. "
                    "Move or delete todos first."
                )

            self.store.delete_project(project_id)

        logger.info("Project deleted", extra={"project_id": project_id})
        self._emit(EventType.PROJECT_DELETED, existing, {"name": existing.name})
        return True

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def find_by_id(self, project_id: str) -> Project | None:
        return self.store.get_project(project_id)

    def find_by_name(self, name: str) -> Project | None:
        """Case-insensitive name lookup."""
        return self._find_by_name(name)

    def find_all(self) -> list[Project]:
        return self.store.get_projects()

    def find_active(self) -> list[Project]:
        return [p for p in self.find_all() if not p.is_archived]

    def find_archived(self) -> list[Project]:
        return [p for p in self.find_all() if p.is_archived]

    def find_roots(self) -> list[Project]:
        """Non-archived projects without a parent."""
        return [p for p in self.find_all() if p.parent_id is None and not p.is_archived]

    def find_children(self, parent_id: str) -> list[Project]:
        return [p for p in self.find_all() if p.parent_id == parent_id]

    def count(self) -> int:
        return len(self.find_all())

    def count_active(self) -> int:
        return len(self.find_active())

    # ------------------------------------------------------------------
    # Hierarchy
    # ------------------------------------------------------------------

    def get_hierarchy(self) -> list[ProjectNode]:
        """Tree of non-archived projects, siblings ordered by order_index."""
        projects = self.find_active()

        def build(project: Project) -> ProjectNode:
            children = sorted(
                (p for p in projects if p.parent_id == project.id),
                key=lambda p: p.order_index,
            )
            return ProjectNode(**project.model_dump(), children=[build(c) for c in children])

        roots = sorted((p for p in projects if p.parent_id is None), key=lambda p: p.order_index)
        return [build(root) for root in roots]

    def archive(self, project_id: str) -> Project | None:
        return self.update(project_id, ProjectUpdate(is_archived=True))

    def unarchive(self, project_id: str) -> Project | None:
        return self.update(project_id, ProjectUpdate(is_archived=False))

    def move(self, project_id: str, new_parent_id: str | None) -> Project | None:
        """Re-parent a project; None makes it a root."""
        return self.update(project_id, ProjectUpdate(parent_id=new_parent_id))

    def reorder(self, project_ids: list[str]) -> None:
        """Set each project's order_index to its position in ``project_ids``.

        Unknown ids are skipped.
        """
        reordered: list[Project] = []
        with self.store.lock:
            for index, project_id in enumerate(project_ids):
                updated = self.store.update_project(project_id, {"order_index": index})
                if updated is not None:
                    reordered.append(updated)

        logger.debug("Projects reordered", extra={"count": len(reordered)})
        for project in reordered:
            self._emit(EventType.PROJECT_UPDATED, project, {"fields": ["order_index"]})

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def get_statistics(
        self,
        project_id: str,
        now: datetime | None = None,
    ) -> ProjectStatistics | None:
        """Task counts for one project, or None if it does not exist."""
        if self.store.get_project(project_id) is None:
            return None

        now = now or local_now()
        today = now.replace(hour=0, minute=0, second=0, microsecond=0)
        tomorrow = today + timedelta(days=1)
        tasks = [t for t in self.store.get_tasks() if t.project_id == project_id]

        stats = ProjectStatistics(total_todos=len(tasks))
        for task in tasks:
            if task.status == TaskStatus.ACTIVE:
                stats.active_todos += 1
            elif task.status == TaskStatus.PENDING:
                stats.pending_todos += 1
            elif task.status == TaskStatus.COMPLETED:
                stats.completed_todos += 1
            elif task.status == TaskStatus.ARCHIVED:
                stats.archived_todos += 1

            if task.is_overdue(now):
                stats.overdue_todos += 1
            if (
                task.status not in (TaskStatus.COMPLETED, TaskStatus.ARCHIVED)
                and task.due_date is not None
                and today <= task.due_date < tomorrow
            ):
                stats.today_todos += 1

        if tasks:
            # Half rounds up
            stats.completion_rate = int(stats.completed_todos * 100 / len(tasks) + 0.5)
        return stats

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _find_by_name(self, name: str) -> Project | None:
        needle = name.casefold()
        for project in self.store.get_projects():
            if project.name.casefold() == needle:
                return project
        return None

    def _check_parent(self, project_id: str, parent_id: str) -> None:
        if self.store.get_project(parent_id) is None:
            raise ConstraintError(f'Parent project with ID "{parent_id}" not found')
        if parent_id == project_id or parent_id in descendant_ids(
            project_id, self.store.get_projects()
        ):
            raise ConstraintError("Cannot set parent: would create circular reference")

    def _emit(self, event_type: EventType, project: Project, data: dict[str, Any]) -> None:
        if self.dispatcher is None:
            return
        self.dispatcher.dispatch(
            DomainEvent(
                event_type=event_type,
                aggregate_type="project",
                aggregate_id=project.id,
                data=data,
            )
        )
