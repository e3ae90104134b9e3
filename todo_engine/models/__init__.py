"""Pydantic entities and schemas for the todo engine."""

from todo_engine.models.document import Document
from todo_engine.models.project import (
    Project,
    ProjectCreate,
    ProjectNode,
    ProjectSettings,
    ProjectStatistics,
    ProjectUpdate,
)
from todo_engine.models.query import Page, Pagination, SortDirection, SortField, SortOptions, TaskFilter
from todo_engine.models.tag import Tag
from todo_engine.models.task import (
    Attachment,
    Priority,
    RecurrencePattern,
    RecurrenceRule,
    Subtask,
    SubtaskCreate,
    Task,
    TaskCreate,
    TaskStatus,
    TaskUpdate,
)

__all__ = [
    "Document",
    "Task",
    "TaskCreate",
    "TaskUpdate",
    "TaskStatus",
    "Priority",
    "Subtask",
    "SubtaskCreate",
    "Attachment",
    "RecurrencePattern",
    "RecurrenceRule",
    "Project",
    "ProjectCreate",
    "ProjectUpdate",
    "ProjectSettings",
    "ProjectNode",
    "ProjectStatistics",
    "Tag",
    "TaskFilter",
    "SortOptions",
    "SortField",
    "SortDirection",
    "Pagination",
    "Page",
]
