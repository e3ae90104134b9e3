"""Project entity models."""

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any

from pydantic import Field

from todo_engine.models.base import CamelModel, LocalDateTime, local_now, new_id
from todo_engine.models.task import Priority


class ProjectSortOrder(str, Enum):
    """Default ordering of tasks inside a project view."""

    PRIORITY = "priority"
    DUE_DATE = "dueDate"
    CREATED = "created"
    ALPHABETICAL = "alphabetical"


class ProjectSettings(CamelModel):
    """Per-project preferences."""

    default_priority: Priority | None = None
    default_tags: list[str] = Field(default_factory=list)
    sort_order: ProjectSortOrder | None = None
    show_completed: bool = True
    completed_retention_days: int | None = None


class Project(CamelModel):
    """Stored project record."""

    id: str = Field(default_factory=new_id)
    name: str
    description: str | None = None
    color: str
    icon: str | None = None
    parent_id: str | None = None
    order_index: int = 0
    is_archived: bool = False
    created_at: LocalDateTime = Field(default_factory=local_now)
    updated_at: LocalDateTime = Field(default_factory=local_now)
    settings: ProjectSettings = Field(default_factory=ProjectSettings)


class ProjectCreate(CamelModel):
    """Schema for project creation."""

    name: str = ""
    description: str | None = None
    color: str | None = None
    icon: str | None = None
    parent_id: str | None = None
    settings: ProjectSettings | None = None


class ProjectUpdate(CamelModel):
    """Schema for project update (unset fields are left untouched)."""

    name: str | None = None
    description: str | None = None
    color: str | None = None
    icon: str | None = None
    parent_id: str | None = None
    order_index: int | None = None
    is_archived: bool | None = None
    settings: ProjectSettings | None = None


class ProjectNode(Project):
    """Project with its nested children, as returned by the hierarchy view."""

    children: list["ProjectNode"] = Field(default_factory=list)


@dataclass
class ProjectStatistics:
    """Task counts for a single project."""

    total_todos: int = 0
    active_todos: int = 0
    pending_todos: int = 0
    completed_todos: int = 0
    archived_todos: int = 0
    overdue_todos: int = 0
    today_todos: int = 0
    completion_rate: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for display."""
        return asdict(self)
