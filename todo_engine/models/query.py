"""Filter, sort and pagination schemas for task queries."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import field_validator

from todo_engine.models.base import CamelModel, LocalDateTime
from todo_engine.models.task import Priority, TaskStatus


class TaskFilter(CamelModel):
    """Filter clauses; every supplied clause must match (AND)."""

    status: list[TaskStatus] | None = None
    priority: list[Priority] | None = None
    project_id: list[str] | None = None
    tags: list[str] | None = None
    due_before: LocalDateTime | None = None
    due_after: LocalDateTime | None = None
    search_term: str | None = None
    has_subtasks: bool | None = None
    is_overdue: bool | None = None
    is_recurring: bool | None = None

    @field_validator("status", "priority", "project_id", "tags", mode="before")
    @classmethod
    def _wrap_scalar(cls, value: Any) -> Any:
        if value is None or isinstance(value, (list, tuple, set, frozenset)):
            return value
        return [value]


class SortField(str, Enum):
    """Sortable task fields."""

    PRIORITY = "priority"
    DUE_DATE = "dueDate"
    CREATED_AT = "createdAt"
    UPDATED_AT = "updatedAt"
    TITLE = "title"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class SortOptions(CamelModel):
    """Single-field sort specification."""

    field: SortField
    direction: SortDirection = SortDirection.ASC


class Pagination(CamelModel):
    """1-indexed page request."""

    page: int = 1
    limit: int = 20


T = TypeVar("T")


@dataclass
class Page(Generic[T]):
    """One page of query results."""

    items: list[T] = field(default_factory=list)
    total: int = 0
    page: int = 1
    total_pages: int = 1

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary; items are dumped with camelCase keys."""
        return {
            "items": [
                item.model_dump(mode="json", by_alias=True) if hasattr(item, "model_dump") else item
                for item in self.items
            ],
            "total": self.total,
            "page": self.page,
            "totalPages": self.total_pages,
        }
