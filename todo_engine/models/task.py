"""Task entity model."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import Field, model_validator

from todo_engine.models.base import CamelModel, LocalDateTime, local_now, new_id


class TaskStatus(str, Enum):
    """Task lifecycle status."""

    ACTIVE = "active"
    PENDING = "pending"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class Priority(str, Enum):
    """Task priority levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# Sort rank, lowest first
PRIORITY_RANK: dict[Priority, int] = {
    Priority.LOW: 0,
    Priority.MEDIUM: 1,
    Priority.HIGH: 2,
    Priority.CRITICAL: 3,
}


class RecurrencePattern(str, Enum):
    """Supported repeat patterns."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    CUSTOM = "custom"


class Subtask(CamelModel):
    """Checklist entry inside a task."""

    id: str = Field(default_factory=new_id)
    title: str
    is_completed: bool = False
    order_index: int = 0
    created_at: LocalDateTime = Field(default_factory=local_now)
    completed_at: LocalDateTime | None = None


class Attachment(CamelModel):
    """Reference to a file on local disk."""

    id: str = Field(default_factory=new_id)
    filename: str
    path: str
    size: int = 0
    mime_type: str | None = None
    added_at: LocalDateTime = Field(default_factory=local_now)


class RecurrenceRule(CamelModel):
    """Repeat rule attached to a task.

    ``exceptions`` lists calendar days on which no occurrence is generated.
    ``next_occurrence`` is informational and kept for document compatibility.
    """

    pattern: RecurrencePattern
    interval: int = 1
    end_date: LocalDateTime | None = None
    exceptions: list[LocalDateTime] = Field(default_factory=list)
    custom_rule: str | None = None
    next_occurrence: LocalDateTime | None = None


class Task(CamelModel):
    """Stored task record."""

    id: str = Field(default_factory=new_id)
    title: str
    description: str | None = None
    status: TaskStatus = TaskStatus.ACTIVE
    priority: Priority = Priority.MEDIUM
    project_id: str | None = None
    tags: list[str] = Field(default_factory=list)
    due_date: LocalDateTime | None = None
    reminder_date: LocalDateTime | None = None
    created_at: LocalDateTime = Field(default_factory=local_now)
    updated_at: LocalDateTime = Field(default_factory=local_now)
    completed_at: LocalDateTime | None = None
    subtasks: list[Subtask] = Field(default_factory=list)
    attachments: list[Attachment] = Field(default_factory=list)
    recurrence: RecurrenceRule | None = None

    def is_overdue(self, now: datetime) -> bool:
        """Due strictly before ``now`` and still open."""
        return (
            self.due_date is not None
            and self.due_date < now
            and self.status not in (TaskStatus.COMPLETED, TaskStatus.ARCHIVED)
        )


class SubtaskCreate(CamelModel):
    """Schema for a subtask inside a task draft."""

    title: str = ""

    @model_validator(mode="before")
    @classmethod
    def _accept_plain_title(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"title": data}
        return data


class TaskCreate(CamelModel):
    """Schema for task creation."""

    title: str = ""
    description: str | None = None
    priority: Priority | None = None
    project_id: str | None = None
    tags: list[str] | None = None
    due_date: LocalDateTime | None = None
    reminder_date: LocalDateTime | None = None
    subtasks: list[SubtaskCreate] = Field(default_factory=list)
    recurrence: RecurrenceRule | None = None


class TaskUpdate(CamelModel):
    """Schema for task update.

    Only fields present in ``model_fields_set`` are applied; an explicit
    ``None`` clears the field.
    """

    title: str | None = None
    description: str | None = None
    status: TaskStatus | None = None
    priority: Priority | None = None
    project_id: str | None = None
    tags: list[str] | None = None
    due_date: LocalDateTime | None = None
    reminder_date: LocalDateTime | None = None
    subtasks: list[Subtask] | None = None
    attachments: list[Attachment] | None = None
    recurrence: RecurrenceRule | None = None
