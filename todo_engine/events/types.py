"""Event type definitions for entity change notifications."""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class EventType(str, Enum):
    """Versioned event types for the task and project lifecycle."""

    TASK_CREATED = "task.created.v1"
    TASK_UPDATED = "task.updated.v1"
    TASK_COMPLETED = "task.completed.v1"
    TASK_DELETED = "task.deleted.v1"
    TASK_RECURRED = "task.recurred.v1"  # Next occurrence of a recurring task

    PROJECT_CREATED = "project.created.v1"
    PROJECT_UPDATED = "project.updated.v1"
    PROJECT_DELETED = "project.deleted.v1"


class DomainEvent(BaseModel):
    """A change notification emitted by an entity manager."""

    event_id: UUID = Field(default_factory=uuid4, description="Unique event identifier")
    event_type: EventType = Field(description="Event type (versioned)")

    aggregate_type: str = Field(default="task", description="Aggregate type")
    aggregate_id: str = Field(description="Task or project ID")
    timestamp: datetime = Field(
        default_factory=datetime.now,
        description="Event timestamp (local time)",
    )

    # Event-specific payload
    data: dict[str, Any] = Field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        return {
            "id": str(self.event_id),
            "type": self.event_type.value,
            "time": self.timestamp.isoformat(),
            "aggregate_type": self.aggregate_type,
            "aggregate_id": self.aggregate_id,
            "data": self.data,
        }
