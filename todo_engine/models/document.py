"""On-disk document schema."""

from pydantic import Field

from todo_engine.models.base import CamelModel, LocalDateTime
from todo_engine.models.project import Project
from todo_engine.models.tag import Tag
from todo_engine.models.task import Task

SCHEMA_VERSION = "1.0.0"


class Document(CamelModel):
    """The single persisted document holding every collection.

    Older documents missing optional containers load with empty defaults.
    """

    todos: list[Task] = Field(default_factory=list)
    projects: list[Project] = Field(default_factory=list)
    tags: list[Tag] = Field(default_factory=list)
    version: str = SCHEMA_VERSION
    last_backup: LocalDateTime | None = None

    def to_json(self) -> str:
        """Serialize with camelCase keys, omitting unset optionals."""
        return self.model_dump_json(by_alias=True, exclude_none=True, indent=2)
