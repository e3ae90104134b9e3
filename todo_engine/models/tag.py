"""Tag entity model."""

from typing import Annotated

from pydantic import Field, StringConstraints

from todo_engine.models.base import CamelModel, LocalDateTime, local_now

# Hex color pattern validation
HexColor = Annotated[str, StringConstraints(max_length=7, pattern=r"^#([0-9A-Fa-f]{6}|[0-9A-Fa-f]{3})$")]

TAG_NAME_PATTERN = r"^[A-Za-z0-9_-]{1,50}$"


class Tag(CamelModel):
    """Reference-counted label, keyed by name."""

    name: str
    color: HexColor | None = None
    usage_count: int = 0
    last_used: LocalDateTime = Field(default_factory=local_now)
    created_at: LocalDateTime = Field(default_factory=local_now)
