"""Error taxonomy shared by the store and the entity managers."""

from dataclasses import dataclass
from typing import Any


class TodoEngineError(Exception):
    """Base class for all engine errors."""
    pass


@dataclass
class FieldError:
    """A single field-level validation problem."""

    field: str
    message: str
    value: Any = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for display or logging."""
        data: dict[str, Any] = {"field": self.field, "message": self.message}
        if self.value is not None:
            data["value"] = self.value
        return data


class ValidationError(TodoEngineError):
    """Raised when a draft or patch fails validation.

    Carries every violation found, not just the first one.
    """

    def __init__(self, errors: list[FieldError]) -> None:
        self.errors = list(errors)
        summary = ", ".join(e.message for e in self.errors)
        super().__init__(f"Validation failed: {summary}")


class NotFoundError(TodoEngineError):
    """Raised when a task identifier is unknown."""
    pass


class ConstraintError(TodoEngineError):
    """Raised when an operation would break a cross-entity constraint."""
    pass


class StorageError(TodoEngineError, OSError):
    """Raised when the document cannot be written to disk."""
    pass
