"""Stateless validation rules for task and project drafts.

Every function collects all violations into a list of ``FieldError``
instead of stopping at the first one, so callers can show every problem
at once. ``parse_draft`` turns pydantic type errors into the same shape.
"""

import re
from collections.abc import Mapping
from datetime import datetime
from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from todo_engine.exceptions import FieldError, ValidationError
from todo_engine.models.base import local_now
from todo_engine.models.project import ProjectCreate, ProjectSettings, ProjectUpdate
from todo_engine.models.tag import TAG_NAME_PATTERN
from todo_engine.models.task import RecurrencePattern, RecurrenceRule, TaskCreate, TaskUpdate

MAX_TITLE_LENGTH = 255
MAX_DESCRIPTION_LENGTH = 5000
MAX_TAGS = 20
MAX_PROJECT_NAME_LENGTH = 100
MAX_PROJECT_DESCRIPTION_LENGTH = 1000
MAX_ICON_LENGTH = 2
MIN_INTERVAL = 1
MAX_INTERVAL = 365

_TAG_RE = re.compile(TAG_NAME_PATTERN)
_HEX_COLOR_RE = re.compile(r"^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$")

M = TypeVar("M", bound=BaseModel)


def parse_draft(model: type[M], data: M | Mapping[str, Any]) -> M:
    """Coerce a mapping into ``model``, reporting type errors as ValidationError."""
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        errors = [
            FieldError(
                field=".".join(str(part) for part in err["loc"]) or model.__name__,
                message=err["msg"],
                value=err.get("input"),
            )
            for err in e.errors()
        ]
        raise ValidationError(errors) from e


def raise_if_invalid(errors: list[FieldError]) -> None:
    if errors:
        raise ValidationError(errors)


def is_valid_tag_name(tag: str) -> bool:
    return isinstance(tag, str) and _TAG_RE.match(tag) is not None


def is_valid_hex_color(color: str) -> bool:
    return _HEX_COLOR_RE.match(color) is not None


# -----------------------------------------------------------------------------
# Field rules
# -----------------------------------------------------------------------------


def _check_title(errors: list[FieldError], title: str | None, *, updating: bool = False) -> None:
    if title is None or not title.strip():
        message = (
            "Title cannot be empty when updating"
            if updating
            else "Title is required and cannot be empty"
        )
        errors.append(FieldError("title", message))
    elif len(title) > MAX_TITLE_LENGTH:
        errors.append(
            FieldError("title", f"Title cannot exceed {MAX_TITLE_LENGTH} characters", len(title))
        )


def _check_description(errors: list[FieldError], description: str | None) -> None:
    if description is not None and len(description) > MAX_DESCRIPTION_LENGTH:
        errors.append(
            FieldError(
                "description",
                f"Description cannot exceed {MAX_DESCRIPTION_LENGTH} characters",
                len(description),
            )
        )


def _check_tags(errors: list[FieldError], tags: list[str] | None, field: str = "tags") -> None:
    if tags is None:
        return
    if len(set(tags)) > MAX_TAGS:
        errors.append(FieldError(field, f"Cannot have more than {MAX_TAGS} tags", len(tags)))
    for index, tag in enumerate(tags):
        if not is_valid_tag_name(tag):
            errors.append(
                FieldError(
                    f"{field}[{index}]",
                    "Invalid tag name. Tags must be 1-50 characters and contain only "
                    "letters, numbers, hyphens, and underscores",
                    tag,
                )
            )


def check_reminder_before_due(
    errors: list[FieldError],
    reminder_date: datetime | None,
    due_date: datetime | None,
) -> None:
    if reminder_date is not None and due_date is not None and reminder_date > due_date:
        errors.append(FieldError("reminderDate", "Reminder date cannot be after due date"))


def validate_recurrence_rule(rule: RecurrenceRule, now: datetime | None = None) -> list[FieldError]:
    """Validate a recurrence rule supplied by a caller."""
    errors: list[FieldError] = []
    now = now or local_now()

    if not MIN_INTERVAL <= rule.interval <= MAX_INTERVAL:
        errors.append(
            FieldError(
                "recurrence.interval",
                f"Recurrence interval must be between {MIN_INTERVAL} and {MAX_INTERVAL}",
                rule.interval,
            )
        )

    if rule.end_date is not None and rule.end_date < now:
        errors.append(
            FieldError("recurrence.endDate", "Recurrence end date cannot be in the past")
        )

    if rule.pattern == RecurrencePattern.CUSTOM and not (rule.custom_rule or "").strip():
        errors.append(
            FieldError(
                "recurrence.customRule",
                "Custom rule is required for custom recurrence pattern",
            )
        )

    return errors


# -----------------------------------------------------------------------------
# Tasks
# -----------------------------------------------------------------------------


def validate_task_create(draft: TaskCreate, now: datetime | None = None) -> list[FieldError]:
    """Validate a task draft."""
    errors: list[FieldError] = []

    _check_title(errors, draft.title)
    _check_description(errors, draft.description)
    check_reminder_before_due(errors, draft.reminder_date, draft.due_date)
    _check_tags(errors, draft.tags)

    for index, subtask in enumerate(draft.subtasks):
        if not subtask.title.strip():
            errors.append(FieldError(f"subtasks[{index}].title", "Subtask title cannot be empty"))
        elif len(subtask.title) > MAX_TITLE_LENGTH:
            errors.append(
                FieldError(
                    f"subtasks[{index}].title",
                    f"Subtask title cannot exceed {MAX_TITLE_LENGTH} characters",
                    len(subtask.title),
                )
            )

    if draft.recurrence is not None:
        errors.extend(validate_recurrence_rule(draft.recurrence, now))

    return errors


def validate_task_update(patch: TaskUpdate, now: datetime | None = None) -> list[FieldError]:
    """Validate the fields present in a task patch.

    Cross-field rules that depend on the stored record (reminder vs due
    date) are checked by the caller against the merged record.
    """
    errors: list[FieldError] = []
    fields = patch.model_fields_set

    if "title" in fields:
        _check_title(errors, patch.title, updating=True)
    if "description" in fields:
        _check_description(errors, patch.description)
    if "status" in fields and patch.status is None:
        errors.append(FieldError("status", "Status cannot be cleared"))
    if "priority" in fields and patch.priority is None:
        errors.append(FieldError("priority", "Priority cannot be cleared"))
    if "tags" in fields:
        _check_tags(errors, patch.tags or [])
    if "recurrence" in fields and patch.recurrence is not None:
        errors.extend(validate_recurrence_rule(patch.recurrence, now))

    return errors


# -----------------------------------------------------------------------------
# Projects
# -----------------------------------------------------------------------------


def _check_project_name(errors: list[FieldError], name: str | None, *, updating: bool = False) -> None:
    if name is None or not name.strip():
        message = (
            "Project name cannot be empty when updating"
            if updating
            else "Project name is required and cannot be empty"
        )
        errors.append(FieldError("name", message))
    elif len(name) > MAX_PROJECT_NAME_LENGTH:
        errors.append(
            FieldError(
                "name",
                f"Project name cannot exceed {MAX_PROJECT_NAME_LENGTH} characters",
                len(name),
            )
        )


def _check_project_common(
    errors: list[FieldError],
    description: str | None,
    color: str | None,
    icon: str | None,
    settings: ProjectSettings | None,
) -> None:
    if description is not None and len(description) > MAX_PROJECT_DESCRIPTION_LENGTH:
        errors.append(
            FieldError(
                "description",
                f"Project description cannot exceed {MAX_PROJECT_DESCRIPTION_LENGTH} characters",
                len(description),
            )
        )
    if color is not None and not is_valid_hex_color(color):
        errors.append(
            FieldError(
                "color",
                "Invalid color format. Must be a valid hex color (e.g., #FF5733)",
                color,
            )
        )
    if icon is not None and len(icon) > MAX_ICON_LENGTH:
        errors.append(FieldError("icon", "Icon must be a single character or emoji", icon))
    if settings is not None:
        _check_tags(errors, settings.default_tags, field="settings.defaultTags")
        days = settings.completed_retention_days
        if days is not None and days < 0:
            errors.append(
                FieldError(
                    "settings.completedRetentionDays",
                    "Retention days cannot be negative",
                    days,
                )
            )


def validate_project_create(draft: ProjectCreate) -> list[FieldError]:
    """Validate a project draft."""
    errors: list[FieldError] = []
    _check_project_name(errors, draft.name)
    _check_project_common(errors, draft.description, draft.color, draft.icon, draft.settings)
    return errors


def validate_project_update(patch: ProjectUpdate) -> list[FieldError]:
    """Validate the fields present in a project patch."""
    errors: list[FieldError] = []
    fields = patch.model_fields_set

    if "name" in fields:
        _check_project_name(errors, patch.name, updating=True)
    if "color" in fields and patch.color is None:
        errors.append(FieldError("color", "Color cannot be cleared"))
    _check_project_common(errors, patch.description, patch.color, patch.icon, patch.settings)
    if "order_index" in fields and (patch.order_index is None or patch.order_index < 0):
        errors.append(
            FieldError("orderIndex", "Order index must be a positive number", patch.order_index)
        )
    if "is_archived" in fields and patch.is_archived is None:
        errors.append(FieldError("isArchived", "Archived flag cannot be cleared"))

    return errors
