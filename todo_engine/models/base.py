"""Shared pydantic base model and field types."""

from datetime import datetime
from typing import Annotated
from uuid import uuid4

from pydantic import AfterValidator, BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


def _to_local_naive(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


# All stored datetimes are naive local time
LocalDateTime = Annotated[datetime, AfterValidator(_to_local_naive)]


def new_id() -> str:
    """Generate a fresh opaque identifier."""
    return str(uuid4())


def local_now() -> datetime:
    """Current naive local time."""
    return datetime.now()


class CamelModel(BaseModel):
    """Base schema: snake_case attributes, camelCase JSON keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )
