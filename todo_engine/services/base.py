"""Common surface shared by the entity managers."""

from collections.abc import Mapping
from typing import Any, Protocol, TypeVar, runtime_checkable

T_co = TypeVar("T_co", covariant=True)


@runtime_checkable
class EntityManager(Protocol[T_co]):
    """CRUD interface implemented independently by each entity manager."""

    def create(self, draft: Any | Mapping[str, Any]) -> T_co: ...

    def update(self, entity_id: str, patch: Any | Mapping[str, Any]) -> T_co | None: ...

    def delete(self, entity_id: str) -> bool: ...

    def find_by_id(self, entity_id: str) -> T_co | None: ...

    def find_all(self) -> list[T_co]: ...

    def count(self) -> int: ...
