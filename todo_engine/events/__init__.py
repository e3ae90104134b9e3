"""Change notifications emitted by the entity managers.

This module provides:
- EventType / DomainEvent: event definitions
- EventDispatcher: routes events to consumers (injected, not global)
- AuditLogConsumer / CallbackConsumer: built-in consumers
"""

from todo_engine.events.consumers import (
    AuditLogConsumer,
    CallbackConsumer,
    EventConsumer,
    EventDispatcher,
)
from todo_engine.events.types import DomainEvent, EventType

__all__ = [
    "EventType",
    "DomainEvent",
    "EventConsumer",
    "EventDispatcher",
    "AuditLogConsumer",
    "CallbackConsumer",
]
