"""In-process event consumers.

Event Flow:
    Shell → Managers → EventDispatcher → Consumers
                              ↓
                  [AuditLogConsumer, CallbackConsumer, ...]

There is no global dispatcher. The caller builds one and passes it to
the managers that should publish into it.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable

from todo_engine.events.types import DomainEvent, EventType

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Consumer Base Class
# -----------------------------------------------------------------------------


class EventConsumer(ABC):
    """Abstract base class for event consumers."""

    @abstractmethod
    def handles(self, event_type: EventType) -> bool:
        """Check if this consumer handles the given event type."""
        pass

    @abstractmethod
    def process(self, event: DomainEvent) -> None:
        """Process an event.

        Note:
            Failures are logged by the dispatcher and do not reach the
            manager that emitted the event.
        """
        pass


class AuditLogConsumer(EventConsumer):
    """Writes every event to the audit logger."""

    def __init__(self, logger_name: str = "todo_engine.audit") -> None:
        self._logger = logging.getLogger(logger_name)

    def handles(self, event_type: EventType) -> bool:
        return True

    def process(self, event: DomainEvent) -> None:
        self._logger.info(
            "%s %s",
            event.event_type.value,
            event.aggregate_id,
            extra={
                "event_id": str(event.event_id),
                "event_type": event.event_type.value,
                "aggregate_type": event.aggregate_type,
                "aggregate_id": event.aggregate_id,
            },
        )


class CallbackConsumer(EventConsumer):
    """Forwards selected events to a plain callable (e.g. a UI refresh hook)."""

    def __init__(
        self,
        callback: Callable[[DomainEvent], None],
        event_types: Iterable[EventType] | None = None,
    ) -> None:
        self._callback = callback
        self._event_types = frozenset(event_types) if event_types is not None else None

    def handles(self, event_type: EventType) -> bool:
        return self._event_types is None or event_type in self._event_types

    def process(self, event: DomainEvent) -> None:
        self._callback(event)


# -----------------------------------------------------------------------------
# Dispatcher
# -----------------------------------------------------------------------------


class EventDispatcher:
    """Routes events to registered consumers.

    The dispatcher provides:
    1. Registration of multiple consumers
    2. Event routing based on event type
    3. Error isolation (one consumer failure doesn't block others)
    """

    def __init__(self, consumers: Iterable[EventConsumer] | None = None) -> None:
        self._consumers: list[EventConsumer] = list(consumers or [])

    def register(self, consumer: EventConsumer) -> None:
        """Register an additional consumer."""
        self._consumers.append(consumer)

    def dispatch(self, event: DomainEvent) -> None:
        """Dispatch an event to all interested consumers."""
        for consumer in self._consumers:
            if not consumer.handles(event.event_type):
                continue

            try:
                consumer.process(event)
            except Exception as e:
                logger.error(
                    "Consumer processing failed",
                    extra={
                        "consumer": consumer.__class__.__name__,
                        "event_id": str(event.event_id),
                        "event_type": event.event_type.value,
                        "error": str(e),
                    },
                    exc_info=True,
                )
