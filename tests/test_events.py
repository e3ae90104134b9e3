"""Tests for change events and the injected dispatcher.

These tests validate the in-process consumer layer without touching
the store.
"""

import logging
from uuid import UUID

from todo_engine.events.consumers import (
    AuditLogConsumer,
    CallbackConsumer,
    EventConsumer,
    EventDispatcher,
)
from todo_engine.events.types import DomainEvent, EventType


class FailingConsumer(EventConsumer):
    """Consumer that always raises."""

    def handles(self, event_type: EventType) -> bool:
        return True

    def process(self, event: DomainEvent) -> None:
        raise RuntimeError("consumer exploded")


class TestEventTypes:
    """Test event type definitions."""

    def test_all_event_types_defined(self):
        """Verify all required event types are defined."""
        assert EventType.TASK_CREATED == "task.created.v1"
        assert EventType.TASK_UPDATED == "task.updated.v1"
        assert EventType.TASK_COMPLETED == "task.completed.v1"
        assert EventType.TASK_DELETED == "task.deleted.v1"
        assert EventType.TASK_RECURRED == "task.recurred.v1"
        assert EventType.PROJECT_CREATED == "project.created.v1"
        assert EventType.PROJECT_UPDATED == "project.updated.v1"
        assert EventType.PROJECT_DELETED == "project.deleted.v1"

    def test_event_to_dict(self):
        event = DomainEvent(
            event_type=EventType.PROJECT_CREATED,
            aggregate_type="project",
            aggregate_id="p1",
            data={"name": "Home"},
        )

        d = event.to_dict()

        assert UUID(d["id"]) == event.event_id
        assert d["type"] == "project.created.v1"
        assert d["aggregate_type"] == "project"
        assert d["aggregate_id"] == "p1"
        assert d["data"] == {"name": "Home"}
        assert d["time"] == event.timestamp.isoformat()


class TestEventDispatcher:
    """Tests for routing and failure isolation."""

    def test_routes_by_event_type(self):
        created: list[DomainEvent] = []
        everything: list[DomainEvent] = []
        dispatcher = EventDispatcher(
            [CallbackConsumer(created.append, [EventType.TASK_CREATED])]
        )
        dispatcher.register(CallbackConsumer(everything.append))

        dispatcher.dispatch(DomainEvent(event_type=EventType.TASK_CREATED, aggregate_id="t1"))
        dispatcher.dispatch(DomainEvent(event_type=EventType.TASK_DELETED, aggregate_id="t1"))

        assert [e.event_type for e in created] == [EventType.TASK_CREATED]
        assert [e.event_type for e in everything] == [EventType.TASK_CREATED, EventType.TASK_DELETED]

    def test_failing_consumer_does_not_block_others(self, caplog):
        received: list[DomainEvent] = []
        dispatcher = EventDispatcher([FailingConsumer(), CallbackConsumer(received.append)])

        with caplog.at_level(logging.ERROR, logger="todo_engine.events.consumers"):
            dispatcher.dispatch(DomainEvent(event_type=EventType.TASK_UPDATED, aggregate_id="t1"))

        assert len(received) == 1
        assert "Consumer processing failed" in caplog.text

    def test_no_global_instance(self):
        """Each dispatcher keeps its own consumers."""
        first, second = EventDispatcher(), EventDispatcher()
        seen: list[DomainEvent] = []
        first.register(CallbackConsumer(seen.append))

        second.dispatch(DomainEvent(event_type=EventType.TASK_CREATED, aggregate_id="t1"))

        assert seen == []

    def test_audit_consumer_logs(self, caplog):
        dispatcher = EventDispatcher([AuditLogConsumer()])

        with caplog.at_level(logging.INFO, logger="todo_engine.audit"):
            dispatcher.dispatch(DomainEvent(event_type=EventType.TASK_DELETED, aggregate_id="t42"))

        assert "task.deleted.v1 t42" in caplog.text


class TestManagerFailureIsolation:
    """A broken consumer never undoes or fails a manager call."""

    def test_create_succeeds_with_failing_consumer(self, store):
        from todo_engine.services.tasks import TaskManager

        manager = TaskManager(store, EventDispatcher([FailingConsumer()]))
        created = manager.create({"title": "Still stored"})

        assert manager.find_by_id(created.id) is not None
