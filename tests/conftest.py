"""Shared fixtures: a store in a temporary directory and managers over it."""

import pytest

from todo_engine.db.store import JsonStore
from todo_engine.events.consumers import CallbackConsumer, EventDispatcher
from todo_engine.services.projects import ProjectManager
from todo_engine.services.tasks import TaskManager


@pytest.fixture
def store(tmp_path):
    """Initialized store; the debounce never fires during a test."""
    s = JsonStore(
        tmp_path / "data",
        debounce_seconds=60,
        backup_interval_seconds=0,
        backup_retention=3,
    )
    s.initialize()
    yield s
    s.destroy()


@pytest.fixture
def events():
    """List collecting every dispatched event."""
    return []


@pytest.fixture
def dispatcher(events):
    return EventDispatcher([CallbackConsumer(events.append)])


@pytest.fixture
def task_manager(store, dispatcher):
    return TaskManager(store, dispatcher)


@pytest.fixture
def project_manager(store, dispatcher):
    return ProjectManager(store, dispatcher)
