"""JSON document persistence."""

from todo_engine.db.store import JsonStore

__all__ = ["JsonStore"]
