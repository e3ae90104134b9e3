"""Local task/todo engine: JSON document store, managers, query and recurrence."""

__version__ = "1.0.0"
