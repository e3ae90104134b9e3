"""Logging configuration for scripts embedding the engine."""

import logging

from todo_engine.config import get_settings


def configure_logging(level: int | None = None) -> None:
    """Configure logging for engine processes.

    Args:
        level: Logging level (default: TODO_LOG_LEVEL, else INFO)
    """
    if level is None:
        level = logging.getLevelName(get_settings().LOG_LEVEL)
        if not isinstance(level, int):
            level = logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    logging.getLogger("todo_engine").setLevel(level)
