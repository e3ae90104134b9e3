"""Environment configuration for the todo engine."""

import os
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return float(raw)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


class Settings:
    """Engine settings loaded from environment variables."""

    def __init__(self) -> None:
        self.DATA_DIR: str = os.getenv("TODO_DATA_DIR", "./data")
        self.SAVE_DEBOUNCE_SECONDS: float = _env_float("TODO_SAVE_DEBOUNCE_SECONDS", 1.0)
        # Persistence: hourly snapshots, newest 10 kept
        self.BACKUP_INTERVAL_SECONDS: float = _env_float("TODO_BACKUP_INTERVAL_SECONDS", 3600.0)
        self.BACKUP_RETENTION: int = _env_int("TODO_BACKUP_RETENTION", 10)
        self.ARCHIVE_AFTER_DAYS: int = _env_int("TODO_ARCHIVE_AFTER_DAYS", 30)
        self.LOG_LEVEL: str = os.getenv("TODO_LOG_LEVEL", "INFO").upper()

    def validate(self) -> None:
        """Validate that settings hold usable values."""
        if not self.DATA_DIR:
            raise ValueError("TODO_DATA_DIR must not be empty")
        if self.SAVE_DEBOUNCE_SECONDS < 0:
            raise ValueError("TODO_SAVE_DEBOUNCE_SECONDS must be >= 0")
        if self.BACKUP_RETENTION < 1:
            raise ValueError("TODO_BACKUP_RETENTION must be >= 1")
        if self.ARCHIVE_AFTER_DAYS < 0:
            raise ValueError("TODO_ARCHIVE_AFTER_DAYS must be >= 0")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    settings = Settings()
    return settings
