"""JSON document store with debounced atomic writes and rotating backups.

The store owns the canonical copies of the three collections (tasks,
projects, tags). Every accessor returns deep copies so callers can only
change state through the CRUD primitives.

Durability model:
1. Mutations schedule a debounced flush (``save``)
2. ``save_immediate`` writes a temp file and renames it over the live file
3. ``backup`` snapshots the document into ``backups/`` on a timer
4. A corrupt live file is recovered from the newest snapshot
"""

import logging
import os
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from todo_engine.config import get_settings
from todo_engine.exceptions import StorageError
from todo_engine.models.base import local_now
from todo_engine.models.document import Document
from todo_engine.models.project import Project
from todo_engine.models.tag import Tag
from todo_engine.models.task import Task

logger = logging.getLogger(__name__)

DOCUMENT_FILENAME = "todos.json"
BACKUP_DIRNAME = "backups"
BACKUP_PREFIX = "backup-"
BACKUP_SUFFIX = ".json"


def _write_atomic(path: Path, content: str) -> None:
    """Write ``content`` to a sibling temp file, then rename it over ``path``."""
    tmp_path = path.parent / f"{path.name}.tmp"
    try:
        with open(tmp_path, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    except OSError as e:
        if tmp_path.exists():
            tmp_path.unlink()
        raise StorageError(f"Failed to write {path}: {e}") from e


class JsonStore:
    """Process-wide document store backed by a single JSON file.

    Thread Safety: ``lock`` is re-entrant and guards every primitive and
    both timer callbacks. Managers hold it across read-modify-write
    sequences so mutations are serialized through a single writer.
    """

    def __init__(
        self,
        data_dir: str | Path | None = None,
        *,
        debounce_seconds: float | None = None,
        backup_interval_seconds: float | None = None,
        backup_retention: int | None = None,
    ) -> None:
        """Initialize the store (no disk access until ``initialize``).

        Args:
            data_dir: Directory holding todos.json and backups/
            debounce_seconds: Delay before a scheduled save is flushed
            backup_interval_seconds: Period of automatic backups (<= 0 disables)
            backup_retention: Number of snapshots to keep
        """
        settings = get_settings()
        self.data_dir = Path(data_dir if data_dir is not None else settings.DATA_DIR)
        self.data_path = self.data_dir / DOCUMENT_FILENAME
        self.backup_dir = self.data_dir / BACKUP_DIRNAME
        self.debounce_seconds = (
            settings.SAVE_DEBOUNCE_SECONDS if debounce_seconds is None else debounce_seconds
        )
        self.backup_interval_seconds = (
            settings.BACKUP_INTERVAL_SECONDS
            if backup_interval_seconds is None
            else backup_interval_seconds
        )
        self.backup_retention = (
            settings.BACKUP_RETENTION if backup_retention is None else backup_retention
        )

        self.lock = threading.RLock()
        self._document = Document()
        self._save_timer: threading.Timer | None = None
        self._backup_timer: threading.Timer | None = None
        self._dirty = False
        self._closed = False

    def __enter__(self) -> "JsonStore":
        self.initialize()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.destroy()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self) -> None:
        """Create directories, load the document and start the backup timer."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.backup_dir.mkdir(parents=True, exist_ok=True)

        with self.lock:
            self._closed = False
            self._load()
        self._schedule_backup()

        logger.info(
            "Store initialized",
            extra={
                "path": str(self.data_path),
                "tasks": len(self._document.todos),
                "projects": len(self._document.projects),
            },
        )

    def destroy(self) -> None:
        """Stop timers and flush any pending write before shutdown."""
        with self.lock:
            self._closed = True
            if self._backup_timer is not None:
                self._backup_timer.cancel()
                self._backup_timer = None

            pending = self._save_timer is not None
            if self._save_timer is not None:
                self._save_timer.cancel()
                self._save_timer = None

            if pending or self._dirty:
                self.save_immediate()

        logger.info("Store closed", extra={"path": str(self.data_path)})

    def _load(self) -> None:
        if not self.data_path.exists():
            self._document = Document()
            self.save_immediate()
            logger.info("Created new document", extra={"path": str(self.data_path)})
            return

        try:
            self._document = self._read_document(self.data_path)
        except (OSError, ValueError) as e:
            logger.error(
                "Failed to load document, attempting backup recovery",
                extra={"path": str(self.data_path), "error": str(e)},
            )
            if not self._restore_from_latest_backup():
                logger.warning("No usable backup, starting with an empty document")
                self._document = Document()
                self.save_immediate()

    @staticmethod
    def _read_document(path: Path) -> Document:
        content = path.read_text(encoding="utf-8")
        return Document.model_validate_json(content)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self) -> None:
        """Schedule a debounced flush; repeated calls coalesce into one write."""
        with self.lock:
            self._dirty = True
            if self._save_timer is not None:
                self._save_timer.cancel()
            if self._closed:
                self._save_timer = None
                return
            timer = threading.Timer(self.debounce_seconds, self._flush_pending)
            timer.daemon = True
            self._save_timer = timer
            timer.start()

    def _flush_pending(self) -> None:
        with self.lock:
            if self._save_timer is None or self._save_timer is not threading.current_thread():
                # Superseded by a newer save() or already flushed by destroy()
                return
            self._save_timer = None
            try:
                self.save_immediate()
            except StorageError:
                logger.error(
                    "Debounced save failed, will retry on shutdown",
                    extra={"path": str(self.data_path)},
                    exc_info=True,
                )

    def save_immediate(self) -> None:
        """Serialize the whole document and atomically replace the live file.

        Raises:
            StorageError: If the document cannot be written
        """
        with self.lock:
            content = self._document.to_json()
            _write_atomic(self.data_path, content)
            self._dirty = False

        logger.debug("Document saved", extra={"path": str(self.data_path)})

    # ------------------------------------------------------------------
    # Backups
    # ------------------------------------------------------------------

    def backup(self) -> Path:
        """Write a timestamped snapshot and prune old ones.

        Returns:
            Path of the snapshot file

        Raises:
            StorageError: If the snapshot cannot be written
        """
        with self.lock:
            timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S-%fZ")
            backup_file = self.backup_dir / f"{BACKUP_PREFIX}{timestamp}{BACKUP_SUFFIX}"

            self.backup_dir.mkdir(parents=True, exist_ok=True)
            _write_atomic(backup_file, self._document.to_json())

            self._document.last_backup = local_now()
            self.save()
            self._prune_backups(self.backup_retention)

        logger.info("Backup created", extra={"backup_file": str(backup_file)})
        return backup_file

    def list_backups(self) -> list[Path]:
        """Snapshot files, oldest first (names embed a sortable timestamp)."""
        if not self.backup_dir.exists():
            return []
        return sorted(
            p
            for p in self.backup_dir.iterdir()
            if p.name.startswith(BACKUP_PREFIX) and p.name.endswith(BACKUP_SUFFIX)
        )

    def restore_from_backup(self, backup_file: str | Path) -> bool:
        """Replace the live document with a snapshot and flush it.

        Returns:
            True if restored, False if the snapshot could not be read
        """
        path = Path(backup_file)
        try:
            document = self._read_document(path)
        except (OSError, ValueError) as e:
            logger.error(
                "Failed to read backup",
                extra={"backup_file": str(path), "error": str(e)},
            )
            return False

        with self.lock:
            self._document = document
            self.save_immediate()

        logger.info("Restored from backup", extra={"backup_file": str(path)})
        return True

    def _restore_from_latest_backup(self) -> bool:
        backups = self.list_backups()
        if not backups:
            return False
        return self.restore_from_backup(backups[-1])

    def _prune_backups(self, keep_count: int) -> None:
        backups = self.list_backups()
        for old in backups[: max(0, len(backups) - keep_count)]:
            try:
                old.unlink()
            except OSError as e:
                logger.warning(
                    "Failed to delete old backup",
                    extra={"backup_file": str(old), "error": str(e)},
                )

    def _schedule_backup(self) -> None:
        with self.lock:
            if self._closed or self.backup_interval_seconds <= 0:
                return
            timer = threading.Timer(self.backup_interval_seconds, self._run_scheduled_backup)
            timer.daemon = True
            self._backup_timer = timer
            timer.start()

    def _run_scheduled_backup(self) -> None:
        try:
            self.backup()
        except StorageError:
            logger.error("Scheduled backup failed", exc_info=True)
        self._schedule_backup()

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    def get_tasks(self) -> list[Task]:
        with self.lock:
            return [t.model_copy(deep=True) for t in self._document.todos]

    def get_task(self, task_id: str) -> Task | None:
        with self.lock:
            index = self._index_of(self._document.todos, "id", task_id)
            if index is None:
                return None
            return self._document.todos[index].model_copy(deep=True)

    def create_task(self, task: Task) -> Task:
        with self.lock:
            self._document.todos.append(task.model_copy(deep=True))
            self.save()
            return task.model_copy(deep=True)

    def update_task(self, task_id: str, changes: dict[str, Any]) -> Task | None:
        with self.lock:
            index = self._index_of(self._document.todos, "id", task_id)
            if index is None:
                return None
            merged = self._document.todos[index].model_copy(update=changes, deep=True)
            self._document.todos[index] = merged
            self.save()
            return merged.model_copy(deep=True)

    def delete_task(self, task_id: str) -> bool:
        with self.lock:
            index = self._index_of(self._document.todos, "id", task_id)
            if index is None:
                return False
            del self._document.todos[index]
            self.save()
            return True

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def get_projects(self) -> list[Project]:
        with self.lock:
            return [p.model_copy(deep=True) for p in self._document.projects]

    def get_project(self, project_id: str) -> Project | None:
        with self.lock:
            index = self._index_of(self._document.projects, "id", project_id)
            if index is None:
                return None
            return self._document.projects[index].model_copy(deep=True)

    def create_project(self, project: Project) -> Project:
        with self.lock:
            self._document.projects.append(project.model_copy(deep=True))
            self.save()
            return project.model_copy(deep=True)

    def update_project(self, project_id: str, changes: dict[str, Any]) -> Project | None:
        with self.lock:
            index = self._index_of(self._document.projects, "id", project_id)
            if index is None:
                return None
            merged = self._document.projects[index].model_copy(update=changes, deep=True)
            self._document.projects[index] = merged
            self.save()
            return merged.model_copy(deep=True)

    def delete_project(self, project_id: str) -> bool:
        """Remove a project and detach any task still pointing at it."""
        with self.lock:
            index = self._index_of(self._document.projects, "id", project_id)
            if index is None:
                return False
            for task in self._document.todos:
                if task.project_id == project_id:
                    task.project_id = None
            del self._document.projects[index]
            self.save()
            return True

    # ------------------------------------------------------------------
    # Tags
    # ------------------------------------------------------------------

    def get_tags(self) -> list[Tag]:
        with self.lock:
            return [t.model_copy(deep=True) for t in self._document.tags]

    def get_tag(self, name: str) -> Tag | None:
        with self.lock:
            index = self._index_of(self._document.tags, "name", name)
            if index is None:
                return None
            return self._document.tags[index].model_copy(deep=True)

    def create_tag(self, tag: Tag) -> Tag:
        with self.lock:
            self._document.tags.append(tag.model_copy(deep=True))
            self.save()
            return tag.model_copy(deep=True)

    def update_tag(self, name: str, changes: dict[str, Any]) -> Tag | None:
        with self.lock:
            index = self._index_of(self._document.tags, "name", name)
            if index is None:
                return None
            merged = self._document.tags[index].model_copy(update=changes, deep=True)
            self._document.tags[index] = merged
            self.save()
            return merged.model_copy(deep=True)

    def delete_tag(self, name: str) -> bool:
        with self.lock:
            index = self._index_of(self._document.tags, "name", name)
            if index is None:
                return False
            del self._document.tags[index]
            self.save()
            return True

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @property
    def last_backup(self) -> datetime | None:
        with self.lock:
            return self._document.last_backup

    @property
    def version(self) -> str:
        return self._document.version

    @staticmethod
    def _index_of(records: list[Any], key: str, value: str) -> int | None:
        for i, record in enumerate(records):
            if getattr(record, key) == value:
                return i
        return None
