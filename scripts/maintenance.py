#!/usr/bin/env python3
"""Maintenance entrypoint for the local todo document.

Usage:
    # Snapshot the document into backups/
    python scripts/maintenance.py --backup

    # List snapshots, oldest first
    python scripts/maintenance.py --list-backups

    # Replace the live document with a snapshot
    python scripts/maintenance.py --restore data/backups/backup-2024-01-31T10-00-00-000000Z.json

    # Archive tasks completed more than 14 days ago (default: TODO_ARCHIVE_AFTER_DAYS)
    python scripts/maintenance.py --archive-completed 14

Environment variables:
    TODO_DATA_DIR: Directory holding todos.json (default: ./data)
    TODO_BACKUP_RETENTION: Snapshots kept after a backup (default: 10)
    TODO_ARCHIVE_AFTER_DAYS: Default age for --archive-completed (default: 30)
    TODO_LOG_LEVEL: Log level when neither -v nor -q is given (default: INFO)
"""

import argparse
import logging
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from todo_engine.db.store import JsonStore
from todo_engine.exceptions import TodoEngineError
from todo_engine.logging_config import configure_logging
from todo_engine.services.tasks import TaskManager

# Sentinel for "--archive-completed" given without a value
_DEFAULT_DAYS = -1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Maintenance tasks for the todo engine data directory",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    # Action selection
    action = parser.add_mutually_exclusive_group(required=True)
    action.add_argument(
        "--backup",
        action="store_true",
        help="Write a timestamped snapshot and prune old ones",
    )
    action.add_argument(
        "--list-backups",
        action="store_true",
        help="List available snapshots, oldest first",
    )
    action.add_argument(
        "--restore",
        metavar="FILE",
        default=None,
        help="Restore the document from a snapshot file",
    )
    action.add_argument(
        "--archive-completed",
        metavar="DAYS",
        type=int,
        nargs="?",
        const=_DEFAULT_DAYS,
        default=None,
        help="Archive tasks completed more than DAYS days ago",
    )

    # Configuration
    parser.add_argument(
        "--data-dir",
        default=None,
        help="Data directory (default: TODO_DATA_DIR)",
    )

    # Logging
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Reduce logging to warnings only",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entrypoint for maintenance runs."""
    args = build_parser().parse_args(argv)

    # Configure logging
    if args.verbose:
        configure_logging(logging.DEBUG)
    elif args.quiet:
        configure_logging(logging.WARNING)
    else:
        configure_logging()

    logger = logging.getLogger(__name__)

    # Periodic backups are not wanted in a one-shot run
    store = JsonStore(args.data_dir, backup_interval_seconds=0)

    try:
        with store:
            if args.backup:
                path = store.backup()
                print(f"Backup written: {path}")

            elif args.list_backups:
                backups = store.list_backups()
                if not backups:
                    print("No backups found")
                for path in backups:
                    print(path.name)

            elif args.restore is not None:
                if not store.restore_from_backup(args.restore):
                    print(f"Restore failed: {args.restore}", file=sys.stderr)
                    return 1
                print(f"Restored from {args.restore}")

            elif args.archive_completed is not None:
                days = None if args.archive_completed == _DEFAULT_DAYS else args.archive_completed
                count = TaskManager(store).archive_old_completed(days)
                print(f"Archived {count} task(s)")

        return 0

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 0
    except (TodoEngineError, OSError) as e:
        logger.error(f"Maintenance failed: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
