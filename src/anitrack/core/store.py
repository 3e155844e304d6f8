"""
Durable storage for named JSON collections.

Each collection is one pretty-printed JSON array of objects in the data
directory. Reads never fail: a missing file is created empty and a corrupt
one degrades to an empty list. Writes go through safe_write_json and report
success as a boolean so callers decide whether a failed save is fatal.
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Iterator
from contextlib import ExitStack, contextmanager
from pathlib import Path
from typing import Any

from anitrack.core.backup import DEFAULT_KEEP_COUNT, DEFAULT_KEEP_DAYS, safe_write_json

logger = logging.getLogger(__name__)

Record = dict[str, Any]


class Store:
    """Load/save named collections under a data directory."""

    def __init__(
        self,
        data_dir: Path,
        backup_root: Path | None = None,
        create_backups: bool = True,
        keep_backups: int = DEFAULT_KEEP_COUNT,
        keep_days: int | None = DEFAULT_KEEP_DAYS,
    ):
        """Initialize store.

        Args:
            data_dir: Directory holding the collection files
            backup_root: Directory holding one backup folder per collection
                (defaults to data_dir / 'backups')
            create_backups: Take a timestamped backup before every write
            keep_backups: Number of most recent backups to always keep
            keep_days: Remove backups older than this (None = no age limit)
        """
        self.data_dir = Path(data_dir)
        self.backup_root = Path(backup_root) if backup_root else self.data_dir / "backups"
        self.create_backups = create_backups
        self.keep_backups = keep_backups
        self.keep_days = keep_days
        self._locks: dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    def path_for(self, name: str) -> Path:
        """Return the backing file of a collection."""
        return self.data_dir / f"{name}.json"

    def backup_dir_for(self, name: str) -> Path:
        """Return the backup directory of a collection."""
        return self.backup_root / name

    def ensure(self, name: str) -> Path:
        """Create the data directory and an empty collection file if missing."""
        path = self.path_for(name)
        if path.exists():
            return path
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            safe_write_json(path, [], create_backup_first=False)
            logger.info("Initialized %s with empty data", path.name)
        except (OSError, ValueError) as e:
            logger.error("Could not initialize %s: %s", path, e)
        return path

    def load(self, name: str) -> list[Record]:
        """Load a collection.

        Returns:
            The persisted records, or an empty list if the file is absent,
            unreadable or does not hold a JSON array.
        """
        path = self.ensure(name)

        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Could not read %s, treating as empty: %s", path, e)
            return []

        if not isinstance(data, list):
            logger.warning("%s does not hold a JSON array, treating as empty", path)
            return []

        records = [r for r in data if isinstance(r, dict)]
        if len(records) != len(data):
            logger.warning("Dropped %d non-object entries from %s", len(data) - len(records), path)
        return records

    def save(self, name: str, records: list[Record]) -> bool:
        """Write a whole collection back to disk.

        Returns:
            True on success, False if serialization or any file operation failed
        """
        path = self.path_for(name)
        try:
            safe_write_json(
                path,
                list(records),
                create_backup_first=self.create_backups,
                backup_dir=self.backup_dir_for(name),
                keep_backups=self.keep_backups,
                keep_days=self.keep_days,
            )
        except (OSError, ValueError) as e:
            logger.error("Error writing %s: %s", path, e)
            return False

        logger.debug("Saved %d records to %s", len(records), path.name)
        return True

    def _lock_for(self, name: str) -> threading.RLock:
        with self._locks_guard:
            lock = self._locks.get(name)
            if lock is None:
                lock = self._locks[name] = threading.RLock()
            return lock

    @contextmanager
    def lock(self, *names: str) -> Iterator[None]:
        """Hold the mutex of every named collection.

        Locks are taken in sorted order so two writers touching overlapping
        collections cannot deadlock.
        """
        with ExitStack() as stack:
            for name in sorted(set(names)):
                stack.enter_context(self._lock_for(name))
            yield
