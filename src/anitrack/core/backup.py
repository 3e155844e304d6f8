"""
Collection backups and crash-safe JSON writes.

Every collection write goes through safe_write_json: the previous file is
copied to backups/<collection>/<collection>_<timestamp>.json, the new
content lands in a temp file beside the target and is swapped in with
os.replace. Old copies are rotated by count and age.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import re
import shutil
import tempfile
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Iterable

logger = logging.getLogger(__name__)

DEFAULT_KEEP_COUNT = 10
DEFAULT_KEEP_DAYS = 30
TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S_%f"

# <collection>_<YYYYmmdd>_<HHMMSS>_<micro>.<ext>
_BACKUP_NAME = re.compile(r"^(?P<collection>.+)_(?P<stamp>\d{8}_\d{6}_\d{6})\.\w+$")


@dataclass
class BackupInfo:
    """One backup file of a collection."""

    path: Path
    timestamp: datetime
    size_bytes: int
    collection: str

    @classmethod
    def from_path(cls, path: Path) -> BackupInfo | None:
        """Describe a backup file, or None if its name is not a backup name."""
        parsed = _split_backup_name(path.name)
        if parsed is None:
            return None
        collection, timestamp = parsed
        return cls(path=path, timestamp=timestamp, size_bytes=path.stat().st_size, collection=collection)

    @property
    def age_days(self) -> float:
        return (datetime.now() - self.timestamp).total_seconds() / 86400

    @property
    def size_human(self) -> str:
        if self.size_bytes < 1024:
            return f"{self.size_bytes} B"
        size, unit = self.size_bytes / 1024, "KB"
        if size >= 1024:
            size, unit = size / 1024, "MB"
        return f"{size:.1f} {unit}"


def _split_backup_name(filename: str) -> tuple[str, datetime] | None:
    match = _BACKUP_NAME.match(filename)
    if match is None:
        return None
    try:
        stamp = datetime.strptime(match.group("stamp"), TIMESTAMP_FORMAT)
    except ValueError:
        return None
    return match.group("collection"), stamp


def parse_backup_timestamp(filename: str) -> datetime | None:
    """Timestamp embedded in a backup filename ('episodes_20251212_144234_123456.json')."""
    parsed = _split_backup_name(filename)
    return parsed[1] if parsed else None


def _newest_first(paths: Iterable[Path]) -> list[BackupInfo]:
    infos = [info for info in (BackupInfo.from_path(p) for p in paths) if info is not None]
    infos.sort(key=lambda info: info.timestamp, reverse=True)
    return infos


def list_backups(backup_dir: Path, collection: str | None = None) -> list[BackupInfo]:
    """Backups in a directory, newest first.

    With a collection name only that collection's backups are returned
    (an exact match, so 'anime' does not pick up 'anime_extra').
    """
    backup_dir = Path(backup_dir)
    if not backup_dir.is_dir():
        return []
    infos = _newest_first(backup_dir.glob("*.json"))
    if collection is None:
        return infos
    return [info for info in infos if info.collection == collection]


def get_latest_backup(backup_dir: Path, collection: str) -> BackupInfo | None:
    backups = list_backups(backup_dir, collection)
    return backups[0] if backups else None


def create_backup(
    file_path: Path,
    backup_dir: Path | None = None,
    timestamp_format: str = TIMESTAMP_FORMAT,
) -> Path:
    """Copy a file into backup_dir under a timestamped name.

    backup_dir defaults to a 'backups' folder next to the file.

    Raises:
        FileNotFoundError: If the file does not exist
    """
    file_path = Path(file_path)
    if not file_path.is_file():
        raise FileNotFoundError(f"Cannot backup non-existent file: {file_path}")

    target_dir = Path(backup_dir) if backup_dir is not None else file_path.parent / "backups"
    target_dir.mkdir(parents=True, exist_ok=True)

    stamp = datetime.now().strftime(timestamp_format)
    backup_path = target_dir / f"{file_path.stem}_{stamp}{file_path.suffix}"
    shutil.copy2(file_path, backup_path)
    logger.debug("Backed up %s to %s", file_path.name, backup_path)
    return backup_path


def _prune(backups: list[BackupInfo], keep_last: int, cutoff: datetime | None) -> list[Path]:
    """Delete everything past the newest keep_last that is older than cutoff.

    A cutoff of None deletes everything past keep_last.
    """
    removed = []
    for info in backups[keep_last:]:
        if cutoff is not None and info.timestamp >= cutoff:
            continue
        info.path.unlink(missing_ok=True)
        removed.append(info.path)
    return removed


def cleanup_old_backups(
    backup_dir: Path,
    pattern: str = "*.json",
    keep_last: int = DEFAULT_KEEP_COUNT,
    keep_days: int | None = None,
) -> list[Path]:
    """Rotate the backups matching pattern.

    A backup survives if it is among the newest keep_last or younger than
    keep_days. Returns the removed paths.
    """
    backup_dir = Path(backup_dir)
    if not backup_dir.is_dir():
        return []
    cutoff = datetime.now() - timedelta(days=keep_days) if keep_days is not None else None
    return _prune(_newest_first(backup_dir.glob(pattern)), keep_last, cutoff)


def cleanup_by_age(
    backup_dir: Path,
    max_age_days: int = DEFAULT_KEEP_DAYS,
    min_keep: int = 1,
) -> list[Path]:
    """Drop backups older than max_age_days, keeping min_keep per collection."""
    cutoff = datetime.now() - timedelta(days=max_age_days)
    grouped: dict[str, list[BackupInfo]] = {}
    for info in list_backups(backup_dir):
        grouped.setdefault(info.collection, []).append(info)

    removed: list[Path] = []
    for infos in grouped.values():
        removed.extend(_prune(infos, min_keep, cutoff))
    return removed


def rollback_collection(file_path: Path, backup_dir: Path, backup_index: int = 0) -> Path:
    """Replace a collection file with one of its backups (0 = newest).

    The file being replaced is itself backed up first.

    Returns:
        The backup that was restored

    Raises:
        FileNotFoundError: If there is no backup at that index
    """
    file_path = Path(file_path)
    backups = list_backups(backup_dir, file_path.stem)
    if not backups:
        raise FileNotFoundError(f"No backups found for {file_path.stem}")
    if not 0 <= backup_index < len(backups):
        raise FileNotFoundError(
            f"Backup index {backup_index} out of range (only {len(backups)} backups)"
        )

    chosen = backups[backup_index]
    if file_path.exists():
        create_backup(file_path, backup_dir)
    shutil.copy2(chosen.path, file_path)
    logger.info("Restored %s from %s", file_path.name, chosen.path.name)
    return chosen.path


def _parses(file_path: Path) -> bool:
    try:
        json.loads(file_path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return False
    return True


def _replace_atomically(file_path: Path, text: str) -> None:
    """Write text to a sibling temp file, fsync it and rename it over file_path."""
    fd, temp_name = tempfile.mkstemp(prefix=f".{file_path.name}.", suffix=".json", dir=file_path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(text)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(temp_name, file_path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(temp_name)
        raise


def safe_write_json(
    file_path: Path,
    data: Any,
    create_backup_first: bool = True,
    backup_dir: Path | None = None,
    indent: int = 2,
    ensure_ascii: bool = False,
    keep_backups: int = DEFAULT_KEEP_COUNT,
    keep_days: int | None = DEFAULT_KEEP_DAYS,
) -> Path | None:
    """Write data as JSON without ever leaving a half-written file.

    Serialization happens before anything on disk is touched. If the final
    rename fails and the target no longer parses, the fresh backup is
    copied back.

    Returns:
        Path of the backup taken, or None if none was taken

    Raises:
        ValueError: If data is not JSON-serializable
        OSError: If writing failed
    """
    file_path = Path(file_path)
    try:
        text = json.dumps(data, indent=indent, ensure_ascii=ensure_ascii) + "\n"
    except (TypeError, ValueError) as e:
        raise ValueError(f"Cannot serialize data to JSON: {e}") from e

    file_path.parent.mkdir(parents=True, exist_ok=True)
    backup_path = create_backup(file_path, backup_dir) if create_backup_first and file_path.exists() else None

    try:
        _replace_atomically(file_path, text)
    except OSError as e:
        if backup_path is not None and not _parses(file_path):
            logger.warning("Restoring %s from %s after failed write", file_path, backup_path)
            with contextlib.suppress(OSError):
                shutil.copy2(backup_path, file_path)
        raise OSError(f"Failed to write {file_path}: {e}") from e

    if backup_path is not None:
        cleanup_old_backups(backup_path.parent, f"{file_path.stem}_*.json", keep_backups, keep_days)
    return backup_path
