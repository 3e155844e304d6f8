"""Core persistence and consistency layer for anitrack."""

from anitrack.core.backup import (
    DEFAULT_KEEP_COUNT,
    DEFAULT_KEEP_DAYS,
    BackupInfo,
    cleanup_by_age,
    cleanup_old_backups,
    create_backup,
    get_latest_backup,
    list_backups,
    rollback_collection,
    safe_write_json,
)
from anitrack.core.cache import MetadataCache
from anitrack.core.config import get_data_root, get_paths
from anitrack.core.errors import AnitrackError, ErrorKind
from anitrack.core.store import Store

__all__ = [
    # Backup
    "create_backup",
    "safe_write_json",
    "cleanup_old_backups",
    "cleanup_by_age",
    "list_backups",
    "get_latest_backup",
    "rollback_collection",
    "BackupInfo",
    "DEFAULT_KEEP_COUNT",
    "DEFAULT_KEEP_DAYS",
    # Storage
    "Store",
    "MetadataCache",
    # Errors
    "AnitrackError",
    "ErrorKind",
    # Config
    "get_data_root",
    "get_paths",
]
