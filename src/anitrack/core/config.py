"""
Configuration and path management.

Locates the data root and the standard paths inside it.
Uses a .anitrack/ directory for collections, settings and backups.

Resolution order for the data root:
  1. ANITRACK_DATA_ROOT environment variable (highest priority)
  2. Walk up from cwd looking for .anitrack/ directory
  3. Global config file (~/.config/anitrack/config.yaml) data_root key
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

import yaml

DATA_DIR_NAME = ".anitrack"

# Collection name -> backing file name
COLLECTION_FILES = {
    "anime": "anime.json",
    "episodes": "episodes.json",
    "scheduled_releases": "scheduled_releases.json",
}


@dataclass(frozen=True)
class DataPaths:
    """Standard paths inside the data root."""

    root: Path
    data_dir: Path

    # Collections
    anime_db: Path
    episodes_db: Path
    schedule_db: Path

    # Settings
    config_file: Path

    # Backups
    backups: Path
    exports: Path

    def collection(self, name: str) -> Path:
        """Return the backing file for a collection name."""
        try:
            return self.data_dir / COLLECTION_FILES[name]
        except KeyError:
            raise ValueError(f"Unknown collection: {name}") from None

    def backup_dir(self, name: str) -> Path:
        """Return the backup directory for a collection name."""
        return self.backups / name


def get_global_config_path() -> Path:
    """Return the path to the global anitrack config file.

    Respects XDG_CONFIG_HOME if set, otherwise defaults to
    ~/.config/anitrack/config.yaml.
    """
    xdg_config_home = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config_home:
        base = Path(xdg_config_home)
    else:
        base = Path.home() / ".config"
    return base / "anitrack" / "config.yaml"


def load_global_config() -> dict:
    """Load the global anitrack configuration.

    Returns:
        Configuration dict, or empty dict if file is missing or invalid.
    """
    config_path = get_global_config_path()
    if not config_path.is_file():
        return {}
    try:
        text = config_path.read_text(encoding="utf-8")
        data = yaml.safe_load(text)
        if isinstance(data, dict):
            return data
        return {}
    except (OSError, yaml.YAMLError):
        return {}


def _walk_up_for_data_dir(start_path: Path) -> Path | None:
    """Walk up directory tree looking for a .anitrack/ directory."""
    current = start_path.resolve()
    while current != current.parent:
        if (current / DATA_DIR_NAME).is_dir():
            return current
        current = current.parent
    return None


def find_data_root(start_path: Path | None = None) -> Path:
    """Find the data root using 3-tier resolution.

    Args:
        start_path: Starting path for the .anitrack/ walk (defaults to cwd)

    Returns:
        Path to the directory containing .anitrack/

    Raises:
        FileNotFoundError: If .anitrack/ is not found by any method
    """
    env_root = os.environ.get("ANITRACK_DATA_ROOT")
    if env_root:
        env_path = Path(env_root).resolve()
        if (env_path / DATA_DIR_NAME).is_dir():
            return env_path
        raise FileNotFoundError(
            f"ANITRACK_DATA_ROOT={env_root} does not contain a {DATA_DIR_NAME}/ directory."
        )

    if start_path is None:
        start_path = Path.cwd()
    result = _walk_up_for_data_dir(Path(start_path))
    if result is not None:
        return result

    global_config = load_global_config()
    root_str = global_config.get("data_root")
    if root_str:
        global_path = Path(root_str).expanduser().resolve()
        if (global_path / DATA_DIR_NAME).is_dir():
            return global_path
        raise FileNotFoundError(
            f"Global config data_root={root_str} does not contain a {DATA_DIR_NAME}/ directory."
        )

    raise FileNotFoundError(
        f"Could not find {DATA_DIR_NAME}/ directory starting from {start_path}. "
        f"Run 'anitrack init' to initialize, set ANITRACK_DATA_ROOT, or configure "
        f"data_root in {get_global_config_path()}."
    )


@lru_cache(maxsize=1)
def get_data_root() -> Path:
    """Get the cached data root path."""
    return find_data_root()


def get_paths(data_root: Path | None = None) -> DataPaths:
    """Get all standard paths for the data root.

    Args:
        data_root: Data root path (uses cached default if not provided)

    Returns:
        DataPaths dataclass with all paths
    """
    if data_root is None:
        data_root = get_data_root()

    data_root = Path(data_root)
    data_dir = data_root / DATA_DIR_NAME

    return DataPaths(
        root=data_root,
        data_dir=data_dir,
        anime_db=data_dir / COLLECTION_FILES["anime"],
        episodes_db=data_dir / COLLECTION_FILES["episodes"],
        schedule_db=data_dir / COLLECTION_FILES["scheduled_releases"],
        config_file=data_dir / "config.yaml",
        backups=data_dir / "backups",
        exports=data_dir / "exports",
    )
