"""
Settings CLI commands.

Settings live in .anitrack/config.yaml as nested mappings addressed by
dotted keys ('provider.timeout'). Anything not set there falls back to the
default declared in CONFIG_SCHEMA.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

import click
import yaml
from rich.console import Console
from rich.table import Table

from anitrack.core.backup import DEFAULT_KEEP_COUNT, DEFAULT_KEEP_DAYS
from anitrack.core.cache import DEFAULT_TTL_SECONDS
from anitrack.core.config import get_paths
from anitrack.provider.anilist import ANILIST_API, DEFAULT_TIMEOUT

console = Console()

_TRUE_WORDS = {"true", "1", "yes", "on"}


@dataclass(frozen=True)
class Setting:
    """A known setting: its default, value type and help text."""

    default: Any
    type: Callable[[str], Any]
    description: str

    def parse(self, raw: str) -> Any:
        """Convert command-line text to the setting's type.

        Raises:
            ValueError: If the text is not a valid value
        """
        if self.type is bool:
            return raw.strip().lower() in _TRUE_WORDS
        return self.type(raw)


CONFIG_SCHEMA: dict[str, Setting] = {
    "provider.api_url": Setting(ANILIST_API, str, "AniList GraphQL endpoint"),
    "provider.timeout": Setting(DEFAULT_TIMEOUT, float, "Seconds before a provider call is abandoned"),
    "provider.max_workers": Setting(4, int, "Maximum concurrent provider calls when listing anime"),
    "cache.ttl_seconds": Setting(DEFAULT_TTL_SECONDS, int, "Lifetime of cached provider metadata"),
    "backup.enabled": Setting(True, bool, "Back up a collection before every write"),
    "backup.keep_days": Setting(DEFAULT_KEEP_DAYS, int, "Maximum age of backups in days"),
    "backup.keep_count": Setting(DEFAULT_KEEP_COUNT, int, "Minimum number of backups to keep"),
}


def get_config_path() -> Path:
    return get_paths().config_file


def load_config() -> dict[str, Any]:
    """Read config.yaml; a missing, blank, unparseable or non-mapping file is {}."""
    path = get_config_path()
    if not path.is_file():
        return {}
    try:
        loaded = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        console.print(f"[yellow]Warning: Could not parse {path}: {e}[/yellow]")
        return {}
    return loaded if isinstance(loaded, dict) else {}


def save_config(config: dict[str, Any]) -> None:
    path = get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(config, default_flow_style=False, sort_keys=False), encoding="utf-8")


def _parent_of(config: dict[str, Any], key: str, create: bool = False) -> dict[str, Any] | None:
    """Mapping that holds the last part of a dotted key.

    With create, missing (or non-mapping) intermediate levels are replaced
    by empty mappings; otherwise None is returned for them.
    """
    node = config
    for part in key.split(".")[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            if not create:
                return None
            child = node[part] = {}
        node = child
    return node


def get_config_value(key: str, default: Any = None) -> Any:
    """Value stored under a dotted key, or default if it is not set."""
    parent = _parent_of(load_config(), key)
    leaf = key.rsplit(".", 1)[-1]
    if parent is None or leaf not in parent:
        return default
    return parent[leaf]


def get_setting(key: str) -> Any:
    """Value of a known setting, falling back to its declared default."""
    return get_config_value(key, CONFIG_SCHEMA[key].default)


def set_config_value(key: str, value: Any) -> None:
    config = load_config()
    _parent_of(config, key, create=True)[key.rsplit(".", 1)[-1]] = value
    save_config(config)


def _known(key: str) -> bool:
    if key in CONFIG_SCHEMA:
        return True
    console.print(f"[red]Unknown setting: {key}[/red]")
    console.print("\nAvailable settings:")
    for name in CONFIG_SCHEMA:
        console.print(f"  - {name}")
    return False


@click.group()
def config():
    """Manage anitrack configuration.

    Settings are stored in .anitrack/config.yaml.
    """
    pass


@config.command(name="show")
@click.option("--all", "show_all", is_flag=True, help="Include settings left at their default")
def show_cmd(show_all: bool):
    """Show settings that differ from their defaults (or all of them)."""
    path = get_config_path()
    rows = []
    for key, setting in CONFIG_SCHEMA.items():
        value = get_config_value(key)
        customized = value is not None and value != setting.default
        if customized or show_all:
            shown = str(value) if value is not None else f"[dim]{setting.default}[/dim]"
            rows.append((key, shown, str(setting.default), setting.description))

    if not rows:
        console.print("[dim]No custom configuration set. Using defaults.[/dim]")
        console.print(f"[dim]Config file: {path}[/dim]")
        console.print("\n[dim]Use 'anitrack config show --all' to see all settings.[/dim]")
        return

    table = Table(title="Configuration", show_header=True, header_style="bold cyan")
    table.add_column("Setting")
    table.add_column("Value", style="green")
    table.add_column("Default", style="dim")
    table.add_column("Description", style="dim")
    for row in rows:
        table.add_row(*row)
    console.print(table)
    console.print(f"\n[dim]Config file: {path}[/dim]")


@config.command(name="get")
@click.argument("key")
def get_cmd(key: str):
    """Print one setting.

    Examples:
        anitrack config get provider.timeout
        anitrack config get cache.ttl_seconds
    """
    if not _known(key):
        return
    value = get_config_value(key)
    if value is None:
        console.print(f"{key} = {CONFIG_SCHEMA[key].default} [dim](default)[/dim]")
    else:
        console.print(f"{key} = {value}")


@config.command(name="set")
@click.argument("key")
@click.argument("value")
def set_cmd(key: str, value: str):
    """Store a setting in config.yaml.

    Examples:
        anitrack config set provider.timeout 15
        anitrack config set backup.enabled false
    """
    if not _known(key):
        return
    setting = CONFIG_SCHEMA[key]
    try:
        parsed = setting.parse(value)
    except ValueError:
        console.print(f"[red]Invalid value type. Expected {setting.type.__name__}[/red]")
        return
    set_config_value(key, parsed)
    console.print(f"[green]Set {key} = {parsed}[/green]")


@config.command(name="reset")
@click.argument("key", required=False)
@click.option("--all", "reset_all", is_flag=True, help="Remove every stored setting")
@click.option("--force", "-f", is_flag=True, help="Skip confirmation prompt")
def reset_cmd(key: str | None, reset_all: bool, force: bool):
    """Return one setting (or all of them) to the default.

    Examples:
        anitrack config reset provider.timeout
        anitrack config reset --all
    """
    if reset_all:
        if not force and not click.confirm("Reset all settings to defaults?"):
            console.print("[yellow]Cancelled[/yellow]")
            return
        get_config_path().unlink(missing_ok=True)
        console.print("[green]All settings reset to defaults[/green]")
        return

    if not key:
        console.print("[red]Specify a key or use --all to reset all settings[/red]")
        return
    if not _known(key):
        return

    stored = load_config()
    parent = _parent_of(stored, key)
    leaf = key.rsplit(".", 1)[-1]
    if parent is None or leaf not in parent:
        console.print(f"[dim]{key} is already at default[/dim]")
        return
    del parent[leaf]
    save_config(stored)
    console.print(f"[green]Reset {key} to default ({CONFIG_SCHEMA[key].default})[/green]")
