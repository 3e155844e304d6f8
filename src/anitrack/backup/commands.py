"""
Backup management CLI commands.

Lists, cleans and restores the per-collection backups taken before every
write, and exports or imports the whole library as one JSON bundle.
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Iterator

import click
from rich.panel import Panel
from rich.table import Table

from anitrack.config.commands import get_setting
from anitrack.core.backup import BackupInfo, list_backups, rollback_collection, safe_write_json
from anitrack.core.cli_helpers import console, reported_errors
from anitrack.core.config import COLLECTION_FILES, get_paths
from anitrack.core.errors import InvalidValueError

ALL_COLLECTIONS = list(COLLECTION_FILES)

# (upper bound in days, days per unit, suffix), smallest unit first
_AGE_UNITS = [
    (1 / 24, 1 / 1440, "m"),
    (1, 1 / 24, "h"),
    (7, 1, "d"),
    (30, 7, "w"),
]

collection_option = click.option(
    "-c", "--collection",
    type=click.Choice(ALL_COLLECTIONS + ["all"]),
    default="all",
    help="Restrict to one collection",
)


def _format_age(days: float) -> str:
    """'5m ago', '3h ago', '2d ago', '1w ago' or '4mo ago'."""
    for limit, unit_days, suffix in _AGE_UNITS:
        if days < limit:
            return f"{int(days / unit_days)}{suffix} ago"
    return f"{int(days / 30)}mo ago"


def _backups_by_collection(collection: str = "all") -> Iterator[tuple[str, list[BackupInfo]]]:
    """(collection, backups newest first) for one collection or all of them."""
    paths = get_paths()
    names = ALL_COLLECTIONS if collection == "all" else [collection]
    for name in names:
        yield name, list_backups(paths.backup_dir(name), name)


def _kb(size_bytes: int) -> str:
    return f"{size_bytes / 1024:.1f} KB"


@click.group()
def backup():
    """Manage collection backups.

    A timestamped copy of a collection is taken automatically before each
    write. Use these commands to inspect, prune and restore them.
    """
    pass


@backup.command(name="list")
@collection_option
@click.option("-n", "--limit", type=int, default=10, help="Maximum backups shown per collection")
@click.option("--all", "show_all", is_flag=True, help="Show every backup")
def list_cmd(collection: str, limit: int, show_all: bool):
    """List available backups, newest first."""
    grand_count = grand_bytes = 0

    for name, backups in _backups_by_collection(collection):
        if not backups:
            console.print(f"[dim]No backups found for {name}[/dim]")
            continue
        grand_count += len(backups)
        grand_bytes += sum(info.size_bytes for info in backups)

        table = Table(title=f"[bold]{name}[/bold] ({len(backups)} backups)", header_style="bold cyan")
        for header, style, justify in [
            ("#", "dim", "left"),
            ("Date", "green", "left"),
            ("Age", "yellow", "right"),
            ("Size", "blue", "right"),
            ("Filename", "dim", "left"),
        ]:
            table.add_column(header, style=style, justify=justify)

        visible = backups if show_all else backups[:limit]
        for position, info in enumerate(visible):
            table.add_row(
                str(position),
                f"{info.timestamp:%Y-%m-%d %H:%M:%S}",
                _format_age(info.age_days),
                info.size_human,
                info.path.name,
            )
        console.print(table)

        if len(backups) > len(visible):
            console.print(f"  [dim]... and {len(backups) - len(visible)} older backups (use --all)[/dim]")
        console.print()

    if grand_count:
        console.print(f"[dim]Total: {grand_count} backups, {_kb(grand_bytes)}[/dim]")


@backup.command(name="status")
def status_cmd():
    """Summarise backups per collection and show the retention settings."""
    keep_days = int(get_setting("backup.keep_days"))
    keep_count = int(get_setting("backup.keep_count"))
    on_write = "enabled" if get_setting("backup.enabled") else "disabled"

    table = Table(title="Backup Status", header_style="bold cyan")
    table.add_column("Collection")
    for header in ("Count", "Size", "Latest", "Oldest"):
        table.add_column(header, justify="right")
    table.add_column(f">{keep_days}d", justify="right", style="yellow")

    for name, backups in _backups_by_collection():
        if backups:
            expired = len([info for info in backups if info.age_days > keep_days])
            table.add_row(
                name,
                str(len(backups)),
                _kb(sum(info.size_bytes for info in backups)),
                f"{backups[0].timestamp:%Y-%m-%d}",
                f"{backups[-1].timestamp:%Y-%m-%d}",
                str(expired) if expired else "[green]0[/green]",
            )
        else:
            table.add_row(name, "0", "-", "-", "-", "[green]0[/green]")
    console.print(table)

    policy = "\n".join([
        "[bold]Retention Policy[/bold]",
        f"Backups on write: [cyan]{on_write}[/cyan]",
        f"Always keep the newest [cyan]{keep_count}[/cyan] per collection",
        f"Older copies expire after [cyan]{keep_days}[/cyan] days",
        "",
        "[dim]Change with 'anitrack config set backup.keep_days N'.[/dim]",
    ])
    console.print()
    console.print(Panel(policy, title="Settings"))


@backup.command(name="clean")
@collection_option
@click.option("--days", type=int, default=None, help="Age in days after which a backup expires")
@click.option("--keep", type=int, default=None, help="Newest backups per collection that never expire")
@click.option("--dry-run", "-n", is_flag=True, help="Only list what would be removed")
@click.option("--force", "-f", is_flag=True, help="Skip confirmation prompt")
def clean_cmd(collection: str, days: int | None, keep: int | None, dry_run: bool, force: bool):
    """Delete expired backups.

    A backup expires once it is older than --days, unless it is one of the
    newest --keep of its collection. Both default to the configured
    retention.

    Examples:
        anitrack backup clean --days 7
        anitrack backup clean -c episodes -n
    """
    days = int(get_setting("backup.keep_days")) if days is None else days
    keep = int(get_setting("backup.keep_count")) if keep is None else keep

    expired = [
        info
        for _, backups in _backups_by_collection(collection)
        for info in backups[keep:]
        if info.age_days > days
    ]
    if not expired:
        console.print("[green]No old backups to clean up.[/green]")
        return

    console.print(f"[bold]{len(expired)} expired backup(s):[/bold]")
    for info in expired[:10]:
        console.print(f"  [red]x[/red] {info.path.name} [dim]({_format_age(info.age_days)}, {info.size_human})[/dim]")
    if len(expired) > 10:
        console.print(f"  [dim]... {len(expired) - 10} more[/dim]")

    if dry_run:
        console.print("\n[yellow]DRY RUN - nothing deleted[/yellow]")
        return
    if not force and not click.confirm("\nDelete them?"):
        console.print("[yellow]Cancelled[/yellow]")
        return

    failures = 0
    for info in expired:
        try:
            info.path.unlink(missing_ok=True)
        except OSError as e:
            failures += 1
            console.print(f"[red]Could not delete {info.path.name}: {e}[/red]")
    console.print(f"\n[green]Deleted {len(expired) - failures} backup(s)[/green]")


@backup.command(name="rollback")
@click.argument("collection", type=click.Choice(ALL_COLLECTIONS))
@click.option("-i", "--index", type=int, default=0, help="Backup position from 'backup list' (0 = newest)")
@click.option("--dry-run", "-n", is_flag=True, help="Show the chosen backup without restoring it")
@click.option("--force", "-f", is_flag=True, help="Skip confirmation prompt")
def rollback_cmd(collection: str, index: int, dry_run: bool, force: bool):
    """Restore a collection from one of its backups.

    The current file is itself backed up first. Only the chosen collection
    is touched, so run 'anitrack integrity check' afterwards to catch
    references the restored copy no longer satisfies.

    Examples:
        anitrack backup rollback episodes
        anitrack backup rollback anime -i 1
    """
    paths = get_paths()
    backups = list_backups(paths.backup_dir(collection), collection)
    if not backups:
        console.print(f"[red]No backups found for {collection}[/red]")
        return
    if not 0 <= index < len(backups):
        console.print(f"[red]Backup index {index} out of range (0-{len(backups) - 1})[/red]")
        return

    chosen = backups[index]
    details = Table.grid(padding=(0, 2))
    details.add_column(style="bold")
    details.add_column()
    details.add_row("Collection", collection)
    details.add_row("Backup", chosen.path.name)
    details.add_row("Taken", f"{chosen.timestamp:%Y-%m-%d %H:%M:%S} ({_format_age(chosen.age_days)})")
    details.add_row("Size", chosen.size_human)
    console.print(Panel(details, title="Rollback Preview"))

    if dry_run:
        console.print("\n[yellow]DRY RUN - nothing restored[/yellow]")
        return
    if not force and not click.confirm("Restore this backup?"):
        console.print("[yellow]Cancelled[/yellow]")
        return

    try:
        rollback_collection(paths.collection(collection), paths.backup_dir(collection), index)
    except OSError as e:
        console.print(f"[red]Rollback failed: {e}[/red]")
        raise click.Abort() from e
    console.print(f"\n[green]Restored {collection} from {chosen.path.name}[/green]")


@backup.command(name="export")
@click.option(
    "-o", "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Output file (default: .anitrack/exports/anitrack_<timestamp>.json)",
)
def export_cmd(output: Path | None):
    """Export all collections as one JSON bundle."""
    from anitrack.core.library import open_library

    with reported_errors():
        bundle = open_library().export()

    target = output or get_paths().exports / f"anitrack_{datetime.now():%Y%m%d_%H%M%S}.json"
    try:
        safe_write_json(target, bundle, create_backup_first=False)
    except (OSError, ValueError) as e:
        console.print(f"[red]Export failed: {e}[/red]")
        raise click.Abort() from e

    console.print(
        f"[green]Exported[/green] {len(bundle['anime'])} anime, {len(bundle['episodes'])} episodes, "
        f"{len(bundle['scheduledReleases'])} scheduled releases to {target}"
    )


@backup.command(name="import")
@click.argument("source", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--force", "-f", is_flag=True, help="Skip confirmation prompt")
def import_cmd(source: Path, force: bool):
    """Replace all collections with the contents of an export bundle.

    Every collection is backed up before it is overwritten.
    """
    from anitrack.core.library import open_library

    with reported_errors():
        try:
            bundle = json.loads(source.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise InvalidValueError(f"{source.name} is not valid JSON: {e}") from e

        if not force and not click.confirm(f"Replace all tracked data with {source.name}?"):
            console.print("[yellow]Cancelled[/yellow]")
            return
        counts = open_library().import_bundle(bundle)

    console.print(
        f"[green]Imported[/green] {counts['anime']} anime, {counts['episodes']} episodes, "
        f"{counts['scheduledReleases']} scheduled releases"
    )
