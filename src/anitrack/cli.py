"""
Main CLI dispatcher for anitrack.

Usage:
    anitrack init                        # Initialize .anitrack/ directory
    anitrack anime [add|list|show|update|remove|search]
    anitrack episodes [add|bulk|list|recent|show|update|remove]
    anitrack schedule [list|set|clear|prune]
"""

import click
from rich.console import Console

from anitrack import __version__
from anitrack.core.cli_helpers import configure_logging

console = Console()


@click.group()
@click.version_option(version=__version__, prog_name="anitrack")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
def main(verbose: bool) -> None:
    """Anime tracking tools.

    Keep a list of anime, their episodes and upcoming releases, with
    metadata from AniList.
    """
    configure_logging(verbose)


@main.command()
@click.option("--force", "-f", is_flag=True, help="Recreate missing files in an existing .anitrack/")
def init(force: bool) -> None:
    """Initialize .anitrack/ directory structure.

    Creates the .anitrack/ directory in the current directory with empty
    collections and a backup folder per collection.
    """
    from pathlib import Path

    from anitrack.core.config import COLLECTION_FILES, get_paths
    from anitrack.core.store import Store

    root = Path.cwd()
    paths = get_paths(root)

    if paths.data_dir.exists() and not force:
        console.print(f"[yellow].anitrack/ directory already exists at {paths.data_dir}[/yellow]")
        console.print("[dim]Use --force to recreate missing files.[/dim]")
        return

    console.print(f"[cyan]Initializing .anitrack/ directory at {root}[/cyan]")

    store = Store(paths.data_dir, backup_root=paths.backups)
    for name in COLLECTION_FILES:
        existed = store.path_for(name).exists()
        store.ensure(name)
        store.backup_dir_for(name).mkdir(parents=True, exist_ok=True)
        if not existed:
            console.print(f"  [green]Created[/green] {store.path_for(name).relative_to(root)}")

    paths.exports.mkdir(parents=True, exist_ok=True)

    console.print()
    console.print("[green]Done![/green] .anitrack/ directory initialized.")


# Import and register command groups (imports after main definition intentional)
from anitrack.anime.commands import anime  # noqa: E402
from anitrack.backup.commands import backup  # noqa: E402
from anitrack.config.commands import config  # noqa: E402
from anitrack.core.integrity_commands import integrity  # noqa: E402
from anitrack.episodes.commands import episodes  # noqa: E402
from anitrack.health.commands import health  # noqa: E402
from anitrack.schedule.commands import schedule  # noqa: E402

main.add_command(anime)
main.add_command(episodes)
main.add_command(schedule)
main.add_command(backup)
main.add_command(config)
main.add_command(integrity)
main.add_command(health)


if __name__ == "__main__":
    main()
