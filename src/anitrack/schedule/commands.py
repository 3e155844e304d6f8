"""
Release schedule CLI commands.

Scheduled releases are derived from anime schedule dates and episode
release dates; these commands read them and set dates on their sources.
"""

from __future__ import annotations

from datetime import date

import click
from rich.table import Table

from anitrack.core.cli_helpers import console, echo_json, reported_errors
from anitrack.core.models import ScheduleType

TYPES = [t.value for t in ScheduleType]


def _days_until(value: str, today: date) -> str:
    try:
        delta = (date.fromisoformat(value[:10]) - today).days
    except ValueError:
        return "-"
    if delta == 0:
        return "today"
    if delta == 1:
        return "tomorrow"
    return f"in {delta}d"


@click.group()
def schedule():
    """View and manage upcoming releases."""
    pass


@schedule.command(name="list")
@click.option("--type", "release_type", type=click.Choice(TYPES), help="Only show one kind")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def list_cmd(release_type: str | None, as_json: bool):
    """List upcoming releases, soonest first."""
    from anitrack.core.library import open_library

    with reported_errors(as_json):
        library = open_library()
        releases = library.list_scheduled()

    if release_type:
        releases = [r for r in releases if r.get("type") == release_type]

    if as_json:
        echo_json(releases)
        return

    if not releases:
        console.print("[dim]Nothing scheduled[/dim]")
        return

    today = date.today()
    table = Table(title=f"Upcoming releases ({len(releases)})", show_header=True, header_style="bold cyan")
    table.add_column("Date", style="green")
    table.add_column("When", style="yellow", justify="right")
    table.add_column("Type", style="dim")
    table.add_column("Title")
    table.add_column("Source", style="dim")
    for release in releases:
        release_date = str(release.get("releaseDate", ""))
        table.add_row(
            release_date,
            _days_until(release_date, today),
            release.get("type", ""),
            release.get("title", ""),
            str(release.get("sourceId", "")),
        )
    console.print(table)


@schedule.command(name="set")
@click.argument("release_type", type=click.Choice(TYPES))
@click.argument("source_id")
@click.argument("release_date")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def set_cmd(release_type: str, source_id: str, release_date: str, as_json: bool):
    """Set the release date of an anime or episode.

    Examples:
        anitrack schedule set anime 154587 2026-11-01
        anitrack schedule set episode 1730000000000-1a2b3c4d 2026-11-08
    """
    from anitrack.core.library import open_library

    with reported_errors(as_json):
        library = open_library()
        release = library.schedule_release(release_type, source_id, release_date)

    if as_json:
        echo_json(release)
        return
    if release is None:
        console.print(f"[yellow]{release_date} has passed; {release_type} {source_id} is not scheduled[/yellow]")
    else:
        console.print(f"[green]Scheduled[/green] {release['title']} for {release['releaseDate']}")


@schedule.command(name="clear")
@click.argument("release_type", type=click.Choice(TYPES))
@click.argument("source_id")
def clear_cmd(release_type: str, source_id: str):
    """Remove the release date of an anime or episode."""
    from anitrack.core.library import open_library

    with reported_errors():
        library = open_library()
        library.schedule_release(release_type, source_id, None)
    console.print(f"[green]Cleared[/green] schedule for {release_type} {source_id}")


@schedule.command(name="prune")
@click.option("--dry-run", "-n", is_flag=True, help="Preview what would be removed")
def prune_cmd(dry_run: bool):
    """Remove scheduled releases whose date has passed."""
    from anitrack.core.library import open_library

    with reported_errors():
        library = open_library()
        if dry_run:
            expired = library.schedule.expired()
        else:
            expired = library.prune_schedule()

    if not expired:
        console.print("[green]No past releases to prune.[/green]")
        return

    for release in expired:
        console.print(f"  [red]x[/red] {release.get('releaseDate')} {release.get('title', '')}")
    if dry_run:
        console.print(f"\n[yellow]DRY RUN - {len(expired)} release(s) would be removed[/yellow]")
    else:
        console.print(f"\n[green]Removed {len(expired)} past release(s)[/green]")
