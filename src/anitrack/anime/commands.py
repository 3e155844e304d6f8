"""
Anime tracking CLI commands.

Add, inspect, edit and remove the anime in the tracked list.
"""

from __future__ import annotations

from typing import Any

import click
from rich.panel import Panel
from rich.table import Table

from anitrack.core.cli_helpers import console, echo_json, reported_errors


def _truncate(text: str, width: int = 60) -> str:
    if len(text) <= width:
        return text
    return text[: width - 3] + "..."


@click.group()
def anime():
    """Manage the tracked anime list."""
    pass


@anime.command(name="add")
@click.argument("anilist_id")
@click.option("--schedule", "schedule_date", help="Release date to track (YYYY-MM-DD)")
@click.option("--notes", help="Free-form notes")
@click.option("--title", help="Title to use if AniList cannot be reached")
@click.option("--dub", "is_dub", is_flag=True, help="Track the dubbed version")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def add_cmd(
    anilist_id: str,
    schedule_date: str | None,
    notes: str | None,
    title: str | None,
    is_dub: bool,
    as_json: bool,
):
    """Start tracking an anime by its AniList ID.

    Examples:
        anitrack anime add 154587
        anitrack anime add 154587 --schedule 2026-11-01 --notes "Fall season"
    """
    from anitrack.core.library import open_library

    with reported_errors(as_json):
        library = open_library()
        record = library.add_anime(
            anilist_id,
            schedule_date=schedule_date,
            notes=notes,
            title=title,
            is_dub=is_dub,
        )

    if as_json:
        echo_json(record)
        return
    console.print(f"[green]Added[/green] {record['title']} [dim](id {record['id']})[/dim]")
    if record.get("scheduleDate"):
        console.print(f"  Scheduled for [cyan]{record['scheduleDate']}[/cyan]")


@anime.command(name="list")
@click.option("--offline", is_flag=True, help="Skip AniList and show stored data only")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def list_cmd(offline: bool, as_json: bool):
    """List tracked anime, enriched with AniList metadata."""
    from anitrack.core.library import open_library

    with reported_errors(as_json):
        library = open_library()
        entries = library.list_anime(with_metadata=not offline)

    if as_json:
        echo_json(entries)
        return

    if not entries:
        console.print("[dim]No anime tracked yet. Use 'anitrack anime add <id>'.[/dim]")
        return

    table = Table(title=f"Tracked anime ({len(entries)})", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim")
    table.add_column("Title")
    table.add_column("Status", style="yellow")
    table.add_column("Episodes", justify="right")
    table.add_column("Schedule", style="green")
    table.add_column("Added", style="dim")

    for entry in entries:
        table.add_row(
            str(entry["id"]),
            _truncate(entry.get("title", "")),
            str(entry.get("status") or "-"),
            str(entry.get("episodeCount") or "-"),
            entry.get("scheduleDate") or "-",
            (entry.get("dateAdded") or "")[:10],
        )
    console.print(table)

    stale = sum(1 for e in entries if e.get("metadata") == "stored")
    if stale and not offline:
        console.print(f"[yellow]{stale} entr{'y' if stale == 1 else 'ies'} shown from stored data (AniList unavailable)[/yellow]")


@anime.command(name="show")
@click.argument("anime_id")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def show_cmd(anime_id: str, as_json: bool):
    """Show one tracked anime with its episodes."""
    from anitrack.core.library import open_library

    with reported_errors(as_json):
        library = open_library()
        entry = library.get_anime(anime_id)
        episodes = library.list_episodes(anime_id)

    if as_json:
        echo_json({**entry, "episodes": episodes})
        return

    lines = [
        f"[bold]ID:[/bold] {entry['id']}",
        f"[bold]Status:[/bold] {entry.get('status') or '-'}",
        f"[bold]Genres:[/bold] {', '.join(entry.get('genres') or []) or '-'}",
        f"[bold]Rating:[/bold] {entry.get('rating') or '-'}",
        f"[bold]Added:[/bold] {entry.get('dateAdded') or '-'}",
        f"[bold]Schedule:[/bold] {entry.get('scheduleDate') or '-'}",
    ]
    if entry.get("isDub"):
        lines.append("[bold]Dub:[/bold] yes")
    if entry.get("notes"):
        lines.append(f"[bold]Notes:[/bold] {entry['notes']}")
    if entry.get("metadata") == "stored":
        lines.append("[yellow]AniList unavailable, showing stored data[/yellow]")
    console.print(Panel("\n".join(lines), title=entry.get("title", "")))

    if episodes:
        table = Table(show_header=True, header_style="bold cyan")
        table.add_column("#", justify="right")
        table.add_column("Title")
        table.add_column("Release", style="green")
        table.add_column("ID", style="dim")
        for ep in episodes:
            table.add_row(str(ep["number"]), ep.get("title", ""), ep.get("releaseDate") or "-", ep["id"])
        console.print(table)


@anime.command(name="update")
@click.argument("anime_id")
@click.option("--title", help="New title")
@click.option("--thumbnail", help="New thumbnail URL")
@click.option("--schedule", "schedule_date", help="Release date (YYYY-MM-DD)")
@click.option("--clear-schedule", is_flag=True, help="Remove the release date")
@click.option("--notes", help="New notes")
@click.option("--dub/--sub", "is_dub", default=None, help="Mark as dubbed or subbed")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def update_cmd(
    anime_id: str,
    title: str | None,
    thumbnail: str | None,
    schedule_date: str | None,
    clear_schedule: bool,
    notes: str | None,
    is_dub: bool | None,
    as_json: bool,
):
    """Edit the stored fields of a tracked anime.

    Examples:
        anitrack anime update 154587 --schedule 2026-12-01
        anitrack anime update 154587 --clear-schedule
    """
    from anitrack.core.library import open_library

    patch: dict[str, Any] = {}
    if title is not None:
        patch["title"] = title
    if thumbnail is not None:
        patch["thumbnail"] = thumbnail
    if clear_schedule:
        patch["scheduleDate"] = None
    elif schedule_date is not None:
        patch["scheduleDate"] = schedule_date
    if notes is not None:
        patch["notes"] = notes
    if is_dub is not None:
        patch["isDub"] = is_dub

    if not patch:
        console.print("[yellow]Nothing to update[/yellow]")
        return

    with reported_errors(as_json):
        library = open_library()
        record = library.update_anime(anime_id, patch)

    if as_json:
        echo_json(record)
        return
    console.print(f"[green]Updated[/green] {record.get('title', anime_id)}: {', '.join(sorted(patch))}")


@anime.command(name="remove")
@click.argument("anime_id")
@click.option("--force", "-f", is_flag=True, help="Skip confirmation prompt")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def remove_cmd(anime_id: str, force: bool, as_json: bool):
    """Stop tracking an anime, with its episodes and scheduled releases."""
    from anitrack.core.library import open_library

    with reported_errors(as_json):
        library = open_library()
        record = library.anime.get(anime_id)
        if not force and not as_json:
            count = len(library.list_episodes(anime_id))
            if not click.confirm(f"Remove {record.get('title', anime_id)} and {count} episode(s)?"):
                console.print("[yellow]Cancelled[/yellow]")
                return
        result = library.remove_anime(anime_id)

    if as_json:
        echo_json(result.to_dict())
        return
    console.print(
        f"[green]Removed[/green] {record.get('title', anime_id)} "
        f"[dim]({result.removed_episodes} episodes, {result.removed_schedules} scheduled releases)[/dim]"
    )


@anime.command(name="search")
@click.argument("text", nargs=-1, required=True)
@click.option("--page", type=int, default=1, help="Result page")
@click.option("--per-page", type=int, default=10, help="Results per page")
@click.option("--adult", is_flag=True, help="Include adult titles")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def search_cmd(text: tuple[str, ...], page: int, per_page: int, adult: bool, as_json: bool):
    """Search AniList for anime to track.

    Examples:
        anitrack anime search frieren
        anitrack anime search "spy family" --per-page 5
    """
    from anitrack.core.library import open_library

    query = " ".join(text)
    with reported_errors(as_json):
        library = open_library()
        results = library.search(query, page=page, per_page=per_page, include_adult=adult)

    if as_json:
        echo_json([r.to_dict() for r in results])
        return

    if not results:
        console.print(f"[dim]No results for '{query}'[/dim]")
        return

    tracked = {str(r["id"]) for r in library.anime}
    table = Table(title=f"AniList results for '{query}'", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim")
    table.add_column("Title")
    table.add_column("Year", justify="right")
    table.add_column("Episodes", justify="right")
    table.add_column("Status", style="yellow")
    table.add_column("", style="green")
    for summary in results:
        table.add_row(
            summary.id,
            _truncate(summary.title),
            (summary.start_date or "")[:4] or "-",
            str(summary.episodes or "-"),
            summary.status or "-",
            "tracked" if summary.id in tracked else "",
        )
    console.print(table)
