"""
Episode CLI commands.

Episodes belong to a tracked anime and carry the streaming links for one
numbered episode. An episode with an upcoming release date also shows up
in the schedule.
"""

from __future__ import annotations

import json
from typing import Any

import click
from rich.table import Table

from anitrack.core.cli_helpers import console, echo_json, reported_errors
from anitrack.core.errors import InvalidValueError


def _episodes_table(episodes: list[dict[str, Any]], title: str, show_anime: bool = False) -> Table:
    table = Table(title=title, show_header=True, header_style="bold cyan")
    if show_anime:
        table.add_column("Anime")
    table.add_column("#", justify="right")
    table.add_column("Title")
    table.add_column("Release", style="green")
    table.add_column("Added", style="dim")
    table.add_column("ID", style="dim")
    for ep in episodes:
        row = [
            str(ep.get("number", "")),
            ep.get("title", ""),
            ep.get("releaseDate") or "-",
            (ep.get("dateAdded") or "")[:10],
            str(ep.get("id", "")),
        ]
        if show_anime:
            row.insert(0, ep.get("animeTitle", ""))
        table.add_row(*row)
    return table


@click.group()
def episodes():
    """Manage episodes of tracked anime."""
    pass


@episodes.command(name="add")
@click.argument("anime_id")
@click.option("--server2-url", "server2_url", required=True, help="Primary stream link")
@click.option("--iframe-src", "iframe_src", help="Secondary embed link")
@click.option("--number", type=int, help="Episode number (default: next free number)")
@click.option("--title", help="Episode title (default: 'Episode N')")
@click.option("--release-date", help="Release date (YYYY-MM-DD)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def add_cmd(
    anime_id: str,
    server2_url: str,
    iframe_src: str | None,
    number: int | None,
    title: str | None,
    release_date: str | None,
    as_json: bool,
):
    """Add an episode to a tracked anime.

    Examples:
        anitrack episodes add 154587 --server2-url https://example.org/e1
        anitrack episodes add 154587 --server2-url URL --number 3 --release-date 2026-11-05
    """
    from anitrack.core.library import open_library

    fields: dict[str, Any] = {"server2Url": server2_url}
    if iframe_src:
        fields["iframeSrc"] = iframe_src
    if number is not None:
        fields["number"] = number
    if title:
        fields["title"] = title
    if release_date:
        fields["releaseDate"] = release_date

    with reported_errors(as_json):
        library = open_library()
        episode = library.add_episode(anime_id, fields)

    if as_json:
        echo_json(episode)
        return
    console.print(
        f"[green]Added[/green] {episode['animeTitle']} episode {episode['number']} "
        f"[dim](id {episode['id']})[/dim]"
    )


@episodes.command(name="bulk")
@click.argument("anime_id")
@click.argument("source", type=click.File("r", encoding="utf-8"))
@click.option("--replace", is_flag=True, help="Remove the anime's existing episodes first")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def bulk_cmd(anime_id: str, source, replace: bool, as_json: bool):
    """Add many episodes from a JSON file ('-' for stdin).

    The file holds a list of episode objects (server2Url required; number,
    title, iframeSrc, releaseDate optional). Invalid items are reported and
    skipped; the rest are added.

    Examples:
        anitrack episodes bulk 154587 season1.json
        anitrack episodes bulk 154587 season1.json --replace
    """
    from anitrack.core.library import open_library

    with reported_errors(as_json):
        try:
            items = json.load(source)
        except json.JSONDecodeError as e:
            raise InvalidValueError(f"Could not parse episode list: {e}") from e
        library = open_library()
        result = library.bulk_add_episodes(anime_id, items, replace_existing=replace)

    if as_json:
        echo_json(result.to_dict())
        return

    console.print(f"[green]Added {result.added} episode(s)[/green]")
    if result.replaced:
        console.print(f"[yellow]Replaced {result.replaced} existing episode(s)[/yellow]")
    if result.errors:
        console.print(f"[red]{result.failed} item(s) rejected:[/red]")
        for error in result.errors:
            label = f"#{error.number}" if error.number is not None else f"item {error.index}"
            console.print(f"  [red]x[/red] {label}: {error.message} [dim]({error.kind.value})[/dim]")


@episodes.command(name="list")
@click.argument("anime_id")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def list_cmd(anime_id: str, as_json: bool):
    """List the episodes of one anime in order."""
    from anitrack.core.library import open_library

    with reported_errors(as_json):
        library = open_library()
        found = library.list_episodes(anime_id)

    if as_json:
        echo_json(found)
        return
    if not found:
        console.print(f"[dim]No episodes for anime {anime_id}[/dim]")
        return
    console.print(_episodes_table(found, f"{found[0].get('animeTitle', anime_id)} ({len(found)} episodes)"))


@episodes.command(name="recent")
@click.option("--from", "date_from", help="Earliest release date (YYYY-MM-DD)")
@click.option("--to", "date_to", help="Latest release date (YYYY-MM-DD, default: today)")
@click.option("-n", "--limit", type=int, default=20, help="Maximum number of episodes to show")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def recent_cmd(date_from: str | None, date_to: str | None, limit: int, as_json: bool):
    """List episodes across all anime, newest first.

    Episodes without a release date are placed by the date they were added.
    """
    from anitrack.core.library import open_library

    with reported_errors(as_json):
        library = open_library()
        if date_from is None and date_to is None:
            found = library.list_all_episodes()
        else:
            found = library.list_all_episodes(date_from, date_to)

    found.sort(key=lambda e: str(e.get("releaseDate") or e.get("dateAdded") or ""), reverse=True)
    found = found[:limit]

    if as_json:
        echo_json(found)
        return
    if not found:
        console.print("[dim]No episodes found[/dim]")
        return
    console.print(_episodes_table(found, "Recent episodes", show_anime=True))


@episodes.command(name="show")
@click.argument("episode_id")
def show_cmd(episode_id: str):
    """Show one episode as JSON."""
    from anitrack.core.library import open_library

    with reported_errors(as_json=True):
        library = open_library()
        episode = library.get_episode(episode_id)
    echo_json(episode)


@episodes.command(name="update")
@click.argument("episode_id")
@click.option("--anime-id", help="Move the episode to another tracked anime")
@click.option("--number", type=int, help="New episode number")
@click.option("--title", help="New title")
@click.option("--server2-url", "server2_url", help="New primary stream link")
@click.option("--iframe-src", "iframe_src", help="New embed link")
@click.option("--release-date", help="Release date (YYYY-MM-DD)")
@click.option("--clear-release-date", is_flag=True, help="Remove the release date")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def update_cmd(
    episode_id: str,
    anime_id: str | None,
    number: int | None,
    title: str | None,
    server2_url: str | None,
    iframe_src: str | None,
    release_date: str | None,
    clear_release_date: bool,
    as_json: bool,
):
    """Edit an episode.

    Examples:
        anitrack episodes update 1730000000000-1a2b3c4d --number 4
        anitrack episodes update 1730000000000-1a2b3c4d --release-date 2026-11-12
    """
    from anitrack.core.library import open_library

    patch: dict[str, Any] = {}
    if anime_id is not None:
        patch["animeId"] = anime_id
    if number is not None:
        patch["number"] = number
    if title is not None:
        patch["title"] = title
    if server2_url is not None:
        patch["server2Url"] = server2_url
    if iframe_src is not None:
        patch["iframeSrc"] = iframe_src
    if clear_release_date:
        patch["releaseDate"] = None
    elif release_date is not None:
        patch["releaseDate"] = release_date

    if not patch:
        console.print("[yellow]Nothing to update[/yellow]")
        return

    with reported_errors(as_json):
        library = open_library()
        episode = library.update_episode(episode_id, patch)

    if as_json:
        echo_json(episode)
        return
    console.print(f"[green]Updated[/green] episode {episode['number']} of {episode.get('animeTitle', '')}")


@episodes.command(name="remove")
@click.argument("episode_id")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def remove_cmd(episode_id: str, as_json: bool):
    """Delete an episode and its scheduled release."""
    from anitrack.core.library import open_library

    with reported_errors(as_json):
        library = open_library()
        removed = library.delete_episode(episode_id)

    if as_json:
        echo_json(removed)
        return
    console.print(f"[green]Removed[/green] episode {removed.get('number')} of {removed.get('animeTitle', '')}")
