"""CLI command for the health report."""

from __future__ import annotations

import click
from rich.table import Table

from anitrack.core.cli_helpers import console, echo_json, reported_errors


@click.command(name="health")
@click.option("--offline", is_flag=True, help="Skip the AniList connectivity check")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def health(offline: bool, as_json: bool) -> None:
    """Check collection files and AniList connectivity.

    Exits with status 1 when the status is 'warning'.
    """
    from anitrack.config.commands import get_setting
    from anitrack.core.config import get_paths
    from anitrack.health.checks import OK, HealthChecker
    from anitrack.provider.anilist import AniListClient

    with reported_errors(as_json):
        paths = get_paths()
        provider = None
        if not offline:
            provider = AniListClient(
                api_url=str(get_setting("provider.api_url")),
                timeout=float(get_setting("provider.timeout")),
            )
        report = HealthChecker(paths, provider).run()

    if as_json:
        echo_json(report)
    else:
        table = Table(title=f"Health: {report['dataRoot']}", show_header=True, header_style="bold cyan")
        table.add_column("Check")
        table.add_column("Status")
        table.add_column("Detail", style="dim")

        for info in report["collections"]:
            if not info["exists"]:
                table.add_row(info["name"], "[yellow]missing[/yellow]", info["path"])
            elif info["error"]:
                table.add_row(info["name"], "[red]unreadable[/red]", info["error"])
            else:
                table.add_row(info["name"], "[green]ok[/green]", f"{info['records']} records")

        reachability = report["provider"]
        if not reachability["configured"]:
            table.add_row("AniList", "[dim]skipped[/dim]", "")
        elif reachability["reachable"]:
            table.add_row("AniList", "[green]ok[/green]", "")
        else:
            table.add_row("AniList", "[yellow]unreachable[/yellow]", "lists will fall back to stored data")

        console.print(table)
        color = "green" if report["status"] == OK else "yellow"
        console.print(f"\nStatus: [{color}]{report['status']}[/{color}]")

    if report["status"] != OK:
        raise SystemExit(1)
