"""CLI commands for cross-collection integrity checking."""

from __future__ import annotations

import click
from rich.prompt import Confirm
from rich.table import Table

from anitrack.core.cli_helpers import console, echo_json, reported_errors

SEVERITY_STYLES = {"error": "red", "warning": "yellow", "info": "blue"}


def _issue_line(issue, style: str = "bold", mark_fixable: bool = False) -> str:
    # escaped so rich does not read the collection name as markup
    marker = " [green](fixable)[/green]" if mark_fixable and issue.fixable else ""
    return f"  [{style}]• \\[{issue.collection}] {issue.entry_id}[/{style}]{marker}"


def _summary_table(result) -> Table:
    table = Table(title="Integrity Check Results", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value")
    for collection, count in sorted(result.checked.items()):
        table.add_row(f"{collection} checked:", str(count))
    table.add_row("", "")
    table.add_row("Total issues:", str(len(result.issues)))

    counts = result.group_by_severity()
    for severity, color in SEVERITY_STYLES.items():
        if counts.get(severity):
            table.add_row(f"{severity.capitalize()}s:", f"[{color}]{counts[severity]}[/{color}]")
    fixable = len(result.fixable_issues())
    if fixable:
        table.add_row("Fixable issues:", f"[green]{fixable}[/green]")
    return table


@click.group(name="integrity")
def integrity() -> None:
    """Check and repair consistency between anime, episodes and the schedule."""
    pass


@integrity.command(name="check")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.option("-v", "--verbose", is_flag=True, help="List warnings and info as well as errors")
def integrity_check(as_json: bool, verbose: bool) -> None:
    """Run integrity checks on all collections.

    Exits with status 1 if any error-level issue is found.

    \b
    Examples:
        anitrack integrity check
        anitrack integrity check --json
    """
    from anitrack.core.integrity import IntegrityChecker
    from anitrack.core.library import open_library

    with reported_errors(as_json):
        result = IntegrityChecker(open_library()).check_all()

    if as_json:
        echo_json(result.to_dict())
        if result.has_errors:
            raise SystemExit(1)
        return

    console.print()
    console.print(_summary_table(result))
    console.print()

    if not result.issues:
        console.print("[green]All integrity checks passed![/green]")
        return

    errors = result.errors()
    lesser = [issue for issue in result.issues if issue.severity.value != "error"]

    if errors:
        console.print(f"[red]Errors ({len(errors)}):[/red]")
        for issue in errors:
            console.print(_issue_line(issue))
            console.print(f"    {issue.message}")
        console.print()

    if lesser and verbose:
        console.print(f"[yellow]Other Issues ({len(lesser)}):[/yellow]")
        for issue in lesser:
            console.print(_issue_line(issue, SEVERITY_STYLES[issue.severity.value], mark_fixable=True))
            console.print(f"    {issue.message}")
        console.print()
    elif lesser:
        console.print(f"[dim]{len(lesser)} other issues (use --verbose to see)[/dim]\n")

    if result.has_fixable:
        console.print("[dim]Run 'anitrack integrity fix' to repair fixable issues.[/dim]")
    if result.has_errors:
        console.print("[red]Integrity check found errors.[/red]")
        raise SystemExit(1)
    console.print("[yellow]No errors, but see the issues above.[/yellow]")


@integrity.command(name="fix")
@click.option("-n", "--dry-run", is_flag=True, help="Show what would be fixed")
@click.option("-y", "--yes", is_flag=True, help="Apply fixes without confirmation")
def integrity_fix(dry_run: bool, yes: bool) -> None:
    """Fix auto-fixable integrity issues.

    Deletes episodes of untracked anime and removes or re-derives
    scheduled releases that are out of step with their source.

    \b
    Examples:
        anitrack integrity fix --dry-run
        anitrack integrity fix -y
    """
    from anitrack.core.integrity import IntegrityChecker
    from anitrack.core.library import open_library

    with reported_errors():
        checker = IntegrityChecker(open_library())
        pending = checker.check_all().fixable_issues()
        if not pending:
            console.print("[green]No fixable issues found.[/green]")
            return

        console.print(f"[cyan]{len(pending)} fixable issue(s):[/cyan]")
        for issue in pending:
            console.print(f"  • \\[{issue.collection}] {issue.entry_id}: {issue.message}")
        console.print()

        if dry_run:
            would_fix, _ = checker.fix_issues(pending, dry_run=True)
            console.print(f"[dim]Would fix {would_fix} issue(s)[/dim]")
            return
        if not yes and not Confirm.ask(f"Apply {len(pending)} fix(es)?", default=False):
            console.print("[dim]Aborted.[/dim]")
            return

        fixed, failed = checker.fix_issues(pending)

    console.print(f"[green]Fixed {fixed} issue(s)[/green]")
    if failed:
        console.print(f"[red]{failed} issue(s) could not be fixed[/red]")
