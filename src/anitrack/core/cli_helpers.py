"""Shared plumbing for the CLI command modules."""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import click
from rich.console import Console
from rich.logging import RichHandler

from anitrack.core.errors import AnitrackError

console = Console()


def configure_logging(verbose: bool = False) -> None:
    """Route library logging through rich (DEBUG when verbose, else WARNING)."""
    root = logging.getLogger("anitrack")
    root.handlers.clear()
    handler = RichHandler(console=Console(stderr=True), show_path=False, markup=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if verbose else logging.WARNING)


def echo_json(data: Any) -> None:
    """Print data as indented JSON on stdout."""
    click.echo(json.dumps(data, indent=2, ensure_ascii=False, default=str))


@contextmanager
def reported_errors(as_json: bool = False) -> Iterator[None]:
    """Turn core errors into a message and exit status 1."""
    try:
        yield
    except AnitrackError as e:
        if as_json:
            echo_json(e.to_dict())
        else:
            console.print(f"[red]Error ({e.kind.value}): {e.message}[/red]")
        sys.exit(1)
    except FileNotFoundError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)
