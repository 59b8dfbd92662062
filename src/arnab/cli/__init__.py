"""CLI interface for arnab.

The Typer app and shared helpers live here; each module registers its commands.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape

from arnab.errors import ArnabError

app = typer.Typer(
    name="arnab",
    help="Dependency-driven SQL transformation pipeline on DuckDB.",
    no_args_is_help=True,
)
console = Console(highlight=False)


@app.callback()
def main(
    log_level: Annotated[str, typer.Option("--log-level", "-l", help="Logging level (DEBUG, INFO, WARNING, ERROR)")] = "WARNING",
) -> None:
    """Dependency-driven SQL transformation pipeline on DuckDB."""
    from arnab import setup_logging
    setup_logging(log_level)


def _fail(error: ArnabError) -> typer.Exit:
    """Print a fatal error and return the exit to raise."""
    console.print(f"[red]Error:[/red] {escape(str(error))}")
    return typer.Exit(1)


def _load_config(project_dir: Path | None = None):
    """Load config.yaml from the project directory, exiting on errors."""
    from arnab.config import load_config

    try:
        return load_config(project_dir or Path.cwd())
    except ArnabError as e:
        raise _fail(e) from e


# Import submodules so they register their commands on `app`.
from arnab.cli import graph  # noqa: E402, F401
from arnab.cli import pipeline  # noqa: E402, F401
