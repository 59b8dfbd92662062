"""Pipeline commands: run, run-file."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Optional

import typer

from arnab.cli import _fail, _load_config, app, console
from arnab.errors import ArnabError


@app.command()
def run(
    models: Annotated[Optional[list[str]], typer.Argument(help="Models to build with their upstreams (default: all)")] = None,
    project_dir: Annotated[Optional[Path], typer.Option("--project", "-p", help="Project directory (default: current dir)")] = None,
) -> None:
    """Render models, resolve the DAG and materialize models in dependency order.

    Model failures are reported and do not stop the run. Configuration and
    discovery errors abort before any model executes.
    """
    from arnab.engine.database import connect
    from arnab.engine.transform import run_pipeline

    config = _load_config(project_dir)
    conn = connect(config.database)
    try:
        run_pipeline(conn, config, targets=models)
    except ArnabError as e:
        raise _fail(e) from e
    finally:
        conn.close()


@app.command("run-file")
def run_file(
    script_paths: Annotated[list[str], typer.Argument(help="SQL script paths or glob patterns")],
    project_dir: Annotated[Optional[Path], typer.Option("--project", "-p", help="Project directory (default: current dir)")] = None,
) -> None:
    """Execute SQL script files directly, bypassing the model graph."""
    from arnab.engine.database import connect
    from arnab.engine.runner import expand_script_paths, run_scripts

    config = _load_config(project_dir)
    paths = expand_script_paths(script_paths, base_dir=config.project_dir)
    if not paths:
        console.print("[yellow]No scripts matched.[/yellow]")
        raise typer.Exit(1)

    conn = connect(config.database)
    try:
        results = run_scripts(conn, paths)
    finally:
        conn.close()

    errors = sum(1 for r in results if r["status"] == "error")
    if errors:
        raise typer.Exit(1)
