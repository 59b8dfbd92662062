"""Raw SQL script runner for ``arnab run-file``.

Scripts bypass the model graph entirely: each file is sent to the engine as
one batch. A failing or unreadable script is reported and skipped.
"""

from __future__ import annotations

import glob
import logging
import time
from pathlib import Path

import duckdb
from rich.console import Console
from rich.markup import escape

console = Console(highlight=False)
logger = logging.getLogger("arnab.runner")


def expand_script_paths(patterns: list[str], base_dir: Path | None = None) -> list[Path]:
    """Expand glob patterns; plain paths are kept even if they don't exist."""
    base_dir = base_dir or Path.cwd()
    paths: list[Path] = []
    for pattern in patterns:
        full = pattern if Path(pattern).is_absolute() else str(base_dir / pattern)
        if glob.has_magic(pattern):
            matches = sorted(glob.glob(full))
            if not matches:
                logger.warning("Pattern %s matched no files", pattern)
            paths.extend(Path(m) for m in matches)
        else:
            paths.append(Path(full))
    return paths


def run_script(conn: duckdb.DuckDBPyConnection, script_path: Path) -> dict:
    """Run a single SQL script file as a batch.

    Returns:
        Dict with keys: script, status ("success", "error", "skipped"),
        duration_ms, error
    """
    try:
        content = script_path.read_text()
    except OSError as e:
        logger.warning("Cannot open %s: %s", script_path, e)
        console.print(f"Cannot open {escape(str(script_path))}, skipping")
        return {"script": str(script_path), "status": "skipped", "duration_ms": 0, "error": str(e)}

    console.print(f"Running {escape(str(script_path))}... ", end="")
    start = time.perf_counter()
    try:
        if content.strip():
            conn.execute(content)
    except duckdb.Error as e:
        duration_ms = int((time.perf_counter() - start) * 1000)
        console.print(f"[red]ERROR:[/red] {escape(str(e))}\nSkipping {escape(str(script_path))}")
        return {"script": str(script_path), "status": "error", "duration_ms": duration_ms, "error": str(e)}

    duration_ms = int((time.perf_counter() - start) * 1000)
    console.print("[green]OK[/green]")
    return {"script": str(script_path), "status": "success", "duration_ms": duration_ms, "error": None}


def run_scripts(conn: duckdb.DuckDBPyConnection, script_paths: list[Path]) -> list[dict]:
    """Run scripts in the given order."""
    return [run_script(conn, path) for path in script_paths]
