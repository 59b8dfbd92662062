"""Graph export command: viz."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.markup import escape

from arnab.cli import _fail, _load_config, app, console
from arnab.errors import ArnabError

FORMATS = ("dot", "mermaid")


@app.command()
def viz(
    output: Annotated[Path, typer.Option("--output", "-o", help="File to write the graph to")] = Path("dag.dot"),
    fmt: Annotated[str, typer.Option("--format", "-f", help="Output format: dot or mermaid")] = "dot",
    project_dir: Annotated[Optional[Path], typer.Option("--project", "-p", help="Project directory (default: current dir)")] = None,
) -> None:
    """Write the model dependency graph as Graphviz DOT or Mermaid.

    Render DOT to an image with Graphviz, e.g. ``dot -Tsvg dag.dot -o dag.svg``.
    """
    from arnab.engine.graphviz import render_dot, render_mermaid
    from arnab.engine.transform import compile_project, schedule

    if fmt not in FORMATS:
        console.print(f"[red]Unknown format '{escape(fmt)}'.[/red] Use one of: {', '.join(FORMATS)}")
        raise typer.Exit(1)

    config = _load_config(project_dir)
    try:
        registry, invalid_refs = compile_project(config)
        node_ids = schedule(registry, invalid_refs=invalid_refs)
    except ArnabError as e:
        raise _fail(e) from e

    text = render_dot(node_ids, registry) if fmt == "dot" else render_mermaid(node_ids, registry)
    if not output.is_absolute():
        output = config.project_dir / output
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text)
    console.print(f"[green]Wrote {len(node_ids)} models to {escape(str(output))}[/green]")
