"""Graph export for ``arnab viz``: Graphviz DOT and Mermaid text."""

from __future__ import annotations

import re

from arnab.engine.transform.models import TABLE, Model


def _dot_id(name: str) -> str:
    s = name.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{s}"'


def render_dot(node_ids: list[str], registry: dict[str, Model]) -> str:
    """Render the graph as Graphviz DOT, one edge per ``dependents`` entry.

    Tables are drawn as boxes, views as ellipses.
    """
    selected = set(node_ids)
    lines = ["digraph arnab {", "  rankdir=LR;"]
    for node_id in node_ids:
        shape = "box" if registry[node_id].materialize == TABLE else "ellipse"
        lines.append(f"  {_dot_id(node_id)} [shape={shape}];")
    for node_id in node_ids:
        for dependent in sorted(registry[node_id].dependents & selected):
            lines.append(f"  {_dot_id(node_id)} -> {_dot_id(dependent)};")
    lines.append("}")
    return "\n".join(lines) + "\n"


def _mm_id(name: str) -> str:
    s = re.sub(r"[^A-Za-z0-9_]", "_", name)
    return "_" + s if s and s[0].isdigit() else (s or "_node")


def render_mermaid(node_ids: list[str], registry: dict[str, Model]) -> str:
    """Render the graph as a Mermaid flowchart."""
    selected = set(node_ids)
    lines = ["flowchart LR"]
    for node_id in node_ids:
        label = node_id.replace('"', "'")
        if registry[node_id].materialize == TABLE:
            lines.append(f'  {_mm_id(node_id)}["{label}"]')
        else:
            lines.append(f'  {_mm_id(node_id)}("{label}")')
    for node_id in node_ids:
        for dependent in sorted(registry[node_id].dependents & selected):
            lines.append(f"  {_mm_id(node_id)} --> {_mm_id(dependent)}")
    return "\n".join(lines) + "\n"
