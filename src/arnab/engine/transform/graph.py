"""DAG linking and scheduling."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from rich.console import Console

from arnab.errors import ConfigError, CyclicDependencyError

from .models import Model

console = Console()
logger = logging.getLogger("arnab.transform")

_IN_PROGRESS = 1
_DONE = 2


def link_models(registry: dict[str, Model]) -> set[str]:
    """Populate ``dependents`` as the inverse of ``depends_on``.

    Returns the dependency ids that are not in the registry. Each one is
    reported as a warning and gets no edge.
    """
    for model in registry.values():
        model.dependents.clear()

    invalid: set[str] = set()
    for model_id, model in registry.items():
        for dep_id in sorted(model.depends_on):
            upstream = registry.get(dep_id)
            if upstream is None:
                invalid.add(dep_id)
                logger.warning("Model `%s` required by `%s` not found", dep_id, model_id)
                console.print(
                    f"[yellow]WARNING:[/yellow] Model `{dep_id}` required by `{model_id}` not found"
                )
                continue
            upstream.dependents.add(model_id)
    return invalid


def terminal_ids(registry: dict[str, Model]) -> list[str]:
    """Ids of models nobody depends on, in registry order."""
    return [model_id for model_id, model in registry.items() if model.is_terminal]


def schedule(
    registry: dict[str, Model],
    targets: Iterable[str] | None = None,
    invalid_refs: set[str] | None = None,
) -> list[str]:
    """Order model ids so every model comes after everything it depends on.

    Depth-first post-order from the terminal models, or from ``targets`` when
    given, in which case only the targets and their upstream models are
    returned.

    Raises:
        CyclicDependencyError: The reachable graph contains a cycle.
        ConfigError: A target is not a known model.
    """
    state: dict[str, int] = {}
    order: list[str] = []

    def visit(model_id: str, path: list[str]) -> None:
        current = state.get(model_id)
        if current == _DONE:
            return
        if current == _IN_PROGRESS:
            raise CyclicDependencyError(path[path.index(model_id):] + [model_id])

        state[model_id] = _IN_PROGRESS
        path.append(model_id)
        for dep_id in sorted(registry[model_id].depends_on):
            if dep_id in registry:
                visit(dep_id, path)
        path.pop()
        state[model_id] = _DONE
        order.append(model_id)

    if targets is not None:
        roots = list(targets)
        unknown = [t for t in roots if t not in registry]
        if unknown:
            raise ConfigError(
                f"Unknown model(s): {', '.join(unknown)}",
                hint=f"Available models: {', '.join(registry) or '(none)'}",
            )
    else:
        # Models caught in a cycle may have no terminal descendant; visiting
        # every id after the terminals makes such cycles raise.
        roots = terminal_ids(registry) + list(registry)

    for root in roots:
        visit(root, [])

    if invalid_refs:
        order = [model_id for model_id in order if model_id not in invalid_refs]
    return order
