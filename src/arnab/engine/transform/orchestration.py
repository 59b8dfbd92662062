"""Pipeline orchestration: discovery, scheduling and sequential execution."""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence

import duckdb

from arnab.config import Config
from arnab.engine.database import apply_settings

from .discovery import build_registry, discover_sources, load_macros, render_registry
from .execution import run_model
from .graph import link_models, schedule
from .models import Model, RunResult
from .reporting import (
    print_model_start,
    print_model_status,
    print_run_start,
    print_sources,
    report,
)

logger = logging.getLogger("arnab.transform")


def compile_project(config: Config) -> tuple[dict[str, Model], set[str]]:
    """Discover, render and link all models of a project.

    Returns the registry and the set of unresolved dependency ids.

    Raises:
        DiscoveryError: Unknown model type, template or SQL parse failure.
    """
    sources = discover_sources(config.resolve(config.model_path))
    macros = load_macros(config.resolve(config.macro_path) if config.macro_path else None)
    print_sources(sources, len(macros))

    registry = build_registry(
        sources,
        {s.id: config.materialization_for(s.id) for s in sources},
    )
    render_registry(registry, macros)
    invalid_refs = link_models(registry)
    return registry, invalid_refs


def execute_models(
    conn: duckdb.DuckDBPyConnection,
    registry: dict[str, Model],
    order: Sequence[str],
    result: RunResult,
) -> RunResult:
    """Run each model in ``order``, appending outcomes to ``result``.

    A failing model never stops the batch; later models run regardless.
    """
    print_run_start()
    total = len(order)
    for position, model_id in enumerate(order, 1):
        model = registry[model_id]
        print_model_start(position, total, model)
        outcome = run_model(conn, model)
        print_model_status(model, outcome)
        if outcome.ok:
            logger.info("Built %s (%s)", model_id, model.materialize)
        else:
            logger.warning("Model %s failed: %s", model_id, outcome.error)
        result.add(model_id, outcome)
    return result


def run_pipeline(
    conn: duckdb.DuckDBPyConnection,
    config: Config,
    targets: Sequence[str] | None = None,
) -> RunResult:
    """Run the full transformation pipeline.

    Args:
        conn: DuckDB connection shared by every model.
        config: Project configuration.
        targets: Model ids to build along with their upstream models
            (None = every model).

    Returns:
        The run result, already reported on the console.

    Raises:
        ArnabError: Configuration or discovery failed. No model has run.
    """
    start = time.perf_counter()
    apply_settings(conn, config.duckdb_settings)

    registry, invalid_refs = compile_project(config)
    order = schedule(registry, targets=targets or None, invalid_refs=invalid_refs)

    result = RunResult(invalid_refs=invalid_refs)
    execute_models(conn, registry, order, result)
    result.duration_ms = int((time.perf_counter() - start) * 1000)

    report(result, registry)
    return result
