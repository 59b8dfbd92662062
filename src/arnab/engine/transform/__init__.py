"""SQL transformation engine.

Renders SQL model files with Jinja macros, discovers dependencies with
sqlglot, builds a DAG and executes models in dependency order as views or
tables.

This package re-exports the public symbols:
    from arnab.engine.transform import run_pipeline, schedule, Model, ...
"""

from __future__ import annotations

# Data models
from .models import (
    TABLE,
    VIEW,
    ExecutionOutcome,
    Model,
    ModelFailure,
    ModelSource,
    RunResult,
)

# Rendering
from .templating import (
    build_template_source,
    render_model,
    render_sql,
)

# Discovery
from .discovery import (
    build_registry,
    discover_sources,
    load_macros,
    render_registry,
)

# DAG
from .graph import (
    link_models,
    schedule,
    terminal_ids,
)

# Execution
from .execution import (
    execute_model,
    materialize_statement,
    prepare_statements,
    produces_records,
    run_model,
    split_statements,
)

# Orchestration
from .orchestration import (
    compile_project,
    execute_models,
    run_pipeline,
)

__all__ = [
    # Models
    "TABLE",
    "VIEW",
    "ExecutionOutcome",
    "Model",
    "ModelFailure",
    "ModelSource",
    "RunResult",
    # Rendering
    "build_template_source",
    "render_model",
    "render_sql",
    # Discovery
    "build_registry",
    "discover_sources",
    "load_macros",
    "render_registry",
    # DAG
    "link_models",
    "schedule",
    "terminal_ids",
    # Execution
    "execute_model",
    "materialize_statement",
    "prepare_statements",
    "produces_records",
    "run_model",
    "split_statements",
    # Orchestration
    "compile_project",
    "execute_models",
    "run_pipeline",
]
