"""Model execution: statement splitting, materialization, row counts."""

from __future__ import annotations

import logging
import time

import duckdb

from arnab.engine.sql_analysis import strip_comments
from arnab.errors import ArnabError, ModelDefinitionError, StatementExecutionError

from .models import TABLE, VIEW, ExecutionOutcome, Model

logger = logging.getLogger("arnab.transform")

RECORD_KEYWORDS = ("SELECT", "WITH")


def split_statements(sql: str) -> list[str]:
    """Split on ``;`` and drop fragments that are empty or only comments."""
    fragments = [s.strip() for s in sql.split(";")]
    return [s for s in fragments if s and strip_comments(s).strip()]


def produces_records(statement: str) -> bool:
    """Whether a statement is a query (begins with SELECT or WITH).

    Leading comments are ignored, so a header comment from a macro file or
    a trailing comment of the previous statement does not hide the keyword.
    """
    head = strip_comments(statement).lstrip()
    return head[:50].upper().startswith(RECORD_KEYWORDS)


def quote_identifier(name: str) -> str:
    """Quote a model id for use as a relation name."""
    return '"' + name.replace('"', '""') + '"'


def materialize_statement(model: Model, query: str) -> str:
    """Wrap the model's query into its materialization DDL.

    The query goes on its own lines so a trailing ``--`` comment cannot
    swallow the closing parenthesis.
    """
    materialize = (model.materialize or VIEW).lower()
    if materialize == VIEW:
        return f"CREATE OR REPLACE VIEW {quote_identifier(model.id)} AS (\n{query}\n)"
    if materialize == TABLE:
        return f"CREATE OR REPLACE TABLE {quote_identifier(model.id)} AS (\n{query}\n)"
    raise ModelDefinitionError(model.id, f"Unknown materialization type `{model.materialize}`")


def prepare_statements(model: Model) -> list[str]:
    """Return the statements to run for ``model``, query already rewritten.

    Raises:
        ModelDefinitionError: The model does not have exactly one
            record-producing statement, or its materialization is unknown.
    """
    statements = split_statements(model.rendered_text)
    n_records = sum(1 for s in statements if produces_records(s))
    if n_records != 1:
        raise ModelDefinitionError(
            model.id,
            "Models must have exactly one record-producing statement "
            f"(SELECT or WITH), but {model.id} has {n_records}",
        )
    return [
        materialize_statement(model, s) if produces_records(s) else s
        for s in statements
    ]


def execute_model(conn: duckdb.DuckDBPyConnection, model: Model) -> int | None:
    """Execute a single model. Returns the row count for tables, else None.

    Raises:
        ModelDefinitionError: See prepare_statements().
        StatementExecutionError: A statement failed on the engine; remaining
            statements of the model are not run.
    """
    for sql in prepare_statements(model):
        try:
            conn.execute(sql)
        except duckdb.Error as e:
            raise StatementExecutionError(
                msg=str(e), sql=sql, path=str(model.source_path),
            ) from e

    if model.materialize.lower() != TABLE:
        return None
    count_sql = f"SELECT count(*) FROM {quote_identifier(model.id)}"
    try:
        result = conn.execute(count_sql).fetchone()
    except duckdb.Error as e:
        raise StatementExecutionError(msg=str(e), sql=count_sql, path=str(model.source_path)) from e
    return result[0] if result else 0


def run_model(conn: duckdb.DuckDBPyConnection, model: Model) -> ExecutionOutcome:
    """Execute a model and capture the result. Never raises ArnabError."""
    start = time.perf_counter()
    try:
        rows = execute_model(conn, model)
    except ArnabError as e:
        duration_ms = int((time.perf_counter() - start) * 1000)
        logger.debug("Model %s failed: %s", model.id, e)
        return ExecutionOutcome.failure(e, duration_ms=duration_ms)
    duration_ms = int((time.perf_counter() - start) * 1000)
    return ExecutionOutcome.success(rows_affected=rows, duration_ms=duration_ms)
