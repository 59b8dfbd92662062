"""DuckDB connection management."""

from __future__ import annotations

import logging
from pathlib import Path

import duckdb

from arnab.engine.utils import validate_identifier
from arnab.errors import ConfigError

logger = logging.getLogger("arnab.database")


def connect(db_path: str | Path | None = None, read_only: bool = False) -> duckdb.DuckDBPyConnection:
    """Open a DuckDB connection. ``None`` opens an in-memory database."""
    db_path = str(db_path) if db_path else ":memory:"
    if db_path != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    return duckdb.connect(db_path, read_only=read_only)


def apply_settings(conn: duckdb.DuckDBPyConnection, settings: dict[str, str]) -> None:
    """Apply session settings (``SET key = 'value'``) before any model runs."""
    for key, value in settings.items():
        try:
            validate_identifier(key, "duckdb setting")
        except ValueError as e:
            raise ConfigError(str(e)) from e
        literal = str(value).replace("'", "''")
        try:
            conn.execute(f"SET {key} = '{literal}'")
        except duckdb.Error as e:
            raise ConfigError(f"Failed to apply duckdb setting `{key}`: {e}") from e
        logger.debug("Applied duckdb setting %s=%s", key, value)
