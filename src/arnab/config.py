"""Project configuration: config.yaml parsing and defaults."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from arnab.errors import ConfigError

CONFIG_FILE_NAME = "config.yaml"


class ModelInfo(BaseModel):
    """Per-model settings under ``models:``."""
    model_config = ConfigDict(extra="ignore")

    materialize: str | None = None  # "view" or "table"; anything else fails the model


class Config(BaseModel):
    model_config = ConfigDict(extra="ignore")

    db_path: str | None = None  # None -> in-memory database
    model_path: str = "models"
    macro_path: str | None = None
    models: dict[str, ModelInfo] = Field(default_factory=dict)
    duckdb_settings: dict[str, str] = Field(default_factory=dict)
    project_dir: Path = Field(default_factory=Path.cwd)

    def resolve(self, path: str) -> Path:
        """Resolve a configured path against the project directory."""
        p = Path(path)
        return p if p.is_absolute() else self.project_dir / p

    @property
    def database(self) -> str:
        """Database location to pass to duckdb.connect()."""
        if not self.db_path or self.db_path == ":memory:":
            return ":memory:"
        return str(self.resolve(self.db_path))

    def materialization_for(self, model_id: str) -> str:
        info = self.models.get(model_id)
        if info is None or info.materialize is None:
            return "view"
        return info.materialize.lower()


def _expand_env_vars(value: Any) -> Any:
    """Expand ${ENV_VAR} references in string values."""
    if isinstance(value, str):
        return re.sub(
            r"\$\{(\w+)\}",
            lambda m: os.environ.get(m.group(1), m.group(0)),
            value,
        )
    if isinstance(value, dict):
        return {k: _expand_env_vars(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_expand_env_vars(v) for v in value]
    return value


def _stringify_settings(raw: Any) -> Any:
    # YAML gives ints/bools for values like `threads: 4`; settings are passed as text
    if not isinstance(raw, dict):
        return raw
    return {str(k): str(v).lower() if isinstance(v, bool) else str(v) for k, v in raw.items()}


def load_config(project_dir: Path | None = None) -> Config:
    """Load config.yaml from the given directory (or cwd).

    Raises:
        ConfigError: The file is missing, is not valid YAML, or does not
            match the configuration schema.
    """
    project_dir = Path(project_dir) if project_dir else Path.cwd()
    config_path = project_dir / CONFIG_FILE_NAME

    if not config_path.exists():
        raise ConfigError(
            f"Config file ({CONFIG_FILE_NAME}) not found on project root: {project_dir}",
        )

    try:
        raw = yaml.safe_load(config_path.read_text()) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigError(f"{config_path} must contain a mapping at the top level")

    raw = _expand_env_vars(raw)
    if raw.get("models") is None:
        raw.pop("models", None)
    elif isinstance(raw["models"], dict):
        # `orders:` with no settings underneath parses as None
        raw["models"] = {k: {} if v is None else v for k, v in raw["models"].items()}
    if "duckdb_settings" in raw:
        if raw["duckdb_settings"] is None:
            raw.pop("duckdb_settings")
        else:
            raw["duckdb_settings"] = _stringify_settings(raw["duckdb_settings"])

    try:
        return Config(**raw, project_dir=project_dir)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {config_path}:\n{e}") from e
