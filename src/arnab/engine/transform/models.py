"""Data classes for the SQL transformation engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from arnab.errors import ArnabError, StatementExecutionError

VIEW = "view"
TABLE = "table"


@dataclass(frozen=True)
class ModelSource:
    """A model source file as found on disk, before any processing."""

    path: Path
    id: str  # file stem, e.g. "customers"
    raw_text: str
    kind: str  # file extension without the dot, e.g. "sql"


@dataclass
class Model:
    """A single SQL transformation model."""

    id: str
    source_path: Path
    raw_text: str
    rendered_text: str = ""
    depends_on: set[str] = field(default_factory=set)
    dependents: set[str] = field(default_factory=set)
    materialize: str = VIEW  # "view" or "table", validated at execution time
    kind: str = "sql"

    @property
    def is_terminal(self) -> bool:
        return not self.dependents


@dataclass(frozen=True)
class ExecutionOutcome:
    """Result of executing a single model."""

    status: str  # "success" or "error"
    rows_affected: int | None = None  # only for table materializations
    error: ArnabError | None = None
    duration_ms: int = 0

    @classmethod
    def success(cls, rows_affected: int | None = None, duration_ms: int = 0) -> ExecutionOutcome:
        return cls(status="success", rows_affected=rows_affected, duration_ms=duration_ms)

    @classmethod
    def failure(cls, error: ArnabError, duration_ms: int = 0) -> ExecutionOutcome:
        return cls(status="error", error=error, duration_ms=duration_ms)

    @property
    def ok(self) -> bool:
        return self.status == "success"


@dataclass
class ModelFailure:
    """Everything the reporter needs to describe a failed model."""

    model_id: str
    source_path: str
    message: str
    sql: str | None = None


@dataclass
class RunResult:
    """Outcomes of one pipeline run, in execution order."""

    outcomes: list[tuple[str, ExecutionOutcome]] = field(default_factory=list)
    invalid_refs: set[str] = field(default_factory=set)
    duration_ms: int = 0

    def add(self, model_id: str, outcome: ExecutionOutcome) -> None:
        self.outcomes.append((model_id, outcome))

    @property
    def success_count(self) -> int:
        return sum(1 for _, o in self.outcomes if o.ok)

    @property
    def error_count(self) -> int:
        return sum(1 for _, o in self.outcomes if not o.ok)

    @property
    def invalid_ref_count(self) -> int:
        return len(self.invalid_refs)

    def failures(self, registry: dict[str, Model]) -> list[ModelFailure]:
        """Describe every failed model using the registry for source paths."""
        result = []
        for model_id, outcome in self.outcomes:
            if outcome.ok or outcome.error is None:
                continue
            err = outcome.error
            if isinstance(err, StatementExecutionError):
                result.append(ModelFailure(model_id, err.path, err.msg, err.sql))
            else:
                path = str(registry[model_id].source_path) if model_id in registry else ""
                result.append(ModelFailure(model_id, path, str(err)))
        return result
