"""Error types raised by the arnab pipeline.

Discovery-time errors (configuration, unknown model types, template and
parse failures, cycles) abort the whole run. Model-definition and statement
execution errors are captured per model and reported at the end of a run.
"""

from __future__ import annotations

from collections.abc import Sequence


class ArnabError(Exception):
    """Base class for all arnab errors.

    Attributes:
        message: Human-readable error message.
        hint: Optional remediation hint shown below the message.
    """

    def __init__(self, message: str, *, hint: str | None = None):
        super().__init__(message)
        self.message = message
        self.hint = hint

    def __str__(self) -> str:
        if self.hint:
            return f"{self.message}\n\nHint:\n{self.hint}"
        return self.message


class ConfigError(ArnabError):
    """Invalid or missing project configuration."""


class DiscoveryError(ArnabError):
    """Raised while loading, rendering or linking models. Fatal to the run."""


class UnknownModelType(DiscoveryError):
    """A model source file has an extension other than ``.sql``."""

    def __init__(self, model_type: str, path: str | None = None):
        message = f"Unknown model type: {model_type}"
        if path:
            message += f" ({path})"
        super().__init__(message, hint="Only .sql model sources are supported.")
        self.model_type = model_type
        self.path = path


class TemplateRenderError(DiscoveryError):
    """Jinja failed to render a model (syntax error, undefined macro, ...)."""

    def __init__(self, model_id: str, path: str, message: str):
        super().__init__(f"Failed to render model `{model_id}` ({path}): {message}")
        self.model_id = model_id
        self.path = path


class SQLParseError(DiscoveryError):
    """The rendered SQL of a model could not be parsed."""

    def __init__(self, model_id: str, path: str, message: str):
        super().__init__(f"Failed to parse SQL of model `{model_id}` ({path}): {message}")
        self.model_id = model_id
        self.path = path


class CyclicDependencyError(DiscoveryError):
    """The model graph contains a cycle.

    Args:
        cycle: Model ids along the cycle, first id repeated at the end.
    """

    def __init__(self, cycle: Sequence[str]):
        self.cycle = list(cycle)
        super().__init__(
            "Cyclic dependency detected: " + " -> ".join(self.cycle),
            hint="Break the cycle by removing one of the references. "
            "A model that selects from its own name counts as a cycle.",
        )


class ModelDefinitionError(ArnabError):
    """A model is structurally invalid. Fails that model only."""

    def __init__(self, model_id: str, message: str):
        super().__init__(message)
        self.model_id = model_id


class StatementExecutionError(ArnabError):
    """A statement of a model failed on the engine. Fails that model only."""

    def __init__(self, msg: str, sql: str, path: str):
        super().__init__(msg)
        self.msg = msg
        self.sql = sql
        self.path = path
