"""Console reporting for pipeline runs."""

from __future__ import annotations

from datetime import datetime

from rich.console import Console
from rich.markup import escape

from arnab.engine.utils import format_elapsed

from .models import TABLE, ExecutionOutcome, Model, ModelSource, RunResult

console = Console(highlight=False)

STATUS_COLUMN = 80


def _plural(n: int, word: str) -> str:
    return f"{n} {word}{'s' if n != 1 else ''}"


def print_sources(sources: list[ModelSource], n_macros: int) -> None:
    for source in sources:
        console.print(f"Found model source: {escape(str(source.path))}")
    console.print(f"Found {_plural(len(sources), 'model source')}, {_plural(n_macros, 'macro')}\n")


def print_run_start() -> None:
    console.print(f"Start pipeline execution on {datetime.now():%Y-%m-%d}")


def print_model_start(position: int, total: int, model: Model) -> None:
    """Print the left part of a model's status line, padded with dots."""
    now = datetime.now()
    mode = (model.materialize or "view").lower()
    plain = f"{now:%H:%M:%S}  {position} of {total}: creating {model.id} {mode} model"
    padding = "." * max(STATUS_COLUMN - len(plain), 0)
    console.print(
        f"{now:%H:%M:%S}  {position} of {total}: creating "
        f"[blue]{escape(model.id)}[/blue] {escape(mode)} model{padding}",
        end="",
        soft_wrap=True,
    )


def status_label(model: Model, outcome: ExecutionOutcome) -> str:
    if not outcome.ok:
        return "[red]ERROR[/red]"
    if (model.materialize or "").lower() == TABLE:
        return f"[green]SELECT {outcome.rows_affected or 0}[/green]"
    return "[green]CREATE VIEW[/green]"


def print_model_status(model: Model, outcome: ExecutionOutcome) -> None:
    elapsed = format_elapsed(outcome.duration_ms / 1000)
    console.print(f"\\[{status_label(model, outcome)} in {elapsed}]", soft_wrap=True)


def print_errors(result: RunResult, registry: dict[str, Model]) -> None:
    failures = result.failures(registry)
    if not failures:
        return
    console.print("\nErrors:")
    for failure in failures:
        if failure.sql is not None:
            console.print("Failed to execute SQL statement.")
            console.print(f"Model       : {escape(failure.model_id)}")
            console.print(f"Source path : {escape(failure.source_path)}")
            console.print(f"Error       : [red]{escape(failure.message)}[/red]")
            console.print(f"SQL         :\n{escape(failure.sql)}\n")
        else:
            console.print(f"{escape(failure.model_id)} ({escape(failure.source_path)}): {escape(failure.message)}\n")


def print_summary(result: RunResult) -> None:
    console.print(
        f"\nPipeline execution completed in {format_elapsed(result.duration_ms / 1000)} "
        f"with {result.success_count} success and {result.error_count} errors"
    )
    if result.invalid_refs:
        console.print(
            f"[yellow]{_plural(result.invalid_ref_count, 'unresolved model reference')}:[/yellow] "
            f"{escape(', '.join(sorted(result.invalid_refs)))}"
        )


def report(result: RunResult, registry: dict[str, Model]) -> None:
    """Print the error listing and the final tally."""
    print_errors(result, registry)
    print_summary(result)
