"""Model source discovery, macro loading and registry construction."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from pathlib import Path

from arnab.errors import UnknownModelType

from .models import Model, ModelSource
from .templating import render_model

logger = logging.getLogger("arnab.transform")

SUPPORTED_KINDS = frozenset({"sql"})


def discover_sources(model_dir: Path) -> list[ModelSource]:
    """Find every ``*.*`` file directly inside the model directory.

    Convention: the file stem is the model id.
    models/customers.sql -> id=customers, kind=sql
    """
    sources: list[ModelSource] = []
    if not model_dir.is_dir():
        logger.warning("Model directory %s does not exist", model_dir)
        return sources

    for path in sorted(model_dir.glob("*.*")):
        # dotfiles such as .gitkeep are not model sources
        if not path.is_file() or path.name.startswith("."):
            continue
        sources.append(
            ModelSource(
                path=path,
                id=path.stem,
                raw_text=path.read_text(),
                kind=path.suffix.lstrip(".").lower(),
            )
        )
    return sources


def load_macros(macro_dir: Path | None) -> dict[str, str]:
    """Load every ``*.*`` file of the macro directory as ``{path: body}``."""
    if macro_dir is None:
        return {}
    if not macro_dir.is_dir():
        logger.warning("Macro directory %s does not exist", macro_dir)
        return {}
    return {
        str(path): path.read_text()
        for path in sorted(macro_dir.glob("*.*"))
        if path.is_file() and not path.name.startswith(".")
    }


def build_registry(
    sources: Iterable[ModelSource],
    materializations: Mapping[str, str] | None = None,
) -> dict[str, Model]:
    """Build the id -> Model registry.

    Raises:
        UnknownModelType: A source has a kind other than ``sql``.
    """
    materializations = materializations or {}
    registry: dict[str, Model] = {}
    for source in sources:
        if source.kind not in SUPPORTED_KINDS:
            raise UnknownModelType(source.kind, str(source.path))
        if source.id in registry:
            logger.warning(
                "Model `%s` defined twice; %s replaces %s",
                source.id, source.path, registry[source.id].source_path,
            )
        registry[source.id] = Model(
            id=source.id,
            source_path=source.path,
            raw_text=source.raw_text,
            materialize=materializations.get(source.id, "view"),
            kind=source.kind,
        )
    return registry


def render_registry(registry: dict[str, Model], macros: Mapping[str, str]) -> None:
    """Render every model and populate its ``depends_on`` set."""
    model_ids = list(registry)
    for model in registry.values():
        render_model(model, macros, model_ids)

