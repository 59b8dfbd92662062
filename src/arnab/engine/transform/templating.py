"""Template rendering and dependency discovery for models."""

from __future__ import annotations

import logging
from collections.abc import Collection, Mapping

import jinja2
from sqlglot.errors import ParseError

from arnab.engine.sql_analysis import extract_table_refs, strip_comments
from arnab.errors import SQLParseError, TemplateRenderError

from .models import Model

logger = logging.getLogger("arnab.transform")


def _new_environment() -> jinja2.Environment:
    return jinja2.Environment(
        autoescape=False,
        keep_trailing_newline=True,
    )


def build_template_source(raw_text: str, macros: Mapping[str, str]) -> str:
    """Prepend every macro body to the comment-stripped model body."""
    body = strip_comments(raw_text)
    macro_src = "\n".join(macros[path] for path in sorted(macros))
    if not macro_src:
        return body
    return f"{macro_src}\n{body}"


def render_sql(raw_text: str, macros: Mapping[str, str]) -> tuple[str, set[str]]:
    """Render a model body with the macro set.

    Returns the rendered SQL and the names passed to ``ref()`` while rendering.

    Raises:
        jinja2.TemplateError: The template is invalid or fails to render.
    """
    refs: set[str] = set()

    def ref(name: str) -> str:
        refs.add(name)
        return name

    env = _new_environment()
    env.globals["ref"] = ref
    template = env.from_string(build_template_source(raw_text, macros))
    return template.render(), refs


def render_model(
    model: Model,
    macros: Mapping[str, str],
    model_ids: Collection[str],
) -> None:
    """Render ``model`` and populate its ``rendered_text`` and ``depends_on``.

    Tables read by the rendered SQL count as dependencies only when they name
    a known model; CTE aliases, external tables and typos are dropped.
    Explicit ``ref()`` targets are always kept so that references to missing
    models surface as warnings when the graph is linked.
    """
    try:
        rendered, explicit_refs = render_sql(model.raw_text, macros)
    except jinja2.TemplateError as e:
        raise TemplateRenderError(model.id, str(model.source_path), str(e)) from e

    try:
        table_refs = extract_table_refs(rendered)
    except ParseError as e:
        raise SQLParseError(model.id, str(model.source_path), str(e)) from e

    known = set(model_ids)
    model.rendered_text = rendered
    model.depends_on = {name for name in table_refs if name in known} | explicit_refs
    logger.debug("Model %s depends on %s", model.id, sorted(model.depends_on) or "nothing")
