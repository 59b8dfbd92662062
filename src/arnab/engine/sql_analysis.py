"""SQL analysis using sqlglot AST parsing.

Provides comment stripping for model sources and extraction of the tables a
statement reads from. Reference extraction walks ``FROM`` and ``JOIN``
targets at every nesting level (CTE bodies, derived tables, set operations,
subqueries in other clauses) and resolves each name against the CTEs visible
at that point, so local aliases are never reported as dependencies.
"""

from __future__ import annotations

import re

import sqlglot
from sqlglot import exp

BLOCK_COMMENT_PATTERN = re.compile(r"/\*[\s\S]*?\*/")


def strip_comments(sql: str) -> str:
    """Remove ``--`` comment lines and ``/* ... */`` block comments.

    Only lines whose trimmed content starts with ``--`` are dropped; trailing
    comments after SQL on the same line are left to the engine.
    """
    lines = [line for line in sql.split("\n") if not line.strip().startswith("--")]
    return BLOCK_COMMENT_PATTERN.sub("", "\n".join(lines))


def parse_statements(sql: str) -> list[exp.Expression]:
    """Parse SQL into statements with the DuckDB dialect.

    Raises:
        sqlglot.errors.ParseError: The SQL is not valid for the dialect.
    """
    return [stmt for stmt in sqlglot.parse(sql, read="duckdb") if stmt is not None]


def extract_table_refs(sql: str) -> set[str]:
    """Extract the names of all tables read by the query statements in ``sql``.

    Non-query statements (DDL, ``INSERT``, ``SET``, ...) are ignored. Names
    bound to a CTE in scope are skipped; schema-qualified names are returned
    qualified (``schema.table``).

    Raises:
        sqlglot.errors.ParseError: The SQL is not valid for the dialect.
    """
    refs: set[str] = set()
    for statement in parse_statements(sql):
        if isinstance(statement, exp.Query):
            _collect_refs(statement, frozenset(), refs)
    return refs


def _table_name(table: exp.Table) -> str:
    name = table.name
    if not name:
        # table function such as read_csv(...)
        return ""
    if table.db:
        return f"{table.db}.{name}"
    return name


def _collect_refs(node: exp.Expression, visible_ctes: frozenset[str], refs: set[str]) -> None:
    if isinstance(node, exp.Table):
        name = _table_name(node)
        if name and (node.db or name.lower() not in visible_ctes):
            refs.add(name)
        # joins/laterals hanging off the table node
        for child in node.iter_expressions():
            _collect_refs(child, visible_ctes, refs)
        return

    children = list(node.iter_expressions())
    with_clauses = [c for c in children if isinstance(c, exp.With)]

    for with_ in with_clauses:
        ctes = [c for c in with_.expressions if isinstance(c, exp.CTE)]
        if with_.recursive:
            visible_ctes = visible_ctes | {c.alias.lower() for c in ctes}
        for cte in ctes:
            # a non-recursive CTE sees only the CTEs defined before it
            _collect_refs(cte.this, visible_ctes, refs)
            visible_ctes = visible_ctes | {cte.alias.lower()}

    for child in children:
        if not isinstance(child, exp.With):
            _collect_refs(child, visible_ctes, refs)
