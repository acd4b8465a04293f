"""Structural rules: checks that need a parsed query tree.

Each check takes one top-level statement and the original query text and walks
every query nested in the statement, so subqueries in FROM, in expressions
and in set operations are all covered.
"""

from __future__ import annotations

import re

from duckcheck.models import Finding, TextRange
from duckcheck.parsers.query_tree import (
    WILDCARD,
    ColumnRef,
    FromItem,
    SelectNode,
    SetOperation,
    Statement,
    iter_queries,
    iter_selects,
)
from duckcheck.rules.registry import Rule
from duckcheck.utils.findings import build_finding, locate_first

NESTING_DEPTH_THRESHOLD = 3


def _bare_join(sql: str, item: FromItem) -> re.Match[str] | None:
    """Find ``JOIN <table>`` for an item the parser reported as comma-listed.

    A JOIN with neither ON nor USING parses the same as a comma, so the query
    text decides which one was written.
    """
    if not item.table:
        return None
    name = r"\s*\.\s*".join(rf'"?{re.escape(part)}"?' for part in item.table.split("."))
    return re.search(rf"\bjoin\s+{name}(?![\w.])", sql, re.IGNORECASE)


def check_select_star(statement: Statement, sql: str) -> list[Finding]:
    """A wildcard projection, or a wildcard item in the SELECT list."""
    findings: list[Finding] = []
    for node, _ in iter_selects(statement):
        if node.columns == WILDCARD:
            findings.append(
                build_finding(
                    "select-star",
                    "warning",
                    "SELECT * detected",
                    "SELECT * reads every column from the table. In a columnar engine like "
                    "DuckDB this defeats column pruning and transfers unnecessary data, "
                    "which is especially costly when reading remote Parquet files.",
                    "List only the columns you need: SELECT col1, col2 FROM ... You can also "
                    "use SELECT * EXCLUDE (col) to drop specific columns.",
                    "performance",
                    fragment="SELECT *",
                    offset=locate_first(sql, "select *"),
                )
            )
        elif isinstance(node.columns, list):
            for column in node.columns:
                if isinstance(column, ColumnRef) and column.is_star:
                    findings.append(
                        build_finding(
                            "select-star",
                            "warning",
                            "SELECT * detected",
                            "SELECT * reads every column. In a columnar engine, select only "
                            "the columns you need to take advantage of column pruning.",
                            "List only the columns you need, or use EXCLUDE to drop unneeded "
                            "columns.",
                            "performance",
                            fragment="*",
                        )
                    )
    return findings


def check_order_without_limit(statement: Statement, sql: str) -> list[Finding]:
    """ORDER BY with no LIMIT, on a SELECT or a set operation."""
    findings: list[Finding] = []
    for node, _ in iter_queries(statement):
        if not isinstance(node, (SelectNode, SetOperation)):
            continue
        if node.order_by and node.limit is None:
            findings.append(
                build_finding(
                    "order-without-limit",
                    "warning",
                    "ORDER BY without LIMIT",
                    "Sorting the entire result set requires materializing all rows before "
                    "returning any. This is a pipeline breaker that can cause out-of-memory "
                    "errors on large datasets.",
                    "Add a LIMIT clause if you only need a subset, or remove ORDER BY if the "
                    'order does not matter. For "top N" queries use LIMIT N.',
                    "memory",
                    fragment="ORDER BY",
                    offset=locate_first(sql, "order by"),
                )
            )
    return findings


def check_cross_join(statement: Statement, sql: str) -> list[Finding]:
    """An explicit CROSS JOIN."""
    findings: list[Finding] = []
    for node, _ in iter_selects(statement):
        for item in node.from_items:
            if item.join == "CROSS JOIN":
                findings.append(
                    build_finding(
                        "cross-join",
                        "warning",
                        "CROSS JOIN detected",
                        "A CROSS JOIN produces the Cartesian product of both sides "
                        "(rows_a x rows_b). This is safe when one side is a single row, such "
                        "as a scalar CTE, but can explode memory on large tables.",
                        "Verify that one side of the CROSS JOIN returns a single row. "
                        "Otherwise use an INNER or LEFT JOIN with an ON condition.",
                        "memory",
                        fragment="CROSS JOIN",
                        offset=locate_first(sql, "cross join"),
                    )
                )
    return findings


def check_nested_subqueries(statement: Statement, sql: str) -> list[Finding]:
    """Subqueries nested three or more levels below the outermost query."""
    for node, depth in iter_queries(statement):
        if isinstance(node, SelectNode) and depth >= NESTING_DEPTH_THRESHOLD:
            return [
                build_finding(
                    "deeply-nested-subquery",
                    "warning",
                    "Deeply nested subquery",
                    f"Subqueries are nested {depth} levels deep. Deep nesting is hard to "
                    "read and the planner may not be able to flatten it, leading to "
                    "repeated scans.",
                    "Refactor using CTEs (WITH clauses). DuckDB can materialize a CTE once "
                    "and reuse it.",
                    "performance",
                )
            ]
    return []


def check_join_conditions(statement: Statement, sql: str) -> list[Finding]:
    """Comma joins without WHERE, and explicit joins without ON / USING."""
    findings: list[Finding] = []
    for node, _ in iter_selects(statement):
        items = node.from_items
        labels = [item.join for item in items]
        bare: dict[int, re.Match[str]] = {}
        for index, item in enumerate(items[1:], start=1):
            if item.join is None and not item.has_condition:
                match = _bare_join(sql, item)
                if match is not None:
                    labels[index] = "JOIN"
                    bare[index] = match

        if len(items) > 1 and not any(labels) and node.where is None:
            names = [item.table or item.alias or "" for item in items]
            findings.append(
                build_finding(
                    "implicit-cross-join",
                    "error",
                    "Implicit cross join (comma join without WHERE)",
                    "Listing tables separated by commas without a WHERE clause creates a "
                    "Cartesian product. This is equivalent to CROSS JOIN and can be "
                    "extremely expensive.",
                    "Use explicit JOIN syntax with ON conditions: FROM a JOIN b ON a.id = b.id",
                    "memory",
                    fragment=", ".join(n for n in names if n) or None,
                )
            )

        for index, item in enumerate(items):
            label = labels[index]
            if label and label != "CROSS JOIN" and not item.has_condition:
                match = bare.get(index)
                if match is not None:
                    offset = TextRange(match.start(), match.start() + len("join"))
                else:
                    offset = locate_first(sql, label)
                findings.append(
                    build_finding(
                        "join-without-on",
                        "warning",
                        "JOIN without ON condition",
                        f"{label} has no ON or USING condition. It may produce a "
                        "Cartesian product or rely on implicit behavior.",
                        "Always specify an explicit ON condition for joins.",
                        "performance",
                        fragment=label,
                        offset=offset,
                    )
                )
    return findings


STRUCTURAL_RULES: tuple[Rule, ...] = (
    Rule(("select-star",), check_select_star),
    Rule(("order-without-limit",), check_order_without_limit),
    Rule(("cross-join",), check_cross_join),
    Rule(("deeply-nested-subquery",), check_nested_subqueries),
    Rule(("implicit-cross-join", "join-without-on"), check_join_conditions),
)
