"""Parsed query tree consumed by the structural rules.

The external parser's output is converted into these small tagged dataclasses
so rules never depend on a particular parser library. Only the node kinds the
rules actually inspect are modelled; anything else becomes an OpaqueExpr that
keeps its children so nested queries are still reachable.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Union

WILDCARD = "*"

# Nesting beyond this is not walked any further.
MAX_WALK_DEPTH = 64


@dataclass
class ColumnRef:
    name: str = ""
    table: str | None = None
    is_star: bool = False


@dataclass
class Literal:
    value: str = ""


@dataclass
class BinaryExpr:
    op: str = ""
    left: Expr | None = None
    right: Expr | None = None


@dataclass
class FunctionCall:
    name: str = ""
    args: list[Expr] = field(default_factory=list)


@dataclass
class SubqueryWrapper:
    query: Statement | None = None


@dataclass
class OpaqueExpr:
    kind: str = ""
    children: list[Expr] = field(default_factory=list)


Expr = Union[ColumnRef, Literal, BinaryExpr, FunctionCall, SubqueryWrapper, OpaqueExpr]


@dataclass
class FromItem:
    """One source in a FROM clause.

    Attributes:
        table: Table name for plain table sources.
        alias: Alias, if any.
        join: Join label such as 'LEFT JOIN' or 'CROSS JOIN'; None when the
            item is listed with a comma (or is the first source).
        on: Join condition.
        using: Columns of a USING clause.
        subquery: Derived table query.
        source_expr: Table function or other non-table source.
        natural: True for NATURAL/POSITIONAL joins, which carry no condition.
    """

    table: str | None = None
    alias: str | None = None
    join: str | None = None
    on: Expr | None = None
    using: list[str] = field(default_factory=list)
    subquery: Statement | None = None
    source_expr: Expr | None = None
    natural: bool = False

    @property
    def has_condition(self) -> bool:
        return self.on is not None or bool(self.using) or self.natural


@dataclass
class CommonTableExpr:
    name: str = ""
    query: Statement | None = None


@dataclass
class SelectNode:
    """A SELECT query block."""

    columns: list[Expr] | str = field(default_factory=list)
    from_items: list[FromItem] = field(default_factory=list)
    where: Expr | None = None
    having: Expr | None = None
    qualify: Expr | None = None
    group_by: list[Expr] = field(default_factory=list)
    order_by: list[Expr] = field(default_factory=list)
    limit: Expr | None = None
    ctes: list[CommonTableExpr] = field(default_factory=list)
    distinct: bool = False
    type: str = "select"


@dataclass
class SetOperation:
    """UNION / INTERSECT / EXCEPT of two queries."""

    op: str = "UNION"
    left: Statement | None = None
    right: Statement | None = None
    order_by: list[Expr] = field(default_factory=list)
    limit: Expr | None = None
    ctes: list[CommonTableExpr] = field(default_factory=list)
    type: str = "set_operation"


@dataclass
class OtherStatement:
    """Any non-query statement (INSERT, CREATE TABLE AS, COPY, ...)."""

    kind: str = ""
    queries: list[Statement] = field(default_factory=list)
    type: str = "other"


Statement = Union[SelectNode, SetOperation, OtherStatement]


def iter_subqueries(expr: Expr | None) -> Iterator[Statement]:
    """Yield every query nested directly inside ``expr``.

    Queries nested inside those queries are not yielded; walk them with
    iter_queries to keep depth accounting right.
    """
    if expr is None:
        return
    stack: list[tuple[Expr, int]] = [(expr, 0)]
    while stack:
        node, level = stack.pop()
        if level > MAX_WALK_DEPTH:
            continue
        if isinstance(node, SubqueryWrapper):
            if node.query is not None:
                yield node.query
        elif isinstance(node, BinaryExpr):
            for child in (node.right, node.left):
                if child is not None:
                    stack.append((child, level + 1))
        elif isinstance(node, FunctionCall):
            stack.extend((arg, level + 1) for arg in reversed(node.args))
        elif isinstance(node, OpaqueExpr):
            stack.extend((child, level + 1) for child in reversed(node.children))


def _select_children(node: SelectNode, depth: int) -> list[tuple[Statement, int]]:
    children: list[tuple[Statement, int]] = []
    for cte in node.ctes:
        if cte.query is not None:
            children.append((cte.query, depth))
    exprs: list[Expr | None] = []
    if isinstance(node.columns, list):
        exprs.extend(node.columns)
    for item in node.from_items:
        if item.subquery is not None:
            children.append((item.subquery, depth + 1))
        exprs.extend((item.source_expr, item.on))
    exprs.extend((node.where, node.having, node.qualify))
    exprs.extend(node.group_by)
    exprs.extend(node.order_by)
    for expr in exprs:
        for query in iter_subqueries(expr):
            children.append((query, depth + 1))
    return children


def iter_queries(statement: Statement | None) -> Iterator[tuple[Statement, int]]:
    """Yield ``(query, depth)`` for ``statement`` and every query nested in it.

    The outermost statement has depth 0. A subquery in a FROM item or in any
    expression is one level deeper than its parent; CTE bodies and the arms
    of a set operation stay at their parent's depth.
    """
    if statement is None:
        return
    stack: list[tuple[Statement, int]] = [(statement, 0)]
    while stack:
        node, depth = stack.pop()
        yield node, depth
        if depth >= MAX_WALK_DEPTH:
            continue
        if isinstance(node, SelectNode):
            children = _select_children(node, depth)
        elif isinstance(node, SetOperation):
            children = [(cte.query, depth) for cte in node.ctes if cte.query is not None]
            children.extend((arm, depth) for arm in (node.left, node.right) if arm is not None)
            for expr in node.order_by:
                children.extend((q, depth + 1) for q in iter_subqueries(expr))
        elif isinstance(node, OtherStatement):
            children = [(q, depth) for q in node.queries]
        else:
            children = []
        stack.extend(reversed(children))


def iter_selects(statement: Statement | None) -> Iterator[tuple[SelectNode, int]]:
    for node, depth in iter_queries(statement):
        if isinstance(node, SelectNode):
            yield node, depth
