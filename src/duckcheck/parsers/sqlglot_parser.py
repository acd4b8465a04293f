"""SQL parser backed by sqlglot.

Parses query text with the DuckDB grammar and converts the sqlglot AST into
the tagged query tree in duckcheck.parsers.query_tree.
"""

from __future__ import annotations

import logging
from typing import Any

import sqlglot
from sqlglot import exp
from sqlglot.errors import ParseError, TokenError

from duckcheck.parsers.query_tree import (
    WILDCARD,
    BinaryExpr,
    ColumnRef,
    CommonTableExpr,
    Expr,
    FromItem,
    FunctionCall,
    Literal,
    OpaqueExpr,
    OtherStatement,
    SelectNode,
    SetOperation,
    Statement,
    SubqueryWrapper,
)

logger = logging.getLogger(__name__)

# sqlglot nests long AND/OR chains left-deep; conversion stops here.
MAX_CONVERT_DEPTH = 200

_SET_OPERATIONS = (exp.Union, exp.Intersect, exp.Except)
_QUERY_TYPES = (exp.Select, *_SET_OPERATIONS)
_CONDITION_FREE_METHODS = {"NATURAL", "POSITIONAL"}


class SQLParseError(Exception):
    """Raised when the SQL text cannot be turned into a query tree."""


def _arg(node: exp.Expression, *names: str) -> Any:
    """Return the first present arg, tolerating renamed arg keys across sqlglot versions."""
    for name in names:
        value = node.args.get(name)
        if value is not None:
            return value
    return None


def _describe(error: ParseError) -> str:
    """Build a one-line message from a sqlglot ParseError."""
    details = getattr(error, "errors", None) or []
    if details:
        first = details[0]
        description = first.get("description") or str(error)
        line, col = first.get("line"), first.get("col")
        if line is not None and col is not None:
            return f"{description} (line {line}, column {col})"
        return str(description)
    text = str(error).strip()
    return text.splitlines()[0] if text else ""


class SqlglotParser:
    """Parse SQL text into query-tree statements using sqlglot."""

    def astify(self, sql: str, dialect: str = "duckdb") -> list[Statement]:
        """Parse ``sql`` and convert every statement.

        Raises:
            SQLParseError: If sqlglot cannot tokenize or parse the text.
        """
        read = None if dialect == "ansi" else dialect
        try:
            parsed = sqlglot.parse(sql, read=read)
        except ParseError as e:
            raise SQLParseError(_describe(e)) from e
        except TokenError as e:
            raise SQLParseError(str(e)) from e

        statements = [self._convert_statement(node, 0) for node in parsed if node is not None]
        logger.debug("sqlglot produced %d statement(s)", len(statements))
        return statements

    # ── Statements ───────────────────────────────────────────────────

    def _convert_statement(self, node: exp.Expression, depth: int) -> Statement:
        if isinstance(node, exp.Subquery) and isinstance(node.this, exp.Expression):
            return self._convert_statement(node.this, depth)
        if isinstance(node, exp.Select):
            return self._convert_select(node, depth)
        if isinstance(node, _SET_OPERATIONS):
            return self._convert_set_operation(node, depth)

        queries: list[Statement] = []
        for child in node.iter_expressions():
            if isinstance(child, (*_QUERY_TYPES, exp.Subquery)):
                queries.append(self._convert_statement(child, depth))
        return OtherStatement(kind=node.key.upper(), queries=queries)

    def _convert_ctes(self, node: exp.Expression, depth: int) -> list[CommonTableExpr]:
        with_ = _arg(node, "with", "with_")
        if with_ is None:
            return []
        ctes: list[CommonTableExpr] = []
        for cte in with_.expressions:
            query = cte.this
            ctes.append(
                CommonTableExpr(
                    name=cte.alias,
                    query=self._convert_statement(query, depth)
                    if isinstance(query, exp.Expression)
                    else None,
                )
            )
        return ctes

    def _convert_select(self, node: exp.Select, depth: int) -> SelectNode:
        projections = node.expressions
        columns: list[Expr] | str
        if len(projections) == 1 and self._is_bare_star(projections[0]):
            columns = WILDCARD
        else:
            columns = [self._convert_expr(p, depth + 1) for p in projections]

        from_items: list[FromItem] = []
        from_ = _arg(node, "from", "from_")
        if from_ is not None:
            sources = [from_.this] if from_.this is not None else []
            sources.extend(from_.expressions)
            from_items.extend(self._convert_source(s, depth) for s in sources)
        for join in node.args.get("joins") or []:
            from_items.append(self._convert_join(join, depth))

        where = node.args.get("where")
        having = node.args.get("having")
        qualify = node.args.get("qualify")
        group = node.args.get("group")
        order = node.args.get("order")
        limit = node.args.get("limit") or node.args.get("fetch")

        return SelectNode(
            columns=columns,
            from_items=from_items,
            where=self._convert_expr(where.this, depth + 1) if where is not None else None,
            having=self._convert_expr(having.this, depth + 1) if having is not None else None,
            qualify=self._convert_expr(qualify.this, depth + 1) if qualify is not None else None,
            group_by=[self._convert_expr(g, depth + 1) for g in group.expressions]
            if group is not None
            else [],
            order_by=[self._convert_expr(o, depth + 1) for o in order.expressions]
            if order is not None
            else [],
            limit=self._convert_expr(limit, depth + 1) if limit is not None else None,
            ctes=self._convert_ctes(node, depth),
            distinct=bool(node.args.get("distinct")),
        )

    def _convert_set_operation(self, node: exp.Expression, depth: int) -> SetOperation:
        op = type(node).__name__.upper()
        if not node.args.get("distinct"):
            op += " ALL"
        order = node.args.get("order")
        limit = node.args.get("limit")
        left, right = node.this, node.expression
        return SetOperation(
            op=op,
            left=self._convert_statement(left, depth) if isinstance(left, exp.Expression) else None,
            right=self._convert_statement(right, depth)
            if isinstance(right, exp.Expression)
            else None,
            order_by=[self._convert_expr(o, depth + 1) for o in order.expressions]
            if order is not None
            else [],
            limit=self._convert_expr(limit, depth + 1) if limit is not None else None,
            ctes=self._convert_ctes(node, depth),
        )

    @staticmethod
    def _is_bare_star(projection: exp.Expression) -> bool:
        """A plain ``*``; ``* EXCLUDE (...)`` and friends name their columns."""
        if not isinstance(projection, exp.Star):
            return False
        return not any(
            projection.args.get(k)
            for k in ("except", "except_", "replace", "replace_", "rename", "rename_")
        )

    # ── Sources ──────────────────────────────────────────────────────

    def _convert_source(self, source: exp.Expression, depth: int) -> FromItem:
        item = FromItem(alias=source.alias or None)
        if isinstance(source, exp.Subquery):
            if isinstance(source.this, exp.Expression):
                item.subquery = self._convert_statement(source.this, depth + 1)
        elif isinstance(source, _QUERY_TYPES):
            item.subquery = self._convert_statement(source, depth + 1)
        elif isinstance(source, exp.Table):
            if isinstance(source.this, exp.Identifier):
                parts = (source.catalog, source.db, source.name)
                item.table = ".".join(p for p in parts if p)
            elif isinstance(source.this, exp.Expression):
                item.source_expr = self._convert_expr(source.this, depth + 1)
        else:
            item.source_expr = self._convert_expr(source, depth + 1)
        return item

    def _convert_join(self, join: exp.Join, depth: int) -> FromItem:
        item = self._convert_source(join.this, depth)
        method = join.text("method").upper()
        side = join.text("side").upper()
        kind = join.text("kind").upper()
        on = join.args.get("on")
        using = join.args.get("using") or []

        labels = [p for p in (method, side, kind) if p]
        if labels:
            item.join = " ".join(labels) + " JOIN"
        elif on is not None or using:
            item.join = "JOIN"
        # Otherwise the source was listed with a comma.

        item.on = self._convert_expr(on, depth + 1) if on is not None else None
        item.using = [u.name for u in using if isinstance(u, exp.Expression)]
        item.natural = method in _CONDITION_FREE_METHODS
        return item

    # ── Expressions ──────────────────────────────────────────────────

    def _convert_expr(self, node: exp.Expression, depth: int) -> Expr:
        if depth > MAX_CONVERT_DEPTH:
            return OpaqueExpr(kind="truncated")
        if isinstance(node, exp.Subquery):
            inner = node.this
            if isinstance(inner, exp.Expression):
                return SubqueryWrapper(query=self._convert_statement(inner, depth + 1))
            return SubqueryWrapper()
        if isinstance(node, _QUERY_TYPES):
            return SubqueryWrapper(query=self._convert_statement(node, depth + 1))
        if isinstance(node, exp.Star):
            return ColumnRef(name="*", is_star=self._is_bare_star(node))
        if isinstance(node, exp.Column):
            return ColumnRef(
                name=node.name,
                table=node.table or None,
                is_star=isinstance(node.this, exp.Star),
            )
        if isinstance(node, (exp.Literal, exp.Boolean, exp.Null)):
            return Literal(value=node.sql())
        if isinstance(node, exp.Binary):
            left, right = node.left, node.right
            return BinaryExpr(
                op=node.key.upper(),
                left=self._convert_expr(left, depth + 1) if left is not None else None,
                right=self._convert_expr(right, depth + 1) if right is not None else None,
            )
        if isinstance(node, exp.Func):
            name = node.name if isinstance(node, exp.Anonymous) else node.sql_name()
            return FunctionCall(
                name=name.upper(),
                args=[self._convert_expr(a, depth + 1) for a in node.iter_expressions()],
            )
        return OpaqueExpr(
            kind=node.key,
            children=[self._convert_expr(c, depth + 1) for c in node.iter_expressions()],
        )
