"""Tests for converting sqlglot trees into the query tree."""

from __future__ import annotations

import pytest

from duckcheck.parsers.query_tree import (
    WILDCARD,
    ColumnRef,
    OtherStatement,
    SelectNode,
    SetOperation,
    iter_queries,
)
from duckcheck.parsers.sqlglot_parser import SQLParseError, SqlglotParser


def _select(parser: SqlglotParser, sql: str) -> SelectNode:
    [statement] = parser.astify(sql)
    assert isinstance(statement, SelectNode)
    return statement


class TestStatements:
    def test_wildcard_projection(self, parser: SqlglotParser) -> None:
        node = _select(parser, "SELECT * FROM t")

        assert node.columns == WILDCARD
        assert node.from_items[0].table == "t"

    def test_column_list(self, parser: SqlglotParser) -> None:
        node = _select(parser, "SELECT a, t.b FROM t")

        assert isinstance(node.columns, list)
        assert [c.name for c in node.columns if isinstance(c, ColumnRef)] == ["a", "b"]

    def test_qualified_star_is_marked(self, parser: SqlglotParser) -> None:
        node = _select(parser, "SELECT a, t.* FROM t")

        assert isinstance(node.columns, list)
        assert any(isinstance(c, ColumnRef) and c.is_star for c in node.columns)

    def test_star_exclude_is_not_a_wildcard(self, parser: SqlglotParser) -> None:
        node = _select(parser, "SELECT * EXCLUDE (secret) FROM t")

        assert node.columns != WILDCARD
        assert isinstance(node.columns, list)
        assert not any(isinstance(c, ColumnRef) and c.is_star for c in node.columns)

    def test_order_and_limit(self, parser: SqlglotParser) -> None:
        node = _select(parser, "SELECT a FROM t ORDER BY a LIMIT 10")

        assert len(node.order_by) == 1
        assert node.limit is not None

    def test_multiple_statements(self, parser: SqlglotParser) -> None:
        assert len(parser.astify("SELECT 1; SELECT 2")) == 2

    def test_set_operation(self, parser: SqlglotParser) -> None:
        [union] = parser.astify("SELECT a FROM t UNION SELECT a FROM u")
        [union_all] = parser.astify("SELECT a FROM t UNION ALL SELECT a FROM u")

        assert isinstance(union, SetOperation)
        assert union.op == "UNION"
        assert isinstance(union_all, SetOperation)
        assert union_all.op == "UNION ALL"
        assert isinstance(union.left, SelectNode)
        assert isinstance(union.right, SelectNode)

    def test_insert_keeps_nested_query(self, parser: SqlglotParser) -> None:
        [statement] = parser.astify("INSERT INTO t2 SELECT * FROM t")

        assert isinstance(statement, OtherStatement)
        assert statement.kind == "INSERT"
        assert isinstance(statement.queries[0], SelectNode)

    def test_ctes(self, parser: SqlglotParser) -> None:
        node = _select(parser, "WITH c AS (SELECT 1 AS x) SELECT x FROM c")

        assert [cte.name for cte in node.ctes] == ["c"]
        assert isinstance(node.ctes[0].query, SelectNode)

    def test_parse_error(self, parser: SqlglotParser) -> None:
        with pytest.raises(SQLParseError):
            parser.astify("SELECT a FROM t WHERE (((")


class TestJoins:
    def test_comma_join_has_no_label(self, parser: SqlglotParser) -> None:
        node = _select(parser, "SELECT * FROM a, b")

        assert [item.table for item in node.from_items] == ["a", "b"]
        assert [item.join for item in node.from_items] == [None, None]

    def test_left_join_with_condition(self, parser: SqlglotParser) -> None:
        node = _select(parser, "SELECT * FROM a LEFT JOIN b ON a.id = b.id")
        item = node.from_items[1]

        assert item.join == "LEFT JOIN"
        assert item.has_condition

    def test_cross_join(self, parser: SqlglotParser) -> None:
        node = _select(parser, "SELECT * FROM a CROSS JOIN b")
        assert node.from_items[1].join == "CROSS JOIN"

    def test_using(self, parser: SqlglotParser) -> None:
        node = _select(parser, "SELECT * FROM a JOIN b USING (id)")
        item = node.from_items[1]

        assert item.using == ["id"]
        assert item.has_condition

    def test_derived_table(self, parser: SqlglotParser) -> None:
        node = _select(parser, "SELECT * FROM (SELECT a FROM t) s")

        assert node.from_items[0].alias == "s"
        assert isinstance(node.from_items[0].subquery, SelectNode)

    def test_table_function_source(self, parser: SqlglotParser) -> None:
        node = _select(parser, "SELECT * FROM read_parquet('x.parquet')")

        assert node.from_items[0].table is None
        assert node.from_items[0].source_expr is not None


class TestNesting:
    def test_depth_counts_from_and_expression_subqueries(self, parser: SqlglotParser) -> None:
        [statement] = parser.astify(
            "SELECT * FROM (SELECT a FROM t WHERE a IN (SELECT b FROM u)) s"
        )
        depths = [depth for _, depth in iter_queries(statement)]
        assert depths == [0, 1, 2]

    def test_cte_bodies_stay_at_parent_depth(self, parser: SqlglotParser) -> None:
        [statement] = parser.astify("WITH c AS (SELECT 1 AS x) SELECT x FROM c")
        assert [depth for _, depth in iter_queries(statement)] == [0, 0]

    def test_function_argument_subquery(self, parser: SqlglotParser) -> None:
        [statement] = parser.astify("SELECT coalesce((SELECT max(b) FROM u), 0) AS m FROM t")
        assert max(depth for _, depth in iter_queries(statement)) == 1
