"""Tests for QueryAnalyzer and the top-level analyze() helper."""

from __future__ import annotations

import logging
from unittest.mock import MagicMock

import pytest

import duckcheck
from duckcheck.analyzers import query_analyzer
from duckcheck.analyzers.query_analyzer import QueryAnalyzer, deduplicate
from duckcheck.config import AnalyzerConfig
from duckcheck.parsers.parse_adapter import PARSER_UNAVAILABLE
from duckcheck.parsers.query_tree import WILDCARD, SelectNode
from duckcheck.parsers.sqlglot_parser import SQLParseError
from duckcheck.rules.registry import Rule
from duckcheck.utils.findings import build_finding


def _explode(sql: str) -> list:
    raise RuntimeError("rule bug")


class TestBasics:
    def test_empty_input(self, analyzer: QueryAnalyzer) -> None:
        for sql in ("", "   \n\t "):
            result = analyzer.analyze(sql)
            assert result.findings == []
            assert result.parse_error is None

    def test_idempotent(self, analyzer: QueryAnalyzer, dashboard_sql: str) -> None:
        first = analyzer.analyze(dashboard_sql).to_dict()
        second = analyzer.analyze(dashboard_sql).to_dict()
        assert first == second

    def test_each_rule_id_reported_once(self, analyzer: QueryAnalyzer) -> None:
        result = analyzer.analyze("SELECT * FROM a WHERE id IN (SELECT * FROM b)")
        ids = result.rule_ids()

        assert ids.count("select-star") == 1
        assert len(ids) == len(set(ids))

    def test_top_level_analyze(self) -> None:
        result = duckcheck.analyze("SELECT * FROM a, b")
        assert "implicit-cross-join" in result.rule_ids()


class TestStructuralFindings:
    def test_select_star(self, analyzer: QueryAnalyzer) -> None:
        assert "select-star" in analyzer.analyze("SELECT * FROM t").rule_ids()

    def test_order_without_limit(self, analyzer: QueryAnalyzer) -> None:
        assert "order-without-limit" in analyzer.analyze("SELECT a FROM t ORDER BY a").rule_ids()
        limited = analyzer.analyze("SELECT a FROM t ORDER BY a LIMIT 10")
        assert "order-without-limit" not in limited.rule_ids()

    def test_implicit_cross_join(self, analyzer: QueryAnalyzer) -> None:
        result = analyzer.analyze("SELECT a.x FROM a, b")
        [finding] = [f for f in result.findings if f.rule_id == "implicit-cross-join"]
        assert finding.severity == "error"

        joined = analyzer.analyze("SELECT a.x FROM a, b WHERE a.id = b.id")
        assert "implicit-cross-join" not in joined.rule_ids()

    def test_join_without_condition(self, analyzer: QueryAnalyzer) -> None:
        ids = analyzer.analyze("SELECT a.x FROM a JOIN b WHERE a.y > 1").rule_ids()

        assert "join-without-on" in ids
        assert "implicit-cross-join" not in ids

    def test_union_order_without_limit(self, analyzer: QueryAnalyzer) -> None:
        sql = "SELECT a FROM t UNION ALL SELECT a FROM u ORDER BY a"
        assert "order-without-limit" in analyzer.analyze(sql).rule_ids()
        assert "order-without-limit" not in analyzer.analyze(f"{sql} LIMIT 5").rule_ids()

    def test_multiple_statements(self, analyzer: QueryAnalyzer) -> None:
        result = analyzer.analyze("SELECT * FROM a; SELECT x FROM b ORDER BY x")
        assert {"select-star", "order-without-limit"} <= set(result.rule_ids())

    def test_structural_before_pattern(self, analyzer: QueryAnalyzer, dashboard_sql: str) -> None:
        ids = analyzer.analyze(dashboard_sql).rule_ids()

        assert {"cross-join", "order-without-limit", "non-spillable-list"} <= set(ids)
        assert ids.index("order-without-limit") < ids.index("cross-join")
        assert ids.index("cross-join") < ids.index("non-spillable-list")


class TestPatternFindings:
    def test_list_counted_once(self, analyzer: QueryAnalyzer) -> None:
        result = analyzer.analyze("SELECT list(a), list(b) FROM t GROUP BY c")
        found = [f for f in result.findings if f.rule_id == "non-spillable-list"]

        assert len(found) == 1
        assert "2x" in found[0].title

    def test_remote_scan(self, analyzer: QueryAnalyzer, remote_sql: str) -> None:
        ids = set(analyzer.analyze(remote_sql).rule_ids())
        assert {
            "remote-file-select-star",
            "read-remote-no-filter",
            "multiple-remote-scans",
            "read-parquet-no-hive",
        } <= ids

    def test_blocking_operator_levels(self, analyzer: QueryAnalyzer) -> None:
        def windows(n: int) -> str:
            cols = ", ".join(f"rank() OVER (PARTITION BY k ORDER BY c{i})" for i in range(n))
            return f"SELECT {cols} FROM t LIMIT 1"

        # Each window counts once for OVER and once for its ORDER BY.
        assert "many-blocking-operators" not in analyzer.analyze(windows(2)).rule_ids()
        warned = analyzer.analyze(windows(3))
        assert [f.severity for f in warned.findings if f.rule_id == "many-blocking-operators"] == [
            "warning"
        ]
        failed = analyzer.analyze(windows(4))
        assert [f.severity for f in failed.findings if f.rule_id == "many-blocking-operators"] == [
            "error"
        ]


class TestParseFailures:
    def test_unparseable_query_still_gets_pattern_findings(self, analyzer: QueryAnalyzer) -> None:
        result = analyzer.analyze("SELECT list(x) FROM t WHERE (((")

        assert result.parse_error
        assert "non-spillable-list" in result.rule_ids()

    def test_normalized_fallback_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        parser = MagicMock()
        parser.astify.side_effect = [SQLParseError("bad cast"), [SelectNode(columns=WILDCARD)]]
        analyzer = QueryAnalyzer(parser=parser)

        with caplog.at_level(logging.DEBUG, logger="duckcheck.analyzers.query_analyzer"):
            result = analyzer.analyze("SELECT * FROM t WHERE a::INT > 1")

        assert result.parse_error is None
        assert "select-star" in result.rule_ids()
        assert "Parsed after rewriting DuckDB-specific syntax" in caplog.text

    def test_no_parser(self, offline_analyzer: QueryAnalyzer) -> None:
        result = offline_analyzer.analyze("SELECT * FROM t ORDER BY a")

        assert result.parse_error == PARSER_UNAVAILABLE
        assert "select-star" not in result.rule_ids()
        assert "order-without-limit" not in result.rule_ids()

    def test_offline_pattern_rules_still_run(self, offline_analyzer: QueryAnalyzer) -> None:
        result = offline_analyzer.analyze("SELECT median(x) FROM t")
        assert result.rule_ids() == ["non-spillable-median"]


class TestRuleIsolation:
    def test_failing_pattern_rule_is_skipped(
        self,
        analyzer: QueryAnalyzer,
        monkeypatch: pytest.MonkeyPatch,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        rules = (Rule(("boom",), _explode), *query_analyzer.PATTERN_RULES)
        monkeypatch.setattr(query_analyzer, "PATTERN_RULES", rules)

        with caplog.at_level(logging.WARNING, logger="duckcheck.analyzers.query_analyzer"):
            result = analyzer.analyze("SELECT list(x) FROM t")

        assert "non-spillable-list" in result.rule_ids()
        assert "Rule _explode failed, skipping" in caplog.text

    def test_failing_structural_rule_is_skipped(
        self, analyzer: QueryAnalyzer, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        rules = (Rule(("boom",), _explode), *query_analyzer.STRUCTURAL_RULES)
        monkeypatch.setattr(query_analyzer, "STRUCTURAL_RULES", rules)

        assert "select-star" in analyzer.analyze("SELECT * FROM t").rule_ids()


class TestConfiguration:
    def test_invalid_config_raises(self) -> None:
        with pytest.raises(ValueError, match="Unsupported dialect"):
            QueryAnalyzer(AnalyzerConfig(dialect="oracle"))

    def test_disabled_rules(self) -> None:
        analyzer = QueryAnalyzer(AnalyzerConfig(disabled_rules=["select-star"]))
        result = analyzer.analyze("SELECT * FROM t ORDER BY a")

        assert "select-star" not in result.rule_ids()
        assert "order-without-limit" in result.rule_ids()

    def test_long_query_is_truncated(self, caplog: pytest.LogCaptureFixture) -> None:
        analyzer = QueryAnalyzer(AnalyzerConfig(max_query_length=20))

        with caplog.at_level(logging.WARNING):
            result = analyzer.analyze("SELECT a FROM t ORDER BY a")

        assert "order-without-limit" not in result.rule_ids()
        assert "analyzing the first 20" in caplog.text

    def test_normalized_only(self) -> None:
        analyzer = QueryAnalyzer(AnalyzerConfig(try_raw_parse_first=False))
        result = analyzer.analyze("SELECT * FROM t")

        assert result.parse_error is None
        assert "select-star" in result.rule_ids()


class TestDeduplicate:
    def test_keeps_first(self) -> None:
        first = build_finding("x", "info", "first", "m", "s", "memory")
        second = build_finding("x", "error", "second", "m", "s", "memory")
        other = build_finding("y", "info", "other", "m", "s", "memory")

        assert deduplicate([first, other, second]) == [first, other]
