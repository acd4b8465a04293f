"""Tests for the rule tables."""

from __future__ import annotations

import pytest

from duckcheck.analyzers.structural import STRUCTURAL_RULES
from duckcheck.rules.registry import PATTERN_RULES, Rule, all_rule_ids

SAMPLE_QUERIES = [
    "SELECT * FROM read_parquet('s3://lake/**/*.parquet') ORDER BY ts",
    "SELECT list(a), median(b), string_agg(c, ',' ORDER BY c) FROM t GROUP BY 1",
    "SELECT count(id), sum(CASE WHEN ok THEN 1 ELSE 0 END) FROM t WHERE n LIKE 'ab%'",
    "WITH a AS (SELECT * FROM t), b AS (SELECT * FROM a) SELECT * FROM b UNION SELECT * FROM c",
    "COPY (SELECT x::TIMESTAMP, y::TIMESTAMPTZ FROM t) TO 'out.parquet'",
]


class TestPatternRules:
    def test_rule_ids_are_unique(self) -> None:
        structural = [rule_id for rule in STRUCTURAL_RULES for rule_id in rule.rule_ids]
        ids = all_rule_ids() + structural
        assert len(ids) == len(set(ids))

    def test_evaluation_order(self) -> None:
        assert PATTERN_RULES[0].rule_ids == ("non-spillable-list",)
        assert PATTERN_RULES[-1].rule_ids == ("timestamp-vs-timestamptz",)

    def test_every_rule_has_a_summary(self) -> None:
        for rule in (*STRUCTURAL_RULES, *PATTERN_RULES):
            assert rule.summary, rule.name

    @pytest.mark.parametrize("rule", PATTERN_RULES, ids=lambda r: r.name)
    def test_trivial_query_is_clean(self, rule: Rule) -> None:
        assert rule.check("SELECT 1") == []

    def test_rules_only_emit_their_own_ids(self) -> None:
        for sql in SAMPLE_QUERIES:
            for rule in PATTERN_RULES:
                for finding in rule.check(sql):
                    assert finding.rule_id in rule.rule_ids, rule.name
