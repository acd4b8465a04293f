"""Tests for the finding assembler helpers."""

from __future__ import annotations

import re

from duckcheck.models import AnalysisResult, TextRange
from duckcheck.utils.findings import (
    build_finding,
    count_matches,
    highlight_ranges,
    locate_all,
    locate_first,
    span_of,
)


def _finding(**overrides):
    fields = {
        "rule_id": "cross-join",
        "severity": "warning",
        "title": "CROSS JOIN detected",
        "message": "m",
        "suggestion": "s",
        "category": "memory",
    }
    fields.update(overrides)
    return build_finding(**fields)


class TestLocate:
    def test_locate_first_is_case_insensitive(self) -> None:
        assert locate_first("select a FROM t Order By a", "order by") == TextRange(16, 24)

    def test_locate_first_missing(self) -> None:
        assert locate_first("SELECT 1", "order by") is None

    def test_locate_first_empty_literal(self) -> None:
        assert locate_first("SELECT 1", "") is None

    def test_locate_all_finds_every_occurrence(self) -> None:
        text = "SELECT * FROM a cross join b CROSS JOIN c"
        ranges = locate_all(text, "CROSS JOIN")

        assert ranges == [TextRange(16, 26), TextRange(29, 39)]
        assert [text[r.start : r.end].upper() for r in ranges] == ["CROSS JOIN"] * 2

    def test_locate_all_does_not_overlap(self) -> None:
        assert locate_all("aaaa", "aa") == [TextRange(0, 2), TextRange(2, 4)]

    def test_literal_is_not_a_regex(self) -> None:
        assert locate_all("a || b || c", "||") == [TextRange(2, 4), TextRange(7, 9)]

    def test_span_of_shifts_by_base(self) -> None:
        match = re.search("b", "abc")
        assert match is not None
        assert span_of(match, 10) == TextRange(11, 12)

    def test_count_matches(self) -> None:
        assert count_matches("list(a), LIST(b)", re.compile(r"list\(", re.I)) == 2


class TestBuildFinding:
    def test_defaults(self) -> None:
        finding = _finding()

        assert finding.fragment is None
        assert finding.offset is None
        assert finding.to_dict()["offset"] is None

    def test_to_dict_includes_offset(self) -> None:
        finding = _finding(fragment="CROSS JOIN", offset=TextRange(3, 13))

        assert finding.to_dict()["offset"] == {"start": 3, "end": 13}
        assert finding.to_dict()["fragment"] == "CROSS JOIN"


class TestHighlightRanges:
    def test_fragment_resolves_all_occurrences(self) -> None:
        text = "SELECT * FROM a cross join b CROSS JOIN c"
        finding = _finding(fragment="CROSS JOIN", offset=TextRange(16, 26))

        assert len(highlight_ranges(text, finding)) == 2

    def test_offset_used_without_fragment(self) -> None:
        finding = _finding(offset=TextRange(0, 6))
        assert highlight_ranges("SELECT 1", finding) == [TextRange(0, 6)]

    def test_offset_used_when_fragment_absent_from_text(self) -> None:
        finding = _finding(fragment="CROSS JOIN", offset=TextRange(0, 6))
        assert highlight_ranges("SELECT 1", finding) == [TextRange(0, 6)]

    def test_nothing_to_highlight(self) -> None:
        assert highlight_ranges("SELECT 1", _finding()) == []


class TestAnalysisResult:
    def test_counts_and_threshold(self) -> None:
        result = AnalysisResult(
            findings=[_finding(severity="error"), _finding(rule_id="x", severity="info")]
        )

        assert result.counts_by_severity() == {"error": 1, "warning": 0, "info": 1}
        assert result.has_severity("warning")
        assert result.has_severity("error")

    def test_info_only_does_not_reach_warning(self) -> None:
        result = AnalysisResult(findings=[_finding(severity="info")])

        assert not result.has_severity("warning")
        assert result.has_severity("info")

    def test_to_dict(self) -> None:
        result = AnalysisResult(parse_error="boom")
        assert result.to_dict() == {"findings": [], "parse_error": "boom"}
