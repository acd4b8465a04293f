"""Helpers shared by structural and pattern rules to build and locate findings."""

from __future__ import annotations

import re

from duckcheck.models import Category, Finding, Severity, TextRange


def build_finding(
    rule_id: str,
    severity: Severity,
    title: str,
    message: str,
    suggestion: str,
    category: Category,
    fragment: str | None = None,
    offset: TextRange | None = None,
) -> Finding:
    """Construct a Finding. Performs no I/O and cannot fail."""
    return Finding(
        rule_id=rule_id,
        severity=severity,
        title=title,
        message=message,
        suggestion=suggestion,
        category=category,
        fragment=fragment,
        offset=offset,
    )


def locate_first(text: str, literal: str) -> TextRange | None:
    """Case-insensitive position of the first occurrence of ``literal``."""
    if not literal:
        return None
    match = re.search(re.escape(literal), text, re.IGNORECASE)
    if match is None:
        return None
    return TextRange(match.start(), match.end())


def locate_all(text: str, literal: str) -> list[TextRange]:
    """Case-insensitive, non-overlapping positions of every occurrence of ``literal``."""
    if not literal:
        return []
    return [
        TextRange(m.start(), m.end()) for m in re.finditer(re.escape(literal), text, re.IGNORECASE)
    ]


def span_of(match: re.Match[str], base: int = 0) -> TextRange:
    """Range of a regex match, shifted by ``base`` when matching a slice."""
    return TextRange(base + match.start(), base + match.end())


def find_all(sql: str, pattern: re.Pattern[str]) -> list[re.Match[str]]:
    return list(pattern.finditer(sql))


def count_matches(sql: str, pattern: re.Pattern[str]) -> int:
    return sum(1 for _ in pattern.finditer(sql))


def highlight_ranges(text: str, finding: Finding) -> list[TextRange]:
    """Ranges a renderer should decorate for ``finding``.

    A fragment is searched for all occurrences; otherwise the precomputed
    offset is used on its own.
    """
    if finding.fragment:
        ranges = locate_all(text, finding.fragment)
        if ranges:
            return ranges
    if finding.offset is not None:
        return [finding.offset]
    return []
