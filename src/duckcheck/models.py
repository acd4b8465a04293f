"""Data classes for analysis findings and results."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

Severity = Literal["error", "warning", "info"]
Category = Literal["performance", "memory", "network", "schema", "best-practice"]

SEVERITY_RANK: dict[str, int] = {"info": 1, "warning": 2, "error": 3}


@dataclass(frozen=True)
class TextRange:
    """Character range ``[start, end)`` in the original query text."""

    start: int
    end: int

    def to_dict(self) -> dict[str, int]:
        return {"start": self.start, "end": self.end}


@dataclass
class Finding:
    """One detected issue in a query.

    Attributes:
        rule_id: Stable identifier of the rule that produced the finding.
        severity: 'error', 'warning' or 'info'.
        title: Short headline, may embed a computed count.
        message: Explanation of why the pattern is a problem.
        suggestion: How to fix or avoid it.
        category: 'performance', 'memory', 'network', 'schema' or 'best-practice'.
        fragment: Literal text that recurs for every instance of the issue.
        offset: Range of the first occurrence, when the rule located it directly.
    """

    rule_id: str
    severity: Severity
    title: str
    message: str
    suggestion: str
    category: Category
    fragment: str | None = None
    offset: TextRange | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "rule_id": self.rule_id,
            "severity": self.severity,
            "title": self.title,
            "message": self.message,
            "suggestion": self.suggestion,
            "category": self.category,
            "fragment": self.fragment,
            "offset": self.offset.to_dict() if self.offset else None,
        }


@dataclass
class AnalysisResult:
    """Findings for one query plus the parse diagnostic, if any."""

    findings: list[Finding] = field(default_factory=list)
    parse_error: str | None = None

    def counts_by_severity(self) -> dict[str, int]:
        counts = {"error": 0, "warning": 0, "info": 0}
        for f in self.findings:
            counts[f.severity] = counts.get(f.severity, 0) + 1
        return counts

    def has_severity(self, level: str) -> bool:
        """Return True if any finding is at or above ``level``."""
        threshold = SEVERITY_RANK[level]
        return any(SEVERITY_RANK[f.severity] >= threshold for f in self.findings)

    def rule_ids(self) -> list[str]:
        return [f.rule_id for f in self.findings]

    def to_dict(self) -> dict[str, Any]:
        return {
            "findings": [f.to_dict() for f in self.findings],
            "parse_error": self.parse_error,
        }
