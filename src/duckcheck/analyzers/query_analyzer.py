"""Analysis orchestrator: parse, run every rule, deduplicate."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from duckcheck.analyzers.structural import STRUCTURAL_RULES
from duckcheck.config import AnalyzerConfig
from duckcheck.models import AnalysisResult, Finding
from duckcheck.parsers.parse_adapter import ParseAdapter, SQLParser
from duckcheck.parsers.sqlglot_parser import SqlglotParser
from duckcheck.rules.registry import PATTERN_RULES, Rule

logger = logging.getLogger(__name__)

# Sentinel: None means "no parser available", so it cannot double as the default.
_DEFAULT_PARSER: Any = object()


def deduplicate(findings: Iterable[Finding]) -> list[Finding]:
    """Keep the first finding per rule id, preserving emission order."""
    seen: set[str] = set()
    unique: list[Finding] = []
    for finding in findings:
        if finding.rule_id in seen:
            continue
        seen.add(finding.rule_id)
        unique.append(finding)
    return unique


class QueryAnalyzer:
    """Analyze one SQL query text for DuckDB anti-patterns.

    Structural rules run over the parsed tree when parsing succeeds; pattern
    rules always run over the trimmed original text. The analyzer holds no
    state between calls, so one instance can serve any number of queries.

    Example:
        >>> result = QueryAnalyzer().analyze("SELECT * FROM t ORDER BY a")
        >>> [f.rule_id for f in result.findings]
        ['select-star', 'order-without-limit']
    """

    def __init__(
        self,
        config: AnalyzerConfig | None = None,
        parser: SQLParser | None = _DEFAULT_PARSER,
    ) -> None:
        self.config = config or AnalyzerConfig()
        errors = self.config.validate()
        if errors:
            raise ValueError("; ".join(errors))
        if parser is _DEFAULT_PARSER:
            parser = SqlglotParser()
        self.adapter = ParseAdapter(
            parser,
            dialect=self.config.dialect,
            try_raw_first=self.config.try_raw_parse_first,
        )

    def analyze(self, sql: str) -> AnalysisResult:
        """Return the deduplicated findings for ``sql``. Never raises."""
        text = (sql or "").strip()
        if not text:
            return AnalysisResult()

        limit = self.config.max_query_length
        if len(text) > limit:
            logger.warning(
                "Query is %d characters, analyzing the first %d only", len(text), limit
            )
            text = text[:limit]

        logger.info("Analyzing query (%d characters)", len(text))
        outcome = self.adapter.parse(text)
        if outcome.normalized:
            logger.debug("Parsed after rewriting DuckDB-specific syntax")

        findings: list[Finding] = []
        for statement in outcome.statements:
            for rule in STRUCTURAL_RULES:
                findings.extend(self._run(rule, statement, text))
        for rule in PATTERN_RULES:
            findings.extend(self._run(rule, text))

        unique = deduplicate(findings)
        if self.config.disabled_rules:
            disabled = set(self.config.disabled_rules)
            unique = [f for f in unique if f.rule_id not in disabled]

        logger.info(
            "Analysis complete: %d finding(s)%s",
            len(unique),
            ", parse failed" if outcome.error else "",
        )
        return AnalysisResult(findings=unique, parse_error=outcome.error)

    @staticmethod
    def _run(rule: Rule, *args: object) -> list[Finding]:
        try:
            return list(rule.check(*args))
        except Exception:
            logger.warning("Rule %s failed, skipping", rule.name, exc_info=True)
            return []
