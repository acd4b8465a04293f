"""duckcheck: static anti-pattern analysis for DuckDB SQL.

Flags queries that defeat column pruning, hold unspillable state in memory,
scan remote files wastefully, or ignore DuckDB idioms. Nothing is executed:
the query text is parsed when possible and pattern-matched always.
"""

from __future__ import annotations

__version__ = "1.0.0"

from duckcheck.analyzers.query_analyzer import QueryAnalyzer
from duckcheck.config import AnalyzerConfig
from duckcheck.models import AnalysisResult, Finding, TextRange


def analyze(sql: str, config: AnalyzerConfig | None = None) -> AnalysisResult:
    """Analyze one SQL query text and return its deduplicated findings.

    Example:
        >>> result = analyze("SELECT * FROM a, b")
        >>> "implicit-cross-join" in result.rule_ids()
        True
    """
    return QueryAnalyzer(config).analyze(sql)


__all__ = [
    "analyze",
    "QueryAnalyzer",
    "AnalyzerConfig",
    "AnalysisResult",
    "Finding",
    "TextRange",
    "__version__",
]
