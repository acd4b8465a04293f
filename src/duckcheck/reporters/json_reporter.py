"""JSON report exporter."""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any

from duckcheck import __version__
from duckcheck.models import AnalysisResult
from duckcheck.utils.findings import highlight_ranges


class JSONReporter:
    """Export analysis results as machine-readable JSON.

    Each finding carries the ranges an editor should highlight, so consumers
    do not need to re-run fragment lookups against the query text.
    """

    def __init__(self, result: AnalysisResult, sql: str, source: str = "") -> None:
        self.result = result
        self.sql = sql
        self.source = source

    def to_dict(self) -> dict[str, Any]:
        findings = []
        for finding in self.result.findings:
            entry = finding.to_dict()
            entry["highlights"] = [r.to_dict() for r in highlight_ranges(self.sql, finding)]
            findings.append(entry)

        return {
            "metadata": {
                "tool": "duckcheck",
                "version": __version__,
                "generated_at": datetime.now().isoformat(),
                "source": self.source,
                "query_length": len(self.sql),
            },
            "parse_error": self.result.parse_error,
            "summary": {
                "total": len(self.result.findings),
                **self.result.counts_by_severity(),
            },
            "findings": findings,
        }

    def render(self) -> str:
        return json.dumps(self.to_dict(), indent=2, default=str, ensure_ascii=False)

    def export(self, output_path: str) -> None:
        """Export report to JSON file.

        Args:
            output_path: Path to write the JSON file.
        """
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2, default=str, ensure_ascii=False)
