"""Console reporter: Rich terminal output."""

from __future__ import annotations

from datetime import datetime

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from duckcheck.models import SEVERITY_RANK, AnalysisResult
from duckcheck.utils.formatting import finding_location, severity_color, severity_icon, truncate


class ConsoleReporter:
    """Render analysis results to the terminal using Rich.

    Findings are listed most severe first; rules of equal severity keep the
    order the analyzer emitted them in.
    """

    def __init__(
        self,
        result: AnalysisResult,
        sql: str,
        source: str = "",
        console: Console | None = None,
        verbose: bool = False,
    ) -> None:
        self.result = result
        self.sql = sql
        self.source = source
        self.console = console or Console()
        self.verbose = verbose

    def print_report(self) -> None:
        """Print the full analysis report to the console."""
        self._print_header()
        self._print_parse_warning()
        self._print_summary()
        self._print_findings()

    def _print_header(self) -> None:
        query = " ".join(self.sql.split())
        self.console.print(
            Panel(
                f"[bold white]duckcheck Report[/]\n"
                f"Source: {escape(self.source or '<inline>')}\n"
                f"Query: {escape(truncate(query, 70))}\n"
                f"Scanned: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
                style="bold blue",
            )
        )

    def _print_parse_warning(self) -> None:
        if not self.result.parse_error:
            return
        self.console.print(
            f"[yellow]Could not parse query, structural checks skipped:[/] "
            f"{escape(self.result.parse_error)}"
        )

    def _print_summary(self) -> None:
        counts = self.result.counts_by_severity()
        parts = [
            f"[{severity_color(level)}]{counts[level]} {level}[/]"
            for level in ("error", "warning", "info")
        ]
        self.console.print(f"Findings: {len(self.result.findings)} ({', '.join(parts)})")

    def _print_findings(self) -> None:
        if not self.result.findings:
            self.console.print("[green]No issues found.[/green]")
            return

        table = Table(title="Findings")
        table.add_column("Severity")
        table.add_column("Rule", style="bold")
        table.add_column("Category")
        table.add_column("Location", justify="right")
        table.add_column("Issue")

        ordered = sorted(
            self.result.findings, key=lambda f: SEVERITY_RANK[f.severity], reverse=True
        )
        for finding in ordered:
            color = severity_color(finding.severity)
            detail = escape(finding.title)
            if self.verbose:
                detail += f"\n[dim]{escape(finding.message)}[/]"
            detail += f"\n[green]Fix:[/] {escape(finding.suggestion)}"
            table.add_row(
                f"[{color}]{severity_icon(finding.severity)} {finding.severity.upper()}[/]",
                finding.rule_id,
                finding.category,
                finding_location(self.sql, finding),
                detail,
            )

        self.console.print(table)
