"""CLI entry point for duckcheck using Click."""

from __future__ import annotations

import logging
import sys
from typing import IO, Any

import click
from rich.console import Console
from rich.table import Table

from duckcheck import __version__
from duckcheck.analyzers.query_analyzer import QueryAnalyzer
from duckcheck.analyzers.structural import STRUCTURAL_RULES
from duckcheck.config import SUPPORTED_DIALECTS, AnalyzerConfig
from duckcheck.rules.registry import PATTERN_RULES

console = Console()


@click.group()
@click.version_option(version=__version__, prog_name="duckcheck")
def main() -> None:
    """duckcheck: static anti-pattern analysis for DuckDB SQL.

    Flags SELECT *, unspillable aggregates, wasteful remote scans and other
    patterns that make DuckDB queries slow or run out of memory.
    """


@main.command()
@click.argument("file", type=click.File("r", encoding="utf-8"), required=False)
@click.option("--sql", "sql_text", default=None, help="Query text to analyze")
@click.option(
    "--format",
    "-f",
    "fmt",
    default="console",
    type=click.Choice(["console", "json"]),
    help="Output format",
)
@click.option("--output", "-o", default=None, help="Output file path")
@click.option(
    "--fail-on",
    default="never",
    type=click.Choice(["error", "warning", "info", "never"]),
    help="Exit with status 1 when a finding at or above this severity exists",
)
@click.option(
    "--dialect",
    default="duckdb",
    type=click.Choice(list(SUPPORTED_DIALECTS)),
    help="Parser dialect",
)
@click.option("--disable", "disabled", multiple=True, help="Rule id to suppress (repeatable)")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
def analyze(file: IO[str] | None, sql_text: str | None, **kwargs: Any) -> None:
    """Analyze a query from FILE, --sql, or stdin ('-')."""
    _configure_logging(kwargs.get("verbose", False))

    if sql_text is not None and file is not None:
        raise click.UsageError("Pass either FILE or --sql, not both.")
    if sql_text is None and file is None:
        raise click.UsageError("No query given. Pass FILE, --sql, or '-' to read stdin.")

    if file is not None:
        sql = file.read()
        name = getattr(file, "name", None)
        source = name if isinstance(name, str) and name != "-" else "<stdin>"
    else:
        sql = sql_text or ""
        source = ""

    config = AnalyzerConfig(
        dialect=kwargs.get("dialect", "duckdb"),
        disabled_rules=list(kwargs.get("disabled", ())),
    )
    try:
        analyzer = QueryAnalyzer(config)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    result = analyzer.analyze(sql)
    fmt = kwargs.get("fmt", "console")
    output_path = kwargs.get("output")

    if fmt == "json":
        from duckcheck.reporters.json_reporter import JSONReporter

        reporter = JSONReporter(result, sql.strip(), source=source)
        if output_path:
            reporter.export(output_path)
            console.print(f"[green]Report saved to:[/green] {output_path}")
        else:
            click.echo(reporter.render())
    else:
        from duckcheck.reporters.console_reporter import ConsoleReporter

        ConsoleReporter(
            result, sql.strip(), source=source, console=console, verbose=kwargs["verbose"]
        ).print_report()
        if output_path:
            from duckcheck.reporters.json_reporter import JSONReporter

            JSONReporter(result, sql.strip(), source=source).export(output_path)
            console.print(f"\n[green]Report saved to:[/green] {output_path}")

    fail_on = kwargs.get("fail_on", "never")
    if fail_on != "never" and result.has_severity(fail_on):
        sys.exit(1)


@main.command()
def rules() -> None:
    """List every check in evaluation order."""
    table = Table(title="Rules")
    table.add_column("Kind")
    table.add_column("Rule ID", style="bold")
    table.add_column("Detects")

    for kind, registered in (("structural", STRUCTURAL_RULES), ("pattern", PATTERN_RULES)):
        for rule in registered:
            table.add_row(kind, ", ".join(rule.rule_ids), rule.summary)

    console.print(table)


def _configure_logging(verbose: bool) -> None:
    """Configure logging level."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


if __name__ == "__main__":
    main()
