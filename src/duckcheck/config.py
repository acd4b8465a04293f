"""Configuration for query analysis behavior."""

from __future__ import annotations

from dataclasses import dataclass, field

SUPPORTED_DIALECTS = ("duckdb", "postgres", "ansi")


@dataclass
class AnalyzerConfig:
    """Configuration for a QueryAnalyzer.

    Attributes:
        dialect: Dialect hint passed to the SQL parser.
        try_raw_parse_first: Parse the untouched text before falling back to
            the normalized text. When False, only the normalized text is parsed.
        max_query_length: Longer input is truncated to this many characters
            before analysis.
        disabled_rules: Rule ids to drop from the result.
    """

    dialect: str = "duckdb"
    try_raw_parse_first: bool = True
    max_query_length: int = 1_000_000
    disabled_rules: list[str] = field(default_factory=list)

    def validate(self) -> list[str]:
        """Validate configuration and return list of errors."""
        errors: list[str] = []
        if self.dialect not in SUPPORTED_DIALECTS:
            errors.append(f"Unsupported dialect: {self.dialect}")
        if self.max_query_length < 1:
            errors.append(f"max_query_length must be positive, got {self.max_query_length}")
        return errors
