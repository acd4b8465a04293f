"""Best-effort parsing: raw text first, normalized text as the fallback."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol

from duckcheck.parsers.normalizer import normalize
from duckcheck.parsers.query_tree import Statement

logger = logging.getLogger(__name__)

PARSER_UNAVAILABLE = "SQL parser unavailable"
GENERIC_PARSE_ERROR = "Failed to parse SQL"


class SQLParser(Protocol):
    """Anything that turns SQL text into query-tree statements or raises."""

    def astify(self, sql: str, dialect: str = "duckdb") -> list[Statement]: ...


@dataclass
class ParseOutcome:
    """Result of a parse attempt.

    Attributes:
        statements: Parsed statements; empty when parsing failed.
        error: Message of the last parse failure, or None on success.
        normalized: True when the statements came from the normalized text.
    """

    statements: list[Statement] = field(default_factory=list)
    error: str | None = None
    normalized: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None


class ParseAdapter:
    """Wrap a parser so that no parser exception ever reaches the caller."""

    def __init__(
        self,
        parser: SQLParser | None,
        dialect: str = "duckdb",
        try_raw_first: bool = True,
    ) -> None:
        self.parser = parser
        self.dialect = dialect
        self.try_raw_first = try_raw_first

    def parse(self, sql: str) -> ParseOutcome:
        """Parse ``sql``, retrying on its normalized form when the raw text fails."""
        if self.parser is None:
            return ParseOutcome(error=PARSER_UNAVAILABLE)

        if self.try_raw_first:
            try:
                return ParseOutcome(statements=self.parser.astify(sql, self.dialect))
            except Exception as e:
                logger.debug("Raw parse failed, retrying on normalized text: %s", e)

        try:
            statements = self.parser.astify(normalize(sql), self.dialect)
        except Exception as e:
            message = str(e) or GENERIC_PARSE_ERROR
            logger.info("Could not parse query: %s", message)
            return ParseOutcome(error=message)
        return ParseOutcome(statements=statements, normalized=True)
