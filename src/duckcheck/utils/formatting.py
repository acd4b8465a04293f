"""Output formatting helpers for duckcheck."""

from __future__ import annotations

from duckcheck.models import Finding
from duckcheck.utils.findings import locate_first


def severity_color(severity: str) -> str:
    """Return Rich color name for severity level."""
    colors = {
        "ERROR": "bold red",
        "WARNING": "yellow",
        "INFO": "cyan",
    }
    return colors.get(severity.upper(), "white")


def severity_icon(severity: str) -> str:
    """Return a one-character marker for severity level."""
    icons = {
        "ERROR": "✖",
        "WARNING": "⚠",
        "INFO": "ℹ",
    }
    return icons.get(severity.upper(), "")


def truncate(text: str, max_length: int = 80) -> str:
    """Truncate text with ellipsis if longer than max_length."""
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."


def line_col(text: str, offset: int) -> tuple[int, int]:
    """Convert a character offset into a 1-based (line, column) pair.

    Args:
        text: The text the offset points into.
        offset: Character offset; clamped to the text bounds.

    Returns:
        Tuple like (3, 12) for line 3, column 12.
    """
    offset = max(0, min(offset, len(text)))
    line = text.count("\n", 0, offset) + 1
    column = offset - (text.rfind("\n", 0, offset) + 1) + 1
    return line, column


def finding_location(text: str, finding: Finding) -> str:
    """Return "line:col" of the finding's offset (or first fragment hit), or "-"."""
    position = finding.offset
    if position is None and finding.fragment:
        position = locate_first(text, finding.fragment)
    if position is None:
        return "-"
    line, column = line_col(text, position.start)
    return f"{line}:{column}"
