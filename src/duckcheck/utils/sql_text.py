"""Text-level SQL helpers: balanced parentheses, clause slicing, table references.

These work on raw query text without a grammar. Every helper that returns
positions reports them as offsets into the text it was given, so callers can
map results straight back onto the original query.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache

from duckcheck.utils import sql_patterns

_IDENT = r'(?:"[^"]+"|[A-Za-z_][\w$]*)'
_QUALIFIED_NAME = re.compile(rf"{_IDENT}(?:\s*\.\s*{_IDENT}){{0,2}}")
_ALIAS = re.compile(rf"\s+(?:as\s+)?({_IDENT})", re.IGNORECASE)
_FROM_OR_JOIN = re.compile(r"\b(from|join)\s+", re.IGNORECASE)
_OPEN_PAREN = re.compile(r"\s*\(")
_LIST_COMMA = re.compile(r"\s*,")
_NAME_DOT = re.compile(r"\s*\.\s*")
_DISTINCT_BEFORE = re.compile(r"\bdistinct\s*$", re.IGNORECASE)
_WITH = re.compile(r"\bwith\b(?:\s+recursive\b)?", re.IGNORECASE)
_CTE_DEF = re.compile(
    rf"\s*({_IDENT})(?:\s*\([^()]*\))?\s+as\s*(?:(?:not\s+)?materialized\s*)?\(",
    re.IGNORECASE,
)
_CALLS_WITH_FROM = ("extract", "substring", "trim", "position", "overlay")

# Words that can follow FROM/JOIN but are not table names, or that end a
# table reference instead of aliasing it.
_NOT_A_TABLE = {
    "select",
    "lateral",
    "unnest",
    "values",
    "with",
    "table",
}
_NOT_AN_ALIAS = {
    "on",
    "using",
    "where",
    "join",
    "inner",
    "left",
    "right",
    "full",
    "outer",
    "cross",
    "natural",
    "positional",
    "asof",
    "semi",
    "anti",
    "group",
    "order",
    "limit",
    "offset",
    "having",
    "qualify",
    "window",
    "union",
    "except",
    "intersect",
    "pivot",
    "unpivot",
    "sample",
    "tablesample",
    "returning",
    "set",
    "to",
    "as",
}


@dataclass(frozen=True)
class TableRef:
    """A table referenced after FROM or JOIN."""

    name: str
    parts: tuple[str, ...]
    alias: str | None
    start: int
    end: int


@dataclass(frozen=True)
class CteBlock:
    """A named-query block of a WITH clause."""

    name: str
    body: str
    start: int
    end: int


def find_closing_paren(text: str, open_index: int) -> int | None:
    """Return the index just past the parenthesis matching ``text[open_index]``.

    Parentheses inside single-quoted strings and double-quoted identifiers are
    ignored. Returns None when the parenthesis is never closed.
    """
    depth = 0
    quote: str | None = None
    for i in range(open_index, len(text)):
        ch = text[i]
        if quote:
            if ch == quote:
                quote = None
        elif ch in ("'", '"'):
            quote = ch
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return i + 1
    return None


@lru_cache(maxsize=None)
def call_pattern(func_name: str) -> re.Pattern[str]:
    return re.compile(rf"\b{re.escape(func_name)}\s*\(", re.IGNORECASE)


def replace_balanced_call(text: str, func_name: str, replacement: str) -> str:
    """Replace every balanced call ``func_name(...)`` with ``replacement``.

    The whole argument list is consumed as one unit, so nested calls such as
    ``list_transform(json_extract_string(x, '$.a'), t -> UPPER(t))`` are
    replaced entirely. Unclosed calls are left untouched.
    """
    pattern = call_pattern(func_name)
    pos = 0
    while True:
        match = pattern.search(text, pos)
        if match is None:
            return text
        end = find_closing_paren(text, match.end() - 1)
        if end is None:
            pos = match.end()
            continue
        text = text[: match.start()] + replacement + text[end:]
        pos = match.start() + len(replacement)


def mask_balanced_calls(text: str, func_names: tuple[str, ...]) -> str:
    """Blank out calls to ``func_names`` with spaces, keeping every offset intact."""
    for name in func_names:
        pattern = call_pattern(name)
        pos = 0
        while True:
            match = pattern.search(text, pos)
            if match is None:
                break
            end = find_closing_paren(text, match.end() - 1)
            if end is None:
                pos = match.end()
                continue
            text = text[: match.start()] + " " * (end - match.start()) + text[end:]
            pos = end
    return text


def top_level_text(body: str) -> str:
    """Blank the contents of nested parentheses in ``body``, keeping offsets."""
    out: list[str] = []
    depth = 0
    quote: str | None = None
    for ch in body:
        if quote:
            if ch == quote:
                quote = None
            out.append(ch if depth == 0 else " ")
            continue
        if ch in ("'", '"'):
            quote = ch
            out.append(ch if depth == 0 else " ")
        elif ch == "(":
            depth += 1
            out.append(ch if depth == 1 else " ")
        elif ch == ")":
            out.append(ch if depth <= 1 else " ")
            depth = max(depth - 1, 0)
        else:
            out.append(ch if depth == 0 else " ")
    return "".join(out)


def _clause_end(text: str, start: int, terminator: re.Pattern[str]) -> int:
    depth = 0
    quote: str | None = None
    for i in range(start, len(text)):
        ch = text[i]
        if quote:
            if ch == quote:
                quote = None
        elif ch in ("'", '"'):
            quote = ch
        elif ch == "(":
            depth += 1
        elif ch == ")":
            if depth == 0:
                return i
            depth -= 1
        elif depth == 0:
            if ch == ";":
                return i
            prev = text[i - 1] if i > 0 else " "
            if not (prev.isalnum() or prev == "_") and terminator.match(text, i):
                return i
    return len(text)


def clause_bodies(
    sql: str, keyword: re.Pattern[str], terminator: re.Pattern[str]
) -> list[tuple[int, str]]:
    """Slice out the body of every clause introduced by ``keyword``.

    A body runs from the end of the keyword to the first ``terminator`` at the
    same nesting level, an unmatched closing parenthesis, a semicolon or the
    end of the text.

    Returns:
        List of ``(absolute_start, body_text)`` tuples.
    """
    bodies: list[tuple[int, str]] = []
    for match in keyword.finditer(sql):
        start = match.end()
        end = _clause_end(sql, start, terminator)
        bodies.append((start, sql[start:end]))
    return bodies


def _unquote(ident: str) -> str:
    return ident.strip('"').lower()


def iter_table_refs(sql: str) -> list[TableRef]:
    """Find the tables referenced after FROM and JOIN.

    Derived tables, table functions and string-literal file paths are skipped.
    FROM inside EXTRACT/SUBSTRING/TRIM/POSITION calls and ``IS DISTINCT FROM``
    is not treated as a table reference.
    """
    masked = mask_balanced_calls(sql, _CALLS_WITH_FROM)
    refs: list[TableRef] = []
    for match in _FROM_OR_JOIN.finditer(masked):
        if match.group(1).lower() == "from" and _DISTINCT_BEFORE.search(
            masked, max(0, match.start() - 20), match.start()
        ):
            continue
        name_match = _QUALIFIED_NAME.match(masked, match.end())
        if name_match is None:
            continue
        if _OPEN_PAREN.match(masked, name_match.end()):
            continue
        raw_parts = _NAME_DOT.split(name_match.group(0))
        parts = tuple(_unquote(p) for p in raw_parts)
        if len(parts) == 1 and parts[0] in _NOT_A_TABLE:
            continue
        alias = None
        alias_match = _ALIAS.match(masked, name_match.end())
        if alias_match and _unquote(alias_match.group(1)) not in _NOT_AN_ALIAS:
            alias = _unquote(alias_match.group(1))
        refs.append(
            TableRef(
                name=".".join(parts),
                parts=parts,
                alias=alias,
                start=name_match.start(),
                end=name_match.end(),
            )
        )
    return refs


def cte_bodies(sql: str) -> list[list[CteBlock]]:
    """Return the named-query blocks of every WITH clause, one list per clause."""
    groups: list[list[CteBlock]] = []
    for with_match in _WITH.finditer(sql):
        blocks: list[CteBlock] = []
        pos = with_match.end()
        while True:
            head = _CTE_DEF.match(sql, pos)
            if head is None:
                break
            open_index = head.end() - 1
            end = find_closing_paren(sql, open_index)
            if end is None:
                break
            blocks.append(
                CteBlock(
                    name=_unquote(head.group(1)),
                    body=sql[open_index + 1 : end - 1],
                    start=open_index + 1,
                    end=end - 1,
                )
            )
            comma = _LIST_COMMA.match(sql, end)
            if comma is None:
                break
            pos = comma.end()
        if blocks:
            groups.append(blocks)
    return groups


def cte_names(sql: str) -> set[str]:
    return {block.name for group in cte_bodies(sql) for block in group}


def split_top_level(body: str, separator: str = ",") -> list[str]:
    """Split ``body`` on ``separator`` where it is outside parentheses and quotes."""
    parts: list[str] = []
    depth = 0
    quote: str | None = None
    start = 0
    for i, ch in enumerate(body):
        if quote:
            if ch == quote:
                quote = None
        elif ch in ("'", '"'):
            quote = ch
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth = max(depth - 1, 0)
        elif ch == separator and depth == 0:
            parts.append(body[start:i])
            start = i + 1
    parts.append(body[start:])
    return parts


def where_bodies(sql: str) -> list[tuple[int, str]]:
    """Bodies of every WHERE clause."""
    return clause_bodies(sql, sql_patterns.WHERE_KEYWORD, sql_patterns.WHERE_TERMINATOR)


def join_conditions(sql: str) -> list[tuple[int, str]]:
    """Bodies of every ON clause that follows a JOIN.

    ON inside PIVOT or ``ON CONFLICT`` before the first JOIN is ignored.
    """
    first_join = sql_patterns.JOIN_KEYWORD.search(sql)
    if first_join is None:
        return []
    return [
        (start, body)
        for start, body in clause_bodies(sql, sql_patterns.ON_KEYWORD, sql_patterns.ON_TERMINATOR)
        if start > first_join.end()
    ]
