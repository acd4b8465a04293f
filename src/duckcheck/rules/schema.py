"""Schema rules: casts that point at mistyped columns."""

from __future__ import annotations

from duckcheck.models import Finding
from duckcheck.utils import sql_patterns as p
from duckcheck.utils.findings import build_finding, count_matches, span_of
from duckcheck.utils.sql_text import join_conditions

EXCESSIVE_CAST_THRESHOLD = 8


def check_cast_in_join_key(sql: str) -> list[Finding]:
    """A cast inside a JOIN ... ON condition."""
    for start, body in join_conditions(sql):
        match = p.CAST_EXPRESSION.search(body)
        if match is not None:
            return [
                build_finding(
                    "cast-in-join-key",
                    "warning",
                    "Type cast in join condition",
                    "Casting a join key means the two sides are stored with different "
                    "types. The cast runs for every row on the probe side and can stop "
                    "DuckDB from using statistics on the key.",
                    "Store the join keys with the same type in both tables, or cast once in "
                    "a CTE before the join.",
                    "schema",
                    offset=span_of(match, start),
                )
            ]
    return []


def check_excessive_casts(sql: str) -> list[Finding]:
    """Eight or more casts, counting both :: and CAST()."""
    count = count_matches(sql, p.CAST_OPERATOR) + count_matches(sql, p.CAST_CALL)
    if count < EXCESSIVE_CAST_THRESHOLD:
        return []
    return [
        build_finding(
            "excessive-casts",
            "info",
            f"{count} type cast operations",
            f"This query has {count} explicit type casts. That usually means data is "
            "stored as JSON or VARCHAR and cast at query time, which adds CPU work and "
            "hides the real types from the optimizer.",
            "Store data in native types (BOOLEAN, INTEGER, TIMESTAMP, ...) at ingest time. "
            "For JSON payloads, extract frequently used fields into typed columns.",
            "schema",
        )
    ]


def check_mixed_timestamp_types(sql: str) -> list[Finding]:
    """Both TIMESTAMPTZ and plain TIMESTAMP appear."""
    if p.ZONED_TIMESTAMP.search(sql) is None:
        return []
    unzoned = p.UNZONED_TIMESTAMP.search(sql)
    if unzoned is None:
        return []
    return [
        build_finding(
            "timestamp-vs-timestamptz",
            "warning",
            "TIMESTAMP mixed with TIMESTAMPTZ",
            "The query uses both TIMESTAMP and TIMESTAMP WITH TIME ZONE. Comparing or "
            "joining them applies an implicit conversion through the session TimeZone "
            "setting, so results can change between environments.",
            "Pick one type. Store instants as TIMESTAMPTZ and convert explicitly with "
            "AT TIME ZONE where a local time is needed.",
            "schema",
            offset=span_of(unzoned),
        )
    ]
