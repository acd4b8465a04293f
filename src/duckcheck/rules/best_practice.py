"""Best-practice rules: DuckDB idioms that are clearer or safer than the generic SQL."""

from __future__ import annotations

from duckcheck.models import Finding, TextRange
from duckcheck.utils import sql_patterns as p
from duckcheck.utils.findings import build_finding, count_matches, span_of
from duckcheck.utils.sql_text import cte_bodies, where_bodies

LEFT_JOIN_ON_TRUE_THRESHOLD = 5
OR_CHAIN_THRESHOLD = 4
CASE_BRANCH_THRESHOLD = 10
BETWEEN_LOOKAHEAD = 60


def check_chained_select_star(sql: str) -> list[Finding]:
    """SELECT * in two or more CTEs and in the final SELECT."""
    blocks = [block for group in cte_bodies(sql) for block in group]
    starred = [block for block in blocks if p.SELECT_STAR.search(block.body)]
    if len(starred) < 2:
        return []
    final = p.SELECT_STAR.search(sql, max(block.end for block in blocks))
    if final is None:
        return []
    return [
        build_finding(
            "chained-select-star",
            "info",
            "SELECT * chained through CTEs",
            f"{len(starred)} CTEs and the final SELECT all use SELECT *. Every column of "
            "the source flows through each stage, so it is hard to see which columns the "
            "result actually depends on, and upstream schema changes propagate silently.",
            "Name the needed columns once in the first CTE, or use SELECT * EXCLUDE (...) "
            "to make the dropped columns explicit.",
            "best-practice",
            offset=span_of(final),
        )
    ]


def check_window_filtered_in_where(sql: str) -> list[Finding]:
    """A ranking window result filtered in WHERE instead of QUALIFY."""
    if p.RANKING_FUNCTION.search(sql) is None or p.QUALIFY_KEYWORD.search(sql):
        return []
    aliases = {m.group(1).lower() for m in p.RANKING_ALIAS.finditer(sql)}
    for start, body in where_bodies(sql):
        hit = p.RANKING_NAME.search(body)
        if hit is None:
            hit = next(
                (m for m in p.NUMERIC_COMPARISON.finditer(body) if m.group(1).lower() in aliases),
                None,
            )
        if hit is not None:
            return [
                build_finding(
                    "window-without-qualify",
                    "info",
                    "Window function filtered in WHERE instead of QUALIFY",
                    "DuckDB supports QUALIFY, which filters on window function results "
                    "directly. Filtering a window result in WHERE needs an extra subquery "
                    "around the window.",
                    "Use QUALIFY instead: SELECT ... FROM ... QUALIFY row_number() OVER "
                    "(...) <= N",
                    "best-practice",
                    offset=span_of(hit, start),
                )
            ]
    return []


def check_verbose_group_by(sql: str) -> list[Finding]:
    """GROUP BY listing four or more columns."""
    match = p.VERBOSE_GROUP_BY.search(sql)
    if match is None:
        return []
    return [
        build_finding(
            "group-by-verbose",
            "info",
            "Verbose GROUP BY",
            "DuckDB supports GROUP BY ALL, which groups by every non-aggregated column of "
            "the SELECT list. This avoids mismatches when the SELECT list changes.",
            "Replace the explicit column list with GROUP BY ALL.",
            "best-practice",
            offset=span_of(match),
        )
    ]


def check_left_join_on_true(sql: str) -> list[Finding]:
    """Five or more LEFT JOIN ... ON TRUE."""
    count = count_matches(sql, p.LEFT_JOIN_ON_TRUE)
    if count < LEFT_JOIN_ON_TRUE_THRESHOLD:
        return []
    return [
        build_finding(
            "many-left-join-on-true",
            "info",
            f"{count} LEFT JOIN ... ON TRUE",
            f"This query uses LEFT JOIN ... ON TRUE {count} times to combine CTE results. "
            "That works while every CTE returns a single row, but if one unexpectedly "
            "returns several, the result silently multiplies.",
            "Add LIMIT 1 to CTEs that must return one row, or use scalar subqueries in the "
            "final SELECT.",
            "best-practice",
        )
    ]


def check_or_chain(sql: str) -> list[Finding]:
    """Four or more col = literal tests on the same column joined by OR."""
    run_column = None
    run_length = 0
    run_start = 0
    previous_end = None
    for match in p.EQUALITY_TERM.finditer(sql):
        column = match.group(1).lower()
        continues_run = (
            previous_end is not None
            and column == run_column
            and p.OR_SEPARATOR.fullmatch(sql, previous_end, match.start()) is not None
        )
        if continues_run:
            run_length += 1
        else:
            run_column, run_length, run_start = column, 1, match.start()
        previous_end = match.end()

        if run_length >= OR_CHAIN_THRESHOLD:
            return [
                build_finding(
                    "or-chain-instead-of-in",
                    "info",
                    "OR chain on one column",
                    f"'{match.group(1)}' is compared to {run_length} or more values joined by "
                    "OR. An IN list says the same thing and is easier to read and extend.",
                    f"Rewrite as {match.group(1)} IN (...).",
                    "best-practice",
                    offset=TextRange(run_start, match.end()),
                )
            ]
    return []


def _is_temporal_operand(sql: str, between_start: int) -> bool:
    operand = p.PRECEDING_OPERAND.search(sql, max(0, between_start - 64), between_start)
    if operand is None:
        return False
    return p.TEMPORAL_COLUMN.search(operand.group(1).split(".")[-1]) is not None


def check_between_timestamp(sql: str) -> list[Finding]:
    """BETWEEN on a temporal-looking column or value."""
    for match in p.BETWEEN_KEYWORD.finditer(sql):
        temporal = _is_temporal_operand(sql, match.start()) or p.TEMPORAL_VALUE.search(
            sql, match.end(), match.end() + BETWEEN_LOOKAHEAD
        )
        if temporal:
            return [
                build_finding(
                    "between-timestamp",
                    "info",
                    "BETWEEN on a timestamp range",
                    "BETWEEN includes both ends. With timestamps the upper bound "
                    "'2024-01-31' means midnight at the start of that day, so most of the "
                    "last day is excluded, while adjacent ranges overlap at the boundary.",
                    "Use a half-open range: ts >= '2024-01-01' AND ts < '2024-02-01'.",
                    "best-practice",
                    offset=span_of(match),
                )
            ]
    return []


def check_conditional_aggregate(sql: str) -> list[Finding]:
    """SUM(CASE WHEN ...) and similar."""
    match = p.CONDITIONAL_AGGREGATE.search(sql)
    if match is None:
        return []
    return [
        build_finding(
            "case-when-instead-of-filter",
            "info",
            "CASE WHEN inside an aggregate",
            "Aggregating a CASE expression to count or sum a subset of rows works, but the "
            "condition is buried inside the expression.",
            "Use the FILTER clause: count(*) FILTER (WHERE status = 'done').",
            "best-practice",
            offset=span_of(match),
        )
    ]


def check_like_prefix(sql: str) -> list[Finding]:
    """LIKE 'prefix%' with no other wildcard."""
    match = p.LIKE_PREFIX.search(sql)
    if match is None:
        return []
    return [
        build_finding(
            "like-prefix-use-starts-with",
            "info",
            "LIKE prefix match",
            "A LIKE pattern with only a trailing % is a prefix test.",
            "Use starts_with(col, 'prefix'), which states the intent and avoids escaping "
            "issues with % and _ in the prefix.",
            "best-practice",
            fragment=match.group(0),
            offset=span_of(match),
        )
    ]


def check_large_case_chain(sql: str) -> list[Finding]:
    """A single CASE expression with ten or more WHEN branches."""
    stack: list[list[int]] = []
    candidates: list[tuple[int, int, int]] = []
    for match in p.CASE_TOKEN.finditer(sql):
        word = match.group(1).lower()
        if word == "case":
            stack.append([match.start(), 0])
        elif word == "when":
            if stack:
                stack[-1][1] += 1
        elif stack:
            start, branches = stack.pop()
            candidates.append((start, match.end(), branches))
    candidates.extend((start, start + len("case"), branches) for start, branches in stack)

    for start, end, branches in sorted(candidates):
        if branches >= CASE_BRANCH_THRESHOLD:
            return [
                build_finding(
                    "large-case-chain",
                    "info",
                    f"CASE expression with {branches} branches",
                    f"A CASE expression with {branches} WHEN branches is a lookup table "
                    "written as code. Each row is tested against the branches in order.",
                    "Move the mapping into a table (or a VALUES list / MAP literal) and join "
                    "against it.",
                    "best-practice",
                    offset=TextRange(start, end),
                )
            ]
    return []


def check_group_by_ordinal(sql: str) -> list[Finding]:
    """GROUP BY 1, 2, ..."""
    match = p.GROUP_BY_ORDINAL.search(sql)
    if match is None:
        return []
    return [
        build_finding(
            "group-by-ordinal",
            "info",
            "GROUP BY column position",
            "Grouping by column position silently changes meaning when the SELECT list is "
            "reordered.",
            "Use GROUP BY ALL or name the columns.",
            "best-practice",
            offset=span_of(match),
        )
    ]


def check_string_concat(sql: str) -> list[Finding]:
    """The || operator."""
    match = p.CONCAT_OPERATOR.search(sql)
    if match is None:
        return []
    return [
        build_finding(
            "string-concat-null",
            "info",
            "|| propagates NULL",
            "If any operand of || is NULL the whole result is NULL, which often drops "
            "values silently from labels and keys.",
            "Use concat(), which treats NULL as an empty string, or concat_ws() with a "
            "separator.",
            "best-practice",
            fragment="||",
            offset=span_of(match),
        )
    ]


def check_count_column(sql: str) -> list[Finding]:
    """count(col) rather than count(*)."""
    match = p.COUNT_COLUMN.search(sql)
    if match is None:
        return []
    return [
        build_finding(
            "count-col-vs-count-star",
            "info",
            "count(column) skips NULLs",
            "count(column) counts only rows where the column is not NULL. That is correct "
            "when intended, but it is often written where count(*) was meant.",
            "Use count(*) to count rows. Keep count(column) only when excluding NULLs is "
            "the point.",
            "best-practice",
            offset=span_of(match),
        )
    ]
