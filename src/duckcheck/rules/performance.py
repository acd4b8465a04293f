"""Performance rules: filter pushdown, sorting, joins, scans and JSON parsing."""

from __future__ import annotations

from collections import Counter

from duckcheck.models import Finding, TextRange
from duckcheck.utils import sql_patterns as p
from duckcheck.utils.findings import build_finding, find_all, span_of
from duckcheck.utils.sql_text import (
    TableRef,
    cte_bodies,
    cte_names,
    find_closing_paren,
    iter_table_refs,
    join_conditions,
    split_top_level,
    top_level_text,
    where_bodies,
)

LARGE_IN_LIST_THRESHOLD = 50
LARGE_OFFSET_THRESHOLD = 10_000
REPEATED_SCAN_THRESHOLD = 3
HEAVY_JSON_THRESHOLD = 20
MODERATE_JSON_THRESHOLD = 8


def check_leading_wildcard_like(sql: str) -> list[Finding]:
    """LIKE / ILIKE patterns that start with %."""
    match = p.LEADING_WILDCARD_LIKE.search(sql)
    if match is None:
        return []
    return [
        build_finding(
            "leading-wildcard-like",
            "warning",
            "LIKE with leading wildcard",
            "A LIKE pattern starting with '%' prevents DuckDB from using zone maps or "
            "min/max statistics for filtering, forcing a full column scan.",
            "Use a trailing-only wildcard (LIKE 'prefix%') where possible, contains() for "
            "clarity, or the full-text search extension for word lookups.",
            "performance",
            fragment=match.group(0),
            offset=span_of(match),
        )
    ]


def check_function_on_filter_column(sql: str) -> list[Finding]:
    """A WHERE condition that wraps the column in a function before comparing it."""
    for start, body in where_bodies(sql):
        match = p.FUNCTION_ON_COLUMN_COMPARISON.search(body)
        if match is not None:
            return [
                build_finding(
                    "function-on-filter-column",
                    "warning",
                    "Function applied to column in WHERE clause",
                    "Wrapping a column in a function (UPPER(name) = ..., YEAR(created_at) "
                    "= ...) prevents filter pushdown and forces DuckDB to evaluate every row.",
                    "Keep the column bare and move the work to the constant side. For "
                    "example, instead of YEAR(dt) = 2024 use dt >= '2024-01-01' AND "
                    "dt < '2025-01-01'.",
                    "performance",
                    offset=span_of(match, start),
                )
            ]
    return []


def check_repeated_order_limit_1(sql: str) -> list[Finding]:
    """ORDER BY col DESC LIMIT 1 used two or more times."""
    matches = find_all(sql, p.ORDER_DESC_LIMIT_1)
    if len(matches) < 2:
        return []
    count = len(matches)
    return [
        build_finding(
            "repeated-order-limit-1",
            "warning",
            f"ORDER BY ... DESC LIMIT 1 repeated {count}x",
            f"This query uses the ORDER BY ... DESC LIMIT 1 pattern {count} times to get "
            "the latest row. Each instance sorts its whole input, which is especially "
            "costly inside CTEs.",
            "Replace with arg_max(): SELECT arg_max(col, observed_at) FROM table. For "
            "several columns use arg_max(struct_pack(col1, col2), observed_at).",
            "performance",
            offset=span_of(matches[0]),
        )
    ]


def check_row_number_filter(sql: str) -> list[Finding]:
    """ROW_NUMBER() OVER (... ORDER BY ...) filtered to the first one or two rows."""
    window = p.ROW_NUMBER_WINDOW.search(sql)
    if window is None or p.RANK_FILTER.search(sql) is None:
        return []
    return [
        build_finding(
            "use-arg-max",
            "info",
            "Consider arg_max() instead of ROW_NUMBER() window",
            "ROW_NUMBER() OVER (... ORDER BY ...) filtered to = 1 to get the latest or best "
            "row per group requires a full window sort. DuckDB's arg_max()/arg_min() "
            "gives the same result with a streaming aggregate.",
            "Replace with: SELECT key, arg_max(value_col, order_col) FROM ... GROUP BY key. "
            "For several columns use arg_max(struct_pack(col1, col2), order_col).",
            "performance",
            offset=TextRange(window.start(1), window.end(1)),
        )
    ]


def check_not_in_subquery(sql: str) -> list[Finding]:
    """NOT IN (SELECT ...)."""
    match = p.NOT_IN_SUBQUERY.search(sql)
    if match is None:
        return []
    return [
        build_finding(
            "not-in-subquery",
            "warning",
            "NOT IN with subquery",
            "NOT IN with a subquery has surprising NULL semantics: if the subquery returns "
            "any NULL, the whole NOT IN evaluates to NULL and no rows match. It can also "
            "keep the optimizer from planning an anti-join.",
            "Use NOT EXISTS (SELECT 1 FROM ... WHERE ...) or an ANTI JOIN instead.",
            "performance",
            offset=span_of(match),
        )
    ]


def _defined_names(body: str) -> set[str]:
    names: set[str] = set()
    for ref in iter_table_refs(body):
        names.add(ref.parts[-1])
        if ref.alias:
            names.add(ref.alias)
    return names


def check_correlated_subquery(sql: str) -> list[Finding]:
    """A subquery outside FROM whose WHERE compares against an outer qualifier.

    Heuristic: a qualified equality ``a.x = b.y`` inside the subquery's WHERE
    where one qualifier is not a table or alias the subquery itself defines.
    Qualifiers hidden behind unqualified columns are missed.
    """
    for match in p.SUBQUERY_OPEN.finditer(sql):
        prefix = sql[max(0, match.start() - 20) : match.start()]
        if p.DERIVED_TABLE_PREFIX.search(prefix):
            continue
        end = find_closing_paren(sql, match.start())
        if end is None:
            continue
        body = sql[match.start() + 1 : end - 1]
        where = p.WHERE_KEYWORD.search(body)
        if where is None:
            continue
        defined = _defined_names(body)
        for equality in p.QUALIFIED_EQUALITY.finditer(body, where.end()):
            qualifiers = {equality.group(1).lower(), equality.group(3).lower()}
            if qualifiers - defined:
                return [
                    build_finding(
                        "correlated-subquery",
                        "error",
                        "Possible correlated subquery",
                        "A subquery in the SELECT list or WHERE clause references a column "
                        "of the outer query. If DuckDB cannot decorrelate it, it is "
                        "re-evaluated for every outer row.",
                        "Rewrite as a JOIN against a pre-aggregated CTE: WITH sub AS "
                        "(SELECT key, ... GROUP BY key) SELECT ... FROM main JOIN sub "
                        "USING (key).",
                        "performance",
                        offset=TextRange(match.start(), end),
                    )
                ]
    return []


def check_large_in_list(sql: str) -> list[Finding]:
    """IN (...) with at least 50 literal values."""
    for match in p.IN_LIST_OPEN.finditer(sql):
        open_index = match.end() - 1
        end = find_closing_paren(sql, open_index)
        if end is None:
            continue
        items = split_top_level(sql[open_index + 1 : end - 1])
        literals = sum(1 for item in items if p.LITERAL_ITEM.fullmatch(item))
        if literals >= LARGE_IN_LIST_THRESHOLD:
            return [
                build_finding(
                    "large-in-list",
                    "warning",
                    f"Large IN list ({literals} values)",
                    f"An IN list with {literals} literal values is expanded into a long "
                    "chain of comparisons, and the query text itself becomes hard to "
                    "maintain.",
                    "Put the values in a table (or a VALUES list / unnest of a list) and "
                    "join or semi-join against it.",
                    "performance",
                    offset=TextRange(match.start(), end),
                )
            ]
    return []


def check_temporal_window_join(sql: str) -> list[Finding]:
    """An inequality join condition next to a ranking or window function."""
    if p.ASOF_KEYWORD.search(sql) or p.RANKING_OR_WINDOW.search(sql) is None:
        return []
    for start, body in join_conditions(sql):
        match = p.INEQUALITY.search(body)
        if match is not None:
            return [
                build_finding(
                    "temporal-join-via-window",
                    "info",
                    "Inequality join with window function",
                    "Joining on an inequality and then ranking the matches to keep the "
                    "closest row produces every matching pair before the window filters "
                    "them. For time-series lookups this is what ASOF JOIN does directly.",
                    "Use ASOF JOIN: FROM trades t ASOF JOIN prices p ON t.symbol = p.symbol "
                    "AND t.ts >= p.ts",
                    "performance",
                    offset=span_of(match, start),
                )
            ]
    return []


def check_intermediate_order_by(sql: str) -> list[Finding]:
    """ORDER BY at the top level of a CTE body."""
    for group in cte_bodies(sql):
        for block in group:
            top = top_level_text(block.body)
            order = p.ORDER_BY.search(top)
            if order is None:
                continue
            return [
                build_finding(
                    "intermediate-order-by",
                    "info",
                    "ORDER BY inside a CTE",
                    f"The CTE '{block.name}' sorts its rows. The order of an intermediate "
                    "result is not guaranteed to survive into the outer query, and the "
                    "sort buffers the whole CTE in memory.",
                    "Move the ORDER BY to the final SELECT. For a top-N CTE, check whether "
                    "arg_max/arg_min or QUALIFY can replace the sort.",
                    "performance",
                    offset=TextRange(block.start + order.start(), block.start + order.end()),
                )
            ]
    return []


def check_self_join_neighbor(sql: str) -> list[Finding]:
    """A table joined to itself on a +1 / interval offset."""
    seen: set[str] = set()
    duplicate = None
    for ref in iter_table_refs(sql):
        if ref.name in seen:
            duplicate = ref
            break
        seen.add(ref.name)
    if duplicate is None:
        return []
    if not any(p.NEIGHBOR_OFFSET.search(body) for _, body in join_conditions(sql)):
        return []
    return [
        build_finding(
            "self-join-as-window",
            "info",
            "Self-join to reach a neighboring row",
            f"'{duplicate.name}' is joined to itself on an offset condition to look at the "
            "previous or next row. This scans the table twice and builds a hash table "
            "over one copy.",
            "Use LAG() or LEAD() over a window ordered by the same key.",
            "performance",
            offset=TextRange(duplicate.start, duplicate.end),
        )
    ]


def check_repeated_table_scan(sql: str) -> list[Finding]:
    """The same table referenced three or more times (CTE names excluded)."""
    names = cte_names(sql)
    counts: Counter[str] = Counter()
    first_ref: dict[str, TableRef] = {}
    for ref in iter_table_refs(sql):
        if ref.name in names:
            continue
        counts[ref.name] += 1
        first_ref.setdefault(ref.name, ref)

    for name, count in counts.items():
        if count >= REPEATED_SCAN_THRESHOLD:
            ref = first_ref[name]
            return [
                build_finding(
                    "repeated-table-scan",
                    "info",
                    f"Table '{name}' scanned {count} times",
                    f"'{name}' is referenced {count} times in this query. Each reference "
                    "is a separate scan unless the optimizer can share it.",
                    "Read the table once in a CTE (optionally AS MATERIALIZED) with the "
                    "union of needed columns and filters, then reference the CTE.",
                    "performance",
                    offset=TextRange(ref.start, ref.end),
                )
            ]
    return []


def check_large_offset(sql: str) -> list[Finding]:
    """OFFSET of 10,000 rows or more."""
    for match in p.LARGE_OFFSET.finditer(sql):
        value = int(match.group(1))
        if value >= LARGE_OFFSET_THRESHOLD:
            return [
                build_finding(
                    "large-offset-pagination",
                    "warning",
                    "Large OFFSET pagination",
                    f"OFFSET {value} still produces and discards the first {value} rows, so "
                    "every later page gets slower.",
                    "Use keyset pagination: remember the last key of the previous page and "
                    "filter WHERE key > :last_key ORDER BY key LIMIT n.",
                    "performance",
                    offset=span_of(match),
                )
            ]
    return []


def check_simple_regexp(sql: str) -> list[Finding]:
    """regexp_matches used for a plain prefix or suffix test."""
    match = p.SIMPLE_REGEXP.search(sql)
    if match is None:
        return []
    return [
        build_finding(
            "regexp-for-simple-pattern",
            "info",
            "Regular expression for a simple prefix/suffix test",
            "An anchored regular expression with no metacharacters only tests a prefix or "
            "suffix. Running the regex engine for that is slower than a string function.",
            "Use starts_with(col, 'prefix') / prefix(col, 'x') or suffix(col, 'x') / "
            "ends_with(col, 'x').",
            "performance",
            offset=span_of(match),
        )
    ]


def check_copy_compression(sql: str) -> list[Finding]:
    """COPY ... TO a Parquet file with no COMPRESSION option."""
    for match in p.COPY_KEYWORD.finditer(sql):
        end = sql.find(";", match.end())
        statement = sql[match.start() : end if end != -1 else len(sql)]
        target = p.COPY_TARGET.search(statement)
        if target is None:
            continue
        is_parquet = target.group(1).lower().endswith(".parquet") or p.PARQUET_FORMAT.search(
            statement
        )
        if is_parquet and not p.COMPRESSION_OPTION.search(statement):
            return [
                build_finding(
                    "copy-to-no-compression",
                    "info",
                    "COPY to Parquet without explicit compression",
                    "This export relies on the default Parquet codec. zstd usually gives "
                    "noticeably smaller files at similar read speed, which matters for "
                    "files read back over the network.",
                    "Add the option explicitly: COPY ... TO 'out.parquet' "
                    "(FORMAT parquet, COMPRESSION zstd).",
                    "performance",
                    offset=span_of(match),
                )
            ]
    return []


def check_union_without_all(sql: str) -> list[Finding]:
    """UNION not followed by ALL."""
    match = p.UNION_WITHOUT_ALL.search(sql)
    if match is None:
        return []
    return [
        build_finding(
            "union-without-all",
            "info",
            "UNION without ALL",
            "UNION (without ALL) removes duplicate rows by hashing the entire result set. "
            "If duplicates are acceptable or impossible, this is wasted work.",
            "Use UNION ALL if you don't need deduplication. UNION BY NAME also helps for "
            "tables with different column orders.",
            "performance",
            offset=span_of(match),
        )
    ]


def check_json_extraction(sql: str) -> list[Finding]:
    """-> / ->> path extractions: >= 20 warning, 8 to 19 info."""
    matches = find_all(sql, p.JSON_ARROW)
    count = len(matches)
    if count < MODERATE_JSON_THRESHOLD:
        return []
    first = matches[0]
    arrow = "->>" if first.group(0).startswith("->>") else "->"
    offset = TextRange(first.start(), first.start() + len(arrow))

    if count >= HEAVY_JSON_THRESHOLD:
        return [
            build_finding(
                "heavy-json-extraction",
                "warning",
                f"Heavy JSON extraction ({count} operations)",
                f"This query performs {count} JSON extraction operations (-> and ->>). Each "
                "one parses the JSON value again, and JSON is stored as text, so none of "
                "it benefits from columnar storage.",
                "Extract the fields into typed columns at ingest time (CREATE TABLE ... AS "
                "SELECT payload->>'field' AS field ...), or pull the fields out once in a "
                "dedicated CTE and reference them downstream.",
                "performance",
                fragment=arrow,
                offset=offset,
            )
        ]
    return [
        build_finding(
            "moderate-json-extraction",
            "info",
            f"Moderate JSON extraction ({count} operations)",
            f"This query performs {count} JSON extraction operations. Each parses the JSON "
            "value independently, which adds CPU overhead on wide payloads.",
            "Extract commonly used JSON fields into typed columns at ingest time.",
            "performance",
            fragment=arrow,
            offset=offset,
        )
    ]
