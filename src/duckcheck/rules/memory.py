"""Memory rules: non-spillable operators, blocking operators and row expansion.

DuckDB can offload most operator state to disk, but a few aggregates and
reshapes cannot. On MotherDuck Ducklings with a fixed memory limit these are
the usual cause of out-of-memory failures.
"""

from __future__ import annotations

from duckcheck.models import Finding, TextRange
from duckcheck.utils import sql_patterns as p
from duckcheck.utils.findings import build_finding, count_matches, find_all, span_of
from duckcheck.utils.sql_text import find_closing_paren


def check_list_aggregate(sql: str) -> list[Finding]:
    """list() aggregate calls; the count is reported."""
    matches = find_all(sql, p.LIST_CALL)
    if not matches:
        return []
    count = len(matches)
    return [
        build_finding(
            "non-spillable-list",
            "error",
            f"list() aggregate cannot spill to disk ({count}x)",
            f"The list() aggregate function is used {count} time(s) in this query. "
            "list() cannot offload intermediate state to disk. On large datasets this "
            "will cause out-of-memory crashes, especially on MotherDuck Ducklings with "
            "fixed memory limits.",
            "Pre-filter data before aggregating with list(), add a WHERE or LIMIT to "
            "reduce input rows, or break the query into smaller batches.",
            "memory",
            fragment=matches[0].group(0),
            offset=span_of(matches[0]),
        )
    ]


def check_list_distinct(sql: str) -> list[Finding]:
    """list(DISTINCT ...)."""
    match = p.LIST_DISTINCT.search(sql)
    if match is None:
        return []
    return [
        build_finding(
            "non-spillable-list-distinct",
            "error",
            "LIST(DISTINCT ...) doubles memory pressure",
            "LIST(DISTINCT ...) combines two non-spillable operations: the DISTINCT "
            "needs a hash set in memory and the resulting list is accumulated in memory. "
            "Neither can spill to disk.",
            "Reduce the input first with a GROUP BY in a prior CTE, then build the list "
            "from the already distinct values.",
            "memory",
            fragment=match.group(0),
            offset=span_of(match),
        )
    ]


def check_string_agg(sql: str) -> list[Finding]:
    """string_agg() calls."""
    match = p.STRING_AGG_CALL.search(sql)
    if match is None:
        return []
    return [
        build_finding(
            "non-spillable-string-agg",
            "warning",
            "string_agg() cannot spill to disk",
            "The string_agg() function cannot offload intermediate state to disk. With "
            "many groups or large string values this can exhaust memory.",
            "Pre-filter or limit the input before applying string_agg(), or return a "
            "list only if the consumer really needs one string.",
            "memory",
            fragment=match.group(0),
            offset=span_of(match),
        )
    ]


def check_ordered_aggregate(sql: str) -> list[Finding]:
    """Aggregates with an ORDER BY inside the call."""
    match = p.ORDERED_AGGREGATE.search(sql)
    if match is None:
        return []
    return [
        build_finding(
            "non-spillable-ordered-agg",
            "warning",
            "Ordered aggregate (ORDER BY inside aggregate)",
            "Aggregate functions with an ORDER BY clause, such as LIST(... ORDER BY ...), "
            "are holistic: they must see all input before producing output, and DuckDB "
            "cannot spill their intermediate state to disk.",
            "Remove the ORDER BY if ordering within the aggregate is not needed. "
            "Otherwise keep the aggregated input small.",
            "memory",
            offset=span_of(match),
        )
    ]


def check_holistic_aggregate(sql: str) -> list[Finding]:
    """median, quantile, percentile_cont/disc and mode."""
    match = p.HOLISTIC_AGGREGATE.search(sql)
    if match is None:
        return []
    return [
        build_finding(
            "non-spillable-median",
            "warning",
            "Holistic aggregate cannot spill to disk",
            "median(), quantile(), percentile_cont/disc() and mode() keep every input "
            "value of a group in memory until the group is complete. Their state cannot "
            "be offloaded to disk.",
            "Use approx_quantile() or reservoir_quantile() when an approximate answer is "
            "acceptable, or aggregate fewer rows per group.",
            "memory",
            fragment=match.group(0),
            offset=span_of(match),
        )
    ]


def check_pivot(sql: str) -> list[Finding]:
    """PIVOT statements (UNPIVOT alone does not collect lists)."""
    match = p.PIVOT_KEYWORD.search(sql)
    if match is None:
        return []
    uses_aggregate = p.USING_KEYWORD.search(sql, match.end()) is not None
    if p.UNPIVOT_KEYWORD.search(sql) and not uses_aggregate:
        return []
    return [
        build_finding(
            "non-spillable-pivot",
            "error",
            "PIVOT uses list() internally and cannot spill to disk",
            "DuckDB's PIVOT internally uses the list() aggregate to collect values before "
            "spreading them into columns. Since list() cannot spill to disk, PIVOT on large "
            "datasets or high-cardinality pivot columns can cause out-of-memory crashes.",
            "Pre-filter or pre-aggregate before pivoting, restrict the pivot values with "
            "an IN list, or spell the pivot out with SUM(CASE WHEN ...) which only uses "
            "spillable operators.",
            "memory",
            fragment="pivot",
            offset=span_of(match),
        )
    ]


def check_blocking_operators(sql: str) -> list[Finding]:
    """Combined ORDER BY, OVER ( and GROUP BY count: >= 5 warning, >= 8 error."""
    order_by = count_matches(sql, p.ORDER_BY)
    windows = count_matches(sql, p.OVER_CLAUSE)
    group_by = count_matches(sql, p.GROUP_BY)
    total = order_by + windows + group_by

    if total >= 8:
        return [
            build_finding(
                "many-blocking-operators",
                "error",
                f"{total} blocking operators detected",
                f"This query contains {order_by} ORDER BY, {windows} window function (OVER) "
                f"and {group_by} GROUP BY operations. Each is a pipeline-breaking operator "
                "that buffers data in memory. When several appear in the same query DuckDB "
                "may still run out of memory even though each one can spill on its own.",
                "Break the query into sequential steps and materialize intermediate results "
                "into temp tables so memory is released between them.",
                "memory",
            )
        ]
    if total >= 5:
        return [
            build_finding(
                "many-blocking-operators",
                "warning",
                f"{total} blocking operators in one query",
                f"This query has {order_by} ORDER BY, {windows} window functions and "
                f"{group_by} GROUP BY operations. Each is a pipeline breaker that buffers "
                "data in memory. Combined, they raise the risk of out-of-memory errors.",
                "Materialize intermediate CTEs into temp tables to reduce peak memory "
                "usage, or break the query into sequential steps.",
                "memory",
            )
        ]
    return []


def check_window_partition(sql: str) -> list[Finding]:
    """A window specification without PARTITION BY."""
    for match in p.OVER_CLAUSE.finditer(sql):
        end = find_closing_paren(sql, match.end() - 1)
        if end is None:
            continue
        if p.PARTITION_BY.search(sql, match.end(), end) is None:
            return [
                build_finding(
                    "window-no-partition",
                    "warning",
                    "Window function without PARTITION BY",
                    "A window without PARTITION BY treats the whole result as one "
                    "partition. The window operator must buffer and sort every row in a "
                    "single partition, which cannot be parallelized and can exhaust memory.",
                    "Add a PARTITION BY clause if the computation is per group. For a "
                    "global rank or running total, reduce the input first.",
                    "memory",
                    offset=TextRange(match.start(), end),
                )
            ]
    return []


def check_unnest_column(sql: str) -> list[Finding]:
    """unnest() applied to a column rather than a literal list."""
    match = p.UNNEST_COLUMN.search(sql)
    if match is None:
        return []
    column = match.group(1)
    return [
        build_finding(
            "unnest-large-expansion",
            "warning",
            "UNNEST over a list column",
            f"unnest({column}) produces one row per list element for every input row. "
            "Long lists multiply the row count and everything downstream of it, "
            "including joins, sorts and aggregates.",
            "Filter rows before unnesting, or use list functions such as list_filter() "
            "and list_aggregate() to work on the list without expanding it.",
            "memory",
            offset=span_of(match),
        )
    ]


def check_recursive_cte(sql: str) -> list[Finding]:
    """WITH RECURSIVE with no LIMIT, depth guard or USING KEY."""
    match = p.RECURSIVE_CTE.search(sql)
    if match is None:
        return []
    bounded = (
        p.ROW_LIMIT.search(sql) or p.DEPTH_GUARD.search(sql) or p.USING_KEY.search(sql)
    )
    if bounded:
        return []
    return [
        build_finding(
            "recursive-cte-no-limit",
            "warning",
            "Recursive CTE without a termination guard",
            "This recursive CTE has no LIMIT, no depth counter comparison and no USING "
            "KEY clause. If the data contains a cycle the recursion never ends, and every "
            "iteration's rows are kept in memory.",
            "Track the depth in a column and stop at a maximum (WHERE depth < 100), add a "
            "LIMIT, or use WITH RECURSIVE ... USING KEY so only the latest row per key "
            "is kept.",
            "memory",
            offset=span_of(match),
        )
    ]


def check_create_table_as(sql: str) -> list[Finding]:
    """CREATE TABLE ... AS SELECT."""
    match = p.CREATE_TABLE_AS.search(sql)
    if match is None:
        return []
    return [
        build_finding(
            "ctas-memory",
            "info",
            "CREATE TABLE AS SELECT",
            "CREATE TABLE ... AS SELECT preserves insertion order by default, which "
            "forces DuckDB to buffer the result of the query in order.",
            "Run SET preserve_insertion_order = false; before large CTAS statements when "
            "row order does not matter.",
            "memory",
            offset=span_of(match),
        )
    ]


def check_distinct_star(sql: str) -> list[Finding]:
    """SELECT DISTINCT *."""
    match = p.DISTINCT_STAR.search(sql)
    if match is None:
        return []
    return [
        build_finding(
            "distinct-star",
            "warning",
            "SELECT DISTINCT *",
            "DISTINCT * forces DuckDB to hash every column to find unique rows. This is "
            "very memory-intensive and rarely intentional.",
            "Select only the columns uniqueness matters for, or check whether GROUP BY "
            "is what you actually need.",
            "memory",
            fragment=match.group(0),
            offset=span_of(match),
        )
    ]


def check_count_distinct(sql: str) -> list[Finding]:
    """COUNT(DISTINCT ...); the count is reported."""
    matches = find_all(sql, p.COUNT_DISTINCT)
    if not matches:
        return []
    count = len(matches)
    return [
        build_finding(
            "count-distinct",
            "info",
            f"COUNT(DISTINCT ...) detected ({count}x)",
            f"COUNT(DISTINCT) appears {count} time(s). Each builds a hash set of all "
            "unique values in memory. On high-cardinality columns this is very "
            "memory-intensive.",
            "If an approximate count is acceptable, use approx_count_distinct(), which "
            "uses HyperLogLog and far less memory.",
            "memory",
            fragment=matches[0].group(0),
            offset=span_of(matches[0]),
        )
    ]


def check_insert_select_star(sql: str) -> list[Finding]:
    """INSERT INTO ... SELECT *."""
    insert = p.INSERT_INTO.search(sql)
    if insert is None or p.SELECT_STAR.search(sql, insert.end()) is None:
        return []
    return [
        build_finding(
            "insert-select-star",
            "info",
            "INSERT INTO ... SELECT *",
            "Large INSERT ... SELECT operations preserve insertion order by default, which "
            "requires buffering the entire result. A wildcard source also breaks silently "
            "when either table's columns change.",
            "Run SET preserve_insertion_order = false; before the insert if row order does "
            "not matter, and list the columns explicitly.",
            "memory",
            offset=span_of(insert),
        )
    ]


def check_cte_count(sql: str) -> list[Finding]:
    """Named-query definitions: > 5 info, > 10 warning."""
    count = count_matches(sql, p.CTE_DEFINITION)
    if count > 10:
        return [
            build_finding(
                "many-ctes",
                "warning",
                f"{count} CTEs detected",
                f"This query has {count} CTEs. DuckDB may materialize each CTE, so all "
                "intermediate results can be held in memory at the same time. With this "
                "many stages, each possibly containing ORDER BY or GROUP BY, the combined "
                "footprint can be substantial.",
                "Break the query into sequential CREATE TEMP TABLE steps so DuckDB can "
                "release memory between stages.",
                "memory",
            )
        ]
    if count > 5:
        return [
            build_finding(
                "many-ctes",
                "info",
                f"{count} CTEs detected",
                f"This query has {count} CTEs. While CTEs improve readability, many "
                "materialized CTEs may increase peak memory usage.",
                "Check whether some CTEs can be inlined, merged or removed.",
                "memory",
            )
        ]
    return []


def check_list_transform(sql: str) -> list[Finding]:
    """Lambda-based list functions."""
    match = p.LIST_LAMBDA_CALL.search(sql)
    if match is None:
        return []
    return [
        build_finding(
            "list-transform",
            "info",
            "list_transform() in-memory list processing",
            "list_transform() applies a lambda to every element of a list in memory. "
            "Chained with other list operations (list_concat, flatten, array_to_string), "
            "the whole chain is non-spillable.",
            "Do the transformation at ingest time if possible. For string building, a CTE "
            "with UNNEST + string_agg gives the optimizer more room.",
            "memory",
            fragment=match.group(0),
            offset=span_of(match),
        )
    ]


def check_out_of_memory_hint(sql: str) -> list[Finding]:
    """The words 'out of memory' or 'OOM' appear in the text."""
    match = p.OUT_OF_MEMORY.search(sql)
    if match is None:
        return []
    return [
        build_finding(
            "md-duckling-size",
            "info",
            "Consider a larger Duckling size",
            "If this query runs out of memory on MotherDuck, a larger Duckling (Standard, "
            "Jumbo, Mega or Giga instead of Pulse) provides more memory.",
            "Change the Duckling size in MotherDuck settings. Also try SET "
            "preserve_insertion_order = false; and SET temp_directory to enable spilling.",
            "memory",
            offset=span_of(match),
        )
    ]


def check_json_each(sql: str) -> list[Finding]:
    """json_each() / json_tree() row expansion."""
    match = p.JSON_EACH_CALL.search(sql)
    if match is None:
        return []
    return [
        build_finding(
            "json-each-expansion",
            "warning",
            "json_each() row expansion",
            "json_each() explodes a JSON array or object into rows. With many elements "
            "this multiplies the row count and memory usage, especially when followed by "
            "aggregation or sorting.",
            "Filter the JSON before expanding it, or apply WHERE/LIMIT right after the "
            "expansion to keep the result small.",
            "memory",
            fragment=match.group(0),
            offset=span_of(match),
        )
    ]


def check_json_array_wildcard(sql: str) -> list[Finding]:
    """JSON paths with a [*] wildcard."""
    match = p.JSON_ARRAY_WILDCARD.search(sql)
    if match is None:
        return []
    return [
        build_finding(
            "json-array-extract",
            "info",
            "JSON array wildcard extraction",
            "A JSON path with a [*] wildcard extracts every array element into a list in "
            "memory. Combined with list_transform() this adds further memory pressure.",
            "Filter before extraction if only some elements are needed, or flatten JSON "
            "arrays into rows at ingest time.",
            "memory",
            offset=span_of(match),
        )
    ]
