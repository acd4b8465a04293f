"""Ordered table of pattern rules.

Order only decides which finding survives deduplication when two checks emit
the same rule id; every check is independent of the others.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from duckcheck.models import Finding
from duckcheck.rules import best_practice, memory, network, performance, schema


@dataclass(frozen=True)
class Rule:
    """A registered check and the rule ids it can emit."""

    rule_ids: tuple[str, ...]
    check: Callable[..., list[Finding]]

    @property
    def name(self) -> str:
        return self.check.__name__

    @property
    def summary(self) -> str:
        doc = self.check.__doc__ or ""
        return doc.strip().splitlines()[0] if doc.strip() else ""


PATTERN_RULES: tuple[Rule, ...] = (
    Rule(("non-spillable-list",), memory.check_list_aggregate),
    Rule(("non-spillable-list-distinct",), memory.check_list_distinct),
    Rule(("non-spillable-string-agg",), memory.check_string_agg),
    Rule(("non-spillable-ordered-agg",), memory.check_ordered_aggregate),
    Rule(("non-spillable-median",), memory.check_holistic_aggregate),
    Rule(("non-spillable-pivot",), memory.check_pivot),
    Rule(("many-blocking-operators",), memory.check_blocking_operators),
    Rule(("window-no-partition",), memory.check_window_partition),
    Rule(("unnest-large-expansion",), memory.check_unnest_column),
    Rule(("recursive-cte-no-limit",), memory.check_recursive_cte),
    Rule(("ctas-memory",), memory.check_create_table_as),
    Rule(("distinct-star",), memory.check_distinct_star),
    Rule(("count-distinct",), memory.check_count_distinct),
    Rule(("insert-select-star",), memory.check_insert_select_star),
    Rule(("many-ctes",), memory.check_cte_count),
    Rule(("list-transform",), memory.check_list_transform),
    Rule(("md-duckling-size",), memory.check_out_of_memory_hint),
    Rule(("leading-wildcard-like",), performance.check_leading_wildcard_like),
    Rule(("function-on-filter-column",), performance.check_function_on_filter_column),
    Rule(("repeated-order-limit-1",), performance.check_repeated_order_limit_1),
    Rule(("use-arg-max",), performance.check_row_number_filter),
    Rule(("not-in-subquery",), performance.check_not_in_subquery),
    Rule(("correlated-subquery",), performance.check_correlated_subquery),
    Rule(("large-in-list",), performance.check_large_in_list),
    Rule(("cast-in-join-key",), schema.check_cast_in_join_key),
    Rule(("glob-many-files",), network.check_remote_glob),
    Rule(("temporal-join-via-window",), performance.check_temporal_window_join),
    Rule(("chained-select-star",), best_practice.check_chained_select_star),
    Rule(("intermediate-order-by",), performance.check_intermediate_order_by),
    Rule(("self-join-as-window",), performance.check_self_join_neighbor),
    Rule(("repeated-table-scan",), performance.check_repeated_table_scan),
    Rule(("large-offset-pagination",), performance.check_large_offset),
    Rule(("regexp-for-simple-pattern",), performance.check_simple_regexp),
    Rule(("copy-to-no-compression",), performance.check_copy_compression),
    Rule(("remote-file-select-star",), network.check_remote_select_star),
    Rule(("md-local-remote-transfer",), network.check_local_remote_transfer),
    Rule(("read-remote-no-filter",), network.check_remote_without_filter),
    Rule(("multiple-remote-scans",), network.check_multiple_remote_scans),
    Rule(("read-parquet-no-hive",), network.check_partitioned_path_without_hive),
    Rule(("md-cross-database-join",), network.check_cross_database_join),
    Rule(("union-without-all",), performance.check_union_without_all),
    Rule(("window-without-qualify",), best_practice.check_window_filtered_in_where),
    Rule(("group-by-verbose",), best_practice.check_verbose_group_by),
    Rule(("many-left-join-on-true",), best_practice.check_left_join_on_true),
    Rule(("or-chain-instead-of-in",), best_practice.check_or_chain),
    Rule(("between-timestamp",), best_practice.check_between_timestamp),
    Rule(("case-when-instead-of-filter",), best_practice.check_conditional_aggregate),
    Rule(("like-prefix-use-starts-with",), best_practice.check_like_prefix),
    Rule(("large-case-chain",), best_practice.check_large_case_chain),
    Rule(("group-by-ordinal",), best_practice.check_group_by_ordinal),
    Rule(("string-concat-null",), best_practice.check_string_concat),
    Rule(("count-col-vs-count-star",), best_practice.check_count_column),
    Rule(("excessive-casts",), schema.check_excessive_casts),
    Rule(("heavy-json-extraction", "moderate-json-extraction"), performance.check_json_extraction),
    Rule(("json-each-expansion",), memory.check_json_each),
    Rule(("json-array-extract",), memory.check_json_array_wildcard),
    Rule(("timestamp-vs-timestamptz",), schema.check_mixed_timestamp_types),
)


def all_rule_ids() -> list[str]:
    return [rule_id for rule in PATTERN_RULES for rule_id in rule.rule_ids]
