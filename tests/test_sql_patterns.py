"""Tests for SQL regex patterns in sql_patterns.py."""

from __future__ import annotations

from duckcheck.utils.sql_patterns import (
    CAST_OPERATOR,
    COUNT_COLUMN,
    INEQUALITY,
    JSON_ARROW,
    LARGE_OFFSET,
    LOCAL_READ,
    OUT_OF_MEMORY,
    REMOTE_SOURCE,
    UNION_WITHOUT_ALL,
    UNZONED_TIMESTAMP,
)


class TestJsonArrow:
    def test_string_path(self) -> None:
        assert JSON_ARROW.search("SELECT doc->>'name' FROM t")

    def test_integer_path(self) -> None:
        assert JSON_ARROW.search("SELECT doc->0 FROM t")

    def test_lambda_arrow(self) -> None:
        assert JSON_ARROW.search("SELECT list_transform(l, x -> x + 1) FROM t") is None


class TestInequality:
    def test_comparisons(self) -> None:
        assert INEQUALITY.findall("a <= b AND c > d AND e >= f") == ["<=", ">", ">="]

    def test_not_equal_and_arrows(self) -> None:
        assert INEQUALITY.findall("a <> b AND doc->>'x' = c AND y -> y") == []


class TestTimestamps:
    def test_unzoned_cast(self) -> None:
        assert UNZONED_TIMESTAMP.search("SELECT x::TIMESTAMP FROM t")

    def test_unzoned_literal(self) -> None:
        assert UNZONED_TIMESTAMP.search("WHERE ts > TIMESTAMP '2024-01-01'")

    def test_zoned_cast(self) -> None:
        assert UNZONED_TIMESTAMP.search("SELECT x::TIMESTAMPTZ FROM t") is None
        assert UNZONED_TIMESTAMP.search("SELECT x::TIMESTAMP WITH TIME ZONE FROM t") is None


class TestRemoteAndLocalReads:
    def test_quoted_remote_path(self) -> None:
        assert REMOTE_SOURCE.search("SELECT a FROM 's3://bucket/x.parquet'")

    def test_remote_path_list(self) -> None:
        assert REMOTE_SOURCE.search("SELECT a FROM read_parquet(['gs://b/1.parquet'])")

    def test_local_read(self) -> None:
        assert LOCAL_READ.search("SELECT a FROM read_csv('data.csv')")
        assert REMOTE_SOURCE.search("SELECT a FROM read_csv('data.csv')") is None

    def test_remote_read_is_not_local(self) -> None:
        assert LOCAL_READ.search("SELECT a FROM read_csv('https://example.com/a.csv')") is None


class TestMiscPatterns:
    def test_count_column(self) -> None:
        assert COUNT_COLUMN.search("count(t.id)")
        assert COUNT_COLUMN.search("count(*)") is None
        assert COUNT_COLUMN.search("count( 1 )") is None

    def test_union_without_all(self) -> None:
        assert UNION_WITHOUT_ALL.search("SELECT 1 UNION SELECT 2")
        assert UNION_WITHOUT_ALL.search("SELECT 1 UNION ALL SELECT 2") is None

    def test_large_offset_captures_value(self) -> None:
        match = LARGE_OFFSET.search("SELECT a FROM t LIMIT 10 OFFSET 25000")
        assert match
        assert match.group(1) == "25000"

    def test_cast_operator(self) -> None:
        assert CAST_OPERATOR.search("a::INTEGER")
        assert CAST_OPERATOR.search("'{a}'::json")

    def test_out_of_memory_word_boundaries(self) -> None:
        assert OUT_OF_MEMORY.search("-- this hit OOM on the duckling")
        assert OUT_OF_MEMORY.search("-- Out of Memory Error")
        assert OUT_OF_MEMORY.search("SELECT zoom, boomerang FROM t") is None
