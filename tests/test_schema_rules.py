"""Tests for the schema pattern rules."""

from __future__ import annotations

from duckcheck.rules import schema


def _casts(n: int) -> str:
    columns = ", ".join(f"c{i}::INTEGER" for i in range(n))
    return f"SELECT {columns} FROM t"


class TestCastInJoinKey:
    def test_postfix_cast(self) -> None:
        sql = "SELECT * FROM a JOIN b ON a.id::VARCHAR = b.id"
        [finding] = schema.check_cast_in_join_key(sql)

        assert finding.severity == "warning"
        assert finding.offset is not None
        assert sql[finding.offset.start : finding.offset.end] == "::"

    def test_cast_call(self) -> None:
        sql = "SELECT * FROM a JOIN b ON CAST(a.id AS INTEGER) = b.id"
        assert schema.check_cast_in_join_key(sql)

    def test_cast_outside_join(self) -> None:
        sql = "SELECT a.id::VARCHAR FROM a JOIN b ON a.id = b.id"
        assert schema.check_cast_in_join_key(sql) == []


class TestExcessiveCasts:
    def test_seven(self) -> None:
        assert schema.check_excessive_casts(_casts(7)) == []

    def test_eight(self) -> None:
        [finding] = schema.check_excessive_casts(_casts(8))
        assert finding.title == "8 type cast operations"

    def test_both_syntaxes_counted(self) -> None:
        sql = _casts(4) + " WHERE " + " AND ".join(f"CAST(d{i} AS INT) > 0" for i in range(4))
        assert schema.check_excessive_casts(sql)


class TestTimestampTypes:
    def test_mixed(self) -> None:
        sql = "SELECT a::TIMESTAMPTZ, b::TIMESTAMP FROM t"
        [finding] = schema.check_mixed_timestamp_types(sql)

        assert finding.offset is not None
        assert sql[finding.offset.start : finding.offset.end] == "::TIMESTAMP"

    def test_zoned_only(self) -> None:
        assert schema.check_mixed_timestamp_types("SELECT a::TIMESTAMPTZ FROM t") == []
        sql = "SELECT CAST(a AS TIMESTAMP WITH TIME ZONE) FROM t"
        assert schema.check_mixed_timestamp_types(sql) == []

    def test_unzoned_only(self) -> None:
        assert schema.check_mixed_timestamp_types("SELECT a::TIMESTAMP FROM t") == []

    def test_column_definition(self) -> None:
        sql = "CREATE TABLE t (seen_at TIMESTAMP, synced_at TIMESTAMPTZ)"
        assert schema.check_mixed_timestamp_types(sql)
