"""Network rules: remote files, globbing and MotherDuck data movement."""

from __future__ import annotations

from duckcheck.models import Finding, TextRange
from duckcheck.utils import sql_patterns as p
from duckcheck.utils.findings import build_finding, find_all, span_of
from duckcheck.utils.sql_text import iter_table_refs


def check_remote_glob(sql: str) -> list[Finding]:
    """A ** recursive glob in a remote path."""
    match = p.REMOTE_GLOB.search(sql)
    if match is None:
        return []
    return [
        build_finding(
            "glob-many-files",
            "info",
            "Recursive glob over remote storage",
            "A ** glob makes DuckDB list every object under the prefix before reading "
            "anything. On object stores with many files the listing alone can take a long "
            "time.",
            "Narrow the glob to the partitions you need (s3://bucket/events/year=2024/*.parquet) "
            "or keep a manifest of file paths.",
            "network",
            offset=span_of(match),
        )
    ]


def check_remote_select_star(sql: str) -> list[Finding]:
    """SELECT * combined with a remote file source."""
    source = p.REMOTE_SOURCE.search(sql)
    if source is None:
        return []
    star = p.SELECT_STAR.search(sql)
    if star is None:
        return []
    return [
        build_finding(
            "remote-file-select-star",
            "error",
            "SELECT * from remote file",
            "Reading all columns from a remote Parquet or CSV file downloads far more data "
            "than needed over the network. This is extremely slow for wide files.",
            "Select only the columns you need. For remote Parquet, DuckDB prunes columns "
            "and pushes filters down, but only if the query lets it.",
            "network",
            offset=span_of(star),
        )
    ]


def check_local_remote_transfer(sql: str) -> list[Finding]:
    """A local file read in a query that also touches MotherDuck (md:)."""
    local = p.LOCAL_READ.search(sql)
    if local is None or p.MOTHERDUCK_REFERENCE.search(sql) is None:
        return []
    return [
        build_finding(
            "md-local-remote-transfer",
            "warning",
            "Possible large local-to-cloud data transfer",
            "Reading local files and combining them with MotherDuck cloud tables uploads the "
            "local data during the query. Large local files will bottleneck on upload speed.",
            "Upload the local data to MotherDuck first (CREATE TABLE ... AS SELECT * FROM "
            "read_csv(...)) and then join cloud-to-cloud.",
            "network",
            offset=span_of(local),
        )
    ]


def check_remote_without_filter(sql: str) -> list[Finding]:
    """A remote file read in a statement that has no WHERE at all."""
    source = p.REMOTE_SOURCE.search(sql)
    if source is None or p.WHERE_KEYWORD.search(sql):
        return []
    return [
        build_finding(
            "read-remote-no-filter",
            "warning",
            "Remote file read without a filter",
            "Without a WHERE clause DuckDB cannot use Parquet row-group statistics to skip "
            "data, so the whole remote file is downloaded.",
            "Add a WHERE clause on a column the file is sorted or partitioned by.",
            "network",
            offset=span_of(source),
        )
    ]


def check_multiple_remote_scans(sql: str) -> list[Finding]:
    """Two or more remote file reads."""
    sources = find_all(sql, p.REMOTE_SOURCE)
    if len(sources) < 2:
        return []
    count = len(sources)
    return [
        build_finding(
            "multiple-remote-scans",
            "warning",
            f"{count} remote file scans",
            f"This statement reads remote files {count} times. Every scan is a separate "
            "round trip to object storage, even when the same file is read twice.",
            "Read each remote file once into a CTE or a local temp table and reuse it.",
            "network",
            offset=span_of(sources[1]),
        )
    ]


def check_partitioned_path_without_hive(sql: str) -> list[Finding]:
    """A key=value remote path read without hive_partitioning."""
    match = p.REMOTE_PARTITIONED_PATH.search(sql)
    if match is None or p.HIVE_PARTITIONING.search(sql):
        return []
    return [
        build_finding(
            "read-parquet-no-hive",
            "info",
            "Partitioned path without hive_partitioning",
            "The path contains key=value directories, but hive_partitioning is not set "
            "explicitly. Filters on the partition keys can only skip whole files when the "
            "partitions are recognised.",
            "Pass hive_partitioning = true to the read function and filter on the "
            "partition columns.",
            "network",
            offset=span_of(match),
        )
    ]


def check_cross_database_join(sql: str) -> list[Finding]:
    """Three-part table names from two or more databases."""
    databases: list[str] = []
    second = None
    for ref in iter_table_refs(sql):
        if len(ref.parts) != 3:
            continue
        if ref.parts[0] not in databases:
            databases.append(ref.parts[0])
            if len(databases) == 2:
                second = ref
    if second is None:
        return []
    return [
        build_finding(
            "md-cross-database-join",
            "info",
            "Query spans multiple databases",
            f"This query combines tables from {len(databases)} databases "
            f"({', '.join(databases)}). If they live in different places (local and "
            "MotherDuck, or two attached files) rows are moved between them during "
            "execution.",
            "Keep the joined tables in the same database, or copy the smaller side over "
            "before joining.",
            "network",
            offset=TextRange(second.start, second.end),
        )
    ]
