"""Shared fixtures: analyzers, a parser, and representative DuckDB queries."""

from __future__ import annotations

import pytest

from duckcheck.analyzers.query_analyzer import QueryAnalyzer
from duckcheck.parsers.sqlglot_parser import SqlglotParser

EVENTS_DASHBOARD_SQL = """
WITH daily AS (
    SELECT user_id, date_trunc('day', created_at) AS day, count(*) AS n
    FROM events
    GROUP BY ALL
),
tagged AS (
    SELECT user_id, list(day) AS days
    FROM daily
    GROUP BY user_id
)
SELECT u.name, t.days
FROM users u
CROSS JOIN tagged t
ORDER BY u.name
"""

REMOTE_SCAN_SQL = (
    "SELECT * FROM read_parquet('s3://lake/events/year=2024/*.parquet') e "
    "JOIN read_parquet('s3://lake/users.parquet') u ON e.user_id = u.id"
)


@pytest.fixture
def analyzer() -> QueryAnalyzer:
    """Analyzer with the default sqlglot parser."""
    return QueryAnalyzer()


@pytest.fixture
def offline_analyzer() -> QueryAnalyzer:
    """Analyzer with no parser available, so only pattern rules run."""
    return QueryAnalyzer(parser=None)


@pytest.fixture
def parser() -> SqlglotParser:
    return SqlglotParser()


@pytest.fixture
def dashboard_sql() -> str:
    return EVENTS_DASHBOARD_SQL.strip()


@pytest.fixture
def remote_sql() -> str:
    return REMOTE_SCAN_SQL
