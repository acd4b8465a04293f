"""Regex patterns for SQL analysis.

All patterns are pre-compiled once with re.IGNORECASE and shared read-only by
the pattern rules. None of them nest unbounded quantifiers.
"""

from __future__ import annotations

import re

_I = re.IGNORECASE

# URL schemes DuckDB reads through httpfs and the cloud extensions
REMOTE_SCHEME = r"(?:https?|s3a?|gs|gcs|r2|az|azure|abfss?|hf)"

# Table functions that read files
_READ_FUNCTION = r"(?:read_\w+|parquet_scan|delta_scan|iceberg_scan)"

# ── Clause keywords ────────────────────────────────────────────────

SELECT_STAR = re.compile(r"\bselect\s+\*", _I)
WHERE_KEYWORD = re.compile(r"\bwhere\b", _I)
ON_KEYWORD = re.compile(r"\bon\b", _I)
JOIN_KEYWORD = re.compile(r"\bjoin\b", _I)
ORDER_BY = re.compile(r"\border\s+by\b", _I)
GROUP_BY = re.compile(r"\bgroup\s+by\b", _I)
OVER_CLAUSE = re.compile(r"\bover\s*\(", _I)
PARTITION_BY = re.compile(r"\bpartition\s+by\b", _I)
LIMIT_KEYWORD = re.compile(r"\blimit\b", _I)
QUALIFY_KEYWORD = re.compile(r"\bqualify\b", _I)
ASOF_KEYWORD = re.compile(r"\basof\b", _I)

# Clause keywords that end a WHERE body (matched at a word start)
WHERE_TERMINATOR = re.compile(
    r"(?:group\s+by|order\s+by|having|qualify|window|limit|offset|union|intersect|except"
    r"|returning)\b",
    _I,
)

# Keywords that end a join condition
ON_TERMINATOR = re.compile(
    r"(?:join|inner|left|right|full|cross|natural|positional|asof|anti|semi|where"
    r"|group\s+by|order\s+by|having|qualify|window|limit|offset|union|intersect|except)\b",
    _I,
)

# ── Non-spillable operators ────────────────────────────────────────

LIST_CALL = re.compile(r"\blist\s*\(", _I)
LIST_DISTINCT = re.compile(r"\blist\s*\(\s*distinct\b", _I)
STRING_AGG_CALL = re.compile(r"\bstring_agg\s*\(", _I)
ORDERED_AGGREGATE = re.compile(
    r"\b(?:list|string_agg|array_agg|group_concat|listagg)\s*\([^)]*\border\s+by\b", _I
)
HOLISTIC_AGGREGATE = re.compile(
    r"\b(?:median|quantile(?:_cont|_disc)?|percentile_(?:cont|disc)|mode)\s*\(", _I
)
PIVOT_KEYWORD = re.compile(r"\bpivot\b", _I)
UNPIVOT_KEYWORD = re.compile(r"\bunpivot\b", _I)
USING_KEYWORD = re.compile(r"\busing\b", _I)

# ── Memory ─────────────────────────────────────────────────────────

UNNEST_COLUMN = re.compile(r"\bunnest\s*\(\s*([A-Za-z_][\w.]*)\s*[),]", _I)
RECURSIVE_CTE = re.compile(r"\bwith\s+recursive\b", _I)
ROW_LIMIT = re.compile(r"\blimit\s+\d+", _I)
DEPTH_GUARD = re.compile(r"\b(?:depth|level|lvl|iteration|n|i|hops?)\s*<=?\s*\d+", _I)
USING_KEY = re.compile(r"\busing\s+key\b", _I)
CREATE_TABLE_AS = re.compile(
    r"\bcreate\s+(?:or\s+replace\s+)?(?:temp(?:orary)?\s+)?table\s+(?:if\s+not\s+exists\s+)?"
    r"[\w.\"]+\s+as\s*\(?\s*(?:select|with|from)\b",
    _I,
)
DISTINCT_STAR = re.compile(r"\bselect\s+distinct\s+\*", _I)
COUNT_DISTINCT = re.compile(r"\bcount\s*\(\s*distinct\b", _I)
INSERT_INTO = re.compile(r"\binsert\s+(?:or\s+\w+\s+)?into\b", _I)
CTE_DEFINITION = re.compile(r"\bas\s*(?:(?:not\s+)?materialized\s*)?\(", _I)
LIST_LAMBDA_CALL = re.compile(
    r"\b(?:list_transform|list_apply|array_transform|array_apply)\s*\(", _I
)
OUT_OF_MEMORY = re.compile(r"\bout\s+of\s+memory\b|\boom\b", _I)

# ── JSON ───────────────────────────────────────────────────────────

# -> / ->> followed by a path; lambda arrows are not counted
JSON_ARROW = re.compile(r"->>?\s*(?:'|\d)", _I)
JSON_EACH_CALL = re.compile(r"\bjson_(?:each|tree)\s*\(", _I)
JSON_ARRAY_WILDCARD = re.compile(r"'\$[^']*\[\*\]", _I)

# ── Performance ────────────────────────────────────────────────────

LEADING_WILDCARD_LIKE = re.compile(r"\bi?like\s+'%[^']*'", _I)
FUNCTION_ON_COLUMN_COMPARISON = re.compile(
    r"\b(?:upper|lower|trim|ltrim|rtrim|cast|extract|date_trunc|date_part|year|month|day"
    r"|strftime|length|substring|substr|replace)\s*\([^()]*\)\s*"
    r"(?:=|!=|<>|<=|>=|<|>|\blike\b|\bin\b)",
    _I,
)
ORDER_DESC_LIMIT_1 = re.compile(
    r"\border\s+by\s+[\w.]+\s+desc(?:\s+nulls\s+(?:first|last))?\s+limit\s+1\b", _I
)
ROW_NUMBER_WINDOW = re.compile(
    r"\b(row_number\s*\(\s*\))\s*over\s*\([^)]*\border\s+by\b", _I
)
RANK_FILTER = re.compile(
    r"\b(?:\w*_)?(?:row_number|rn|row_num|rownum)\s*(?:<=|=|<)\s*[12]\b", _I
)
NOT_IN_SUBQUERY = re.compile(r"\bnot\s+in\s*\(\s*select\b", _I)
SUBQUERY_OPEN = re.compile(r"\(\s*select\b", _I)
DERIVED_TABLE_PREFIX = re.compile(r"\b(?:from|join|as|lateral|materialized)\s*$", _I)
QUALIFIED_EQUALITY = re.compile(
    r"\b([A-Za-z_]\w*)\.(\w+)\s*=\s*([A-Za-z_]\w*)\.(\w+)", _I
)
IN_LIST_OPEN = re.compile(r"\bin\s*\(", _I)
LITERAL_ITEM = re.compile(r"\s*(?:'(?:[^']|'')*'|[-+]?\d+(?:\.\d+)?)\s*", _I)
CAST_EXPRESSION = re.compile(r"::|\b(?:try_)?cast\s*\(", _I)
# <, >, <=, >= but not <>, -> or ->>
INEQUALITY = re.compile(r"(?<![-<>!=])(?:<=|>=|<(?![>=])|>(?![>=]))")
RANKING_OR_WINDOW = re.compile(
    r"\b(?:row_number|rank|dense_rank|lag|lead|first_value|last_value)\s*\(|\bover\s*\(", _I
)
NEIGHBOR_OFFSET = re.compile(r"[+-]\s*(?:1\b|interval\b)", _I)
LARGE_OFFSET = re.compile(r"\boffset\s+(\d+)", _I)
SIMPLE_REGEXP = re.compile(
    r"\bregexp_(?:matches|full_match)\s*\(\s*[\w.]+\s*,\s*'(?:\^[\w ]+|[\w ]+\$)'", _I
)
UNION_WITHOUT_ALL = re.compile(r"\bunion\b(?!\s+all\b)", _I)
COPY_KEYWORD = re.compile(r"\bcopy\b", _I)
COPY_TARGET = re.compile(r"\bto\s+'([^']*)'", _I)
PARQUET_FORMAT = re.compile(r"\bformat\s*[\s'\"]\s*parquet\b", _I)
COMPRESSION_OPTION = re.compile(r"\b(?:compression|codec)\b", _I)

# ── Network ────────────────────────────────────────────────────────

REMOTE_GLOB = re.compile(rf"'{REMOTE_SCHEME}://[^']*\*\*[^']*'", _I)
REMOTE_SOURCE = re.compile(
    rf"(?:\b{_READ_FUNCTION}\s*\(\s*\[?\s*|\bfrom\s+)'{REMOTE_SCHEME}://", _I
)
LOCAL_READ = re.compile(rf"\b{_READ_FUNCTION}\s*\(\s*\[?\s*'(?![a-z0-9]+://)", _I)
MOTHERDUCK_REFERENCE = re.compile(r"\bmd:", _I)
REMOTE_PARTITIONED_PATH = re.compile(rf"'{REMOTE_SCHEME}://[^']*/\w+=[^']*'", _I)
HIVE_PARTITIONING = re.compile(r"\bhive_partitioning\b", _I)

# ── Best practice ──────────────────────────────────────────────────

RANKING_FUNCTION = re.compile(r"\b(?:row_number|rank|dense_rank|ntile)\s*\(", _I)
RANKING_NAME = re.compile(r"\b(?:row_number|rank|dense_rank|ntile)\b", _I)
RANKING_ALIAS = re.compile(
    r"\b(?:row_number|rank|dense_rank|ntile)\s*\([^()]*\)\s*over\s*\([^()]*\)\s+as\s+(\w+)", _I
)
NUMERIC_COMPARISON = re.compile(r"\b(\w+)\s*(?:<=|>=|=|<|>)\s*\d", _I)
VERBOSE_GROUP_BY = re.compile(r"\bgroup\s+by\s+(?!all\b)[\w.]+(?:\s*,\s*[\w.]+){3,}", _I)
LEFT_JOIN_ON_TRUE = re.compile(
    r"\bleft\s+(?:outer\s+)?join\s+[\w.\"]+(?:\s+(?:as\s+)?\w+)?\s+on\s+true\b", _I
)
EQUALITY_TERM = re.compile(
    r"\b([A-Za-z_][\w.]*)\s*=\s*('(?:[^']|'')*'|-?\d+(?:\.\d+)?)", _I
)
OR_SEPARATOR = re.compile(r"\s+or\s+", _I)
BETWEEN_KEYWORD = re.compile(r"\bbetween\b", _I)
PRECEDING_OPERAND = re.compile(r"([\w.]+)\s+(?:not\s+)?$", _I)
TEMPORAL_COLUMN = re.compile(r"(?:date|time|_at|_ts|_on|day|^ts)$", _I)
TEMPORAL_VALUE = re.compile(
    r"\b(?:date|timestamp(?:tz)?)\s+'|'\d{4}-\d{2}-\d{2}|\bcurrent_(?:date|timestamp)\b|\bnow\s*\(",
    _I,
)
CONDITIONAL_AGGREGATE = re.compile(r"\b(?:sum|count|avg|min|max)\s*\(\s*case\s+when\b", _I)
LIKE_PREFIX = re.compile(r"\blike\s+'[^%_'][^%_']*%'", _I)
CASE_TOKEN = re.compile(r"\b(case|when|end)\b", _I)
GROUP_BY_ORDINAL = re.compile(r"\bgroup\s+by\s+\d+\b", _I)
CONCAT_OPERATOR = re.compile(r"\|\|")
COUNT_COLUMN = re.compile(r"\bcount\s*\(\s*(?!\*|distinct\b|1\s*\)|\))[\w.]+\s*\)", _I)

# ── Schema ─────────────────────────────────────────────────────────

CAST_OPERATOR = re.compile(r"::\s*[A-Za-z_]", _I)
CAST_CALL = re.compile(r"\b(?:try_)?cast\s*\(", _I)
ZONED_TIMESTAMP = re.compile(r"\btimestamptz\b|\btimestamp\s+with\s+time\s+zone\b", _I)
UNZONED_TIMESTAMP = re.compile(
    r"::\s*timestamp(?:_(?:ns|ms|s))?\b(?!\s+with\b)"
    r"|\bas\s+timestamp(?:_(?:ns|ms|s))?\s*\)"
    r"|\btimestamp\s+'"
    r"|\btimestamp\s+without\s+time\s+zone\b"
    r"|\btimestamp_(?:ns|ms|s)\b"
    r"|\b\w+\s+timestamp\s*(?:,|\)|\bnot\b|\bdefault\b|\bprimary\b)",
    _I,
)
