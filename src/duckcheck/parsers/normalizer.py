"""Rewrite DuckDB-only syntax into text a general SQL grammar accepts.

The rewritten text is only ever handed to the parser. Pattern rules and
highlighting always work on the caller's untouched text.
"""

from __future__ import annotations

import re

from duckcheck.utils.sql_text import replace_balanced_call

# Postfix casts such as val::BOOLEAN, x::INTEGER[] or amount::DECIMAL(10,2)
CAST_SUFFIX_PATTERN = re.compile(
    r"::[A-Za-z_][A-Za-z0-9_]*(?:\[\])?(?:\s*\(\s*\d+(?:\s*,\s*\d+)?\s*\))?"
)

# Function name -> placeholder, applied in this order. The placeholder keeps the
# shape of the surrounding clause: a scalar, a one-row derived table, an
# aggregate or a row value.
DIALECT_FUNCTION_PLACEHOLDERS: tuple[tuple[str, str], ...] = (
    ("list_transform", "NULL"),
    ("json_extract_string", "NULL"),
    ("json_each", "(SELECT 1)"),
    ("LIST", "ARRAY_AGG(1)"),
    ("struct_pack", "ROW(1)"),
)

_RESHAPE_TABLE = r'((?:"?\w+"?\.)*"?\w+"?)'

PIVOT_CLAUSE_PATTERN = re.compile(
    rf"\bPIVOT\s+{_RESHAPE_TABLE}\s+ON\s+[\s\S]*?\bUSING\s+\w+\s*\([^)]*\)"
    r"(?:\s*,\s*\w+\s*\([^)]*\))*",
    re.IGNORECASE,
)

UNPIVOT_CLAUSE_PATTERN = re.compile(
    rf"\bUNPIVOT\s+{_RESHAPE_TABLE}\s+ON\s+[\s\S]*?"
    r"(?:\bIN\s*\([^)]*\)|\bINTO\s+NAME\s+\w+\s+VALUE\s+\w+(?:\s*,\s*\w+)*)",
    re.IGNORECASE,
)


def normalize(text: str) -> str:
    """Return ``text`` with dialect-only constructs replaced by plain SQL.

    Steps run in order, each on the output of the previous one:

    1. strip ``::TYPE`` casts,
    2. replace balanced calls to DuckDB-only functions with placeholders,
    3. replace PIVOT / UNPIVOT statements with ``SELECT * FROM <table>``.

    Never raises.
    """
    result = CAST_SUFFIX_PATTERN.sub("", text)
    for func_name, placeholder in DIALECT_FUNCTION_PLACEHOLDERS:
        result = replace_balanced_call(result, func_name, placeholder)
    result = PIVOT_CLAUSE_PATTERN.sub(r"SELECT * FROM \1", result)
    result = UNPIVOT_CLAUSE_PATTERN.sub(r"SELECT * FROM \1", result)
    return result
