"""Parsing of inline literal value sets from catalog type strings and DDL."""

import re
from typing import Optional, Tuple

# enum('a','b') / set('a','b') / ENUM('a', 'b')
_LITERAL_TYPE = re.compile(r"^\s*(?:enum|set)\s*\((?P<body>.*)\)\s*$", re.IGNORECASE | re.DOTALL)

# A single-quoted SQL literal; quotes are escaped either as '' or \'
_QUOTED = re.compile(r"'((?:[^'\\]|\\.|'')*)'", re.DOTALL)

# Reusable regex components for CHECK constraints
IDENTIFIER = r"[\"'`\[]?(\w+)[\"'`\]]?"
WHITESPACE = r"\s*"
IN = r"IN"
# Quoted literals inside the list may contain parentheses
VALUES = r"\(((?:'(?:[^'\\]|\\.|'')*'|[^')])*)\)"

_CHECK_IN = re.compile(
    IDENTIFIER + r"\s+" + IN + WHITESPACE + VALUES,
    re.IGNORECASE,
)


def _unescape(value: str) -> str:
    value = value.replace("''", "'")
    return re.sub(r"\\(.)", r"\1", value)


def parse_literal_list(definition: str) -> Tuple[str, ...]:
    """Extract the quoted literals of an ENUM/SET definition.

    Accepts either the full type string (``enum('G','PG','PG-13')``) or
    just the parenthesised body. Literals keep their declaration order
    and are returned verbatim apart from quote unescaping.
    """
    match = _LITERAL_TYPE.match(definition)
    body = match.group("body") if match else definition
    return tuple(_unescape(m.group(1)) for m in _QUOTED.finditer(body))


def is_literal_type(native_type: str, keyword: str) -> bool:
    """True if ``native_type`` is ``keyword(...)`` (e.g. ``enum('a')``)."""
    return bool(re.match(rf"^\s*{keyword}\s*\(", native_type, re.IGNORECASE))


def extract_check_in_values(ddl: str, column_name: str) -> Optional[Tuple[str, ...]]:
    """Find ``column IN ('a', 'b')`` constraints for a column in table DDL.

    Handles constraints like:
    - status IN ('active', 'inactive')
    - "status" IN ('active', 'inactive')
    """
    if not ddl:
        return None
    for match in _CHECK_IN.finditer(ddl):
        if match.group(1).lower() != column_name.lower():
            continue
        values = parse_literal_list(match.group(2))
        if values:
            return values
    return None
