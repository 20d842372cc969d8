"""Conversion of Python values into SQLite literals for DML statements.

Rules, applied to every value before it is written:
- booleans become 1 or 0
- any other falsy value (None, "", 0, 0.0) becomes an empty string literal
- strings are single-quoted with embedded quotes doubled
- ints and floats are written as-is

Numeric 0 is written as '' and reads back as an empty string.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

EMPTY_LITERAL = "''"


def quote_text(value: str) -> str:
    """Single-quote a string, doubling embedded single quotes."""
    return "'" + value.replace("'", "''") + "'"


def to_sql_literal(value: Any) -> str:
    """Render one value as a SQLite literal.

    e.g. ``"O'Brien"`` -> ``'O''Brien'``, ``True`` -> ``1``, ``0`` -> ``''``
    """
    if isinstance(value, bool):
        return "1" if value else "0"
    if not value:
        return EMPTY_LITERAL
    if isinstance(value, str):
        return quote_text(value)
    if isinstance(value, (int, float)):
        return repr(value)
    return quote_text(str(value))


def to_text_literal(value: Any) -> str:
    """Render one value as a quoted text literal (used for field value edits)."""
    if isinstance(value, bool):
        return "'1'" if value else "'0'"
    if not value:
        return EMPTY_LITERAL
    return quote_text(str(value))


def convert_record(record: Mapping[str, Any]) -> dict[str, str]:
    """Convert every value of a record into a SQLite literal.

    e.g. ``{"name": "Hello", "done": True}`` -> ``{"name": "'Hello'", "done": "1"}``
    """
    return {key: to_sql_literal(value) for key, value in record.items()}


def quote_identifier(name: str) -> str:
    """Double-quote a table or column name, doubling embedded double quotes."""
    return '"' + name.replace('"', '""') + '"'
