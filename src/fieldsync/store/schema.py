"""Schema inference for dynamically shaped cache rows.

Rows coming from Salesforce carry arbitrary field sets, so each table's
columns are inferred from the first row written to it:
numbers and booleans map to ``integer``, everything else to ``text``.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any

from pydantic import BaseModel

from src.fieldsync.core.errors import InvalidArgumentError


class StorageType(str, Enum):
    INTEGER = "integer"
    TEXT = "text"


class FieldTypeMapping(BaseModel):
    """One column of an inferred table schema."""

    name: str
    type: StorageType


def get_field_type_mappings(record: Mapping[str, Any]) -> list[FieldTypeMapping]:
    """Return column name/type pairs for a record, in the record's key order.

    e.g. ``{"field1": "hello", "field2": 123}`` ->
    ``[("field1", text), ("field2", integer)]``
    """
    result: list[FieldTypeMapping] = []
    for name, value in record.items():
        if isinstance(value, (bool, int, float)):
            storage_type = StorageType.INTEGER
        else:
            storage_type = StorageType.TEXT
        result.append(FieldTypeMapping(name=name, type=storage_type))
    return result


def validate_record_shape(
    record: Mapping[str, Any],
    mappings: list[FieldTypeMapping],
) -> None:
    """Reject a record whose field set differs from the inferred schema.

    Raises:
        InvalidArgumentError: If the record has missing or extra fields.
    """
    expected = {m.name for m in mappings}
    actual = set(record.keys())
    if actual != expected:
        missing = sorted(expected - actual)
        extra = sorted(actual - expected)
        raise InvalidArgumentError(
            f"Record fields do not match table schema (missing={missing}, extra={extra})"
        )
