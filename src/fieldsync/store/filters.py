"""Equality and inclusion filters for cache reads and updates.

Filters render to a ``where`` clause whose values go through the same
literal conversion as inserted data, so a filter on a cached value
matches the way that value was stored.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.fieldsync.core.errors import InvalidArgumentError
from src.fieldsync.store.values import quote_identifier, to_sql_literal


class RecordFilter(BaseModel):
    """Conjunction of ``field = value`` and ``field in (...)`` conditions.

    Examples:
        RecordFilter.where(layoutId="00h1")
        RecordFilter.where_in("sectionId", ["s1", "s2"])
        RecordFilter.where(_syncStatus="Unsynced") & RecordFilter.where_in("Id", ids)
    """

    model_config = ConfigDict(frozen=True)

    equals: dict[str, Any] = Field(default_factory=dict)
    includes: dict[str, list[Any]] = Field(default_factory=dict)

    @classmethod
    def where(cls, **equals: Any) -> RecordFilter:
        return cls(equals=equals)

    @classmethod
    def where_in(cls, field: str, values: Iterable[Any]) -> RecordFilter:
        return cls(includes={field: list(values)})

    def __and__(self, other: RecordFilter) -> RecordFilter:
        return RecordFilter(
            equals={**self.equals, **other.equals},
            includes={**self.includes, **other.includes},
        )

    def is_empty(self) -> bool:
        return not self.equals and not self.includes

    def to_sql(self) -> str:
        """Render the filter as a ``where`` clause.

        Raises:
            InvalidArgumentError: If the filter has no conditions.
        """
        if self.is_empty():
            raise InvalidArgumentError("A filter needs at least one condition.")

        conditions = [
            f"{quote_identifier(field)} = {to_sql_literal(value)}"
            for field, value in self.equals.items()
        ]
        for field, values in self.includes.items():
            # SQLite accepts an empty list and matches no rows
            literals = ",".join(to_sql_literal(v) for v in values)
            conditions.append(f"{quote_identifier(field)} in ({literals})")
        return "where " + " and ".join(conditions)
