"""Local relational cache over SQLite -- one table per logical entity.

Provides LocalStore with async operations for dynamically shaped rows:
- prepare_table(): create-if-absent with an inferred column set
- save_records(): infer schema from the first record, bulk insert in one statement
- get_all_records() / get_records(): read rows as dicts, optionally filtered
- update_record() / update_field_values(): update rows matching a filter
- delete_record(): remove a row by its synthetic _localId
- clear_table() / clear_database(): drop one or every registered table

Rows without an explicit primary key receive ``_localId``, an
AUTOINCREMENT key that is unique, strictly increasing and never reused.

Every statement runs in its own transaction. Failures raise StorageError
(TableNotFoundError for a missing table) and are never retried here.
Callers must not issue overlapping writes to the same table: table
creation and bulk insert are separate statements.
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable, Iterable, Iterator, Sequence
from contextlib import contextmanager
from enum import Enum
from typing import Any

import structlog
from pydantic import BaseModel
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from src.fieldsync.constants import LOCAL_ID_FIELD, DbTable
from src.fieldsync.core.errors import InvalidArgumentError, StorageError, TableNotFoundError
from src.fieldsync.store.filters import RecordFilter
from src.fieldsync.store.schema import (
    FieldTypeMapping,
    get_field_type_mappings,
    validate_record_shape,
)
from src.fieldsync.store.values import convert_record, quote_identifier, to_text_literal

logger = structlog.get_logger(__name__)

Row = dict[str, Any]
ResultHook = Callable[[list[Row]], Awaitable[None] | None]

LOCAL_ID_COLUMN = f"{quote_identifier(LOCAL_ID_FIELD)} integer primary key autoincrement"


class WriteResult(BaseModel):
    """Outcome of a write statement."""

    rows_affected: int = 0
    last_insert_id: int | None = None


class FieldValue(BaseModel):
    """A single field assignment for update_field_values()."""

    field: str
    value: Any = None


def _table_name(table: str | Enum) -> str:
    return table.value if isinstance(table, Enum) else table


@contextmanager
def _storage_errors(statement: str, table: str | None) -> Iterator[None]:
    """Translate SQLAlchemy failures into the storage error taxonomy."""
    try:
        yield
    except OperationalError as exc:
        if table is not None and "no such table" in str(exc.orig):
            logger.warning("store.table_not_found", table=table)
            raise TableNotFoundError(table, statement, exc) from exc
        logger.error("store.statement_failed", statement=statement, error=str(exc.orig))
        raise StorageError(statement, exc) from exc
    except SQLAlchemyError as exc:
        logger.error("store.statement_failed", statement=statement, error=str(exc))
        raise StorageError(statement, exc) from exc


class LocalStore:
    """Generic row cache over an async SQLite engine.

    Args:
        engine: AsyncEngine bound to the cache database.
        tables: Registry of tables dropped by clear_database().
    """

    def __init__(self, engine: AsyncEngine, tables: Iterable[str | Enum] = tuple(DbTable)) -> None:
        self._engine = engine
        self._tables = [_table_name(t) for t in tables]

    # ── Statement execution ─────────────────────────────────────────────

    async def _fetch(self, statement: str, table: str) -> list[Row]:
        with _storage_errors(statement, table):
            async with self._engine.begin() as conn:
                result = await conn.exec_driver_sql(statement)
                rows = [dict(row) for row in result.mappings()]
        logger.debug("store.fetched", table=table, rows=len(rows))
        return rows

    async def _write(self, statement: str, table: str, is_insert: bool = False) -> WriteResult:
        with _storage_errors(statement, table):
            async with self._engine.begin() as conn:
                result = await conn.exec_driver_sql(statement)
                write_result = WriteResult(
                    rows_affected=max(result.rowcount, 0),
                    last_insert_id=result.lastrowid if is_insert else None,
                )
        return write_result

    @staticmethod
    async def _notify(hook: ResultHook | None, rows: list[Row]) -> None:
        if hook is None:
            return
        outcome = hook(rows)
        if inspect.isawaitable(outcome):
            await outcome

    # ── Schema ──────────────────────────────────────────────────────────

    async def prepare_table(
        self,
        table: str | Enum,
        field_type_mappings: Sequence[FieldTypeMapping],
        primary_key: str | None = None,
    ) -> None:
        """Create the table if it does not exist.

        Without ``primary_key`` a ``_localId`` AUTOINCREMENT column is added
        as the key; otherwise the named field becomes the primary key. An
        existing table is left untouched even if its columns differ.
        """
        name = _table_name(table)
        columns = []
        for field in field_type_mappings:
            column = f"{quote_identifier(field.name)} {field.type.value}"
            if field.name == primary_key:
                column += " primary key"
            columns.append(column)
        if not primary_key:
            columns.insert(0, LOCAL_ID_COLUMN)

        statement = f"create table if not exists {quote_identifier(name)} ({','.join(columns)})"
        logger.debug("store.prepare_table", table=name, statement=statement)
        await self._write(statement, name)

    # ── Writes ──────────────────────────────────────────────────────────

    async def save_records(
        self,
        table: str | Enum,
        records: Sequence[Row],
        primary_key: str | None = None,
    ) -> WriteResult:
        """Insert records in one statement, creating the table on first use.

        The schema is inferred from the first record and every other record
        must carry the same field set. An empty batch touches nothing.

        Raises:
            InvalidArgumentError: If a record's fields differ from the first record's.
            StorageError: If table creation or the insert fails.
        """
        if not records:
            return WriteResult()

        name = _table_name(table)
        mappings = get_field_type_mappings(records[0])
        for record in records:
            validate_record_shape(record, mappings)

        await self.prepare_table(name, mappings, primary_key)

        keys = ",".join(quote_identifier(m.name) for m in mappings)
        rows = []
        for record in records:
            converted = convert_record(record)
            rows.append("(" + ",".join(converted[m.name] for m in mappings) + ")")
        statement = f"insert into {quote_identifier(name)} ({keys}) values {','.join(rows)}"
        logger.debug("store.save_records", table=name, records=len(records), statement=statement)

        return await self._write(statement, name, is_insert=True)

    async def update_record(
        self,
        table: str | Enum,
        record: Row,
        record_filter: RecordFilter,
    ) -> WriteResult:
        """Set every non-None field of ``record`` on the rows matching the filter.

        Fields whose value is None are left unchanged rather than nulled.

        Raises:
            InvalidArgumentError: If no filter is given or no field has a value.
        """
        name = _table_name(table)
        values = {key: value for key, value in record.items() if value is not None}
        if not values:
            raise InvalidArgumentError("update_record needs at least one non-null field.")
        if record_filter is None:
            raise InvalidArgumentError("Specify a filter for update_record.")

        assignments = ",".join(
            f"{quote_identifier(key)} = {literal}"
            for key, literal in convert_record(values).items()
        )
        statement = f"update {quote_identifier(name)} set {assignments} {record_filter.to_sql()}"
        logger.debug("store.update_record", table=name, statement=statement)
        return await self._write(statement, name)

    async def update_field_values(
        self,
        table: str | Enum,
        field_values: Sequence[FieldValue],
        record_filter: RecordFilter,
    ) -> WriteResult:
        """Set named fields to text values on the rows matching the filter."""
        name = _table_name(table)
        if not field_values:
            raise InvalidArgumentError("update_field_values needs at least one field value.")
        if record_filter is None:
            raise InvalidArgumentError("Specify a filter for update_field_values.")

        assignments = ", ".join(
            f"{quote_identifier(fv.field)} = {to_text_literal(fv.value)}" for fv in field_values
        )
        statement = f"update {quote_identifier(name)} set {assignments} {record_filter.to_sql()}"
        logger.debug("store.update_field_values", table=name, statement=statement)
        return await self._write(statement, name)

    async def delete_record(self, table: str | Enum, local_id: int) -> WriteResult:
        """Delete the row whose ``_localId`` equals ``local_id``."""
        name = _table_name(table)
        statement = (
            f"delete from {quote_identifier(name)} "
            f"where {quote_identifier(LOCAL_ID_FIELD)} = {int(local_id)}"
        )
        logger.debug("store.delete_record", table=name, statement=statement)
        return await self._write(statement, name)

    # ── Reads ───────────────────────────────────────────────────────────

    async def get_all_records(
        self,
        table: str | Enum,
        on_result: ResultHook | None = None,
    ) -> list[Row]:
        """Return every row of a table.

        Raises:
            TableNotFoundError: If the table has not been created.
        """
        name = _table_name(table)
        statement = f"select * from {quote_identifier(name)}"
        logger.debug("store.get_all_records", table=name, statement=statement)
        rows = await self._fetch(statement, name)
        await self._notify(on_result, rows)
        return rows

    async def get_records(
        self,
        table: str | Enum,
        record_filter: RecordFilter | None,
        on_result: ResultHook | None = None,
    ) -> list[Row]:
        """Return rows matching a filter.

        Raises:
            InvalidArgumentError: If no filter is given; use get_all_records() instead.
        """
        if record_filter is None or record_filter.is_empty():
            raise InvalidArgumentError('Specify a filter or use "get_all_records" instead.')

        name = _table_name(table)
        statement = f"select * from {quote_identifier(name)} {record_filter.to_sql()}"
        logger.debug("store.get_records", table=name, statement=statement)
        rows = await self._fetch(statement, name)
        await self._notify(on_result, rows)
        return rows

    # ── Drops ───────────────────────────────────────────────────────────

    async def clear_table(self, table: str | Enum) -> None:
        """Drop a table; a table that does not exist is not an error."""
        name = _table_name(table)
        logger.debug("store.clear_table", table=name)
        await self._write(f"drop table if exists {quote_identifier(name)}", name)

    async def clear_database(self) -> None:
        """Drop every registered table."""
        logger.debug("store.clear_database", tables=self._tables)
        for name in self._tables:
            await self.clear_table(name)
