"""Survey repository -- locally editable survey records in the cache.

A survey is created locally when a user starts it and every field edit
re-flags it as unsynced. Only the SyncReconciler marks a survey synced,
after the remote system confirmed the push.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import structlog

from src.fieldsync.constants import (
    LOCAL_ID_FIELD,
    REMOTE_ID_FIELD,
    SYNC_STATUS_FIELD,
    DbTable,
    SyncStatus,
)
from src.fieldsync.core.errors import InvalidArgumentError, TableNotFoundError
from src.fieldsync.store.filters import RecordFilter
from src.fieldsync.store.local_store import FieldValue, LocalStore

logger = structlog.get_logger(__name__)


class SurveyRepository:
    """CRUD for survey rows with sync status bookkeeping.

    The survey table's columns are inferred from the first survey saved, so
    every survey should carry the same field set (see field types cached by
    the metadata refresh).

    Args:
        store: Local cache holding the survey table.
        table: Survey table name.
    """

    def __init__(self, store: LocalStore, table: str = DbTable.SURVEY.value) -> None:
        self._store = store
        self._table = table

    async def create_survey(self, fields: Mapping[str, Any]) -> int:
        """Save a new unsynced survey and return its ``_localId``."""
        reserved = {LOCAL_ID_FIELD, SYNC_STATUS_FIELD} & set(fields)
        if reserved:
            raise InvalidArgumentError(f"Survey fields may not set {sorted(reserved)}")

        record = {REMOTE_ID_FIELD: "", **fields, SYNC_STATUS_FIELD: SyncStatus.UNSYNCED.value}
        result = await self._store.save_records(self._table, [record])
        logger.info("survey.created", local_id=result.last_insert_id)
        return result.last_insert_id

    async def update_survey_fields(self, local_id: int, field_values: Mapping[str, Any]) -> None:
        """Apply field edits to a survey and flag it unsynced."""
        if not field_values:
            raise InvalidArgumentError("No survey fields to update.")
        updates = [FieldValue(field=name, value=value) for name, value in field_values.items()]
        updates.append(FieldValue(field=SYNC_STATUS_FIELD, value=SyncStatus.UNSYNCED.value))
        await self._store.update_field_values(
            self._table, updates, RecordFilter.where(**{LOCAL_ID_FIELD: local_id})
        )
        logger.debug("survey.updated", local_id=local_id, fields=list(field_values))

    async def get_survey(self, local_id: int) -> dict[str, Any] | None:
        rows = await self._store.get_records(
            self._table, RecordFilter.where(**{LOCAL_ID_FIELD: local_id})
        )
        return rows[0] if rows else None

    async def list_surveys(self) -> list[dict[str, Any]]:
        """Return every cached survey; empty before the first survey is created."""
        try:
            return await self._store.get_all_records(self._table)
        except TableNotFoundError:
            return []

    async def list_unsynced(self) -> list[dict[str, Any]]:
        """Return surveys with local edits not yet pushed."""
        try:
            return await self._store.get_records(
                self._table,
                RecordFilter.where(**{SYNC_STATUS_FIELD: SyncStatus.UNSYNCED.value}),
            )
        except TableNotFoundError:
            return []

    async def delete_survey(self, local_id: int) -> None:
        await self._store.delete_record(self._table, local_id)
        logger.info("survey.deleted", local_id=local_id)
