"""Sync reconciler -- pushes locally edited surveys to the remote CRM.

Each unsynced survey is pushed with a create-or-update call. A confirmed
push flags the local row synced and writes the remote Id back; a failure
leaves the row unsynced for the next attempt. Failures are isolated per
record and never abort the batch. Rows are never deleted by sync.

Conflicts are not detected: the pushed local copy wins (last write wins).
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

import structlog
from pydantic import BaseModel, Field

from src.fieldsync.constants import (
    LOCAL_ID_FIELD,
    REMOTE_ID_FIELD,
    SYNC_STATUS_FIELD,
    DbTable,
    SyncStatus,
)
from src.fieldsync.core.errors import TableNotFoundError
from src.fieldsync.core.settings_store import SettingsStore
from src.fieldsync.metadata.layout import get_field_types
from src.fieldsync.remote.adapter import RecordClient
from src.fieldsync.store.filters import RecordFilter
from src.fieldsync.store.local_store import FieldValue, LocalStore

logger = structlog.get_logger(__name__)

LOCAL_ONLY_FIELDS = frozenset({LOCAL_ID_FIELD, SYNC_STATUS_FIELD})
BOOLEAN_FIELD_TYPE = "boolean"

ProgressHook = Callable[[int, int], Awaitable[None] | None]


def _to_remote_value(value: Any, field_type: str | None) -> Any:
    """Convert a cached value back to its remote JSON type."""
    if field_type == BOOLEAN_FIELD_TYPE:
        # Cached as 1/0, or '' when unset
        return value in (1, "1", True)
    return value


class SyncResult(BaseModel):
    """Aggregate outcome of one sync run."""

    succeeded: int = 0
    failed: int = 0
    errors: list[str] = Field(default_factory=list)


class SyncReconciler:
    """Pushes unsynced local records and records the outcome locally.

    Args:
        store: Local cache holding the records.
        client: Remote record client.
        settings_store: Settings store holding the cached field type map. When
            given, checkbox fields are pushed as JSON booleans instead of the
            1/0 integers they are cached as.
        table: Table the records live in.
    """

    def __init__(
        self,
        store: LocalStore,
        client: RecordClient,
        settings_store: SettingsStore | None = None,
        table: str = DbTable.SURVEY.value,
    ) -> None:
        self._store = store
        self._client = client
        self._settings_store = settings_store
        self._table = table

    async def sync_unsynced(self, on_progress: ProgressHook | None = None) -> SyncResult:
        """Load every unsynced record from the cache and push it."""
        try:
            records = await self._store.get_records(
                self._table, RecordFilter.where(**{SYNC_STATUS_FIELD: SyncStatus.UNSYNCED.value})
            )
        except TableNotFoundError:
            # Nothing was ever saved locally
            return SyncResult()
        return await self.sync_records(records, on_progress)

    async def sync_records(
        self,
        records: Sequence[dict[str, Any]],
        on_progress: ProgressHook | None = None,
    ) -> SyncResult:
        """Push records flagged unsynced, in order.

        Records with any other sync status are skipped.

        Args:
            records: Local rows including ``_localId`` and ``_syncStatus``.
            on_progress: Optional hook called with (processed, total) after each record.

        Returns:
            SyncResult with succeeded/failed counts and one message per failure.
        """
        pending = [r for r in records if r.get(SYNC_STATUS_FIELD) == SyncStatus.UNSYNCED.value]
        result = SyncResult()
        field_types = await self._load_field_types()

        for index, record in enumerate(pending, start=1):
            local_id = record.get(LOCAL_ID_FIELD)
            try:
                await self._push(record, field_types)
                result.succeeded += 1
            except Exception as exc:
                result.failed += 1
                result.errors.append(f"Sync failed for record {local_id}: {exc}")
                logger.error("sync.record_failed", local_id=local_id, error=str(exc))

            if on_progress is not None:
                outcome = on_progress(index, len(pending))
                if inspect.isawaitable(outcome):
                    await outcome

        logger.info(
            "sync.complete",
            succeeded=result.succeeded,
            failed=result.failed,
            skipped=len(records) - len(pending),
        )
        return result

    async def _load_field_types(self) -> dict[str, str]:
        if self._settings_store is None:
            return {}
        return await get_field_types(self._settings_store)

    async def _push(self, record: dict[str, Any], field_types: dict[str, str]) -> None:
        local_id = record[LOCAL_ID_FIELD]
        payload = {
            k: _to_remote_value(v, field_types.get(k))
            for k, v in record.items()
            if k not in LOCAL_ONLY_FIELDS
        }

        saved = await self._client.create_or_update(payload)

        updates = [FieldValue(field=SYNC_STATUS_FIELD, value=SyncStatus.SYNCED.value)]
        if REMOTE_ID_FIELD in record:
            updates.append(FieldValue(field=REMOTE_ID_FIELD, value=saved.id))
        await self._store.update_field_values(
            self._table, updates, RecordFilter.where(**{LOCAL_ID_FIELD: local_id})
        )
        logger.debug("sync.record_synced", local_id=local_id, remote_id=saved.id, status=saved.status)
