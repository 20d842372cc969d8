"""Metadata cache -- replaces cached survey metadata with a fresh remote snapshot.

A refresh runs five steps in order, each rebuilding its tables wholesale
(drop, recreate, bulk insert) with no incremental diffing:

1. Record types paired with their compact layout title field
2. Layout sections and items, one composite describe for all record types
3. Picklist values accumulated across layouts (later definitions win)
4. Flattened field name -> field type map, saved to the settings store
5. Localization entries

Any failure aborts the refresh. Tables rewritten before the failing step
stay rewritten; there is no rollback. Known remote error codes map to
fixed user-facing messages, everything else to a generic one.
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable
from enum import Enum

import structlog

from src.fieldsync.constants import DbTable, SettingsKey
from src.fieldsync.core.errors import MetadataRefreshError, RemoteError, UnexpectedError
from src.fieldsync.core.settings_store import SettingsStore
from src.fieldsync.metadata.schemas import (
    LocalizationRow,
    PageLayoutItemRow,
    PageLayoutSectionRow,
    PicklistValueRow,
    RecordTypeRow,
    RefreshSummary,
)
from src.fieldsync.remote.adapter import MetadataClient
from src.fieldsync.remote.schemas import DescribeLayout
from src.fieldsync.store.filters import RecordFilter
from src.fieldsync.store.local_store import FieldValue, LocalStore

logger = structlog.get_logger(__name__)

INVALID_RECORD_TYPE = "invalid_record_type"
NO_EDITABLE_FIELDS = "no_editable_fields"

USER_MESSAGES: dict[str, str] = {
    INVALID_RECORD_TYPE: "Invalid record type on Survey object. Contact your administrator.",
    NO_EDITABLE_FIELDS: "No editable fields on Survey layout. Contact your administrator.",
}
UNEXPECTED_MESSAGE = (
    "Unexpected error occurred while retrieving survey settings. Contact your administrator."
)


class RefreshStep(str, Enum):
    RECORD_TYPES = "record_types"
    PAGE_LAYOUTS = "page_layouts"
    PICKLIST_VALUES = "picklist_values"
    FIELD_TYPES = "field_types"
    LOCALIZATION = "localization"


ProgressHook = Callable[[RefreshStep], Awaitable[None] | None]


class MetadataCache:
    """Rebuilds the cached metadata tables from the remote system.

    Args:
        store: Local cache the metadata tables live in.
        client: Remote metadata client.
        settings_store: Key/value store receiving the flattened field type map.
        survey_object: API name of the survey object whose layouts are cached.
    """

    def __init__(
        self,
        store: LocalStore,
        client: MetadataClient,
        settings_store: SettingsStore,
        survey_object: str,
    ) -> None:
        self._store = store
        self._client = client
        self._settings_store = settings_store
        self._survey_object = survey_object

    async def refresh(self, on_progress: ProgressHook | None = None) -> RefreshSummary:
        """Download record types, page layouts, picklists and localization.

        Args:
            on_progress: Optional hook called with each step before it runs.

        Returns:
            RefreshSummary with the number of rows written per table.

        Raises:
            MetadataRefreshError: With a fixed user-facing message; UnexpectedError
                (a subclass) when the failure has no specific message.
        """
        try:
            summary = await self._refresh(on_progress)
        except RemoteError as exc:
            logger.error(
                "metadata.refresh_failed",
                error=str(exc),
                error_code=exc.error_code,
                status_code=exc.status_code,
            )
            if exc.error_code in USER_MESSAGES:
                raise MetadataRefreshError(USER_MESSAGES[exc.error_code], exc) from exc
            raise UnexpectedError(UNEXPECTED_MESSAGE, exc) from exc
        except Exception as exc:
            logger.error("metadata.refresh_failed", error=str(exc), exc_info=True)
            raise UnexpectedError(UNEXPECTED_MESSAGE, exc) from exc

        logger.info("metadata.refresh_complete", **summary.model_dump())
        return summary

    async def _refresh(self, on_progress: ProgressHook | None) -> RefreshSummary:
        summary = RefreshSummary()

        # Record types with compact layout title
        await self._notify(on_progress, RefreshStep.RECORD_TYPES)
        await self._store.clear_table(DbTable.RECORD_TYPE)
        record_types = await self._client.fetch_record_types()
        if not record_types:
            raise RemoteError("No record types available", error_code=INVALID_RECORD_TYPE)
        await self._store.save_records(
            DbTable.RECORD_TYPE,
            [
                RecordTypeRow(
                    record_type_id=rt.record_type_id,
                    developer_name=rt.developer_name,
                    label=rt.label,
                    title_field_name=rt.title_field_name,
                ).to_record()
                for rt in record_types
            ],
        )
        summary.record_types = len(record_types)

        # Page layout sections and items
        await self._notify(on_progress, RefreshStep.PAGE_LAYOUTS)
        await self._store.clear_table(DbTable.PAGE_LAYOUT_SECTION)
        await self._store.clear_table(DbTable.PAGE_LAYOUT_ITEM)
        composite = await self._client.describe_layouts(
            self._survey_object, [rt.record_type_id for rt in record_types]
        )
        layout_by_record_type = composite.layouts_by_record_type()
        layouts = list({layout.id: layout for layout in layout_by_record_type.values()}.values())

        picklist_options: dict[str, list[PicklistValueRow]] = {}
        field_types: dict[str, str] = {}
        for layout in layouts:
            summary.sections += await self._store_page_layout_sections(layout)
            summary.items += await self._store_page_layout_items(layout, picklist_options, field_types)
        summary.layouts = len(layouts)

        for record_type_id, layout in layout_by_record_type.items():
            await self._store.update_field_values(
                DbTable.RECORD_TYPE,
                [FieldValue(field="layoutId", value=layout.id)],
                RecordFilter.where(recordTypeId=record_type_id),
            )

        # Picklist options
        await self._notify(on_progress, RefreshStep.PICKLIST_VALUES)
        await self._store.clear_table(DbTable.PICKLIST_VALUE)
        picklist_values = [row.to_record() for rows in picklist_options.values() for row in rows]
        await self._store.save_records(DbTable.PICKLIST_VALUE, picklist_values)
        summary.picklist_values = len(picklist_values)

        # Field type map
        await self._notify(on_progress, RefreshStep.FIELD_TYPES)
        await self._settings_store.save(SettingsKey.FIELD_TYPE.value, field_types)
        summary.field_types = len(field_types)

        # Localization
        await self._notify(on_progress, RefreshStep.LOCALIZATION)
        await self._store.clear_table(DbTable.LOCALIZATION)
        entries = await self._client.fetch_localization()
        await self._store.save_records(
            DbTable.LOCALIZATION,
            [LocalizationRow(name=e.name, locale=e.locale, label=e.label).to_record() for e in entries],
        )
        summary.localization_entries = len(entries)

        return summary

    async def _store_page_layout_sections(self, layout: DescribeLayout) -> int:
        """Store the sections of one layout, returning how many were written."""
        rows = [
            PageLayoutSectionRow(
                id=section.layout_section_id,
                layout_id=layout.id,
                section_label=section.heading,
            ).to_record()
            for section in layout.edit_layout_sections
        ]
        await self._store.save_records(DbTable.PAGE_LAYOUT_SECTION, rows)
        return len(rows)

    async def _store_page_layout_items(
        self,
        layout: DescribeLayout,
        picklist_options: dict[str, list[PicklistValueRow]],
        field_types: dict[str, str],
    ) -> int:
        """Store the editable field items of one layout.

        Accumulates picklist options and field types keyed by field name into
        the given maps; a field seen in an earlier layout is replaced, so a
        global picklist shared across layouts is stored once.

        Raises:
            RemoteError: ``no_editable_fields`` if the layout has no editable field.
        """
        rows: list[dict] = []
        for section in layout.edit_layout_sections:
            for layout_row in section.layout_rows:
                for item in layout_row.layout_items:
                    if not item.is_editable:
                        continue
                    for component in item.layout_components:
                        if component.type != "Field" or component.details is None:
                            continue
                        details = component.details
                        rows.append(
                            PageLayoutItemRow(
                                section_id=section.layout_section_id,
                                field_name=details.name,
                                field_label=item.label or details.label,
                                field_type=details.type,
                                required=item.required,
                            ).to_record()
                        )
                        field_types[details.name] = details.type
                        if details.picklist_values:
                            picklist_options[details.name] = [
                                PicklistValueRow(
                                    field_name=details.name,
                                    label=entry.label,
                                    value=entry.value,
                                    is_default=entry.default_value,
                                )
                                for entry in details.picklist_values
                                if entry.active
                            ]

        if not rows:
            raise RemoteError(
                f"Layout {layout.id} has no editable fields",
                error_code=NO_EDITABLE_FIELDS,
            )

        await self._store.save_records(DbTable.PAGE_LAYOUT_ITEM, rows)
        logger.debug("metadata.layout_items_stored", layout_id=layout.id, items=len(rows))
        return len(rows)

    @staticmethod
    async def _notify(hook: ProgressHook | None, step: RefreshStep) -> None:
        if hook is None:
            return
        outcome = hook(step)
        if inspect.isawaitable(outcome):
            await outcome
