"""Read-side reconstruction of cached metadata.

build_layout_detail() joins cached section and item rows in memory into a
display-ready SurveyLayout. The remaining helpers look up record type
layouts, picklist options, field types and localized labels.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Any

import structlog

from src.fieldsync.constants import DbTable, SettingsKey
from src.fieldsync.core.errors import TableNotFoundError
from src.fieldsync.core.settings_store import SettingsStore
from src.fieldsync.metadata.schemas import LayoutField, LayoutSectionDetail, SurveyLayout
from src.fieldsync.store.filters import RecordFilter
from src.fieldsync.store.local_store import LocalStore

logger = structlog.get_logger(__name__)


async def build_layout_detail(store: LocalStore, layout_id: str) -> SurveyLayout:
    """Construct a page layout from locally stored sections and items.

    Sections keep their stored order and each section's fields keep the
    order their items were stored in. A section without items gets an
    empty field list.
    """
    sections = await store.get_records(
        DbTable.PAGE_LAYOUT_SECTION, RecordFilter.where(layoutId=layout_id)
    )
    section_ids = [s["id"] for s in sections]
    items = await store.get_records(
        DbTable.PAGE_LAYOUT_ITEM, RecordFilter.where_in("sectionId", section_ids)
    )
    logger.debug("layout.items_loaded", layout_id=layout_id, sections=len(sections), items=len(items))

    # Rows come back in insertion (_localId) order
    items_by_section: dict[str, list[dict[str, Any]]] = defaultdict(list)
    for item in sorted(items, key=lambda i: i["_localId"]):
        items_by_section[item["sectionId"]].append(item)

    return SurveyLayout(
        sections=[
            LayoutSectionDetail(
                id=section["id"],
                title=section["sectionLabel"],
                data=[
                    LayoutField(
                        name=item["fieldName"],
                        label=item["fieldLabel"],
                        type=item["fieldType"],
                        required=bool(item["required"]),
                    )
                    for item in items_by_section.get(section["id"], [])
                ],
            )
            for section in sorted(sections, key=lambda s: s["_localId"])
        ]
    )


async def get_layout_id_for_record_type(store: LocalStore, record_type_id: str) -> str | None:
    """Return the cached layout id of a record type, or None if unknown."""
    rows = await store.get_records(
        DbTable.RECORD_TYPE, RecordFilter.where(recordTypeId=record_type_id)
    )
    if not rows or not rows[0]["layoutId"]:
        return None
    return rows[0]["layoutId"]


async def get_picklist_values(store: LocalStore, field_name: str) -> list[dict[str, Any]]:
    """Return the cached picklist options of a field ({label, value, isDefault})."""
    try:
        rows = await store.get_records(
            DbTable.PICKLIST_VALUE, RecordFilter.where(fieldName=field_name)
        )
    except TableNotFoundError:
        # No layout defined any picklist during the last refresh
        return []
    return [
        {"label": r["label"], "value": r["value"], "isDefault": bool(r["isDefault"])}
        for r in rows
    ]


async def get_field_types(settings_store: SettingsStore) -> dict[str, str]:
    """Return the flattened field name -> field type map saved by the last refresh."""
    return await settings_store.load(SettingsKey.FIELD_TYPE.value) or {}


async def get_localized_labels(store: LocalStore, locale: str) -> dict[str, str]:
    """Return label translations for one locale, keyed by label name."""
    try:
        rows = await store.get_records(DbTable.LOCALIZATION, RecordFilter.where(locale=locale))
    except TableNotFoundError:
        # Last refresh returned an empty localization bundle
        return {}
    return {r["name"]: r["label"] for r in rows}
