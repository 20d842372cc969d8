"""Tests for the read-side metadata helpers over hand-written cache rows."""

from __future__ import annotations

import pytest

from src.fieldsync.constants import DbTable, SettingsKey
from src.fieldsync.core.errors import TableNotFoundError
from src.fieldsync.metadata.layout import (
    build_layout_detail,
    get_field_types,
    get_layout_id_for_record_type,
    get_localized_labels,
    get_picklist_values,
)
from src.fieldsync.metadata.schemas import (
    LocalizationRow,
    PageLayoutItemRow,
    PageLayoutSectionRow,
    PicklistValueRow,
    RecordTypeRow,
)
from src.fieldsync.store.local_store import LocalStore


async def _seed_layout(store: LocalStore) -> None:
    await store.save_records(
        DbTable.PAGE_LAYOUT_SECTION,
        [
            PageLayoutSectionRow(id="S1", layout_id="L1", section_label="General").to_record(),
            PageLayoutSectionRow(id="S2", layout_id="L1", section_label="Notes").to_record(),
            PageLayoutSectionRow(id="S9", layout_id="L9", section_label="Other").to_record(),
        ],
    )
    await store.save_records(
        DbTable.PAGE_LAYOUT_ITEM,
        [
            PageLayoutItemRow(
                section_id="S1", field_name="B", field_label="Bee", field_type="string", required=False
            ).to_record(),
            PageLayoutItemRow(
                section_id="S9", field_name="Z", field_label="Zed", field_type="string", required=False
            ).to_record(),
            PageLayoutItemRow(
                section_id="S1", field_name="A", field_label="Ay", field_type="double", required=True
            ).to_record(),
        ],
    )


class TestBuildLayoutDetail:
    """Sections and items joined in memory."""

    async def test_sections_keep_order_and_filter_by_layout(self, store: LocalStore):
        await _seed_layout(store)

        layout = await build_layout_detail(store, "L1")

        assert [(s.id, s.title) for s in layout.sections] == [("S1", "General"), ("S2", "Notes")]

    async def test_items_keep_stored_order(self, store: LocalStore):
        await _seed_layout(store)

        layout = await build_layout_detail(store, "L1")

        fields = layout.sections[0].data
        assert [f.name for f in fields] == ["B", "A"]
        assert [f.required for f in fields] == [False, True]
        assert fields[1].type == "double"

    async def test_section_without_items_has_empty_data(self, store: LocalStore):
        await _seed_layout(store)

        layout = await build_layout_detail(store, "L1")

        assert layout.sections[1].data == []

    async def test_unknown_layout_is_empty(self, store: LocalStore):
        await _seed_layout(store)
        assert (await build_layout_detail(store, "missing")).sections == []

    async def test_missing_tables_propagate(self, store: LocalStore):
        with pytest.raises(TableNotFoundError):
            await build_layout_detail(store, "L1")


class TestLookups:
    async def test_layout_id_for_record_type(self, store: LocalStore):
        await store.save_records(
            DbTable.RECORD_TYPE,
            [
                RecordTypeRow(record_type_id="012A", developer_name="A", label="A", layout_id="L1").to_record(),
                RecordTypeRow(record_type_id="012B", developer_name="B", label="B").to_record(),
            ],
        )

        assert await get_layout_id_for_record_type(store, "012A") == "L1"
        assert await get_layout_id_for_record_type(store, "012B") is None
        assert await get_layout_id_for_record_type(store, "012C") is None

    async def test_picklist_values(self, store: LocalStore):
        await store.save_records(
            DbTable.PICKLIST_VALUE,
            [
                PicklistValueRow(field_name="Status__c", label="Open", value="Open", is_default=True).to_record(),
                PicklistValueRow(field_name="Status__c", label="Closed", value="Closed").to_record(),
                PicklistValueRow(field_name="Kind__c", label="X", value="X").to_record(),
            ],
        )

        assert await get_picklist_values(store, "Status__c") == [
            {"label": "Open", "value": "Open", "isDefault": True},
            {"label": "Closed", "value": "Closed", "isDefault": False},
        ]

    async def test_picklist_values_before_any_refresh(self, store: LocalStore):
        assert await get_picklist_values(store, "Status__c") == []

    async def test_field_types_default_to_empty(self, settings_store):
        assert await get_field_types(settings_store) == {}
        await settings_store.save(SettingsKey.FIELD_TYPE.value, {"Name": "string"})
        assert await get_field_types(settings_store) == {"Name": "string"}

    async def test_localized_labels(self, store: LocalStore):
        await store.save_records(
            DbTable.LOCALIZATION,
            [
                LocalizationRow(name="Status", locale="fr", label="Statut").to_record(),
                LocalizationRow(name="Name", locale="fr", label="Nom").to_record(),
                LocalizationRow(name="Status", locale="es", label="Estado").to_record(),
            ],
        )

        assert await get_localized_labels(store, "fr") == {"Status": "Statut", "Name": "Nom"}
