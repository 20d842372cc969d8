"""Tests for LocalStore against a real SQLite cache database.

Covers:
- _localId assignment (unique, strictly increasing, never reused)
- Empty batches, shape validation and value coercion on write
- Filtered reads, partial updates and text field updates
- Table and database drops, and the missing-table error path
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from src.fieldsync.constants import DbTable
from src.fieldsync.core.errors import InvalidArgumentError, StorageError, TableNotFoundError
from src.fieldsync.store.filters import RecordFilter
from src.fieldsync.store.local_store import FieldValue, LocalStore, WriteResult
from src.fieldsync.store.schema import FieldTypeMapping, StorageType


# ── Inserts ─────────────────────────────────────────────────────────────────


class TestSaveRecords:
    """Bulk insert with schema inferred from the first record."""

    async def test_local_ids_are_unique_and_increasing(self, store: LocalStore):
        await store.save_records("Note", [{"text": "a"}, {"text": "b"}, {"text": "c"}])
        await store.save_records("Note", [{"text": "d"}, {"text": "e"}])

        rows = await store.get_all_records("Note")
        ids = [r["_localId"] for r in rows]
        assert len(set(ids)) == 5
        assert ids == sorted(ids)
        assert [r["text"] for r in rows] == ["a", "b", "c", "d", "e"]

    async def test_local_ids_are_never_reused(self, store: LocalStore):
        await store.save_records("Note", [{"text": "a"}, {"text": "b"}])
        rows = await store.get_all_records("Note")
        await store.delete_record("Note", rows[-1]["_localId"])

        result = await store.save_records("Note", [{"text": "c"}])

        assert result.last_insert_id > rows[-1]["_localId"]

    async def test_returns_last_insert_id(self, store: LocalStore):
        result = await store.save_records("Note", [{"text": "a"}, {"text": "b"}])
        assert result.rows_affected == 2
        assert result.last_insert_id == 2

    async def test_empty_batch_does_not_touch_storage(self, store: LocalStore):
        result = await store.save_records("Note", [])

        assert result == WriteResult()
        with pytest.raises(TableNotFoundError):
            await store.get_all_records("Note")

    async def test_booleans_and_zero_are_coerced(self, store: LocalStore):
        """True is stored as 1 and numeric zero as an empty string."""
        await store.save_records("Flag", [{"name": "A", "active": True, "count": 0}])

        row = (await store.get_all_records("Flag"))[0]
        assert row["name"] == "A"
        assert row["active"] == 1
        assert row["count"] == ""

    async def test_false_is_stored_as_zero(self, store: LocalStore):
        await store.save_records("Flag", [{"name": "B", "active": False}])
        row = (await store.get_all_records("Flag"))[0]
        assert row["active"] == 0

    async def test_single_quotes_round_trip(self, store: LocalStore):
        await store.save_records("Person", [{"name": "O'Brien's"}])
        rows = await store.get_records("Person", RecordFilter.where(name="O'Brien's"))
        assert rows[0]["name"] == "O'Brien's"

    async def test_colons_in_values_are_literal_text(self, store: LocalStore):
        await store.save_records("Note", [{"text": "Time: 10:30 :x"}])
        row = (await store.get_all_records("Note"))[0]
        assert row["text"] == "Time: 10:30 :x"

    async def test_values_follow_first_record_column_order(self, store: LocalStore):
        await store.save_records("Pair", [{"a": "1", "b": "2"}, {"b": "4", "a": "3"}])
        rows = await store.get_all_records("Pair")
        assert [(r["a"], r["b"]) for r in rows] == [("1", "2"), ("3", "4")]

    async def test_mismatched_record_shape_is_rejected(self, store: LocalStore):
        with pytest.raises(InvalidArgumentError):
            await store.save_records("Pair", [{"a": "1", "b": "2"}, {"a": "3"}])
        with pytest.raises(TableNotFoundError):
            await store.get_all_records("Pair")

    async def test_explicit_primary_key_replaces_local_id(self, store: LocalStore):
        await store.save_records("Keyed", [{"code": "X1", "label": "x"}], primary_key="code")

        row = (await store.get_all_records("Keyed"))[0]
        assert "_localId" not in row
        with pytest.raises(StorageError):
            await store.save_records("Keyed", [{"code": "X1", "label": "dup"}], primary_key="code")

    async def test_enum_table_names_are_accepted(self, store: LocalStore):
        await store.save_records(DbTable.LOCALIZATION, [{"name": "n", "locale": "en", "label": "l"}])
        rows = await store.get_all_records("Localization")
        assert rows[0]["label"] == "l"


class TestPrepareTable:
    """Create-if-absent semantics."""

    async def test_existing_table_is_left_untouched(self, store: LocalStore):
        await store.save_records("Note", [{"text": "a"}])
        await store.prepare_table(
            "Note", [FieldTypeMapping(name="other", type=StorageType.INTEGER)]
        )

        with pytest.raises(StorageError) as exc_info:
            await store.save_records("Note", [{"other": 1}])
        assert not isinstance(exc_info.value, TableNotFoundError)
        assert [r["text"] for r in await store.get_all_records("Note")] == ["a"]

    async def test_creates_local_id_column_first(self, store: LocalStore):
        await store.prepare_table("Empty", [FieldTypeMapping(name="x", type=StorageType.TEXT)])
        assert await store.get_all_records("Empty") == []


# ── Reads ───────────────────────────────────────────────────────────────────


class TestReads:
    """Full and filtered reads."""

    async def test_get_records_requires_a_filter(self, store: LocalStore):
        await store.save_records("Note", [{"text": "a"}])
        with pytest.raises(InvalidArgumentError):
            await store.get_records("Note", None)
        with pytest.raises(InvalidArgumentError):
            await store.get_records("Note", RecordFilter())

    async def test_missing_table_raises_table_not_found(self, store: LocalStore):
        with pytest.raises(TableNotFoundError) as exc_info:
            await store.get_all_records("Missing")
        assert exc_info.value.table_name == "Missing"
        assert "Missing" in exc_info.value.statement

    async def test_inclusion_filter(self, store: LocalStore):
        await store.save_records(
            "Item",
            [{"sectionId": "s1"}, {"sectionId": "s2"}, {"sectionId": "s3"}],
        )
        rows = await store.get_records("Item", RecordFilter.where_in("sectionId", ["s1", "s3"]))
        assert [r["sectionId"] for r in rows] == ["s1", "s3"]

    async def test_empty_inclusion_matches_nothing(self, store: LocalStore):
        await store.save_records("Item", [{"sectionId": "s1"}])
        assert await store.get_records("Item", RecordFilter.where_in("sectionId", [])) == []

    async def test_on_result_hook_receives_rows(self, store: LocalStore):
        await store.save_records("Note", [{"text": "a"}])
        sync_hook = MagicMock(return_value=None)
        async_hook = AsyncMock()

        rows = await store.get_all_records("Note", on_result=sync_hook)
        await store.get_records("Note", RecordFilter.where(text="a"), on_result=async_hook)

        sync_hook.assert_called_once_with(rows)
        async_hook.assert_awaited_once_with(rows)


# ── Updates ─────────────────────────────────────────────────────────────────


class TestUpdates:
    """update_record and update_field_values."""

    async def test_none_values_leave_fields_unchanged(self, store: LocalStore):
        await store.save_records("Survey", [{"name": "A", "status": "Draft"}])

        await store.update_record(
            "Survey", {"name": "B", "status": None}, RecordFilter.where(_localId=1)
        )

        row = (await store.get_all_records("Survey"))[0]
        assert row == {"_localId": 1, "name": "B", "status": "Draft"}

    async def test_update_record_without_values_is_rejected(self, store: LocalStore):
        with pytest.raises(InvalidArgumentError):
            await store.update_record("Survey", {"status": None}, RecordFilter.where(_localId=1))

    async def test_update_record_without_filter_is_rejected(self, store: LocalStore):
        with pytest.raises(InvalidArgumentError):
            await store.update_record("Survey", {"status": "x"}, None)

    async def test_update_only_touches_matching_rows(self, store: LocalStore):
        await store.save_records("Survey", [{"name": "A"}, {"name": "B"}])

        result = await store.update_record(
            "Survey", {"name": "C"}, RecordFilter.where(name="B")
        )

        assert result.rows_affected == 1
        assert [r["name"] for r in await store.get_all_records("Survey")] == ["A", "C"]

    async def test_field_values_with_quotes_round_trip(self, store: LocalStore):
        await store.save_records("Person", [{"name": "x", "city": "y"}])

        await store.update_field_values(
            "Person",
            [FieldValue(field="name", value="D'Arcy"), FieldValue(field="city", value="L'Aquila")],
            RecordFilter.where(_localId=1),
        )

        row = (await store.get_all_records("Person"))[0]
        assert row["name"] == "D'Arcy"
        assert row["city"] == "L'Aquila"

    async def test_field_values_require_a_filter(self, store: LocalStore):
        with pytest.raises(InvalidArgumentError):
            await store.update_field_values("Person", [FieldValue(field="name", value="x")], None)

    async def test_update_on_missing_table(self, store: LocalStore):
        with pytest.raises(TableNotFoundError):
            await store.update_record("Missing", {"a": "b"}, RecordFilter.where(_localId=1))


# ── Deletes and drops ───────────────────────────────────────────────────────


class TestDeletesAndDrops:
    async def test_delete_record_removes_only_that_row(self, store: LocalStore):
        await store.save_records("Note", [{"text": "a"}, {"text": "b"}, {"text": "c"}])

        result = await store.delete_record("Note", 2)

        assert result.rows_affected == 1
        assert [r["text"] for r in await store.get_all_records("Note")] == ["a", "c"]

    async def test_clear_table_tolerates_missing_table(self, store: LocalStore):
        await store.clear_table("NeverCreated")

    async def test_clear_database_drops_registered_tables(self, store: LocalStore):
        await store.save_records(DbTable.SURVEY, [{"name": "A"}])
        await store.save_records(DbTable.RECORD_TYPE, [{"recordTypeId": "012"}])

        await store.clear_database()

        with pytest.raises(TableNotFoundError):
            await store.get_all_records(DbTable.SURVEY)
        with pytest.raises(TableNotFoundError):
            await store.get_all_records(DbTable.RECORD_TYPE)

    async def test_clear_database_only_drops_registry(self, engine):
        store = LocalStore(engine, tables=["Kept"])
        await store.save_records("Other", [{"x": "1"}])

        await store.clear_database()

        assert len(await store.get_all_records("Other")) == 1
