"""Table names, sync states and settings keys shared across the engine."""

from __future__ import annotations

from enum import Enum


class DbTable(str, Enum):
    """Registry of every table the local cache may create."""

    RECORD_TYPE = "RecordType"
    PAGE_LAYOUT_SECTION = "PageLayoutSection"
    PAGE_LAYOUT_ITEM = "PageLayoutItem"
    PICKLIST_VALUE = "PicklistValue"
    LOCALIZATION = "Localization"
    SURVEY = "Survey"


class SyncStatus(str, Enum):
    SYNCED = "Synced"
    UNSYNCED = "Unsynced"


class SettingsKey(str, Enum):
    FIELD_TYPE = "fieldType"


LOCAL_ID_FIELD = "_localId"
SYNC_STATUS_FIELD = "_syncStatus"
REMOTE_ID_FIELD = "Id"
