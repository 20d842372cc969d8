"""Cached metadata row shapes and the assembled survey layout.

Row models dump with camelCase keys (``model_dump(by_alias=True)``), which
become the column names of the cache tables. Field order is column order.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CacheRow(BaseModel):
    """Base for rows written to the cache tables."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_record(self) -> dict:
        return self.model_dump(by_alias=True)


# ── Cache Rows ──────────────────────────────────────────────────────────────


class RecordTypeRow(CacheRow):
    record_type_id: str
    developer_name: str
    label: str
    title_field_name: str = ""
    layout_id: str = ""  # Filled in once layouts are described


class PageLayoutSectionRow(CacheRow):
    id: str
    layout_id: str
    section_label: str


class PageLayoutItemRow(CacheRow):
    section_id: str
    field_name: str
    field_label: str
    field_type: str
    required: bool


class PicklistValueRow(CacheRow):
    field_name: str
    label: str
    value: str
    is_default: bool = False


class LocalizationRow(CacheRow):
    name: str
    locale: str
    label: str


# ── Assembled Layout ────────────────────────────────────────────────────────


class LayoutField(BaseModel):
    name: str
    label: str
    type: str
    required: bool = False


class LayoutSectionDetail(BaseModel):
    id: str
    title: str
    data: list[LayoutField] = Field(default_factory=list)


class SurveyLayout(BaseModel):
    """Display-ready layout: ordered sections, each with ordered fields."""

    sections: list[LayoutSectionDetail] = Field(default_factory=list)


class RefreshSummary(BaseModel):
    """Counts written by one metadata refresh."""

    record_types: int = 0
    layouts: int = 0
    sections: int = 0
    items: int = 0
    picklist_values: int = 0
    field_types: int = 0
    localization_entries: int = 0
