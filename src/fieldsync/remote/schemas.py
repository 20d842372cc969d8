"""Pydantic models for the Salesforce payloads the engine consumes.

Field names are snake_case; the wire format is camelCase and is mapped
through an alias generator, so models validate raw API JSON directly.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from src.fieldsync.core.errors import RemoteError


class SalesforceModel(BaseModel):
    """Base model accepting camelCase API keys and ignoring unknown ones."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


def _null_to_empty(value: Any) -> Any:
    return "" if value is None else value


# ── Record Types ────────────────────────────────────────────────────────────


class RecordTypeInfo(SalesforceModel):
    """Active record type of the survey object with its compact layout title field."""

    record_type_id: str
    developer_name: str
    label: str
    title_field_name: str = ""


# ── Layout Describe ─────────────────────────────────────────────────────────


class PicklistEntry(SalesforceModel):
    label: str
    value: str
    active: bool = True
    default_value: bool = False


class FieldDetails(SalesforceModel):
    name: str
    label: str = ""
    type: str = "string"
    picklist_values: list[PicklistEntry] = Field(default_factory=list)

    label_not_null = field_validator("label", mode="before")(_null_to_empty)


class LayoutComponent(SalesforceModel):
    type: str
    value: str | None = None
    details: FieldDetails | None = None


class LayoutItem(SalesforceModel):
    label: str = ""
    required: bool = False
    editable_for_new: bool = False
    editable_for_update: bool = False
    layout_components: list[LayoutComponent] = Field(default_factory=list)

    label_not_null = field_validator("label", mode="before")(_null_to_empty)

    @property
    def is_editable(self) -> bool:
        return self.editable_for_new or self.editable_for_update


class LayoutRow(SalesforceModel):
    layout_items: list[LayoutItem] = Field(default_factory=list)


class LayoutSection(SalesforceModel):
    layout_section_id: str
    heading: str = ""
    layout_rows: list[LayoutRow] = Field(default_factory=list)

    heading_not_null = field_validator("heading", mode="before")(_null_to_empty)


class DescribeLayout(SalesforceModel):
    """Edit layout of one record type (``describe/layouts/{recordTypeId}``)."""

    id: str
    edit_layout_sections: list[LayoutSection] = Field(default_factory=list)


class CompositeSubresponse(SalesforceModel):
    body: Any = None
    http_status_code: int = 200
    reference_id: str = ""


class CompositeLayoutResponse(SalesforceModel):
    """Composite API response holding one layout describe per record type.

    Sub-request reference ids are ``rt_<recordTypeId>``.
    """

    composite_response: list[CompositeSubresponse] = Field(default_factory=list)

    def layouts_by_record_type(self) -> dict[str, DescribeLayout]:
        """Map record type id to its layout.

        Raises:
            RemoteError: ``invalid_record_type`` if any sub-request failed.
        """
        result: dict[str, DescribeLayout] = {}
        for sub in self.composite_response:
            record_type_id = sub.reference_id.removeprefix("rt_")
            if sub.http_status_code >= 400:
                detail = sub.body[0] if isinstance(sub.body, list) and sub.body else {}
                raise RemoteError(
                    f"Layout describe failed for record type {record_type_id}: "
                    f"{detail.get('message', 'unknown error')}",
                    error_code="invalid_record_type",
                    status_code=sub.http_status_code,
                )
            result[record_type_id] = DescribeLayout.model_validate(sub.body)
        return result


# ── Localization ────────────────────────────────────────────────────────────


class LocalizationEntry(SalesforceModel):
    """One translated label from the localization custom metadata type."""

    name: str
    locale: str
    label: str


# ── Record Save ─────────────────────────────────────────────────────────────


class SaveResult(SalesforceModel):
    """Outcome of a create-or-update call."""

    id: str
    status: str
