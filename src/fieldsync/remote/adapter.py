"""Remote CRM client interfaces consumed by the cache and sync engine.

MetadataClient feeds the metadata refresh; RecordClient is used by the
SyncReconciler to push surveys. SalesforceClient implements both; tests
substitute AsyncMock(spec=...) instances.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from src.fieldsync.remote.schemas import (
    CompositeLayoutResponse,
    LocalizationEntry,
    RecordTypeInfo,
    SaveResult,
)


class MetadataClient(ABC):
    """Read-only access to remote object metadata.

    Methods:
        fetch_record_types: Active record types with compact layout title fields.
        describe_layouts: One composite call describing the layout of each record type.
        fetch_localization: Translated labels for every supported locale.
    """

    @abstractmethod
    async def fetch_record_types(self) -> list[RecordTypeInfo]:
        """Return the active record types of the survey object."""
        ...

    @abstractmethod
    async def describe_layouts(
        self, object_name: str, record_type_ids: list[str]
    ) -> CompositeLayoutResponse:
        """Describe the edit layout of each record type in one composite call."""
        ...

    @abstractmethod
    async def fetch_localization(self) -> list[LocalizationEntry]:
        """Return the localization bundle."""
        ...


class RecordClient(ABC):
    """Write access to remote records."""

    @abstractmethod
    async def create_or_update(self, record: dict[str, Any]) -> SaveResult:
        """Create the record, or update it when it carries a remote ``Id``."""
        ...
