"""Survey metadata -- cached record types, page layouts, picklists and localization.

Provides MetadataCache (wholesale refresh from the remote system),
build_layout_detail() (layout reconstruction from cached rows) and
lookup helpers over the cached metadata.
"""

from src.fieldsync.metadata.cache import MetadataCache, RefreshStep
from src.fieldsync.metadata.layout import (
    build_layout_detail,
    get_field_types,
    get_layout_id_for_record_type,
    get_localized_labels,
    get_picklist_values,
)

__all__ = [
    "MetadataCache",
    "RefreshStep",
    "build_layout_detail",
    "get_field_types",
    "get_layout_id_for_record_type",
    "get_localized_labels",
    "get_picklist_values",
]
