"""Local cache layer -- schema inference, value conversion, filters and the row store.

Provides:
- LocalStore: async create/insert/read/update/delete/drop over SQLite tables
- RecordFilter: equality and inclusion filters rendered to where clauses
- get_field_type_mappings(): storage schema inferred from a representative record
- convert_record() / to_sql_literal(): literal conversion applied before every write
"""

from src.fieldsync.store.filters import RecordFilter
from src.fieldsync.store.local_store import FieldValue, LocalStore, WriteResult
from src.fieldsync.store.schema import FieldTypeMapping, StorageType, get_field_type_mappings
from src.fieldsync.store.values import convert_record, to_sql_literal, to_text_literal

__all__ = [
    "LocalStore",
    "RecordFilter",
    "FieldValue",
    "WriteResult",
    "FieldTypeMapping",
    "StorageType",
    "get_field_type_mappings",
    "convert_record",
    "to_sql_literal",
    "to_text_literal",
]
