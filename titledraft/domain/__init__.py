"""
Domain package for titledraft.

Exports the records, catalog entries and change notifications shared by the
deed table managers, the merge engine and the record stores.
"""

from titledraft.domain.models import (
    DEEDS_TABLE,
    LEGACY_TABLE_TYPE,
    TABLE_TYPES,
    ChangeEvent,
    ChangeType,
    ColumnAnchor,
    CustomColumnDefinition,
    DeedRecord,
    DeedTypeTemplate,
    Draft,
    HistoryNarrativeTemplate,
    PropertyDocument,
    table_type_matches,
)

__all__ = [
    "DEEDS_TABLE",
    "LEGACY_TABLE_TYPE",
    "TABLE_TYPES",
    "ChangeEvent",
    "ChangeType",
    "ColumnAnchor",
    "CustomColumnDefinition",
    "DeedRecord",
    "DeedTypeTemplate",
    "Draft",
    "HistoryNarrativeTemplate",
    "PropertyDocument",
    "table_type_matches",
]
