"""
Domain models for titledraft.

Defines the deed record schema shared with the record store, the two template
catalogs keyed by deed type, property description records, client-local
custom column definitions, and the change notifications of the live feed.
"""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

# The first deed table. It also owns legacy rows stored without a table tag.
LEGACY_TABLE_TYPE = "table"
TABLE_TYPES = ("table", "table2", "table3", "table4")

DEEDS_TABLE = "deeds"
DEED_TEMPLATES_TABLE = "deed_templates"
HISTORY_TEMPLATES_TABLE = "history_of_title_templates"

# Flat deed columns a user may edit directly.
EDITABLE_DEED_FIELDS = (
    "deed_type",
    "executed_by",
    "in_favour_of",
    "date",
    "document_number",
    "nature_of_doc",
)


def table_type_matches(record_table_type: Optional[str], table_type: str) -> bool:
    """Whether a record tagged `record_table_type` belongs to the table `table_type`."""
    if table_type == LEGACY_TABLE_TYPE:
        return record_table_type == LEGACY_TABLE_TYPE or not record_table_type
    return record_table_type == table_type


class DeedRecord(BaseModel):
    """
    One row of a deed table.

    `created_at` is an ordering key: positional inserts rewrite it so that a
    table sorted ascending by `created_at` shows rows in the intended order.
    """

    id: str = Field(..., description="Store-assigned identifier.")
    deed_type: str = Field("", description="Key into the deed type catalogs; empty means unset.")
    executed_by: str = Field("", description="Legacy flat executor name.")
    in_favour_of: str = Field("", description="Legacy flat beneficiary name.")
    date: Optional[str] = Field(None, description="ISO yyyy-mm-dd, or None meaning Nil.")
    document_number: str = ""
    nature_of_doc: str = ""
    custom_fields: Dict[str, str] = Field(default_factory=dict)
    table_type: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {
        "frozen": True,
        "populate_by_name": True,
        "extra": "ignore",
    }

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> str:
        return str(value)

    @field_validator("deed_type", "executed_by", "in_favour_of", "document_number", "nature_of_doc", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("date", mode="before")
    @classmethod
    def _normalize_date(cls, value: Any) -> Optional[str]:
        if value is None or value == "":
            return None
        if hasattr(value, "isoformat"):
            return value.isoformat()[:10]
        return str(value)

    @field_validator("custom_fields", mode="before")
    @classmethod
    def _normalize_custom_fields(cls, value: Any) -> Dict[str, str]:
        if not isinstance(value, dict):
            return {}
        return {str(k): "" if v is None else str(v) for k, v in value.items()}

    def duplicate_key(self) -> tuple:
        """Identity used by bulk copy to detect rows that were already copied."""
        return (self.deed_type, self.executed_by, self.in_favour_of, self.date, self.document_number)

    def belongs_to(self, table_type: str) -> bool:
        return table_type_matches(self.table_type, table_type)


class DeedTypeTemplate(BaseModel):
    """Catalog entry for a deed type: the short "particulars" phrase and its custom fields."""

    deed_type: str
    preview_template: str = ""
    custom_placeholders: Dict[str, str] = Field(default_factory=dict)

    model_config = {"frozen": True, "extra": "ignore"}

    @field_validator("preview_template", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> str:
        return value or ""

    @field_validator("custom_placeholders", mode="before")
    @classmethod
    def _none_to_dict(cls, value: Any) -> Dict[str, str]:
        return value if isinstance(value, dict) else {}


class HistoryNarrativeTemplate(BaseModel):
    """Catalog entry for a deed type's "history of title" paragraph."""

    deed_type: str
    template_content: str = ""

    model_config = {"frozen": True, "extra": "ignore"}

    @field_validator("template_content", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> str:
        return value or ""


class PropertyDocument(BaseModel):
    """A property description captured from the form; duplicates are allowed."""

    id: str
    doc_no: str = ""
    survey_no: str
    as_per_revenue_record: str = ""
    total_extent: str = ""
    plot_no: str = ""
    location: str = ""
    north_by: str = ""
    south_by: str = ""
    east_by: str = ""
    west_by: str = ""
    north_measurement: str = ""
    south_measurement: str = ""
    east_measurement: str = ""
    west_measurement: str = ""
    total_extent_sq_ft: str = ""
    custom_measurements: Dict[str, str] = Field(default_factory=dict)

    model_config = {"frozen": True, "extra": "ignore"}


class ColumnAnchor(str, Enum):
    """Fixed insertion points for client-local custom columns."""

    SERIAL_NUMBER = "sno"
    DATE = "date"
    DOCUMENT_NUMBER = "dno"
    PARTICULARS = "particulars"
    NATURE_OF_DOC = "nature"


class CustomColumnDefinition(BaseModel):
    name: str
    position: ColumnAnchor

    model_config = {"frozen": True}


class ChangeType(str, Enum):
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class ChangeEvent(BaseModel):
    """
    A live change notification.

    For deletes `record` carries at least the id of the removed row.
    """

    type: ChangeType
    table: str
    record: Dict[str, Any]

    model_config = {"frozen": True}

    @property
    def record_id(self) -> Optional[str]:
        value = self.record.get("id")
        return None if value is None else str(value)


class Draft(BaseModel):
    """
    Values collected for one document: template placeholders, property
    documents, and deed rows keyed by table type.
    """

    name: str = ""
    template_id: Optional[str] = None
    placeholders: Dict[str, str] = Field(default_factory=dict)
    documents: List[PropertyDocument] = Field(default_factory=list)
    deeds: Dict[str, List[DeedRecord]] = Field(default_factory=dict)

    def deeds_for(self, table_type: str) -> List[DeedRecord]:
        return list(self.deeds.get(table_type, []))


__all__ = [
    "LEGACY_TABLE_TYPE",
    "TABLE_TYPES",
    "DEEDS_TABLE",
    "DEED_TEMPLATES_TABLE",
    "HISTORY_TEMPLATES_TABLE",
    "EDITABLE_DEED_FIELDS",
    "table_type_matches",
    "DeedRecord",
    "DeedTypeTemplate",
    "HistoryNarrativeTemplate",
    "PropertyDocument",
    "ColumnAnchor",
    "CustomColumnDefinition",
    "ChangeType",
    "ChangeEvent",
    "Draft",
]
