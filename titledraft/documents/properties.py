"""
Property description form and the list of captured property documents.

Kept in memory only; documents travel with a draft and feed the `{table1}`
to `{table4}` sections of a merged preview.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from titledraft.domain.models import PropertyDocument
from titledraft.exceptions import ValidationError
from titledraft.notifications import LogNotifier, Notifier
from titledraft.utils.logging import get_logger

log = get_logger(__name__)

FORM_FIELDS = tuple(
    name for name in PropertyDocument.model_fields if name not in ("id", "custom_measurements")
)


@dataclass
class CustomMeasurement:
    """An editable label/value row under the measurements section."""

    id: str
    label: str = ""
    value: str = ""


def _number(value: str) -> Optional[float]:
    try:
        return float(value.strip())
    except (AttributeError, ValueError):
        return None


def compute_total_extent_sq_ft(north: str, south: str, east: str, west: str) -> str:
    """
    Area from boundary measurements: mean(north, south) x mean(east, west).

    Returns "" unless all four measurements are numeric.
    """
    sides = [_number(value) for value in (north, south, east, west)]
    if any(side is None for side in sides):
        return ""
    n, s, e, w = sides
    area = ((n + s) / 2) * ((e + w) / 2)
    text = f"{area:.2f}".rstrip("0").rstrip(".")
    return f"{text} Sq.Ft"


@dataclass
class PropertyDocumentManager:
    notifier: Notifier = field(default_factory=LogNotifier)
    documents: List[PropertyDocument] = field(default_factory=list)
    form: Dict[str, str] = field(default_factory=lambda: dict.fromkeys(FORM_FIELDS, ""))
    custom_rows: List[CustomMeasurement] = field(default_factory=list)

    def set_field(self, name: str, value: str) -> None:
        if name not in FORM_FIELDS:
            raise ValidationError(f"Unknown property field '{name}'", field=name)
        self.form[name] = value

    def add_custom_measurement(self) -> CustomMeasurement:
        row = CustomMeasurement(id=str(uuid.uuid4()))
        self.custom_rows.append(row)
        return row

    def update_custom_measurement(self, row_id: str, *, label: Optional[str] = None, value: Optional[str] = None) -> None:
        for row in self.custom_rows:
            if row.id == row_id:
                if label is not None:
                    row.label = label
                if value is not None:
                    row.value = value
                return

    def remove_custom_measurement(self, row_id: str) -> None:
        self.custom_rows = [row for row in self.custom_rows if row.id != row_id]

    def add_document(self) -> PropertyDocument:
        """Turn the form into a document, append it and reset the form."""
        if not self.form.get("survey_no"):
            self.notifier.error("Survey No is required")
            raise ValidationError("Survey No is required", field="survey_no")

        values = dict(self.form)
        if not values.get("total_extent_sq_ft"):
            values["total_extent_sq_ft"] = compute_total_extent_sq_ft(
                values.get("north_measurement", ""),
                values.get("south_measurement", ""),
                values.get("east_measurement", ""),
                values.get("west_measurement", ""),
            )
        custom = {row.label: row.value for row in self.custom_rows if row.label and row.value}

        document = PropertyDocument(id=str(uuid.uuid4()), custom_measurements=custom, **values)
        self.documents.append(document)
        self.reset_form()
        log.info("Property document added", extra={"survey_no": document.survey_no})
        self.notifier.success("Document added successfully")
        return document

    def remove_document(self, document_id: str) -> None:
        self.documents = [doc for doc in self.documents if doc.id != document_id]
        self.notifier.success("Document removed")

    def edit_document(self, document_id: str) -> Optional[PropertyDocument]:
        """Load a document back into the form and take it out of the list."""
        document = next((doc for doc in self.documents if doc.id == document_id), None)
        if document is None:
            return None
        self.form = {name: getattr(document, name) for name in FORM_FIELDS}
        self.custom_rows = [
            CustomMeasurement(id=str(uuid.uuid4()), label=label, value=value)
            for label, value in document.custom_measurements.items()
        ]
        self.documents = [doc for doc in self.documents if doc.id != document_id]
        self.notifier.info("Document loaded for editing")
        return document

    def reset_form(self) -> None:
        self.form = dict.fromkeys(FORM_FIELDS, "")
        self.custom_rows = []
