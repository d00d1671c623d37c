"""
Client-local custom columns for a deed table.

Extra ad-hoc columns and their per-row values live in two JSON files in the
local state directory, keyed by table type. They are never written to the
record store and are independent of a deed's `custom_fields`.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from titledraft.domain.models import ColumnAnchor, CustomColumnDefinition
from titledraft.exceptions import ValidationError
from titledraft.utils.logging import get_logger

log = get_logger(__name__)

# Fixed deed table columns, each followed by its anchor for custom columns.
FIXED_COLUMNS: Tuple[Tuple[str, ColumnAnchor], ...] = (
    ("Sno", ColumnAnchor.SERIAL_NUMBER),
    ("Date", ColumnAnchor.DATE),
    ("D.No", ColumnAnchor.DOCUMENT_NUMBER),
    ("Particulars of Deed", ColumnAnchor.PARTICULARS),
    ("Nature of Doc", ColumnAnchor.NATURE_OF_DOC),
)


class CustomColumnOverlay:
    """
    Custom columns and values for one table type.

    Parameters
    ----------
    table_type : str
        Deed table the columns belong to.
    state_dir : Path | str
        Directory holding `customColumns_<table>.json` and
        `customColumnData_<table>.json`.
    """

    def __init__(self, table_type: str, state_dir: Path | str) -> None:
        self.table_type = table_type
        self.state_dir = Path(state_dir)
        self._columns: List[CustomColumnDefinition] = []
        self._data: Dict[str, Dict[str, str]] = {}
        self._load()

    @property
    def columns_path(self) -> Path:
        return self.state_dir / f"customColumns_{self.table_type}.json"

    @property
    def data_path(self) -> Path:
        return self.state_dir / f"customColumnData_{self.table_type}.json"

    def _load(self) -> None:
        if self.columns_path.exists():
            raw = json.loads(self.columns_path.read_text(encoding="utf-8"))
            self._columns = [CustomColumnDefinition.model_validate(item) for item in raw]
        if self.data_path.exists():
            self._data = json.loads(self.data_path.read_text(encoding="utf-8"))

    def _save_columns(self) -> None:
        self.state_dir.mkdir(parents=True, exist_ok=True)
        payload = [column.model_dump(mode="json") for column in self._columns]
        self.columns_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    def _save_data(self) -> None:
        self.state_dir.mkdir(parents=True, exist_ok=True)
        self.data_path.write_text(json.dumps(self._data, indent=2, sort_keys=True), encoding="utf-8")

    @property
    def columns(self) -> List[CustomColumnDefinition]:
        return list(self._columns)

    def add_column(self, name: str, position: ColumnAnchor | str) -> CustomColumnDefinition:
        """Add a column after the given anchor; names are unique within the table."""
        name = name.strip()
        if not name:
            raise ValidationError("Column name cannot be empty", field="name")
        if any(column.name == name for column in self._columns):
            raise ValidationError("Column already exists", field="name")
        try:
            anchor = ColumnAnchor(position)
        except ValueError as exc:
            raise ValidationError(f"Unknown column position '{position}'", field="position") from exc

        column = CustomColumnDefinition(name=name, position=anchor)
        self._columns.append(column)
        self._save_columns()
        log.info("Custom column added", extra={"table_type": self.table_type, "column": name})
        return column

    def remove_column(self, name: str) -> None:
        """Remove a column and every value stored for it."""
        self._columns = [column for column in self._columns if column.name != name]
        self._save_columns()
        for values in self._data.values():
            values.pop(name, None)
        self._save_data()
        log.info("Custom column removed", extra={"table_type": self.table_type, "column": name})

    def set_value(self, record_id: str, column: str, value: str) -> None:
        self._data.setdefault(record_id, {})[column] = value
        self._save_data()

    def value(self, record_id: str, column: str) -> str:
        return self._data.get(record_id, {}).get(column, "")

    def values_for(self, record_id: str) -> Dict[str, str]:
        return dict(self._data.get(record_id, {}))

    def columns_after(self, anchor: ColumnAnchor | str) -> List[CustomColumnDefinition]:
        anchor = ColumnAnchor(anchor)
        return [column for column in self._columns if column.position is anchor]

    def header(self) -> List[Tuple[str, Optional[CustomColumnDefinition]]]:
        """Column headers in display order; custom columns carry their definition."""
        layout: List[Tuple[str, Optional[CustomColumnDefinition]]] = []
        for title, anchor in FIXED_COLUMNS:
            layout.append((title, None))
            layout.extend((column.name, column) for column in self.columns_after(anchor))
        return layout


__all__ = ["FIXED_COLUMNS", "CustomColumnOverlay"]
