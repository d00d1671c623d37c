from __future__ import annotations

import json

import pytest

from titledraft.deeds.columns import CustomColumnOverlay
from titledraft.domain.models import ColumnAnchor
from titledraft.exceptions import ValidationError


def test_add_column_persists_definition(tmp_path):
    overlay = CustomColumnOverlay("table2", tmp_path)

    overlay.add_column("  Remarks ", "nature")

    saved = json.loads((tmp_path / "customColumns_table2.json").read_text(encoding="utf-8"))
    assert saved == [{"name": "Remarks", "position": "nature"}]
    assert [c.name for c in CustomColumnOverlay("table2", tmp_path).columns] == ["Remarks"]


def test_column_names_must_be_unique_and_non_empty(tmp_path):
    overlay = CustomColumnOverlay("table", tmp_path)
    overlay.add_column("Village", ColumnAnchor.DATE)

    with pytest.raises(ValidationError):
        overlay.add_column("Village", ColumnAnchor.NATURE_OF_DOC)
    with pytest.raises(ValidationError):
        overlay.add_column("   ", ColumnAnchor.DATE)
    with pytest.raises(ValidationError):
        overlay.add_column("Other", "nowhere")


def test_values_are_scoped_per_table(tmp_path):
    first = CustomColumnOverlay("table", tmp_path)
    second = CustomColumnOverlay("table2", tmp_path)
    first.add_column("Village", "sno")
    first.set_value("deed-1", "Village", "Anna Nagar")

    assert CustomColumnOverlay("table", tmp_path).value("deed-1", "Village") == "Anna Nagar"
    assert second.value("deed-1", "Village") == ""


def test_remove_column_drops_its_values(tmp_path):
    overlay = CustomColumnOverlay("table", tmp_path)
    overlay.add_column("Village", "sno")
    overlay.add_column("Remarks", "nature")
    overlay.set_value("deed-1", "Village", "X")
    overlay.set_value("deed-1", "Remarks", "Y")

    overlay.remove_column("Village")

    reloaded = CustomColumnOverlay("table", tmp_path)
    assert [c.name for c in reloaded.columns] == ["Remarks"]
    assert reloaded.values_for("deed-1") == {"Remarks": "Y"}


def test_header_interleaves_custom_columns(tmp_path):
    overlay = CustomColumnOverlay("table", tmp_path)
    overlay.add_column("Village", "sno")
    overlay.add_column("Remarks", "nature")
    overlay.add_column("Stamp", "dno")

    titles = [title for title, _ in overlay.header()]

    assert titles == ["Sno", "Village", "Date", "D.No", "Stamp", "Particulars of Deed", "Nature of Doc", "Remarks"]
    assert [c.name for c in overlay.columns_after("dno")] == ["Stamp"]
