from __future__ import annotations

import pytest

from tests.conftest import RecordingNotifier
from titledraft.documents import PropertyDocumentManager, compute_total_extent_sq_ft
from titledraft.exceptions import ValidationError


@pytest.fixture()
def manager() -> PropertyDocumentManager:
    return PropertyDocumentManager(notifier=RecordingNotifier())


def test_total_extent_is_mean_of_opposite_sides():
    assert compute_total_extent_sq_ft("30", "30", "40", "40") == "1200 Sq.Ft"
    assert compute_total_extent_sq_ft("30", "31", "40", "40") == "1220 Sq.Ft"
    assert compute_total_extent_sq_ft("10.5", "10.5", "2", "2") == "21 Sq.Ft"
    assert compute_total_extent_sq_ft("30 ft", "30", "40", "40") == ""


def test_add_document_requires_survey_number(manager):
    with pytest.raises(ValidationError):
        manager.add_document()
    assert manager.notifier.of("error") == ["Survey No is required"]
    assert manager.documents == []


def test_add_document_resets_form_and_computes_total(manager):
    for name, value in {
        "survey_no": "12/3",
        "north_measurement": "30",
        "south_measurement": "30",
        "east_measurement": "40",
        "west_measurement": "40",
    }.items():
        manager.set_field(name, value)
    row = manager.add_custom_measurement()
    manager.update_custom_measurement(row.id, label="Well", value="1")
    manager.add_custom_measurement()

    document = manager.add_document()

    assert document.total_extent_sq_ft == "1200 Sq.Ft"
    assert document.custom_measurements == {"Well": "1"}
    assert manager.documents == [document]
    assert manager.form["survey_no"] == ""
    assert manager.custom_rows == []
    assert manager.notifier.of("success") == ["Document added successfully"]


def test_explicit_total_is_kept(manager):
    manager.set_field("survey_no", "1")
    manager.set_field("total_extent_sq_ft", "2400 Sq.Ft")
    manager.set_field("north_measurement", "30")
    assert manager.add_document().total_extent_sq_ft == "2400 Sq.Ft"


def test_duplicates_are_allowed(manager):
    manager.set_field("survey_no", "1")
    first = manager.add_document()
    manager.set_field("survey_no", "1")
    second = manager.add_document()

    assert first.id != second.id
    assert len(manager.documents) == 2


def test_edit_document_loads_form_and_removes_it(manager):
    manager.set_field("survey_no", "7")
    manager.set_field("plot_no", "B-4")
    manager.add_custom_measurement()
    manager.update_custom_measurement(manager.custom_rows[0].id, label="Gate", value="North")
    document = manager.add_document()

    assert manager.edit_document(document.id) == document

    assert manager.documents == []
    assert manager.form["survey_no"] == "7"
    assert manager.form["plot_no"] == "B-4"
    assert [(row.label, row.value) for row in manager.custom_rows] == [("Gate", "North")]
    assert manager.edit_document("missing") is None


def test_remove_document_and_custom_rows(manager):
    manager.set_field("survey_no", "7")
    document = manager.add_document()
    manager.remove_document(document.id)
    assert manager.documents == []

    row = manager.add_custom_measurement()
    manager.remove_custom_measurement(row.id)
    assert manager.custom_rows == []


def test_unknown_form_field_is_rejected(manager):
    with pytest.raises(ValidationError):
        manager.set_field("id", "x")
