from __future__ import annotations

import json

import pytest
from docx import Document

from tests.conftest import CATALOG_DATA
from titledraft.exceptions import CatalogError, ValidationError
from titledraft.infrastructure.record_store import InMemoryRecordStore
from titledraft.templates import (
    TemplateCatalog,
    dynamic_placeholder_names,
    extract_placeholders,
    format_label,
    load_template_text,
    template_placeholders,
)


def test_extract_placeholders_is_deduplicated():
    text = "{a} and {b_2} then {a} again"
    assert extract_placeholders(text) == {"a", "b_2"}


def test_extract_placeholders_ignores_invalid_names():
    assert extract_placeholders("{with space} {$history} {ok} {{x}}") == {"ok", "x"}
    assert extract_placeholders("") == set()
    assert extract_placeholders(None) == set()


def test_dynamic_placeholders_drop_standard_fields():
    names = dynamic_placeholder_names(["{deedType} {date} {surveyNo}", "{documentNumber} {natureOfDoc} {owner}"])
    assert names == {"surveyNo", "owner"}


def test_template_placeholders_skip_table_tokens():
    assert template_placeholders("{clientName}\n{table}\n{table2}\n{place}") == ["clientName", "place"]


@pytest.mark.parametrize(
    "name,label",
    [("inFavourOf", "In Favour Of"), ("survey_no", "Survey no"), ("date", "Date")],
)
def test_format_label(name, label):
    assert format_label(name) == label


def test_catalog_dynamic_placeholders(catalog):
    assert catalog.dynamic_placeholders("Sale") == ["executedBy", "inFavourOf"]
    assert catalog.dynamic_placeholders("Mortgage") == ["executedBy", "inFavourOf", "propertyRef"]
    assert catalog.dynamic_placeholders("Unknown") == []


def test_catalog_lookups_for_merging_are_case_insensitive(catalog):
    assert catalog.particulars_template("  sale ") == CATALOG_DATA["deed_templates"][0]["preview_template"]
    assert catalog.history_narrative("SALE") == "{executedBy} sold to {inFavourOf} on {date}"
    assert catalog.history_narrative("Gift") is None
    assert catalog.particulars_template(None) == ""


def test_catalog_custom_field_keys_use_exact_type(catalog):
    assert catalog.custom_field_keys("Sale") == ["executedBy", "inFavourOf"]
    assert catalog.custom_field_keys("sale") == []


def test_catalog_round_trips_through_file(tmp_path, catalog):
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps(catalog.to_mapping()), encoding="utf-8")

    loaded = TemplateCatalog.from_file(path)

    assert loaded.deed_types == ["Gift", "Mortgage", "Sale"]


def test_catalog_rejects_malformed_documents(tmp_path):
    with pytest.raises(CatalogError):
        TemplateCatalog.from_mapping({"deed_templates": [{"preview_template": "no type"}]})
    with pytest.raises(CatalogError):
        TemplateCatalog.from_file(tmp_path / "missing.json")


@pytest.mark.asyncio
async def test_catalog_loads_from_store():
    store = InMemoryRecordStore()
    await store.insert("deed_templates", {"deed_type": "Sale", "preview_template": None, "custom_placeholders": None})
    await store.insert("history_of_title_templates", {"deed_type": "Sale", "template_content": "{executedBy}"})

    catalog = await TemplateCatalog.load(store)

    assert catalog.deed_types == ["Sale"]
    assert catalog.particulars_template("Sale") == ""
    assert catalog.custom_field_keys("Sale") == []
    assert catalog.history_narrative("Sale") == "{executedBy}"


def test_load_template_text_reads_docx(tmp_path):
    path = tmp_path / "template.docx"
    document = Document()
    document.add_paragraph("REPORT ON TITLE:")
    document.add_paragraph("Client: {clientName}")
    table = document.add_table(rows=1, cols=2)
    table.cell(0, 0).text = "Place"
    table.cell(0, 1).text = "{place}"
    document.add_paragraph("{table}")
    document.save(str(path))

    text = load_template_text(path)

    assert [line for line in text.splitlines() if line] == ["REPORT ON TITLE:", "Client: {clientName}", "Place | {place}", "{table}"]
    assert template_placeholders(text) == ["clientName", "place"]


def test_load_template_text_reads_plain_text(tmp_path):
    path = tmp_path / "template.txt"
    path.write_text("Hello {name}", encoding="utf-8")
    assert load_template_text(path) == "Hello {name}"


def test_load_template_text_rejects_legacy_word_and_missing_files(tmp_path):
    legacy = tmp_path / "old.doc"
    legacy.write_bytes(b"\xd0\xcf")
    with pytest.raises(ValidationError):
        load_template_text(legacy)
    with pytest.raises(ValidationError):
        load_template_text(tmp_path / "nope.docx")
