import json

import pytest

from typer.testing import CliRunner

from tests.conftest import CATALOG_DATA
from titledraft import config
from titledraft.config import SyncTimings
from titledraft.exceptions import StoreError
from titledraft.main import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def _keep_test_logging(monkeypatch):
    monkeypatch.setattr("titledraft.main._setup_logging", lambda: None)


def test_get_settings_defaults(monkeypatch):
    for name in ("STORE_BACKEND", "DB_HOST", "DB_PORT", "DB_NAME", "DEBOUNCE_MS"):
        monkeypatch.delenv(name, raising=False)
    config.get_settings.cache_clear()
    try:
        settings = config.get_settings()
    finally:
        config.get_settings.cache_clear()
    assert settings.store_backend == "memory"
    assert settings.db_host == "localhost"
    assert settings.db_port == 5432
    assert settings.db_name == "titledraft"
    assert settings.debounce_ms == 500


def test_sync_timings_from_settings(test_settings):
    timings = SyncTimings.from_settings(test_settings)
    assert timings.debounce == 0.5
    assert timings.editing_release == 0.3
    assert timings.insert_suppression == 2.0
    assert timings.copy_suppression == 3.0
    assert timings.insert_gap_ms == 1000


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv("DEBOUNCE_MS", "250")
    monkeypatch.setenv("STORE_BACKEND", "postgres")
    settings = config.Settings()
    assert settings.debounce_ms == 250
    assert settings.store_backend == "postgres"


def _write_catalog(tmp_path):
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps(CATALOG_DATA), encoding="utf-8")
    return path


def test_cli_placeholders(tmp_path):
    template = tmp_path / "template.txt"
    template.write_text("Dear {clientName},\n{table}\n{surveyNo}", encoding="utf-8")

    result = runner.invoke(app, ["placeholders", str(template)])

    assert result.exit_code == 0
    assert result.stdout.splitlines() == ["clientName\tClient Name", "surveyNo\tSurvey No"]


def test_cli_dynamic_fields(tmp_path):
    result = runner.invoke(app, ["dynamic-fields", "Mortgage", "--catalog", str(_write_catalog(tmp_path))])

    assert result.exit_code == 0
    assert [line.split("\t")[0] for line in result.stdout.splitlines()] == ["executedBy", "inFavourOf", "propertyRef"]


def test_cli_preview_plain(tmp_path):
    template = tmp_path / "template.txt"
    template.write_text("{deedType} on {date}: {$history}", encoding="utf-8")
    draft = tmp_path / "draft.json"
    draft.write_text(
        json.dumps(
            {
                "placeholders": {"deedType": "Sale", "date": "2024-01-01"},
                "deeds": {
                    "table": [
                        {"id": "1", "deed_type": "Sale", "executed_by": "A", "in_favour_of": "B", "date": "2024-01-01"}
                    ]
                },
            }
        ),
        encoding="utf-8",
    )

    result = runner.invoke(
        app,
        ["preview", str(template), "--draft", str(draft), "--catalog", str(_write_catalog(tmp_path)), "--plain"],
    )

    assert result.exit_code == 0
    assert result.stdout.strip() == "Sale on 2024-01-01: A sold to B on 2024-01-01"


def test_cli_preview_missing_template_fails(tmp_path):
    draft = tmp_path / "draft.json"
    draft.write_text("{}", encoding="utf-8")

    result = runner.invoke(
        app,
        ["preview", str(tmp_path / "none.docx"), "--draft", str(draft), "--catalog", str(_write_catalog(tmp_path))],
    )

    assert result.exit_code == 1


def test_cli_copy_table_rejects_unknown_table():
    result = runner.invoke(app, ["copy-table", "table", "table9"])
    assert result.exit_code == 1


def test_cli_copy_table_reports_store_errors(monkeypatch):
    monkeypatch.setenv("STORE_BACKEND", "sqlite")
    config.get_settings.cache_clear()
    try:
        result = runner.invoke(app, ["copy-table", "table", "table2"])
    finally:
        config.get_settings.cache_clear()

    assert result.exit_code == 1
    assert not isinstance(result.exception, StoreError)
