"""
Pytest configuration for titledraft.

Provides fixtures for:
- An in-memory record store that records writes and can inject failures
- A notifier that records user-visible messages
- Fast sync timings so debounce and suppression windows elapse quickly
- A small template catalog shared by the deed, merge and CLI tests
"""

from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple

import pytest

from titledraft.config import Settings, SyncTimings
from titledraft.domain.models import DEEDS_TABLE
from titledraft.exceptions import StoreError
from titledraft.infrastructure.record_store import InMemoryRecordStore
from titledraft.templates.catalog import TemplateCatalog

BASE_TIME = datetime(2024, 1, 1, 10, 0, 0, tzinfo=timezone.utc)

CATALOG_DATA: Dict[str, Any] = {
    "deed_templates": [
        {
            "deed_type": "Sale",
            "preview_template": "Sale deed executed by {executedBy} in favour of {inFavourOf}",
            "custom_placeholders": {"executedBy": "Executed By", "inFavourOf": "In Favour Of"},
        },
        {
            "deed_type": "Mortgage",
            "preview_template": "Mortgage of {propertyRef} dated {date}",
            "custom_placeholders": {"propertyRef": "Property Reference"},
        },
        {
            "deed_type": "Gift",
            "preview_template": "",
            "custom_placeholders": {"donor": "Donor"},
        },
    ],
    "history_templates": [
        {"deed_type": "Sale", "template_content": "{executedBy} sold to {inFavourOf} on {date}"},
        {"deed_type": "Mortgage", "template_content": "  {executedBy} mortgaged {propertyRef} to {inFavourOf}  "},
    ],
}


class RecordingStore(InMemoryRecordStore):
    """
    In-memory store that keeps a log of writes.

    `fail_operations` makes the named operations raise StoreError;
    `fail_after_inserts` lets that many inserts succeed before failing.
    """

    def __init__(self) -> None:
        super().__init__()
        self.updates: List[Tuple[str, str, Dict[str, Any]]] = []
        self.inserts: List[Tuple[str, Dict[str, Any]]] = []
        self.fail_operations: Set[str] = set()
        self.fail_after_inserts: Optional[int] = None

    def _maybe_fail(self, operation: str, table: str) -> None:
        if operation in self.fail_operations:
            raise StoreError(f"{operation} rejected", operation=operation, table=table)

    async def query(self, table, filter=None, order_by=None):
        self._maybe_fail("query", table)
        return await super().query(table, filter, order_by)

    async def insert(self, table: str, record: Mapping[str, Any]) -> Dict[str, Any]:
        self._maybe_fail("insert", table)
        if self.fail_after_inserts is not None:
            if self.fail_after_inserts <= 0:
                raise StoreError("insert rejected", operation="insert", table=table)
            self.fail_after_inserts -= 1
        row = await super().insert(table, record)
        self.inserts.append((table, row))
        return row

    async def update(self, table: str, record_id: str, fields: Mapping[str, Any]) -> None:
        self._maybe_fail("update", table)
        self.updates.append((table, record_id, dict(fields)))
        await super().update(table, record_id, fields)

    async def delete(self, table: str, record_id: str) -> None:
        self._maybe_fail("delete", table)
        await super().delete(table, record_id)

    async def seed(self, *rows: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Insert deed rows without recording them as writes."""
        created = []
        for row in rows:
            created.append(await InMemoryRecordStore.insert(self, DEEDS_TABLE, row))
        return created


class RecordingNotifier:
    def __init__(self) -> None:
        self.messages: List[Tuple[str, str]] = []

    def success(self, message: str) -> None:
        self.messages.append(("success", message))

    def info(self, message: str) -> None:
        self.messages.append(("info", message))

    def error(self, message: str) -> None:
        self.messages.append(("error", message))

    def of(self, level: str) -> List[str]:
        return [message for kind, message in self.messages if kind == level]


def deed_row(table_type: Optional[str] = "table", minutes: int = 0, **fields: Any) -> Dict[str, Any]:
    """A deed row whose created_at is `minutes` after BASE_TIME."""
    row: Dict[str, Any] = {
        "deed_type": "",
        "executed_by": "",
        "in_favour_of": "",
        "date": None,
        "document_number": "",
        "nature_of_doc": "",
        "custom_fields": {},
        "table_type": table_type,
        "created_at": BASE_TIME + timedelta(minutes=minutes),
    }
    row.update(fields)
    return row


@pytest.fixture()
def test_settings(tmp_path) -> Settings:
    """
    Settings fixture with test-specific overrides.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        store_backend="memory",
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=int(os.getenv("DB_PORT", "5432")),
        db_user=os.getenv("DB_USER", "postgres"),
        db_password=os.getenv("DB_PASSWORD", "postgres"),
        db_name=os.getenv("DB_NAME", "titledraft"),
        log_level="DEBUG",
        local_state_dir=tmp_path / "state",
    )


@pytest.fixture()
def timings() -> SyncTimings:
    return SyncTimings(
        debounce=0.02,
        editing_release=0.01,
        insert_suppression=0.05,
        copy_suppression=0.05,
        insert_gap_ms=1000,
    )


@pytest.fixture()
def store() -> RecordingStore:
    return RecordingStore()


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def catalog() -> TemplateCatalog:
    return TemplateCatalog.from_mapping(CATALOG_DATA)
