from __future__ import annotations

from datetime import datetime, timezone

import pytest

from titledraft.domain.models import ChangeType, DEEDS_TABLE
from titledraft.exceptions import StoreError
from titledraft.infrastructure import create_store
from titledraft.infrastructure.pg_store import PostgresRecordStore
from titledraft.infrastructure.record_store import InMemoryRecordStore, QueryFilter, RecordStore


@pytest.mark.asyncio
async def test_insert_assigns_id_and_created_at():
    store = InMemoryRecordStore()
    row = await store.insert(DEEDS_TABLE, {"deed_type": "Sale"})
    assert row["id"]
    assert isinstance(row["created_at"], datetime)


@pytest.mark.asyncio
async def test_query_filters_and_orders_with_nulls_first():
    store = InMemoryRecordStore()
    late = datetime(2024, 1, 2, tzinfo=timezone.utc)
    early = datetime(2024, 1, 1, tzinfo=timezone.utc)
    await store.insert(DEEDS_TABLE, {"id": "b", "table_type": "table", "created_at": late})
    await store.insert(DEEDS_TABLE, {"id": "a", "table_type": None, "created_at": early})
    await store.insert(DEEDS_TABLE, {"id": "c", "table_type": "table2", "created_at": early})

    rows = await store.query(
        DEEDS_TABLE,
        QueryFilter(equals={"table_type": "table"}, null_matches=frozenset({"table_type"})),
        order_by="created_at",
    )

    assert [row["id"] for row in rows] == ["a", "b"]


@pytest.mark.asyncio
async def test_returned_rows_are_copies():
    store = InMemoryRecordStore()
    row = await store.insert(DEEDS_TABLE, {"custom_fields": {"k": "v"}})
    row["custom_fields"]["k"] = "changed"
    (stored,) = await store.query(DEEDS_TABLE)
    assert stored["custom_fields"] == {"k": "v"}


@pytest.mark.asyncio
async def test_subscribers_receive_changes_in_commit_order():
    store = InMemoryRecordStore()
    events = []
    unsubscribe = await store.subscribe(DEEDS_TABLE, events.append)

    row = await store.insert(DEEDS_TABLE, {"deed_type": ""})
    await store.update(DEEDS_TABLE, row["id"], {"deed_type": "Sale"})
    await store.delete(DEEDS_TABLE, row["id"])
    await unsubscribe()
    await store.insert(DEEDS_TABLE, {})

    assert [event.type for event in events] == [ChangeType.INSERT, ChangeType.UPDATE, ChangeType.DELETE]
    assert events[1].record["deed_type"] == "Sale"
    assert events[2].record == {"id": row["id"]}


@pytest.mark.asyncio
async def test_missing_records_raise_store_error():
    store = InMemoryRecordStore()
    with pytest.raises(StoreError) as excinfo:
        await store.update(DEEDS_TABLE, "missing", {})
    assert excinfo.value.operation == "update"
    with pytest.raises(StoreError):
        await store.delete(DEEDS_TABLE, "missing")


@pytest.mark.asyncio
async def test_create_store_selects_backend(test_settings):
    store = await create_store(test_settings)
    assert isinstance(store, RecordStore)
    assert isinstance(store, InMemoryRecordStore)

    with pytest.raises(StoreError) as excinfo:
        await create_store(test_settings.model_copy(update={"store_backend": "sqlite"}))
    assert "Available: memory, postgres" in str(excinfo.value)


@pytest.mark.asyncio
async def test_postgres_store_wraps_value_conversion_errors():
    store = PostgresRecordStore(pool=None)

    with pytest.raises(StoreError) as excinfo:
        await store.update(DEEDS_TABLE, "6f1c2a5e-0000-4000-8000-000000000001", {"date": "not a date"})
    assert excinfo.value.operation == "update"

    with pytest.raises(StoreError) as excinfo:
        await store.insert(DEEDS_TABLE, {"id": None, "date": "31-02-2020"})
    assert excinfo.value.operation == "insert"
