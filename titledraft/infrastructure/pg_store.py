"""
PostgreSQL-backed record store.

Queries run on an asyncpg pool. Live change notifications come from a row
trigger that publishes `pg_notify` payloads on one channel; a dedicated
listener connection decodes them into ChangeEvents and fans them out to the
subscribers of the affected table, preserving commit order.
"""

from __future__ import annotations

import json
import re
import uuid
from contextlib import asynccontextmanager
from datetime import date, datetime
from typing import Any, AsyncIterator, Dict, List, Mapping, Optional

import asyncpg

from titledraft.domain.models import ChangeEvent, ChangeType
from titledraft.exceptions import StoreError
from titledraft.infrastructure.db_factory import create_async_pool, create_listener_connection
from titledraft.infrastructure.record_store import ChangeCallback, QueryFilter, Unsubscribe
from titledraft.utils.logging import get_logger

log = get_logger(__name__)

NOTIFY_CHANNEL = "titledraft_changes"

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS deeds (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    deed_type TEXT NOT NULL DEFAULT '',
    executed_by TEXT NOT NULL DEFAULT '',
    in_favour_of TEXT NOT NULL DEFAULT '',
    date DATE,
    document_number TEXT NOT NULL DEFAULT '',
    nature_of_doc TEXT NOT NULL DEFAULT '',
    custom_fields JSONB NOT NULL DEFAULT '{}'::jsonb,
    table_type TEXT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now()
);
CREATE INDEX IF NOT EXISTS deeds_table_type_created_at_idx ON deeds (table_type, created_at);

CREATE TABLE IF NOT EXISTS deed_templates (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    deed_type TEXT NOT NULL UNIQUE,
    preview_template TEXT,
    custom_placeholders JSONB NOT NULL DEFAULT '{}'::jsonb,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now()
);

CREATE TABLE IF NOT EXISTS history_of_title_templates (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    deed_type TEXT NOT NULL UNIQUE,
    template_content TEXT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now()
);

CREATE OR REPLACE FUNCTION titledraft_notify_change() RETURNS trigger AS $$
BEGIN
    PERFORM pg_notify(
        'titledraft_changes',
        json_build_object(
            'table', TG_TABLE_NAME,
            'type', lower(TG_OP),
            'record', CASE WHEN TG_OP = 'DELETE'
                           THEN json_build_object('id', OLD.id)
                           ELSE row_to_json(NEW) END
        )::text
    );
    RETURN NULL;
END;
$$ LANGUAGE plpgsql;

DROP TRIGGER IF EXISTS deeds_notify_change ON deeds;
CREATE TRIGGER deeds_notify_change
    AFTER INSERT OR UPDATE OR DELETE ON deeds
    FOR EACH ROW EXECUTE FUNCTION titledraft_notify_change();
"""

_IDENTIFIER = re.compile(r"^[a-z_][a-z0-9_]*$")


def _ident(name: str) -> str:
    """Quote a table/column name after checking it is a plain identifier."""
    if not _IDENTIFIER.match(name):
        raise StoreError(f"invalid identifier {name!r}")
    return f'"{name}"'


def _to_db(column: str, value: Any) -> Any:
    if isinstance(value, str):
        if column == "date":
            return date.fromisoformat(value) if value else None
        if column == "created_at":
            return datetime.fromisoformat(value)
        if column == "id":
            return uuid.UUID(value)
    return value


def _from_db(row: Mapping[str, Any]) -> Dict[str, Any]:
    record: Dict[str, Any] = {}
    for key, value in row.items():
        if isinstance(value, uuid.UUID):
            value = str(value)
        elif isinstance(value, date) and not isinstance(value, datetime):
            value = value.isoformat()
        record[key] = value
    return record


@asynccontextmanager
async def _translate_errors(operation: str, table: str) -> AsyncIterator[None]:
    try:
        yield
    except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, ValueError) as exc:
        raise StoreError(f"{operation} on {table} failed: {exc}", operation=operation, table=table) from exc


class PostgresRecordStore:
    """
    RecordStore over PostgreSQL.

    Create with `await PostgresRecordStore.connect()`; call `close()` when done.
    """

    def __init__(self, pool: asyncpg.Pool, dsn: Optional[str] = None) -> None:
        self._pool = pool
        self._dsn = dsn
        self._listener: Optional[asyncpg.Connection] = None
        self._subscribers: Dict[str, List[ChangeCallback]] = {}

    @classmethod
    async def connect(cls, dsn: Optional[str] = None) -> "PostgresRecordStore":
        async with _translate_errors("connect", "database"):
            pool = await create_async_pool(dsn)
        return cls(pool, dsn=dsn)

    async def query(
        self,
        table: str,
        filter: Optional[QueryFilter] = None,
        order_by: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        sql = f"SELECT * FROM {_ident(table)}"
        params: List[Any] = []
        clauses: List[str] = []
        if filter is not None:
            for column, value in filter.equals.items():
                params.append(_to_db(column, value))
                condition = f"{_ident(column)} = ${len(params)}"
                if column in filter.null_matches:
                    condition = f"({condition} OR {_ident(column)} IS NULL)"
                clauses.append(condition)
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        if order_by:
            sql += f" ORDER BY {_ident(order_by)} ASC"

        async with _translate_errors("query", table):
            rows = await self._pool.fetch(sql, *params)
        return [_from_db(row) for row in rows]

    async def insert(self, table: str, record: Mapping[str, Any]) -> Dict[str, Any]:
        columns = [column for column, value in record.items() if not (column == "id" and value is None)]
        placeholders = ", ".join(f"${i}" for i in range(1, len(columns) + 1))
        sql = (
            f"INSERT INTO {_ident(table)} ({', '.join(_ident(c) for c in columns)}) "
            f"VALUES ({placeholders}) RETURNING *"
        )
        async with _translate_errors("insert", table):
            values = [_to_db(column, record[column]) for column in columns]
            row = await self._pool.fetchrow(sql, *values)
        return _from_db(row)

    async def update(self, table: str, record_id: str, fields: Mapping[str, Any]) -> None:
        if not fields:
            return
        columns = list(fields)
        assignments = ", ".join(f"{_ident(c)} = ${i}" for i, c in enumerate(columns, start=1))
        sql = f"UPDATE {_ident(table)} SET {assignments} WHERE id = ${len(columns) + 1}"
        async with _translate_errors("update", table):
            values = [_to_db(column, fields[column]) for column in columns]
            status = await self._pool.execute(sql, *values, _to_db("id", record_id))
        if status.endswith(" 0"):
            raise StoreError(f"no record {record_id}", operation="update", table=table)

    async def delete(self, table: str, record_id: str) -> None:
        sql = f"DELETE FROM {_ident(table)} WHERE id = $1"
        async with _translate_errors("delete", table):
            await self._pool.execute(sql, _to_db("id", record_id))

    def _on_notify(self, connection: Any, pid: int, channel: str, payload: str) -> None:
        del connection, pid, channel
        try:
            message = json.loads(payload)
            event = ChangeEvent(
                type=ChangeType(message["type"]),
                table=message["table"],
                record=message.get("record") or {},
            )
        except (ValueError, KeyError) as exc:
            log.warning("Dropping malformed change notification", extra={"error": str(exc)})
            return
        for callback in list(self._subscribers.get(event.table, [])):
            callback(event)

    async def subscribe(self, table: str, on_change: ChangeCallback) -> Unsubscribe:
        if self._listener is None:
            async with _translate_errors("subscribe", table):
                self._listener = await create_listener_connection(self._dsn)
                await self._listener.add_listener(NOTIFY_CHANNEL, self._on_notify)
        callbacks = self._subscribers.setdefault(table, [])
        callbacks.append(on_change)
        log.info("Listening for changes", extra={"table": table, "channel": NOTIFY_CHANNEL})

        async def unsubscribe() -> None:
            if on_change in callbacks:
                callbacks.remove(on_change)

        return unsubscribe

    async def close(self) -> None:
        """Release the listener connection and the pool."""
        self._subscribers.clear()
        if self._listener is not None:
            try:
                await self._listener.remove_listener(NOTIFY_CHANNEL, self._on_notify)
                await self._listener.close()
            finally:
                self._listener = None
        await self._pool.close()


__all__ = ["NOTIFY_CHANNEL", "SCHEMA_SQL", "PostgresRecordStore"]
