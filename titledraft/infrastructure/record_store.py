"""
Record store interfaces for titledraft.

The record store is the system of record for deed rows and the template
catalogs. Deed table managers only talk to the RecordStore protocol; concrete
backends are the in-memory store below (tests, demos, the CLI default) and the
PostgreSQL store in `pg_store`.
"""

from __future__ import annotations

import copy
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    FrozenSet,
    List,
    Mapping,
    Optional,
    Protocol,
    runtime_checkable,
)

from titledraft.domain.models import ChangeEvent, ChangeType
from titledraft.exceptions import StoreError
from titledraft.utils.logging import get_logger

log = get_logger(__name__)

ChangeCallback = Callable[[ChangeEvent], None]
Unsubscribe = Callable[[], Awaitable[None]]

_MIN_SORT_KEY = datetime.min.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class QueryFilter:
    """
    Equality filter over record columns.

    A record matches when every column in `equals` holds the given value, or
    holds NULL and the column is listed in `null_matches`.
    """

    equals: Mapping[str, Any] = field(default_factory=dict)
    null_matches: FrozenSet[str] = frozenset()

    def matches(self, record: Mapping[str, Any]) -> bool:
        for column, expected in self.equals.items():
            actual = record.get(column)
            if actual == expected:
                continue
            if column in self.null_matches and not actual:
                continue
            return False
        return True


@runtime_checkable
class RecordStore(Protocol):
    """
    Capability consumed by the deed table managers and the catalog loader.

    All operations may raise StoreError.
    """

    async def query(
        self,
        table: str,
        filter: Optional[QueryFilter] = None,
        order_by: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Return matching records, ascending by `order_by` when given."""
        ...

    async def insert(self, table: str, record: Mapping[str, Any]) -> Dict[str, Any]:
        """Insert a record; the store assigns `id` and `created_at` when absent."""
        ...

    async def update(self, table: str, record_id: str, fields: Mapping[str, Any]) -> None:
        ...

    async def delete(self, table: str, record_id: str) -> None:
        ...

    async def subscribe(self, table: str, on_change: ChangeCallback) -> Unsubscribe:
        """Deliver change notifications for `table` in commit order."""
        ...

    async def close(self) -> None:
        ...


def sort_key(value: Any) -> Any:
    """Sort key that places missing values first."""
    if value is None:
        return (0, _MIN_SORT_KEY)
    return (1, value)


class InMemoryRecordStore:
    """
    Process-local RecordStore.

    Records are deep-copied on the way in and out so callers can never mutate
    stored state. Subscribers are called synchronously, inside the mutating
    call, in commit order.
    """

    def __init__(self) -> None:
        self._tables: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._subscribers: Dict[str, List[ChangeCallback]] = {}

    def _table(self, table: str) -> Dict[str, Dict[str, Any]]:
        return self._tables.setdefault(table, {})

    def _publish(self, table: str, change_type: ChangeType, record: Dict[str, Any]) -> None:
        event = ChangeEvent(type=change_type, table=table, record=copy.deepcopy(record))
        for callback in list(self._subscribers.get(table, [])):
            callback(event)

    async def query(
        self,
        table: str,
        filter: Optional[QueryFilter] = None,
        order_by: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        rows = [
            copy.deepcopy(row)
            for row in self._table(table).values()
            if filter is None or filter.matches(row)
        ]
        if order_by:
            rows.sort(key=lambda row: sort_key(row.get(order_by)))
        return rows

    async def insert(self, table: str, record: Mapping[str, Any]) -> Dict[str, Any]:
        row = copy.deepcopy(dict(record))
        row.setdefault("id", str(uuid.uuid4()))
        if row.get("created_at") is None:
            row["created_at"] = datetime.now(timezone.utc)
        rows = self._table(table)
        if row["id"] in rows:
            raise StoreError(f"duplicate id {row['id']}", operation="insert", table=table)
        rows[row["id"]] = row
        self._publish(table, ChangeType.INSERT, row)
        return copy.deepcopy(row)

    async def update(self, table: str, record_id: str, fields: Mapping[str, Any]) -> None:
        rows = self._table(table)
        if record_id not in rows:
            raise StoreError(f"no record {record_id}", operation="update", table=table)
        rows[record_id].update(copy.deepcopy(dict(fields)))
        self._publish(table, ChangeType.UPDATE, rows[record_id])

    async def delete(self, table: str, record_id: str) -> None:
        row = self._table(table).pop(record_id, None)
        if row is None:
            raise StoreError(f"no record {record_id}", operation="delete", table=table)
        self._publish(table, ChangeType.DELETE, {"id": record_id})

    async def subscribe(self, table: str, on_change: ChangeCallback) -> Unsubscribe:
        callbacks = self._subscribers.setdefault(table, [])
        callbacks.append(on_change)
        log.debug("Subscribed to changes", extra={"table": table, "subscribers": len(callbacks)})

        async def unsubscribe() -> None:
            if on_change in callbacks:
                callbacks.remove(on_change)

        return unsubscribe

    async def close(self) -> None:
        self._subscribers.clear()


__all__ = [
    "ChangeCallback",
    "InMemoryRecordStore",
    "QueryFilter",
    "RecordStore",
    "Unsubscribe",
    "sort_key",
]
