"""
Infrastructure package for titledraft.

Centralizes record store backends and database connectivity. Keep this layer
focused on I/O; the sync protocol for deed tables lives in `titledraft.deeds`.
"""

from __future__ import annotations

from typing import Optional

from titledraft.config import Settings, get_settings
from titledraft.exceptions import StoreError
from titledraft.infrastructure.record_store import (
    InMemoryRecordStore,
    QueryFilter,
    RecordStore,
)


async def create_store(settings: Optional[Settings] = None) -> RecordStore:
    """Build the record store selected by `STORE_BACKEND`."""
    settings = settings or get_settings()
    backend = settings.store_backend.lower()
    if backend == "memory":
        return InMemoryRecordStore()
    if backend == "postgres":
        from titledraft.infrastructure.pg_store import PostgresRecordStore

        return await PostgresRecordStore.connect()
    raise StoreError(
        f"Unknown store backend '{settings.store_backend}'. Available: memory, postgres",
        operation="connect",
    )


__all__ = [
    "InMemoryRecordStore",
    "QueryFilter",
    "RecordStore",
    "create_store",
]
