"""
Database connection factory utilities for titledraft.

Provides the DSN built from settings, a synchronous psycopg connection for
schema management scripts, and asyncpg pool / listener connections for the
PostgreSQL record store.

Connection establishment is retried with tenacity; individual store
operations are not.
"""

from __future__ import annotations

import json
from typing import Optional

import asyncpg
import psycopg
from psycopg import Connection
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from titledraft.config import get_settings


def build_dsn() -> str:
    """Compose a DSN string from settings."""
    settings = get_settings()
    return (
        f"postgresql://{settings.db_user}:{settings.db_password}"
        f"@{settings.db_host}:{settings.db_port}/{settings.db_name}"
    )


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((psycopg.OperationalError, psycopg.InterfaceError)),
    reraise=True,
)
def get_sync_connection(dsn: Optional[str] = None) -> Connection:
    """
    Acquire a dedicated synchronous connection with automatic retry.

    Used by schema/seed scripts. Retries up to 3 times with exponential
    backoff for transient connection errors.

    Raises
    ------
    psycopg.OperationalError
        If connection fails after all retry attempts.
    """
    return psycopg.connect(dsn or build_dsn())


async def _init_connection(conn: asyncpg.Connection) -> None:
    """Decode JSON/JSONB columns into Python objects."""
    for type_name in ("json", "jsonb"):
        await conn.set_type_codec(
            type_name,
            encoder=json.dumps,
            decoder=json.loads,
            schema="pg_catalog",
        )


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((OSError, ConnectionError, asyncpg.CannotConnectNowError)),
    reraise=True,
)
async def create_async_pool(
    dsn: Optional[str] = None, min_size: int = 1, max_size: int = 10
) -> asyncpg.Pool:
    """
    Create an asyncpg pool with JSON codecs installed on every connection.

    Parameters
    ----------
    dsn : str | None
        Connection string; defaults to the settings-derived DSN.
    min_size : int
        Minimum number of idle connections to keep.
    max_size : int
        Maximum total connections in the pool.
    """
    return await asyncpg.create_pool(
        dsn or build_dsn(), min_size=min_size, max_size=max_size, init=_init_connection
    )


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((OSError, ConnectionError, asyncpg.CannotConnectNowError)),
    reraise=True,
)
async def create_listener_connection(dsn: Optional[str] = None) -> asyncpg.Connection:
    """
    Open a dedicated connection for LISTEN/NOTIFY.

    Listener connections must not be returned to a pool while they hold
    channel subscriptions.
    """
    return await asyncpg.connect(dsn or build_dsn())


__all__ = [
    "build_dsn",
    "create_async_pool",
    "create_listener_connection",
    "get_sync_connection",
]
