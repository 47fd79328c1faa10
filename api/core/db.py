"""
Async database access helpers (raw SQL) using asyncpg.

This module owns the connection pool. FastAPI initializes it on startup and
closes it on shutdown (see `api/main.py`).

SQL parameter style:
- asyncpg uses positional placeholders: $1, $2, $3, ...

Every helper accepts an optional `conn`. Pass the connection yielded by
`transaction()` to run the statement inside that transaction; without it the
statement runs on a pooled connection in autocommit mode.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import asyncpg

from . import config
from .errors import StoreError

_pool: asyncpg.Pool | None = None

# Failures that say nothing about the request itself; the caller may retry.
TRANSIENT_ERRORS: tuple[type[BaseException], ...] = (
    asyncpg.PostgresConnectionError,
    asyncpg.InterfaceError,
    asyncpg.SerializationError,
    asyncpg.DeadlockDetectedError,
    asyncpg.QueryCanceledError,
    asyncio.TimeoutError,
    OSError,
)


def _sanitize_database_url(url: str) -> str:
    parts = urlsplit(url)
    if not parts.query:
        return url

    params = [(k, v) for (k, v) in parse_qsl(parts.query, keep_blank_values=True) if k != "sslmode"]
    query = urlencode(params)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


def database_url() -> str:
    url = config.database_url()
    if not url:
        raise RuntimeError("DATABASE_URL is not set.")
    return _sanitize_database_url(url)


async def init_pool() -> None:
    global _pool
    if _pool is not None:
        return None
    _pool = await asyncpg.create_pool(
        dsn=database_url(),
        min_size=config.db_pool_min_size(),
        max_size=config.db_pool_max_size(),
        command_timeout=config.db_command_timeout_s(),
    )


async def close_pool() -> None:
    global _pool
    if _pool is None:
        return None
    await _pool.close()
    _pool = None


def pool() -> asyncpg.Pool:
    if _pool is None:
        raise RuntimeError("DB pool is not initialized. Call init_pool() on startup.")
    return _pool


@asynccontextmanager
async def transaction(*, isolation: str = "read_committed") -> AsyncIterator[asyncpg.Connection]:
    """
    Acquire a connection and run the block inside one transaction.

    Commits when the block exits normally, rolls back on any exception.
    Transient driver failures are re-raised as StoreError.
    """
    try:
        async with pool().acquire(timeout=config.db_command_timeout_s()) as conn:
            async with conn.transaction(isolation=isolation):
                yield conn
    except TRANSIENT_ERRORS as exc:
        raise StoreError(f"Database unavailable: {type(exc).__name__}.") from exc


def _record_to_dict(record: asyncpg.Record) -> dict[str, Any]:
    return dict(record)


async def fetch_one(sql: str, *args: Any, conn: asyncpg.Connection | None = None) -> dict[str, Any] | None:
    """
    Run a query and return a single row as a dict (or None).
    """
    try:
        row = await (conn or pool()).fetchrow(sql, *args)
    except TRANSIENT_ERRORS as exc:
        raise StoreError(f"Database unavailable: {type(exc).__name__}.") from exc
    return _record_to_dict(row) if row is not None else None


async def fetch_all(sql: str, *args: Any, conn: asyncpg.Connection | None = None) -> list[dict[str, Any]]:
    """
    Run a query and return all rows as a list of dicts.
    """
    try:
        rows = await (conn or pool()).fetch(sql, *args)
    except TRANSIENT_ERRORS as exc:
        raise StoreError(f"Database unavailable: {type(exc).__name__}.") from exc
    return [_record_to_dict(r) for r in rows]


async def fetch_value(sql: str, *args: Any, conn: asyncpg.Connection | None = None) -> Any:
    try:
        return await (conn or pool()).fetchval(sql, *args)
    except TRANSIENT_ERRORS as exc:
        raise StoreError(f"Database unavailable: {type(exc).__name__}.") from exc


async def execute(sql: str, *args: Any, conn: asyncpg.Connection | None = None) -> str:
    """
    Run a statement (INSERT/UPDATE/DELETE/DDL). Returns the status tag.
    """
    try:
        return await (conn or pool()).execute(sql, *args)
    except TRANSIENT_ERRORS as exc:
        raise StoreError(f"Database unavailable: {type(exc).__name__}.") from exc


async def check_connection() -> bool:
    """
    Connectivity check used by the health endpoints.
    """
    if _pool is None:
        return False
    try:
        await _pool.fetchval("SELECT 1")
    except TRANSIENT_ERRORS:
        return False
    return True


def set_clause(values: dict[str, Any], *, start: int = 1) -> tuple[str, list[Any]]:
    """
    Build "col_a = $1, col_b = $2" for a partial UPDATE.

    Keys must be trusted column names (repositories map API fields to
    columns before calling this); values become positional arguments.
    """
    parts: list[str] = []
    args: list[Any] = []
    for offset, (column, value) in enumerate(values.items()):
        parts.append(f"{column} = ${start + offset}")
        args.append(value)
    return ", ".join(parts), args
