"""
Async database access helpers (raw SQL) using asyncpg.

`create_pool()` is called once per process from the FastAPI lifespan
(see `api/main.py`); the pool is then passed explicitly to whoever needs it.

The helpers below take an *executor* as first argument: either the pool
(one checkout per call) or a connection acquired for a transaction.

SQL parameter style:
- asyncpg uses positional placeholders: $1, $2, $3, ...
"""

from __future__ import annotations

from typing import Any, Union

import asyncpg

from core.settings import DatabaseSettings

Executor = Union[asyncpg.Pool, asyncpg.Connection]


async def create_pool(settings: DatabaseSettings) -> asyncpg.Pool:
    return await asyncpg.create_pool(
        dsn=settings.url,
        min_size=settings.min_size,
        max_size=settings.max_size,
        command_timeout=settings.command_timeout,
    )


async def close_pool(pool: asyncpg.Pool | None) -> None:
    if pool is None:
        return None
    await pool.close()


def _record_to_dict(record: asyncpg.Record) -> dict[str, Any]:
    return dict(record)


async def fetch_one(executor: Executor, sql: str, *args: Any) -> dict[str, Any] | None:
    """
    Run a query and return a single row as a dict (or None).
    """
    row = await executor.fetchrow(sql, *args)
    return _record_to_dict(row) if row is not None else None


async def fetch_all(executor: Executor, sql: str, *args: Any) -> list[dict[str, Any]]:
    """
    Run a query and return all rows as a list of dicts.
    """
    rows = await executor.fetch(sql, *args)
    return [_record_to_dict(r) for r in rows]

