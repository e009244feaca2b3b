from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, Optional
from uuid import UUID

import asyncio
import asyncpg
from asyncpg import Pool

from studyhub.errors import StoreUnavailable
from studyhub.store.base import (
    StoreAdapter, InsertStream, ConstraintViolation, Tables,
    Row, Filters, normalize_value,
)
from studyhub.utils.logs import ErrorLogger

if TYPE_CHECKING:
    from studyhub.cache.feeds import InsertFeedService


TABLE_COLUMNS: dict[str, frozenset[str]] = {
    Tables.GROUPS: frozenset({
        "id", "name", "description", "subject", "max_members", "visibility",
        "allow_join_requests", "creator_id", "meeting_type", "meeting_location",
        "meeting_link", "frequency", "day_of_week", "start_time", "duration",
        "created_at", "updated_at",
    }),
    Tables.MEMBERSHIPS: frozenset({
        "id", "group_id", "user_id", "role", "status", "requested_at", "decided_at",
    }),
    Tables.MESSAGES: frozenset({
        "id", "group_id", "sender_id", "kind", "body", "attachment_ref", "created_at",
    }),
}


def _columns(table: str, columns) -> list[str]:
    """Validate identifiers before they are interpolated into SQL."""
    allowed = TABLE_COLUMNS.get(table)
    if allowed is None:
        raise ValueError(f"Unknown table: {table}")
    names = list(columns)
    unknown = [name for name in names if name not in allowed]
    if unknown:
        raise ValueError(f"Unknown column(s) for {table}: {', '.join(unknown)}")
    return names


def _to_row(record: asyncpg.Record) -> Row:
    return {
        key: str(value) if isinstance(value, UUID) else value
        for key, value in record.items()
    }


def _where(table: str, filters: Optional[Filters], start: int = 1) -> tuple[str, list[Any]]:
    if not filters:
        return "", []
    names = _columns(table, filters.keys())
    clause = " AND ".join(f"{name} = ${start + i}" for i, name in enumerate(names))
    return f" WHERE {clause}", [normalize_value(filters[name]) for name in names]


def _affected(status: str) -> int:
    """Row count from an asyncpg command tag such as ``DELETE 3``."""
    try:
        return int(status.rsplit(" ", 1)[-1])
    except (ValueError, IndexError):
        return 0


class PostgresStore(StoreAdapter):
    """``StoreAdapter`` on an asyncpg pool with a Redis insert feed.

    Cascades, uniqueness and timestamps come from the schema in
    ``studyhub/database/migrations``.
    """

    def __init__(
        self,
        pool: Pool,
        feed: "InsertFeedService",
        logger: Optional[ErrorLogger] = None,
    ):
        self._pool = pool
        self._feed = feed
        self._logger = logger

    @asynccontextmanager
    async def _connection(self, operation: str, table: str):
        try:
            async with self._pool.acquire() as connection:
                yield connection
        except (asyncpg.UniqueViolationError, asyncpg.ForeignKeyViolationError) as e:
            raise ConstraintViolation(table, e.constraint_name) from e
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError) as e:
            if self._logger:
                self._logger.log_database_error(operation, e, table=table)
            raise StoreUnavailable() from e

    async def insert(self, table: str, row: Row) -> Row:
        names = _columns(table, row.keys())
        placeholders = ", ".join(f"${i}" for i in range(1, len(names) + 1))
        query = f"""
            INSERT INTO {table} ({", ".join(names)})
            VALUES ({placeholders})
            RETURNING *
        """
        values = [normalize_value(row[name]) for name in names]

        async with self._connection("insert", table) as conn:
            record = await conn.fetchrow(query, *values)

        saved = _to_row(record)
        await self._broadcast(table, saved)
        return saved

    async def _broadcast(self, table: str, row: Row) -> None:
        # The row is already durable; a lost broadcast only delays observers.
        try:
            await self._feed.publish(table, row)
        except Exception as e:
            if self._logger:
                self._logger.log_external_api_error("redis", e, table=table, row_id=row.get("id"))

    async def update(self, table: str, filters: Filters, patch: Row) -> int:
        names = _columns(table, patch.keys())
        assignments = ", ".join(f"{name} = ${i}" for i, name in enumerate(names, start=1))
        where, params = _where(table, filters, start=len(names) + 1)
        query = f"UPDATE {table} SET {assignments}{where}"
        values = [normalize_value(patch[name]) for name in names]

        async with self._connection("update", table) as conn:
            status = await conn.execute(query, *values, *params)
        return _affected(status)

    async def delete(self, table: str, filters: Filters) -> int:
        where, params = _where(table, filters)
        query = f"DELETE FROM {table}{where}"

        async with self._connection("delete", table) as conn:
            status = await conn.execute(query, *params)
        return _affected(status)

    async def select(
        self,
        table: str,
        filters: Optional[Filters] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[Row]:
        where, params = _where(table, filters)
        query = f"SELECT * FROM {table}{where}"
        if order_by:
            _columns(table, [order_by])
            direction = "DESC" if descending else "ASC"
            query += f" ORDER BY {order_by} {direction}, id {direction}"
        if limit is not None:
            params.append(limit)
            query += f" LIMIT ${len(params)}"
        if offset:
            params.append(offset)
            query += f" OFFSET ${len(params)}"

        async with self._connection("select", table) as conn:
            records = await conn.fetch(query, *params)
        return [_to_row(record) for record in records]

    async def count(self, table: str, filters: Optional[Filters] = None) -> int:
        where, params = _where(table, filters)
        query = f"SELECT COUNT(*) FROM {table}{where}"

        async with self._connection("count", table) as conn:
            result = await conn.fetchval(query, *params)
        return result or 0

    async def subscribe_insert(self, table: str, filters: Optional[Filters] = None) -> InsertStream:
        _columns(table, (filters or {}).keys())
        return await self._feed.subscribe(table, filters)

    async def close(self) -> None:
        await self._pool.close()
