"""
Persistent store adapter interface.

Services talk to durable storage only through ``StoreAdapter``: filtered
reads, inserts, conditional updates and deletes, and a subscribe-to-inserts
primitive that yields rows as they are persisted. Filters are plain
column -> value equality maps.
"""
import asyncio
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Awaitable, Callable, Mapping, Optional
from uuid import UUID

Row = dict[str, Any]
Filters = Mapping[str, Any]


class Tables:
    """Table names owned by the membership and messaging core."""
    GROUPS = "study_groups"
    MEMBERSHIPS = "study_group_members"
    MESSAGES = "group_messages"


class ConstraintViolation(Exception):
    """A write was rejected by a uniqueness or reference constraint."""

    def __init__(self, table: str, constraint: Optional[str] = None):
        self.table = table
        self.constraint = constraint
        super().__init__(f"Constraint violation on {table}: {constraint or 'unknown'}")


def normalize_value(value: Any) -> Any:
    """Coerce ids and enum members to the plain values stored in rows."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, UUID):
        return str(value)
    return value


def normalize_row(row: Mapping[str, Any]) -> Row:
    return {key: normalize_value(value) for key, value in row.items()}


def matches_filters(row: Mapping[str, Any], filters: Filters) -> bool:
    return all(
        normalize_value(row.get(column)) == normalize_value(expected)
        for column, expected in filters.items()
    )


_END = object()


class InsertStream:
    """
    Closeable async stream of rows inserted into one table.

    Rows pushed by the backend are filtered against ``filters`` and queued
    in arrival order. Once closed, nothing further is delivered, even rows
    that were already queued. A backend-side disconnect ends iteration and
    sets ``disconnected``; the stream never reconnects on its own.
    """

    def __init__(
        self,
        table: str,
        filters: Optional[Filters] = None,
        on_close: Optional[Callable[[], Awaitable[None]]] = None,
    ):
        self.table = table
        self.filters = dict(filters or {})
        self.disconnected = False
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False
        self._ended = False
        self._on_close = on_close

    @property
    def closed(self) -> bool:
        return self._closed

    def push(self, row: Row) -> bool:
        """Queue a freshly inserted row if it matches. Returns True if queued."""
        if self._closed or self._ended or not matches_filters(row, self.filters):
            return False
        self._queue.put_nowait(dict(row))
        return True

    def disconnect(self) -> None:
        """Mark the feed as dropped by the backend and wake any reader."""
        if self._ended:
            return
        self.disconnected = True
        self._ended = True
        self._queue.put_nowait(_END)

    def __aiter__(self) -> "InsertStream":
        return self

    async def __anext__(self) -> Row:
        if self._closed or (self._ended and self._queue.empty()):
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _END or self._closed:
            raise StopAsyncIteration
        return item

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_END)
        if self._on_close is not None:
            await self._on_close()

    async def __aenter__(self) -> "InsertStream":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


class StoreAdapter(ABC):
    """Durable storage consumed by the membership and messaging services.

    Every method raises ``studyhub.errors.StoreUnavailable`` when the backend
    cannot be reached.
    """

    @abstractmethod
    async def insert(self, table: str, row: Row) -> Row:
        """Insert a row and return it as persisted, including ``id``.

        Raises ``ConstraintViolation`` when a uniqueness or reference
        constraint rejects the row.
        """

    @abstractmethod
    async def update(self, table: str, filters: Filters, patch: Row) -> int:
        """Apply ``patch`` to every matching row. Returns the number changed."""

    @abstractmethod
    async def delete(self, table: str, filters: Filters) -> int:
        """Delete every matching row. Returns the number deleted."""

    @abstractmethod
    async def select(
        self,
        table: str,
        filters: Optional[Filters] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[Row]:
        """Return matching rows, optionally ordered and paginated."""

    @abstractmethod
    async def count(self, table: str, filters: Optional[Filters] = None) -> int:
        """Count matching rows."""

    @abstractmethod
    async def subscribe_insert(self, table: str, filters: Optional[Filters] = None) -> InsertStream:
        """Open a stream of rows inserted into ``table`` from now on."""

    async def select_one(self, table: str, filters: Filters) -> Optional[Row]:
        rows = await self.select(table, filters, limit=1)
        return rows[0] if rows else None

    async def close(self) -> None:
        """Release backend resources."""
