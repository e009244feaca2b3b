"""
In-process store used by the test suite and by ``STORE_BACKEND=memory``.

It mirrors the guarantees the Postgres schema gives the services: the
(group_id, user_id) uniqueness constraint on memberships, group references
on child rows, ON DELETE CASCADE from groups, server-assigned ids and
strictly increasing creation timestamps.
"""
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional
from uuid import uuid4

from studyhub.errors import StoreUnavailable
from studyhub.store.base import (
    StoreAdapter, InsertStream, ConstraintViolation, Tables,
    Row, Filters, matches_filters, normalize_row,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MemoryStore(StoreAdapter):
    """Dictionary-backed ``StoreAdapter`` with live insert streams."""

    UNIQUE: dict[str, list[tuple[str, ...]]] = {
        Tables.MEMBERSHIPS: [("group_id", "user_id")],
    }
    REFERENCES: dict[str, tuple[str, str]] = {
        Tables.MEMBERSHIPS: ("group_id", Tables.GROUPS),
        Tables.MESSAGES: ("group_id", Tables.GROUPS),
    }
    CASCADES: dict[str, list[tuple[str, str]]] = {
        Tables.GROUPS: [
            (Tables.MEMBERSHIPS, "group_id"),
            (Tables.MESSAGES, "group_id"),
        ],
    }
    TIMESTAMPS: dict[str, str] = {
        Tables.GROUPS: "created_at",
        Tables.MEMBERSHIPS: "requested_at",
        Tables.MESSAGES: "created_at",
    }

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._tables: dict[str, dict[str, Row]] = defaultdict(dict)
        self._streams: list[InsertStream] = []
        self._clock = clock or _utcnow
        self._last_timestamp: Optional[datetime] = None
        self.available = True

    def _ensure_available(self) -> None:
        if not self.available:
            raise StoreUnavailable()

    def _next_timestamp(self) -> datetime:
        now = self._clock()
        if self._last_timestamp is not None and now <= self._last_timestamp:
            now = self._last_timestamp + timedelta(microseconds=1)
        self._last_timestamp = now
        return now

    def _matching(self, table: str, filters: Optional[Filters]) -> list[Row]:
        return [
            row for row in self._tables[table].values()
            if matches_filters(row, filters or {})
        ]

    def _check_constraints(self, table: str, row: Row) -> None:
        reference = self.REFERENCES.get(table)
        if reference:
            column, parent = reference
            if row.get(column) not in self._tables[parent]:
                raise ConstraintViolation(table, f"{table}_{column}_fkey")

        for columns in self.UNIQUE.get(table, []):
            key = {column: row.get(column) for column in columns}
            if self._matching(table, key):
                raise ConstraintViolation(table, f"{table}_{'_'.join(columns)}_key")

    async def insert(self, table: str, row: Row) -> Row:
        self._ensure_available()
        saved = normalize_row(row)
        saved.setdefault("id", str(uuid4()))
        timestamp_column = self.TIMESTAMPS.get(table)
        if timestamp_column and saved.get(timestamp_column) is None:
            saved[timestamp_column] = self._next_timestamp()

        self._check_constraints(table, saved)
        self._tables[table][saved["id"]] = saved

        for stream in list(self._streams):
            if stream.table == table:
                stream.push(saved)
        return dict(saved)

    async def update(self, table: str, filters: Filters, patch: Row) -> int:
        self._ensure_available()
        changes = normalize_row(patch)
        rows = self._matching(table, filters)
        for row in rows:
            row.update(changes)
        return len(rows)

    async def delete(self, table: str, filters: Filters) -> int:
        self._ensure_available()
        rows = self._matching(table, filters)
        for row in rows:
            del self._tables[table][row["id"]]
            for child_table, column in self.CASCADES.get(table, []):
                for child in self._matching(child_table, {column: row["id"]}):
                    del self._tables[child_table][child["id"]]
        return len(rows)

    async def select(
        self,
        table: str,
        filters: Optional[Filters] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[Row]:
        self._ensure_available()
        rows = self._matching(table, filters)
        if order_by:
            rows.sort(
                key=lambda r: (r.get(order_by) is not None, r.get(order_by), r["id"]),
                reverse=descending,
            )
        rows = rows[offset:]
        if limit is not None:
            rows = rows[:limit]
        return [dict(row) for row in rows]

    async def count(self, table: str, filters: Optional[Filters] = None) -> int:
        self._ensure_available()
        return len(self._matching(table, filters))

    async def subscribe_insert(self, table: str, filters: Optional[Filters] = None) -> InsertStream:
        self._ensure_available()
        stream: InsertStream

        async def release() -> None:
            if stream in self._streams:
                self._streams.remove(stream)

        stream = InsertStream(table, filters, on_close=release)
        self._streams.append(stream)
        return stream

    @property
    def open_stream_count(self) -> int:
        return len(self._streams)

    def disconnect_streams(self) -> None:
        """Drop every live stream, as a lost realtime connection would."""
        for stream in self._streams:
            stream.disconnect()
        self._streams.clear()

    async def close(self) -> None:
        self.disconnect_streams()
