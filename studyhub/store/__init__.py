from studyhub.store.base import (
    StoreAdapter, InsertStream, ConstraintViolation, Tables, Row, Filters
)
from studyhub.store.memory import MemoryStore
from studyhub.store.postgres import PostgresStore

__all__ = [
    "StoreAdapter",
    "InsertStream",
    "ConstraintViolation",
    "Tables",
    "Row",
    "Filters",
    "MemoryStore",
    "PostgresStore",
]
