import asyncio
import os
from datetime import datetime, timedelta, timezone

os.environ.setdefault("JWT_SECRET", "test-secret-for-studyhub-group-tests-0123456789")
os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("BLOB_BACKEND", "memory")

import pytest

from studyhub.models.groups import GroupCreate
from studyhub.services.membership import MembershipManager
from studyhub.services.messaging import MessagingChannel
from studyhub.storage import MemoryBlobStore
from studyhub.store import MemoryStore
from studyhub.utils.jwts import create_jwt_token
from studyhub.utils.logs import ErrorLogger

LEADER = "user-leader"
STUDENT = "user-student"
OTHER = "user-other"


class RecordingLogger(ErrorLogger):
    """ErrorLogger that keeps every call for assertions."""

    def __init__(self):
        super().__init__("test")
        self.records: list[tuple[str, str, dict]] = []

    def info(self, message: str, **kwargs):
        self.records.append(("info", message, kwargs))

    def warning(self, message: str, **kwargs):
        self.records.append(("warning", message, kwargs))

    def error(self, message: str, **kwargs):
        self.records.append(("error", message, kwargs))

    def messages(self, level: str) -> list[str]:
        return [message for lvl, message, _ in self.records if lvl == level]


def make_token(user_id: str, expires_in: int = 3600) -> str:
    now = datetime.now(timezone.utc)
    return create_jwt_token({
        "sub": user_id,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(seconds=expires_in)).timestamp()),
    })


def auth_headers(user_id: str) -> dict:
    return {"Authorization": f"Bearer {make_token(user_id)}"}


async def wait_until(predicate, timeout: float = 1.0) -> None:
    async with asyncio.timeout(timeout):
        while not predicate():
            await asyncio.sleep(0.001)


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def blob_store() -> MemoryBlobStore:
    return MemoryBlobStore()


@pytest.fixture
def logger() -> RecordingLogger:
    return RecordingLogger()


@pytest.fixture
def manager(store, logger) -> MembershipManager:
    return MembershipManager(store, logger)


@pytest.fixture
def channel(store, blob_store, logger) -> MessagingChannel:
    return MessagingChannel(store, blob_store, logger)


@pytest.fixture
async def group(manager):
    return await manager.create_group(
        LEADER,
        GroupCreate(name="Algorithms", description="Graph problems", subject="Computer Science"),
    )


@pytest.fixture
async def active_student(manager, group):
    request = await manager.request_join(group.id, STUDENT)
    return await manager.approve(request.id, LEADER)
