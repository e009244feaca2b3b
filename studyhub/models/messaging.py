from enum import Enum
from typing import Optional
from datetime import datetime

from pydantic import Field

from studyhub.models.base import BaseCreateSchema, BaseRecordSchema


class MessageKind(str, Enum):
    TEXT = "text"
    FILE = "file"


# Group Message Models

class GroupMessageCreate(BaseCreateSchema):
    """Schema for sending a text message to a group."""
    body: str = Field(..., max_length=10000)


class GroupMessage(BaseRecordSchema):
    """Persisted group chat message. Messages are never edited."""
    id: str
    group_id: str
    sender_id: str
    kind: MessageKind = MessageKind.TEXT
    body: str
    attachment_ref: Optional[str] = None
    created_at: datetime

    @property
    def sort_key(self) -> tuple[datetime, str]:
        """Total order within a group: creation time, then id."""
        return self.created_at, self.id

    @property
    def is_file(self) -> bool:
        return self.kind == MessageKind.FILE
