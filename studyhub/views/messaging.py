from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, Field

from studyhub.models.messaging import GroupMessage
from studyhub.views.base import BaseView


@dataclass(slots=True)
class MessageView(BaseView):
    """A group message, with a resolvable URL for file messages."""
    id: str
    group_id: str
    sender_id: str
    kind: str
    body: str
    created_at: str
    attachment_ref: Optional[str] = None
    attachment_url: Optional[str] = None

    @classmethod
    def from_message(cls, message: GroupMessage, attachment_url: Optional[str] = None) -> "MessageView":
        return cls(
            id=message.id,
            group_id=message.group_id,
            sender_id=message.sender_id,
            kind=message.kind.value,
            body=message.body,
            created_at=message.created_at.isoformat(),
            attachment_ref=message.attachment_ref,
            attachment_url=attachment_url,
        )


@dataclass(slots=True)
class MessageListView(BaseView):
    messages: List[MessageView] = field(default_factory=list)
    count: int = 0


# Client -> Server (needs validation, hence Pydantic)

class ClientFrame(BaseModel):
    """Frame sent by a client on the live group socket."""
    type: str
    body: Optional[str] = Field(default=None, max_length=10000)


# Server -> Client (no validation needed, hence python native dataclass)

@dataclass(slots=True)
class ServerHistory(BaseView):
    """Reconciled snapshot sent once when a live view opens."""
    group_id: str
    messages: List[MessageView] = field(default_factory=list)
    count: int = 0
    type: str = "history"


@dataclass(slots=True)
class ServerNewMessage(BaseView):
    """A newly observed message and where it belongs in the client's timeline.

    Clients insert ``message`` at ``index`` (equivalently, right after
    ``after_id``; ``None`` means first) rather than appending, since live
    deliveries can arrive out of creation order.
    """
    message: MessageView
    index: int
    after_id: Optional[str] = None
    type: str = "message.new"


@dataclass(slots=True)
class ServerError(BaseView):
    error: str
    code: Optional[str] = None
    type: str = "error"


@dataclass(slots=True)
class ServerPong(BaseView):
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    type: str = "pong"
