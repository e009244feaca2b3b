import secrets
import time
from contextlib import asynccontextmanager
from pathlib import PurePosixPath
from typing import AsyncIterator, Optional

from studyhub.errors import EmptyMessage, NotAuthorized, NotFound, UploadFailed
from studyhub.models.groups import MembershipStatus
from studyhub.models.messaging import GroupMessage, MessageKind
from studyhub.services.base import BaseService
from studyhub.services.timeline import MessageTimeline
from studyhub.storage import BlobStore
from studyhub.store import ConstraintViolation, InsertStream, StoreAdapter, Tables
from studyhub.utils.logs import ErrorLogger


class Subscription:
    """
    Handle on the live message feed of one group.

    Iterate it to receive every message inserted for the group after it was
    opened, in arrival order. Close it on every exit path; a closed handle
    delivers nothing further. If the backend drops the feed, iteration ends
    and ``disconnected`` is set; the handle never reconnects.
    """

    def __init__(self, group_id: str, stream: InsertStream, logger: Optional[ErrorLogger] = None):
        self.group_id = group_id
        self._stream = stream
        self._logger = logger

    @property
    def closed(self) -> bool:
        return self._stream.closed

    @property
    def disconnected(self) -> bool:
        return self._stream.disconnected

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> GroupMessage:
        try:
            row = await self._stream.__anext__()
        except StopAsyncIteration:
            if self._stream.disconnected and self._logger:
                self._logger.warning("Subscription disconnected", group_id=self.group_id)
            raise
        return GroupMessage.model_validate(row)

    async def close(self) -> None:
        if self._stream.closed:
            return
        await self._stream.aclose()
        if self._logger:
            self._logger.info("Subscription closed", group_id=self.group_id)

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


class GroupChatView:
    """An open group chat: reconciled timeline plus its live subscription."""

    def __init__(self, group_id: str, subscription: Subscription, timeline: MessageTimeline):
        self.group_id = group_id
        self.subscription = subscription
        self.timeline = timeline

    async def updates(self) -> AsyncIterator[GroupMessage]:
        """Yield each live message the timeline had not seen yet."""
        async for message in self.subscription:
            if self.timeline.add(message):
                yield message

    async def close(self) -> None:
        await self.subscription.close()


class MessagingChannel(BaseService):
    """Group message history, live delivery and sending."""

    def __init__(
        self,
        store: StoreAdapter,
        blob_store: Optional[BlobStore] = None,
        logger: Optional[ErrorLogger] = None,
    ):
        super().__init__(store, logger)
        self._blob_store = blob_store

    async def load_history(self, group_id: str) -> list[GroupMessage]:
        """All messages of the group, oldest first."""
        rows = await self.store.select(
            Tables.MESSAGES, {"group_id": group_id}, order_by="created_at"
        )
        messages = [GroupMessage.model_validate(row) for row in rows]
        messages.sort(key=lambda m: m.sort_key)
        return messages

    async def open_subscription(self, group_id: str) -> Subscription:
        stream = await self.store.subscribe_insert(Tables.MESSAGES, {"group_id": group_id})
        await self.log_info("Subscription opened", group_id=group_id)
        return Subscription(group_id, stream, self.logger)

    async def close_subscription(self, subscription: Subscription) -> None:
        await subscription.close()

    @asynccontextmanager
    async def open_view(self, group_id: str) -> AsyncIterator[GroupChatView]:
        """
        Open a group chat view.

        The subscription is opened before history is loaded so an insert
        landing in between is still observed; the timeline drops the
        duplicate if the same message also shows up in the history.
        """
        subscription = await self.open_subscription(group_id)
        try:
            history = await self.load_history(group_id)
            yield GroupChatView(group_id, subscription, MessageTimeline(history))
        finally:
            await subscription.close()

    async def require_active_member(self, group_id: str, user_id: str) -> None:
        row = await self.store.select_one(
            Tables.MEMBERSHIPS, {"group_id": group_id, "user_id": user_id}
        )
        if row is None or row["status"] != MembershipStatus.ACTIVE.value:
            raise NotAuthorized("Only active members can post in this group", group_id=group_id)

    async def _insert_message(self, row: dict) -> GroupMessage:
        try:
            saved = await self.store.insert(Tables.MESSAGES, row)
        except ConstraintViolation as e:
            raise NotFound("Group not found", group_id=row["group_id"]) from e
        return GroupMessage.model_validate(saved)

    async def send_text(self, group_id: str, sender_id: str, body: str) -> GroupMessage:
        """
        Post a text message.

        Nothing local changes: the sender sees the message through the
        group subscription exactly like every other participant.
        """
        text = (body or "").strip()
        if not text:
            raise EmptyMessage()
        await self.require_active_member(group_id, sender_id)

        return await self._insert_message({
            "group_id": group_id,
            "sender_id": sender_id,
            "kind": MessageKind.TEXT,
            "body": text,
        })

    @staticmethod
    def attachment_key(group_id: str, filename: str) -> str:
        """Collision-resistant blob key: group, upload time, random suffix, name."""
        name = PurePosixPath(filename.replace("\\", "/")).name or "file"
        stamp = int(time.time() * 1000)
        return f"{group_id}/{stamp}-{secrets.token_hex(4)}-{name}"

    async def send_file(
        self,
        group_id: str,
        sender_id: str,
        data: bytes,
        filename: str,
        mime_type: Optional[str] = None,
    ) -> GroupMessage:
        """Upload an attachment, then post a file message referencing it."""
        await self.require_active_member(group_id, sender_id)
        if self._blob_store is None:
            raise UploadFailed("File uploads are not configured")

        key = self.attachment_key(group_id, filename)
        ref = await self._blob_store.upload(key, data, mime_type or "application/octet-stream")

        try:
            return await self._insert_message({
                "group_id": group_id,
                "sender_id": sender_id,
                "kind": MessageKind.FILE,
                "body": filename,
                "attachment_ref": ref,
            })
        except Exception as e:
            # The blob stays behind; it is not retried or cleaned up.
            await self.log_error(
                "Orphaned attachment after failed message insert",
                group_id=group_id,
                attachment_ref=ref,
                error=type(e).__name__,
            )
            raise

    def attachment_url(self, message: GroupMessage) -> Optional[str]:
        if not message.attachment_ref or self._blob_store is None:
            return None
        return self._blob_store.public_url(message.attachment_ref)

    async def study_materials(self, group_id: str) -> list[GroupMessage]:
        """Files shared in the group, in timeline order."""
        return MessageTimeline(await self.load_history(group_id)).files()
