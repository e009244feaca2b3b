import asyncio
from contextlib import suppress
from typing import Optional

import orjson
from fastapi import status
from fastapi.websockets import WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from studyhub.errors import NotAuthorized, StudyHubError
from studyhub.models.messaging import GroupMessage
from studyhub.services.messaging import GroupChatView, MessagingChannel
from studyhub.utils.logs import ErrorLogger
from studyhub.views.messaging import (
    ClientFrame, MessageView, ServerError, ServerHistory, ServerNewMessage, ServerPong,
)


class LiveGroupFeedHandler:
    """Serves one live group view over a WebSocket."""

    # Client message types
    MSG_SEND = "message.send"
    MSG_PING = "ping"

    def __init__(
        self,
        channel: MessagingChannel,
        group_id: str,
        user_id: str,
        logger: Optional[ErrorLogger] = None,
    ):
        self.channel = channel
        self.group_id = group_id
        self.user_id = user_id
        self.logger = logger

    async def _send(self, websocket: WebSocket, frame) -> None:
        await websocket.send_text(orjson.dumps(frame).decode())

    async def _send_error(self, websocket: WebSocket, code: str, error: str) -> None:
        await self._send(websocket, ServerError(error=error, code=code))

    def _view(self, message: GroupMessage) -> MessageView:
        return MessageView.from_message(message, self.channel.attachment_url(message))

    async def send_history(self, websocket: WebSocket, view: GroupChatView) -> None:
        messages = [self._view(message) for message in view.timeline]
        await self._send(websocket, ServerHistory(
            group_id=self.group_id, messages=messages, count=len(messages)
        ))

    async def stream_updates(self, websocket: WebSocket, view: GroupChatView) -> None:
        """
        Forward every newly observed message until the feed ends.

        Membership is re-checked per message; a viewer who left or was
        removed gets a ``MEMBERSHIP_ENDED`` error and the socket is closed.
        """
        async for message in view.updates():
            try:
                await self.channel.require_active_member(self.group_id, self.user_id)
            except NotAuthorized:
                if self.logger:
                    self.logger.info("Live view closed, membership ended",
                                     group_id=self.group_id, user_id=self.user_id)
                await self._send_error(
                    websocket, "MEMBERSHIP_ENDED", "You are no longer a member of this group"
                )
                await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
                return

            previous = view.timeline.previous(message)
            await self._send(websocket, ServerNewMessage(
                message=self._view(message),
                index=view.timeline.position(message),
                after_id=previous.id if previous else None,
            ))

        if view.subscription.disconnected:
            await self._send_error(
                websocket, "FEED_DISCONNECTED", "Live feed lost, reopen the group to resume"
            )

    async def _pump(self, websocket: WebSocket, view: GroupChatView) -> None:
        try:
            await self.stream_updates(websocket, view)
        except WebSocketDisconnect:
            raise
        except Exception as e:
            if self.logger:
                self.logger.error("Live feed stopped", group_id=self.group_id,
                                  error_type=type(e).__name__, error=str(e))
            # The socket may already be gone.
            with suppress(WebSocketDisconnect, RuntimeError):
                await self._send_error(
                    websocket, "FEED_FAILED", "Live updates stopped, reopen the group to resume"
                )

    async def handle_message(self, websocket: WebSocket, raw_message: str) -> None:
        """Route an incoming client frame."""
        try:
            frame = ClientFrame.model_validate(orjson.loads(raw_message))
        except orjson.JSONDecodeError:
            await self._send_error(websocket, "INVALID_JSON", "Invalid JSON format")
            return
        except ValidationError:
            await self._send_error(websocket, "INVALID_FRAME", "Invalid message frame")
            return

        if frame.type == self.MSG_PING:
            await self._send(websocket, ServerPong())
        elif frame.type == self.MSG_SEND:
            try:
                # Delivered back to this socket through the subscription.
                await self.channel.send_text(self.group_id, self.user_id, frame.body or "")
            except StudyHubError as e:
                if self.logger:
                    self.logger.warning("Live send rejected", group_id=self.group_id, code=e.code)
                await self._send_error(websocket, e.code, e.message)
        else:
            await self._send_error(websocket, "UNKNOWN_TYPE", f"Unknown message type: {frame.type}")

    async def receive_frame(self, websocket: WebSocket) -> Optional[str]:
        """Next text frame from the client, or None for a binary frame."""
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            raise WebSocketDisconnect(code=message.get("code", 1000), reason=message.get("reason"))
        return message.get("text")

    async def run(self, websocket: WebSocket) -> None:
        """Send the history snapshot, then stream updates while reading client frames."""
        async with self.channel.open_view(self.group_id) as view:
            await self.send_history(websocket, view)
            pump = asyncio.create_task(self._pump(websocket, view))
            try:
                while True:
                    raw_message = await self.receive_frame(websocket)
                    if raw_message is None:
                        await self._send_error(websocket, "INVALID_FRAME", "Binary frames are not supported")
                        continue
                    await self.handle_message(websocket, raw_message)
            except WebSocketDisconnect:
                pass
            finally:
                pump.cancel()
                with suppress(asyncio.CancelledError, WebSocketDisconnect):
                    await pump
