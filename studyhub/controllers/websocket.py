from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, WebSocket, status

from studyhub.dependencies.database import get_ws_blob_store, get_ws_store
from studyhub.dependencies.live import get_live_manager, get_live_manager_http
from studyhub.errors import StudyHubError
from studyhub.services.membership import MembershipManager
from studyhub.services.messaging import MessagingChannel
from studyhub.storage import BlobStore
from studyhub.store import StoreAdapter
from studyhub.utils.jwts import websocket_session
from studyhub.utils.logs import ErrorLoggerDep
from studyhub.websocket.handler import LiveGroupFeedHandler
from studyhub.websocket.manager import LiveViewManager


router = APIRouter(prefix="/api/v1/groups", tags=["websocket"])


@router.websocket("/{group_id}/live")
async def live_group_feed(
    websocket: WebSocket,
    group_id: UUID,
    store: Annotated[StoreAdapter, Depends(get_ws_store)],
    blob_store: Annotated[BlobStore, Depends(get_ws_blob_store)],
    manager: Annotated[LiveViewManager, Depends(get_live_manager)],
    logger: ErrorLoggerDep,
):
    """
    Live feed of one group's chat.

    Connection URL: ws://host/api/v1/groups/{group_id}/live?token=<jwt>

    Client -> Server message types:
    - message.send: Post a text message ({"type": "message.send", "body": "..."})
    - ping: Heartbeat

    Server -> Client message types:
    - history: Full message history, sent once on connect
    - message.new: A message posted after the view opened, with its timeline
      position (index, after_id); insert it there rather than appending
    - pong: Heartbeat response
    - error: Error message (MEMBERSHIP_ENDED closes the socket)
    """
    try:
        session = websocket_session(websocket, logger)
    except HTTPException as e:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=e.detail)
        return
    if not session.is_authenticated:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Authentication required")
        return

    group = str(group_id)
    user_id = session.user_id
    try:
        allowed = await MembershipManager(store, logger).is_active_member(group, user_id)
    except StudyHubError as e:
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR, reason=e.message)
        return
    if not allowed:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="You are not a member of this group")
        return

    handler = LiveGroupFeedHandler(
        channel=MessagingChannel(store, blob_store, logger),
        group_id=group,
        user_id=user_id,
        logger=logger,
    )

    try:
        async with manager.connection(group, user_id, websocket):
            await handler.run(websocket)
    except ConnectionRefusedError:
        return
    except StudyHubError as e:
        logger.warning("Live feed closed on error", group_id=group, code=e.code)
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR, reason=e.message)


@router.get("/live/status")
async def live_status(
    manager: Annotated[LiveViewManager, Depends(get_live_manager_http)]
):
    """Get live feed status for this server."""
    return {
        "live_groups": manager.get_live_group_count(),
        "open_views": manager.get_total_view_count(),
    }
