from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from studyhub.controllers.base import BaseController
from studyhub.dependencies.database import get_blob_store, get_store
from studyhub.errors import NotAuthorized
from studyhub.models.messaging import GroupMessage, GroupMessageCreate
from studyhub.services.membership import MembershipManager
from studyhub.services.messaging import MessagingChannel
from studyhub.storage import BlobStore
from studyhub.store import StoreAdapter
from studyhub.utils.config import MAX_UPLOAD_BYTES
from studyhub.utils.jwts import SessionContext, require_session
from studyhub.utils.logs import ErrorLogger, ErrorLoggerDep
from studyhub.views.messaging import MessageListView, MessageView
from studyhub.views.responses import APIResponse


class GroupMessageController(BaseController):
    """Controller for group chat history, sending and shared files."""

    def __init__(
        self,
        store: StoreAdapter,
        blob_store: Optional[BlobStore] = None,
        logger: Optional[ErrorLogger] = None,
    ):
        super().__init__(store, logger)
        self._channel = MessagingChannel(store, blob_store, logger)
        self._manager = MembershipManager(store, logger)

    async def _require_member(self, group_id: str, user_id: str) -> None:
        await self._manager.get_group(group_id)
        if not await self._manager.is_active_member(group_id, user_id):
            raise NotAuthorized("You are not a member of this group", group_id=group_id)

    def _view(self, message: GroupMessage) -> MessageView:
        return MessageView.from_message(message, self._channel.attachment_url(message))

    def _list(self, messages: list[GroupMessage]) -> MessageListView:
        views = [self._view(message) for message in messages]
        return MessageListView(messages=views, count=len(views))

    async def get_messages(self, group_id: str, user_id: str) -> MessageListView:
        await self._require_member(group_id, user_id)
        return self._list(await self._channel.load_history(group_id))

    async def get_materials(self, group_id: str, user_id: str) -> MessageListView:
        await self._require_member(group_id, user_id)
        return self._list(await self._channel.study_materials(group_id))

    async def send_text(self, group_id: str, user_id: str, body: str) -> MessageView:
        message = await self._channel.send_text(group_id, user_id, body)
        return self._view(message)

    async def send_file(self, group_id: str, user_id: str, upload: UploadFile) -> MessageView:
        data = await upload.read()
        if len(data) > MAX_UPLOAD_BYTES:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=f"File exceeds the {MAX_UPLOAD_BYTES} byte limit"
            )
        message = await self._channel.send_file(
            group_id,
            user_id,
            data,
            filename=upload.filename or "file",
            mime_type=upload.content_type,
        )
        return self._view(message)


router = APIRouter(prefix="/api/v1/groups", tags=["Group Messages"])


@router.get(
    "/{group_id}/messages",
    summary="Get group messages",
    description="Full message history of a group, oldest first."
)
async def get_group_messages(
    group_id: UUID,
    store: Annotated[StoreAdapter, Depends(get_store)],
    blob_store: Annotated[BlobStore, Depends(get_blob_store)],
    session: Annotated[SessionContext, Depends(require_session)],
    logger: ErrorLoggerDep,
):
    controller = GroupMessageController(store, blob_store, logger)
    return APIResponse(data=await controller.get_messages(str(group_id), session.user_id))


@router.post(
    "/{group_id}/messages",
    status_code=status.HTTP_201_CREATED,
    summary="Send group message",
    description="Post a text message. For live delivery open the group's WebSocket feed."
)
async def send_group_message(
    group_id: UUID,
    request: GroupMessageCreate,
    store: Annotated[StoreAdapter, Depends(get_store)],
    blob_store: Annotated[BlobStore, Depends(get_blob_store)],
    session: Annotated[SessionContext, Depends(require_session)],
    logger: ErrorLoggerDep,
):
    """
    Send a text message to a group.

    - **body**: message text; surrounding whitespace is trimmed and an empty
      result is rejected with `EMPTY_MESSAGE`

    Only active members can post.
    """
    controller = GroupMessageController(store, blob_store, logger)
    result = await controller.send_text(str(group_id), session.user_id, request.body)
    return APIResponse(data=result, message="Message sent")


@router.post(
    "/{group_id}/files",
    status_code=status.HTTP_201_CREATED,
    summary="Share a file",
    description="Upload a file and post it to the group as a file message."
)
async def send_group_file(
    group_id: UUID,
    store: Annotated[StoreAdapter, Depends(get_store)],
    blob_store: Annotated[BlobStore, Depends(get_blob_store)],
    session: Annotated[SessionContext, Depends(require_session)],
    logger: ErrorLoggerDep,
    file: UploadFile = File(...),
):
    controller = GroupMessageController(store, blob_store, logger)
    result = await controller.send_file(str(group_id), session.user_id, file)
    return APIResponse(data=result, message="File shared")


@router.get(
    "/{group_id}/materials",
    summary="Get study materials",
    description="Files shared in the group, oldest first."
)
async def get_study_materials(
    group_id: UUID,
    store: Annotated[StoreAdapter, Depends(get_store)],
    blob_store: Annotated[BlobStore, Depends(get_blob_store)],
    session: Annotated[SessionContext, Depends(require_session)],
    logger: ErrorLoggerDep,
):
    controller = GroupMessageController(store, blob_store, logger)
    return APIResponse(data=await controller.get_materials(str(group_id), session.user_id))
