from studyhub.controllers.base import BaseController
from studyhub.controllers.groups import GroupController, router as group_router
from studyhub.controllers.messaging import (
    GroupMessageController,
    router as group_message_router,
)
from studyhub.controllers.websocket import router as websocket_router

__all__ = [
    "BaseController",
    "GroupController",
    "group_router",
    "GroupMessageController",
    "group_message_router",
    "websocket_router",
]
