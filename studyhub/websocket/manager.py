from contextlib import asynccontextmanager
from typing import Dict, Set, Tuple

from fastapi.websockets import WebSocket


class LiveViewManager:
    """Registry of open live group views on this server."""

    MAX_VIEWS_PER_USER = 5

    def __init__(self):
        self.active_views: Dict[str, Set[WebSocket]] = {}
        self._ws_to_view: Dict[WebSocket, Tuple[str, str]] = {}

    def _user_view_count(self, user_id: str) -> int:
        return sum(1 for _, owner in self._ws_to_view.values() if owner == user_id)

    @asynccontextmanager
    async def connection(self, group_id: str, user_id: str, websocket: WebSocket):
        """Context manager for one live view's socket lifecycle."""
        registered = False
        try:
            await websocket.accept()

            if self._user_view_count(user_id) >= self.MAX_VIEWS_PER_USER:
                await websocket.close(code=4000, reason="Too many open views")
                raise ConnectionRefusedError("Too many open views")

            self.active_views.setdefault(group_id, set()).add(websocket)
            self._ws_to_view[websocket] = (group_id, user_id)
            registered = True

            yield websocket

        finally:
            if registered:
                self._release(group_id, websocket)

    def _release(self, group_id: str, websocket: WebSocket) -> None:
        views = self.active_views.get(group_id)
        if views is not None:
            views.discard(websocket)
            if not views:
                del self.active_views[group_id]
        self._ws_to_view.pop(websocket, None)

    def get_group_view_count(self, group_id: str) -> int:
        return len(self.active_views.get(group_id, ()))

    def get_live_group_count(self) -> int:
        """Number of groups with at least one open view on this server."""
        return len(self.active_views)

    def get_total_view_count(self) -> int:
        return sum(len(views) for views in self.active_views.values())
