from fastapi.requests import Request
from fastapi.websockets import WebSocket

from studyhub.websocket.manager import LiveViewManager


async def get_live_manager(websocket: WebSocket) -> LiveViewManager:
    """Get the live view registry from app state."""
    return websocket.app.state.live_manager


async def get_live_manager_http(request: Request) -> LiveViewManager:
    """Get the live view registry from app state for HTTP endpoints."""
    return request.app.state.live_manager
