from studyhub.websocket.manager import LiveViewManager
from studyhub.websocket.handler import LiveGroupFeedHandler

__all__ = ["LiveViewManager", "LiveGroupFeedHandler"]
