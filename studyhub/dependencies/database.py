from fastapi import Request, WebSocket

from studyhub.storage import BlobStore
from studyhub.store import StoreAdapter


async def get_store(request: Request) -> StoreAdapter:
    return request.app.state.store


async def get_ws_store(websocket: WebSocket) -> StoreAdapter:
    return websocket.app.state.store


async def get_blob_store(request: Request) -> BlobStore:
    return request.app.state.blob_store


async def get_ws_blob_store(websocket: WebSocket) -> BlobStore:
    return websocket.app.state.blob_store
