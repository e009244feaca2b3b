from typing import Optional

from studyhub.errors import UploadFailed
from studyhub.storage.base import BlobStore


class MemoryBlobStore(BlobStore):
    """Keeps uploads in a dict. Set ``fail_uploads`` to simulate outages."""

    def __init__(self, base_url: str = "memory://chat-files"):
        self.base_url = base_url.rstrip("/")
        self.objects: dict[str, tuple[bytes, str]] = {}
        self.fail_uploads = False

    async def upload(self, key: str, data: bytes, mime_type: str) -> str:
        if self.fail_uploads:
            raise UploadFailed(f"Failed to upload {key}")
        if key in self.objects:
            raise UploadFailed(f"Object already exists: {key}")
        self.objects[key] = (bytes(data), mime_type)
        return key

    def public_url(self, ref: str) -> str:
        return f"{self.base_url}/{ref}"

    def get(self, ref: str) -> Optional[bytes]:
        stored = self.objects.get(ref)
        return stored[0] if stored else None
