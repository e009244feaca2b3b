from abc import ABC, abstractmethod


class BlobStore(ABC):
    """Content store for chat attachments."""

    @abstractmethod
    async def upload(self, key: str, data: bytes, mime_type: str) -> str:
        """Store ``data`` under ``key`` and return a durable reference.

        Raises ``studyhub.errors.UploadFailed`` if the write does not succeed.
        """

    @abstractmethod
    def public_url(self, ref: str) -> str:
        """Resolve a reference returned by ``upload`` to a retrievable URL."""
