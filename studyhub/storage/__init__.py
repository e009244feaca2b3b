from studyhub.storage.base import BlobStore
from studyhub.storage.memory import MemoryBlobStore
from studyhub.storage.s3 import S3BlobStore

__all__ = [
    "BlobStore",
    "MemoryBlobStore",
    "S3BlobStore",
]
