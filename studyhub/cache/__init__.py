from .keys import RedisKeys
from .feeds import InsertFeedService

__all__ = [
    "RedisKeys",
    "InsertFeedService",
]
