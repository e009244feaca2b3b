import asyncio
from typing import Optional

import orjson
from redis.asyncio import Redis
from redis.asyncio.client import PubSub
from redis.exceptions import RedisError

from studyhub.cache.keys import RedisKeys
from studyhub.errors import StoreUnavailable
from studyhub.store.base import InsertStream, Row, Filters
from studyhub.utils.logs import ErrorLogger


class InsertFeedService:
    """Fans persisted rows out to every process subscribed to a table.

    Rows are published once per insert on ``inserts:<table>``; each
    subscriber filters them locally through its ``InsertStream``.
    """
    
    def __init__(self, redis_client: Redis, logger: Optional[ErrorLogger] = None):
        self._redis = redis_client
        self._logger = logger
    
    @property
    def redis(self) -> Redis:
        return self._redis
    
    async def publish(self, table: str, row: Row) -> int:
        """Publish an inserted row. Returns the number of receiving clients."""
        payload = orjson.dumps(row, default=str)
        return await self._redis.publish(RedisKeys.inserts(table), payload)
    
    async def subscribe(self, table: str, filters: Optional[Filters] = None) -> InsertStream:
        """Open a live stream of rows inserted into ``table``."""
        pubsub = self._redis.pubsub()
        try:
            await pubsub.subscribe(RedisKeys.inserts(table))
        except (RedisError, OSError) as e:
            await pubsub.aclose()
            raise StoreUnavailable("Realtime feed is unavailable") from e
        
        pump: Optional[asyncio.Task] = None
        
        async def release() -> None:
            if pump is not None:
                pump.cancel()
                try:
                    await pump
                except asyncio.CancelledError:
                    pass
            try:
                await pubsub.unsubscribe()
            except (RedisError, OSError) as e:
                if self._logger:
                    self._logger.warning("Failed to unsubscribe realtime feed", table=table, error=str(e))
            finally:
                await pubsub.aclose()
        
        stream = InsertStream(table, filters, on_close=release)
        pump = asyncio.create_task(self._pump(pubsub, stream))
        return stream
    
    async def _pump(self, pubsub: PubSub, stream: InsertStream) -> None:
        """Move pub/sub messages into the stream until it closes or drops."""
        try:
            async for message in pubsub.listen():
                if message.get("type") != "message":
                    continue
                stream.push(orjson.loads(message["data"]))
        except (RedisError, OSError) as e:
            if self._logger:
                self._logger.warning(
                    "Realtime feed disconnected",
                    table=stream.table,
                    error=str(e),
                )
        stream.disconnect()
