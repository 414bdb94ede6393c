"""Process-wide handle to the auxiliary Redis store.

The connection is opened lazily on first use, checked with PING before each
reuse, and closed on shutdown. Concurrent first callers share one connection
attempt. A failed attempt is not remembered, so the next call tries again.
"""

import asyncio
import logging
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from pagebuilder.core.config import settings

logger = logging.getLogger(__name__)


class KVClientManager:
    def __init__(self, url: Optional[str] = None):
        self._url = url
        self._client: Optional[redis.Redis] = None
        self._lock = asyncio.Lock()

    @property
    def url(self) -> Optional[str]:
        return self._url if self._url is not None else settings.effective_redis_url

    async def _healthy(self, client: redis.Redis) -> bool:
        try:
            return bool(await client.ping())
        except (RedisError, OSError) as e:
            logger.warning("Redis health check failed: %s", e)
            return False

    async def get_client(self) -> Optional[redis.Redis]:
        """Shared client, or None when no Redis URL is configured."""
        url = self.url
        if not url:
            return None

        client = self._client
        if client is not None and await self._healthy(client):
            return client

        async with self._lock:
            # Another caller may have connected while we waited
            if self._client is not None and self._client is not client:
                return self._client

            if self._client is not None:
                await self._discard()

            logger.info("Connecting to Redis...")
            candidate = redis.from_url(url, decode_responses=True)
            try:
                await candidate.ping()
            except (RedisError, OSError) as e:
                logger.error("Failed to connect to Redis: %s", e)
                await candidate.aclose()
                raise
            self._client = candidate
            logger.info("Successfully connected to Redis")
            return candidate

    async def _discard(self) -> None:
        client, self._client = self._client, None
        if client is not None:
            try:
                await client.aclose()
            except (RedisError, OSError):
                pass

    async def close(self) -> None:
        async with self._lock:
            await self._discard()


# Singleton instance
kv_manager = KVClientManager()
