"""Tests for the shared Redis handle lifecycle."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from pagebuilder.services.kv_client import KVClientManager

REDIS_URL = "redis://localhost:6379/0"


def fake_redis(ping_side_effect=None):
    client = MagicMock()
    client.ping = AsyncMock(return_value=True, side_effect=ping_side_effect)
    client.aclose = AsyncMock()
    return client


class TestKVClientManager:
    @pytest.mark.asyncio
    async def test_no_url_returns_none(self):
        manager = KVClientManager(url="")

        assert await manager.get_client() is None

    @pytest.mark.asyncio
    async def test_lazy_creation_and_reuse(self):
        client = fake_redis()
        manager = KVClientManager(url=REDIS_URL)

        with patch("pagebuilder.services.kv_client.redis.from_url", return_value=client) as from_url:
            first = await manager.get_client()
            second = await manager.get_client()

        assert first is client and second is client
        from_url.assert_called_once_with(REDIS_URL, decode_responses=True)
        # One ping to connect, one health check before reuse
        assert client.ping.await_count == 2

    @pytest.mark.asyncio
    async def test_unhealthy_client_replaced(self):
        stale = fake_redis()
        fresh = fake_redis()
        manager = KVClientManager(url=REDIS_URL)

        with patch("pagebuilder.services.kv_client.redis.from_url", side_effect=[stale, fresh]):
            assert await manager.get_client() is stale
            stale.ping.side_effect = RedisConnectionError("gone")
            assert await manager.get_client() is fresh

        stale.aclose.assert_awaited()

    @pytest.mark.asyncio
    async def test_failed_connection_not_cached(self):
        broken = fake_redis(ping_side_effect=RedisConnectionError("refused"))
        working = fake_redis()
        manager = KVClientManager(url=REDIS_URL)

        with patch("pagebuilder.services.kv_client.redis.from_url", side_effect=[broken, working]):
            with pytest.raises(RedisConnectionError):
                await manager.get_client()
            assert await manager.get_client() is working

        broken.aclose.assert_awaited()

    @pytest.mark.asyncio
    async def test_concurrent_first_use_opens_one_connection(self):
        client = fake_redis()
        manager = KVClientManager(url=REDIS_URL)

        with patch("pagebuilder.services.kv_client.redis.from_url", return_value=client) as from_url:
            results = await asyncio.gather(*(manager.get_client() for _ in range(5)))

        assert all(r is client for r in results)
        assert from_url.call_count == 1

    @pytest.mark.asyncio
    async def test_close_tears_down(self):
        first = fake_redis()
        second = fake_redis()
        manager = KVClientManager(url=REDIS_URL)

        with patch("pagebuilder.services.kv_client.redis.from_url", side_effect=[first, second]):
            await manager.get_client()
            await manager.close()
            assert await manager.get_client() is second

        first.aclose.assert_awaited_once()
