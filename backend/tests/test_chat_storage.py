"""Tests for per-tenant chat history storage."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from pagebuilder.services import chat_storage
from pagebuilder.services.chat_storage import (
    CHAT_TTL_SECONDS,
    InMemoryChatStorage,
    Message,
    RedisChatStorage,
    chat_key,
)


class TestInMemoryChatStorage:
    @pytest.mark.asyncio
    async def test_add_and_clear(self):
        storage = InMemoryChatStorage()

        await storage.add_message("acme", "home", Message(role="user", content="hi"))
        await storage.add_message("acme", "home", Message(role="assistant", content="hello"))

        messages = await storage.get_messages("acme", "home")
        assert [m.content for m in messages] == ["hi", "hello"]

        await storage.clear("acme", "home")
        assert await storage.get_messages("acme", "home") == []

    @pytest.mark.asyncio
    async def test_tenants_do_not_share_history(self):
        storage = InMemoryChatStorage()

        await storage.add_message("acme", "home", Message(role="user", content="mine"))

        assert await storage.get_messages("globex", "home") == []


class TestRedisChatStorage:
    @pytest.mark.asyncio
    async def test_saves_json_with_ttl(self):
        client = MagicMock()
        client.set = AsyncMock()
        storage = RedisChatStorage(client)

        await storage.save_messages("acme", "home", [Message(role="user", content="hi")])

        key, payload = client.set.await_args.args
        assert key == chat_key("acme", "home") == "chat:acme:home"
        assert client.set.await_args.kwargs["ex"] == CHAT_TTL_SECONDS
        assert json.loads(payload)[0]["content"] == "hi"

    @pytest.mark.asyncio
    async def test_reads_stored_messages(self):
        stored = json.dumps([Message(role="assistant", content="ok").model_dump(mode="json")])
        client = MagicMock()
        client.get = AsyncMock(return_value=stored)

        messages = await RedisChatStorage(client).get_messages("acme", "home")

        client.get.assert_awaited_once_with("chat:acme:home")
        assert messages[0].role == "assistant"

    @pytest.mark.asyncio
    async def test_missing_key_is_empty(self):
        client = MagicMock()
        client.get = AsyncMock(return_value=None)

        assert await RedisChatStorage(client).get_messages("acme", "home") == []


class TestGetChatStorage:
    @pytest.mark.asyncio
    async def test_memory_fallback_without_redis(self):
        with patch.object(chat_storage.kv_manager, "get_client", AsyncMock(return_value=None)):
            storage = await chat_storage.get_chat_storage()

        assert isinstance(storage, InMemoryChatStorage)

    @pytest.mark.asyncio
    async def test_memory_fallback_when_redis_unreachable(self):
        failing = AsyncMock(side_effect=RedisConnectionError("refused"))
        with patch.object(chat_storage.kv_manager, "get_client", failing):
            storage = await chat_storage.get_chat_storage()

        assert isinstance(storage, InMemoryChatStorage)

    @pytest.mark.asyncio
    async def test_redis_when_available(self):
        client = MagicMock()
        with patch.object(chat_storage.kv_manager, "get_client", AsyncMock(return_value=client)):
            storage = await chat_storage.get_chat_storage()

        assert isinstance(storage, RedisChatStorage)
        assert storage.client is client
