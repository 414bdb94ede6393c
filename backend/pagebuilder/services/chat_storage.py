"""Conversation history for the page assistant, keyed per tenant and page."""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, List, Literal, Optional
import json
import logging
import uuid

from pydantic import BaseModel, Field
from redis.exceptions import RedisError

from pagebuilder.services.kv_client import kv_manager

logger = logging.getLogger(__name__)

CHAT_TTL_SECONDS = 86400 * 30  # 30 days


class Message(BaseModel):
    id: str = Field(default_factory=lambda: f"msg-{uuid.uuid4().hex[:12]}")
    role: Literal["user", "assistant"]
    content: str
    tools: Optional[List[dict]] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


def chat_key(tenant_id: str, page_id: str) -> str:
    return f"chat:{tenant_id}:{page_id}"


class ChatStorage(ABC):
    @abstractmethod
    async def get_messages(self, tenant_id: str, page_id: str) -> List[Message]:
        ...

    @abstractmethod
    async def save_messages(self, tenant_id: str, page_id: str, messages: List[Message]) -> None:
        ...

    @abstractmethod
    async def clear(self, tenant_id: str, page_id: str) -> None:
        ...

    async def add_message(self, tenant_id: str, page_id: str, message: Message) -> None:
        messages = await self.get_messages(tenant_id, page_id)
        messages.append(message)
        await self.save_messages(tenant_id, page_id, messages)


class RedisChatStorage(ChatStorage):
    def __init__(self, client):
        self.client = client

    async def get_messages(self, tenant_id: str, page_id: str) -> List[Message]:
        raw = await self.client.get(chat_key(tenant_id, page_id))
        if not raw:
            return []
        return [Message.model_validate(m) for m in json.loads(raw)]

    async def save_messages(self, tenant_id: str, page_id: str, messages: List[Message]) -> None:
        payload = json.dumps([m.model_dump(mode="json") for m in messages])
        await self.client.set(chat_key(tenant_id, page_id), payload, ex=CHAT_TTL_SECONDS)

    async def clear(self, tenant_id: str, page_id: str) -> None:
        await self.client.delete(chat_key(tenant_id, page_id))


class InMemoryChatStorage(ChatStorage):
    """Process-local fallback for development without Redis."""

    def __init__(self):
        self._storage: Dict[str, List[Message]] = {}

    async def get_messages(self, tenant_id: str, page_id: str) -> List[Message]:
        return list(self._storage.get(chat_key(tenant_id, page_id), []))

    async def save_messages(self, tenant_id: str, page_id: str, messages: List[Message]) -> None:
        self._storage[chat_key(tenant_id, page_id)] = list(messages)

    async def clear(self, tenant_id: str, page_id: str) -> None:
        self._storage.pop(chat_key(tenant_id, page_id), None)


_memory_storage = InMemoryChatStorage()


async def get_chat_storage() -> ChatStorage:
    """Redis-backed storage when Redis is reachable, in-memory otherwise."""
    try:
        client = await kv_manager.get_client()
    except (RedisError, OSError) as e:
        logger.warning("Redis unavailable, using in-memory chat storage: %s", e)
        client = None

    if client is None:
        return _memory_storage
    return RedisChatStorage(client)
