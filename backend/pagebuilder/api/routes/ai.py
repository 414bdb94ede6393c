"""AI assistant routes: chat, conversation history and tenant API keys."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from openai import OpenAIError
from pydantic import BaseModel

from pagebuilder.agents.page_agent import PageAgent
from pagebuilder.agents.tools import ToolContext, ToolDispatcher
from pagebuilder.api.deps import get_auth_context, get_file_tree, require_admin
from pagebuilder.core.auth import AuthContext
from pagebuilder.core.config import settings
from pagebuilder.core.errors import InvalidArguments, UpstreamFailure
from pagebuilder.core.events import AgentEvent
from pagebuilder.core.rate_limit import limiter
from pagebuilder.db.database import get_database
from pagebuilder.db.queries import api_keys
from pagebuilder.services.chat_storage import get_chat_storage
from pagebuilder.services.event_bus import event_bus
from pagebuilder.services.file_tree import VirtualFileTree

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ai", tags=["ai"])

DEFAULT_PAGE_ID = "default"


class ChatRequest(BaseModel):
    message: Optional[str] = None
    pageId: Optional[str] = None
    currentFolder: str = ""
    selectedFile: Optional[str] = None


class ApiKeyRequest(BaseModel):
    apiKey: Optional[str] = None
    provider: str = "openai"


# ── Chat ──────────────────────────────────────────────────────────────

@router.post("/chat")
@limiter.limit(settings.chat_rate_limit)
async def ai_chat(
    request: Request,
    body: ChatRequest,
    auth: AuthContext = Depends(get_auth_context),
    tree: VirtualFileTree = Depends(get_file_tree),
):
    """Chat with the page assistant. Tool calls run against the caller's tenant only."""
    if not body.message or not body.message.strip():
        raise InvalidArguments("Message is required")

    db = await get_database()
    tenant_key = await api_keys.get_api_key(db, auth.tenant_id)
    api_key = tenant_key or settings.openai_api_key
    if not api_key:
        raise InvalidArguments(
            "No API key configured. Please ask your administrator to set up an AI API key."
        )

    page_id = body.pageId or DEFAULT_PAGE_ID
    storage = await get_chat_storage()
    history = await storage.get_messages(auth.tenant_id, page_id)

    async def emit_event(event: AgentEvent):
        await event_bus.broadcast(auth.tenant_id, event.model_dump())

    context = ToolContext(
        tenant_id=auth.tenant_id,
        current_folder=body.currentFolder or "",
        selected_file=body.selectedFile or None,
    )
    agent = PageAgent(ToolDispatcher(tree), api_key=api_key)
    try:
        result = await agent.chat(
            message=body.message,
            conversation_history=history,
            context=context,
            on_event=emit_event,
        )
    except OpenAIError as e:
        raise UpstreamFailure(f"AI provider request failed: {e}") from e

    await storage.save_messages(auth.tenant_id, page_id, history + result["messages"])
    if tenant_key:
        await api_keys.record_usage(db, auth.tenant_id, result["tokens"])

    return {
        "response": result["response"],
        "pageId": page_id,
        "toolCalls": result["tool_calls"],
        "messages": [m.model_dump(mode="json") for m in result["messages"]],
    }


# ── History ───────────────────────────────────────────────────────────

@router.get("/history")
async def get_history(
    pageId: str = Query(DEFAULT_PAGE_ID),
    auth: AuthContext = Depends(get_auth_context),
):
    storage = await get_chat_storage()
    messages = await storage.get_messages(auth.tenant_id, pageId)
    return {"pageId": pageId, "messages": [m.model_dump(mode="json") for m in messages]}


@router.delete("/history")
async def clear_history(
    pageId: str = Query(DEFAULT_PAGE_ID),
    auth: AuthContext = Depends(get_auth_context),
):
    storage = await get_chat_storage()
    await storage.clear(auth.tenant_id, pageId)
    return {"success": True}


# ── API key management ────────────────────────────────────────────────

@router.get("/api-key")
async def get_api_key_info(auth: AuthContext = Depends(require_admin)):
    """Key metadata for the tenant; the key itself is never returned."""
    db = await get_database()
    info = await api_keys.get_key_info(db, auth.tenant_id)
    if info is None:
        return {"hasKey": False}
    return {"hasKey": True, **info}


@router.post("/api-key")
async def set_api_key(body: ApiKeyRequest, auth: AuthContext = Depends(require_admin)):
    if not body.apiKey or not body.apiKey.strip():
        raise InvalidArguments("API key is required")
    api_key = body.apiKey.strip()
    if not api_key.startswith("sk-"):
        raise InvalidArguments("Invalid API key format")

    db = await get_database()
    await api_keys.upsert_api_key(db, auth.tenant_id, api_key, body.provider)
    logger.info("AI API key saved for tenant %s by %s", auth.tenant_id, auth.user_id)
    return {"success": True, "message": "API key saved successfully"}


@router.delete("/api-key")
async def remove_api_key(auth: AuthContext = Depends(require_admin)):
    db = await get_database()
    await api_keys.delete_api_key(db, auth.tenant_id)
    logger.info("AI API key removed for tenant %s by %s", auth.tenant_id, auth.user_id)
    return {"success": True, "message": "API key removed"}


@router.get("/check-key")
async def check_api_key(auth: AuthContext = Depends(get_auth_context)):
    """Whether chat is usable for this tenant, without exposing any key."""
    db = await get_database()
    has_tenant_key = await api_keys.get_api_key(db, auth.tenant_id) is not None
    return {
        "hasKey": has_tenant_key or bool(settings.openai_api_key),
        "source": "tenant" if has_tenant_key else ("server" if settings.openai_api_key else None),
        "isAdmin": auth.is_admin,
    }
