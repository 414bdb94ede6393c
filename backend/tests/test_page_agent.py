"""Tests for the page assistant's tool-calling loop with a mocked OpenAI client."""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from pagebuilder.agents.page_agent import PageAgent
from pagebuilder.agents.tools import ToolContext, ToolDispatcher
from pagebuilder.core.events import EventType
from pagebuilder.services.chat_storage import Message

from conftest import TENANT, stored_paths


def tool_call_response(name: str, arguments: dict, call_id: str = "call_1", tokens: int = 40):
    tool_call = SimpleNamespace(
        id=call_id,
        type="function",
        function=SimpleNamespace(name=name, arguments=json.dumps(arguments)),
    )
    message = SimpleNamespace(role="assistant", content=None, tool_calls=[tool_call])
    return SimpleNamespace(
        choices=[SimpleNamespace(finish_reason="tool_calls", message=message)],
        usage=SimpleNamespace(total_tokens=tokens),
    )


def text_response(text: str, tokens: int = 10):
    message = SimpleNamespace(role="assistant", content=text, tool_calls=None)
    return SimpleNamespace(
        choices=[SimpleNamespace(finish_reason="stop", message=message)],
        usage=SimpleNamespace(total_tokens=tokens),
    )


def mock_client(*responses, side_effect=None):
    client = MagicMock()
    client.chat.completions.create = AsyncMock(side_effect=side_effect or list(responses))
    return client


@pytest.fixture
def events():
    return []


@pytest.fixture
def on_event(events):
    async def _collect(event):
        events.append(event)
    return _collect


class TestPageAgent:
    @pytest.mark.asyncio
    async def test_tool_call_then_final_answer(self, store, tree, events, on_event):
        """The agent runs the requested tool, then returns the model's reply."""
        client = mock_client(
            tool_call_response("create_file", {"filename": "about", "content": "<h1>About</h1>"}),
            text_response("Created about.html"),
        )
        agent = PageAgent(ToolDispatcher(tree), client=client)

        result = await agent.chat(
            "Create an about page", [], ToolContext(tenant_id=TENANT), on_event
        )

        assert result["response"] == "Created about.html"
        assert result["tokens"] == 50
        assert [c["tool"] for c in result["tool_calls"]] == ["create_file"]
        assert result["tool_calls"][0]["success"] is True
        assert stored_paths(store) == [f"{TENANT}/about.html"]

        user, assistant = result["messages"]
        assert user.role == "user" and user.content == "Create an about page"
        assert assistant.role == "assistant" and assistant.tools

        types = [e.type for e in events]
        assert types[0] == EventType.AGENT_STARTED
        assert EventType.TOOL_CALLED in types
        assert EventType.TOOL_RESULT in types
        assert types[-1] == EventType.AGENT_COMPLETED
        assert all(e.tenant_id == TENANT for e in events)

    @pytest.mark.asyncio
    async def test_tool_result_sent_back_to_model(self, tree, on_event):
        client = mock_client(
            tool_call_response("read_file", {"filename": "missing.html"}, call_id="call_9"),
            text_response("That file does not exist."),
        )
        agent = PageAgent(ToolDispatcher(tree), client=client)

        await agent.chat("Read missing", [], ToolContext(tenant_id=TENANT), on_event)

        second_call_messages = client.chat.completions.create.call_args_list[1].kwargs["messages"]
        tool_message = [m for m in second_call_messages if isinstance(m, dict) and m.get("role") == "tool"][0]
        assert tool_message["tool_call_id"] == "call_9"
        assert json.loads(tool_message["content"])["success"] is False

    @pytest.mark.asyncio
    async def test_history_window_and_context_prompt(self, tree, on_event):
        client = mock_client(text_response("ok"))
        agent = PageAgent(ToolDispatcher(tree), client=client)
        history = [Message(role="user", content=f"msg {i}") for i in range(15)]
        context = ToolContext(tenant_id=TENANT, current_folder="blog", selected_file="blog/post.html")

        await agent.chat("hello", history, context, on_event)

        messages = client.chat.completions.create.call_args.kwargs["messages"]
        assert messages[0]["role"] == "system"
        assert "Current folder: blog" in messages[0]["content"]
        assert "post.html" in messages[0]["content"]
        assert messages[1]["content"] == "msg 5"
        assert messages[10]["content"] == "msg 14"
        assert messages[11] == {"role": "user", "content": "hello"}

    @pytest.mark.asyncio
    async def test_iteration_limit(self, tree, events, on_event):
        client = mock_client(
            side_effect=lambda **kwargs: tool_call_response("list_files", {})
        )
        agent = PageAgent(ToolDispatcher(tree), client=client)

        result = await agent.chat("loop", [], ToolContext(tenant_id=TENANT), on_event)

        assert client.chat.completions.create.await_count == PageAgent.MAX_ITERATIONS
        assert "maximum number" in result["response"]
        assert events[-1].data["status"] == "max_iterations"

    @pytest.mark.asyncio
    async def test_provider_error_emits_completion_and_raises(self, tree, events, on_event):
        client = mock_client(side_effect=RuntimeError("provider down"))
        agent = PageAgent(ToolDispatcher(tree), client=client)

        with pytest.raises(RuntimeError):
            await agent.chat("hi", [], ToolContext(tenant_id=TENANT), on_event)

        assert events[-1].type == EventType.AGENT_COMPLETED
        assert events[-1].data["status"] == "error"

    @pytest.mark.asyncio
    async def test_malformed_tool_arguments(self, tree, on_event):
        bad = tool_call_response("create_file", {})
        bad.choices[0].message.tool_calls[0].function.arguments = "{not json"
        client = mock_client(bad, text_response("Sorry"))
        agent = PageAgent(ToolDispatcher(tree), client=client)

        result = await agent.chat("make", [], ToolContext(tenant_id=TENANT), on_event)

        assert result["tool_calls"][0]["success"] is False
        assert result["response"] == "Sorry"
