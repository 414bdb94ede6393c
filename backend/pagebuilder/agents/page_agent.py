"""Tool-calling page assistant using OpenAI function calling with AsyncOpenAI."""

import json
import uuid
from typing import Awaitable, Callable, List, Optional

from openai import AsyncOpenAI

from pagebuilder.agents.prompts import build_contextual_prompt
from pagebuilder.agents.tools import TOOLS, ToolContext, ToolDispatcher
from pagebuilder.core.config import settings
from pagebuilder.core.events import AgentEvent, EventType
from pagebuilder.services.chat_storage import Message

EventCallback = Callable[[AgentEvent], Awaitable[None]]


class PageAgent:
    """Runs one conversational turn: model calls, tool calls, final reply."""

    MAX_ITERATIONS = 10

    def __init__(self, dispatcher: ToolDispatcher, api_key: Optional[str] = None, client=None):
        if client is None:
            client_config = {"api_key": api_key or settings.openai_api_key}
            if settings.openai_base_url:
                client_config["base_url"] = settings.openai_base_url
            client = AsyncOpenAI(**client_config)
        self.client = client
        self.dispatcher = dispatcher
        self.model = settings.openai_model or "gpt-4o-mini"

    async def chat(
        self,
        message: str,
        conversation_history: List[Message],
        context: ToolContext,
        on_event: EventCallback,
    ) -> dict:
        """
        Run the agent loop.

        Returns dict with 'response' (final text), 'tool_calls' (log of calls
        made), 'messages' (the user and assistant Message records for this
        turn) and 'tokens' (total tokens reported by the provider).
        """
        agent_id = str(uuid.uuid4())
        tenant_id = context.tenant_id

        async def emit(event_type: EventType, data: dict) -> None:
            await on_event(AgentEvent.create(event_type, tenant_id, agent_id, data))

        await emit(
            EventType.AGENT_STARTED,
            {"message": message, "current_folder": context.current_folder},
        )

        # Build messages
        messages = [
            {
                "role": "system",
                "content": build_contextual_prompt(context.current_folder, context.selected_file),
            }
        ]
        window = settings.history_window
        recent = conversation_history[-window:] if window else []
        messages.extend({"role": m.role, "content": m.content} for m in recent)
        messages.append({"role": "user", "content": message})

        tool_calls_log = []
        tokens = 0
        user_message = Message(role="user", content=message)

        try:
            for iteration in range(self.MAX_ITERATIONS):
                await emit(EventType.LLM_REQUEST, {"model": self.model, "iteration": iteration})

                response = await self.client.chat.completions.create(
                    model=self.model,
                    messages=messages,
                    tools=TOOLS,
                    tool_choice="auto",
                )

                total_tokens = getattr(getattr(response, "usage", None), "total_tokens", None)
                if isinstance(total_tokens, int):
                    tokens += total_tokens

                choice = response.choices[0]

                await emit(
                    EventType.LLM_RESPONSE,
                    {
                        "finish_reason": choice.finish_reason,
                        "iteration": iteration,
                        "has_tool_calls": bool(choice.message.tool_calls),
                    },
                )

                # Append assistant message to history
                messages.append(choice.message)

                # If the model wants to call tools, execute them
                if choice.message.tool_calls:
                    for tc in choice.message.tool_calls:
                        fn_name = tc.function.name
                        try:
                            fn_args = json.loads(tc.function.arguments or "{}")
                        except json.JSONDecodeError:
                            fn_args = {}

                        await emit(EventType.TOOL_CALLED, {"tool": fn_name, "arguments": fn_args})

                        result = await self.dispatcher.execute(fn_name, fn_args, context)

                        await emit(
                            EventType.TOOL_RESULT,
                            {"tool": fn_name, "success": result.get("success", False)},
                        )

                        tool_calls_log.append({
                            "tool": fn_name,
                            "arguments": fn_args,
                            "success": result.get("success", False),
                            "result_preview": json.dumps(result)[:200],
                        })

                        messages.append({
                            "role": "tool",
                            "tool_call_id": tc.id,
                            "content": json.dumps(result),
                        })
                else:
                    # No tool calls, so this is the final response
                    final_text = choice.message.content or ""

                    await emit(
                        EventType.AGENT_COMPLETED,
                        {"status": "success", "iterations": iteration + 1},
                    )
                    return self._result(final_text, tool_calls_log, user_message, tokens)

            # Exhausted iterations; return whatever we have
            final_text = "I reached the maximum number of tool-calling steps. Here's what I did so far."
            await emit(
                EventType.AGENT_COMPLETED,
                {"status": "max_iterations", "iterations": self.MAX_ITERATIONS},
            )
            return self._result(final_text, tool_calls_log, user_message, tokens)

        except Exception as e:
            await emit(EventType.AGENT_COMPLETED, {"status": "error", "error": str(e)})
            raise

    def _result(self, text: str, tool_calls: list, user_message: Message, tokens: int) -> dict:
        assistant_message = Message(
            role="assistant", content=text, tools=tool_calls or None
        )
        return {
            "response": text,
            "tool_calls": tool_calls,
            "messages": [user_message, assistant_message],
            "tokens": tokens,
        }
