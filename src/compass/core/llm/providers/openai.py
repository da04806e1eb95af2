"""OpenAI GPT provider (chat completions with function calling)."""

from __future__ import annotations

import json
import logging
import time
from typing import Any, AsyncIterator

from compass.core.conversation.models import ConversationTurn, ToolCall
from compass.core.llm.provider import (
    Completion,
    ProviderUnavailableError,
    StreamDelta,
    ToolCallFragment,
    ToolRound,
    is_placeholder,
    parse_tool_arguments,
    provider_error,
)
from compass.core.tools.registry import ToolDefinition

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# OpenAI-dialect helpers (shared with the Groq provider)
# ---------------------------------------------------------------------------


def function_tools(definitions: list[ToolDefinition]) -> list[dict[str, Any]]:
    """Translate tool definitions into the ``{"type": "function"}`` schema."""
    return [
        {
            "type": "function",
            "function": {
                "name": d.name,
                "description": d.description,
                "parameters": d.parameters,
            },
        }
        for d in definitions
    ]


def chat_messages(
    system_message: str,
    history: list[ConversationTurn],
    tool_round: ToolRound | None = None,
) -> list[dict[str, Any]]:
    """Build a chat-completions message list, replaying a tool round if given."""
    messages: list[dict[str, Any]] = [{"role": "system", "content": system_message}]
    messages.extend(turn.to_dict() for turn in history)

    if tool_round is not None:
        messages.append({
            "role": "assistant",
            "content": tool_round.text or None,
            "tool_calls": [
                {
                    "id": execution.call.id,
                    "type": "function",
                    "function": {
                        "name": execution.call.name,
                        "arguments": json.dumps(execution.call.arguments),
                    },
                }
                for execution in tool_round.executions
            ],
        })
        for execution in tool_round.executions:
            messages.append({
                "role": "tool",
                "tool_call_id": execution.call.id,
                "content": json.dumps(execution.result),
            })
    return messages


def parse_tool_calls(raw_calls: Any) -> list[ToolCall]:
    calls: list[ToolCall] = []
    for raw in raw_calls or []:
        arguments, error = parse_tool_arguments(raw.function.arguments)
        calls.append(ToolCall(
            id=raw.id,
            name=raw.function.name,
            arguments=arguments,
            parse_error=error,
        ))
    return calls


def stream_delta(chunk: Any) -> StreamDelta | None:
    """Convert one chat-completions stream chunk into a StreamDelta."""
    if not chunk.choices:
        return None
    delta = chunk.choices[0].delta
    if delta is None:
        return None

    fragments = [
        ToolCallFragment(
            index=raw.index,
            id=raw.id,
            name=raw.function.name if raw.function else None,
            arguments=(raw.function.arguments or "") if raw.function else "",
        )
        for raw in (delta.tool_calls or [])
    ]
    text = delta.content or ""
    if not text and not fragments:
        return None
    return StreamDelta(text=text, tool_fragments=fragments)


def credential_ok(api_key: str, prefix: str, min_length: int = 0) -> bool:
    key = (api_key or "").strip()
    return bool(key) and key.startswith(prefix) and len(key) > min_length and not is_placeholder(key)


class OpenAIProvider:
    """OpenAI provider using the OpenAI SDK."""

    name = "openai"

    def __init__(self, api_key: str, model: str = "gpt-4o-mini", timeout: float = 60.0) -> None:
        self.model = model
        self.client = None
        self._available = credential_ok(api_key, "sk-")
        if self._available:
            import openai

            self.client = openai.AsyncOpenAI(api_key=api_key, timeout=timeout)

    def is_available(self) -> bool:
        return self._available

    def translate_tools(self, definitions: list[ToolDefinition]) -> list[dict[str, Any]]:
        return function_tools(definitions)

    def _request(
        self,
        system_message: str,
        history: list[ConversationTurn],
        tools: list[ToolDefinition] | None,
        tool_round: ToolRound | None,
        max_tokens: int,
        temperature: float,
    ) -> dict[str, Any]:
        if self.client is None:
            raise ProviderUnavailableError(self.name, "OpenAI API key is not configured")
        request: dict[str, Any] = {
            "model": self.model,
            "messages": chat_messages(system_message, history, tool_round),
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        if tools:
            request["tools"] = self.translate_tools(tools)
            # The synthesis round answers from the results already fetched.
            request["tool_choice"] = "none" if tool_round else "auto"
        return request

    async def complete(
        self,
        system_message: str,
        history: list[ConversationTurn],
        tools: list[ToolDefinition] | None = None,
        tool_round: ToolRound | None = None,
        max_tokens: int = 1500,
        temperature: float = 0.5,
    ) -> Completion:
        request = self._request(system_message, history, tools, tool_round, max_tokens, temperature)
        start = time.monotonic()
        try:
            response = await self.client.chat.completions.create(**request)
        except Exception as exc:
            raise provider_error(self.name, exc) from exc
        elapsed_ms = (time.monotonic() - start) * 1000

        choice = response.choices[0] if response.choices else None
        message = choice.message if choice else None
        usage = response.usage
        return Completion(
            text=(message.content or "") if message else "",
            tool_calls=parse_tool_calls(message.tool_calls if message else None),
            model=self.model,
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
            latency_ms=elapsed_ms,
        )

    async def stream(
        self,
        system_message: str,
        history: list[ConversationTurn],
        tools: list[ToolDefinition] | None = None,
        tool_round: ToolRound | None = None,
        max_tokens: int = 1500,
        temperature: float = 0.5,
    ) -> AsyncIterator[StreamDelta]:
        request = self._request(system_message, history, tools, tool_round, max_tokens, temperature)
        try:
            async with await self.client.chat.completions.create(**request, stream=True) as chunks:
                async for chunk in chunks:
                    delta = stream_delta(chunk)
                    if delta is not None:
                        yield delta
        except Exception as exc:
            raise provider_error(self.name, exc) from exc
        yield StreamDelta(done=True)
