"""Anthropic Claude provider (messages API with tool_use blocks)."""

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
    provider_error,
)
from compass.core.llm.providers.openai import credential_ok
from compass.core.tools.registry import ToolDefinition

logger = logging.getLogger(__name__)


def anthropic_messages(
    history: list[ConversationTurn], tool_round: ToolRound | None = None
) -> list[dict[str, Any]]:
    """Build the messages list. System turns are carried by the system prompt."""
    messages: list[dict[str, Any]] = [
        turn.to_dict() for turn in history if turn.role in ("user", "assistant")
    ]
    if tool_round is None:
        return messages

    assistant_blocks: list[dict[str, Any]] = []
    if tool_round.text:
        assistant_blocks.append({"type": "text", "text": tool_round.text})
    for execution in tool_round.executions:
        assistant_blocks.append({
            "type": "tool_use",
            "id": execution.call.id,
            "name": execution.call.name,
            "input": execution.call.arguments,
        })
    messages.append({"role": "assistant", "content": assistant_blocks})
    messages.append({
        "role": "user",
        "content": [
            {
                "type": "tool_result",
                "tool_use_id": execution.call.id,
                "content": json.dumps(execution.result),
                "is_error": execution.failed,
            }
            for execution in tool_round.executions
        ],
    })
    return messages


def replayed_tools(tool_round: ToolRound) -> list[dict[str, Any]]:
    """Minimal declarations for the tools named in a replayed round."""
    names = dict.fromkeys(execution.call.name for execution in tool_round.executions)
    return [
        {"name": name, "description": name, "input_schema": {"type": "object"}}
        for name in names
    ]


def system_prompt(system_message: str, history: list[ConversationTurn]) -> str:
    extra = [turn.content for turn in history if turn.role == "system"]
    return "\n\n".join([system_message, *extra]) if extra else system_message


class AnthropicProvider:
    """Claude provider using the Anthropic SDK."""

    name = "anthropic"

    def __init__(
        self, api_key: str, model: str = "claude-sonnet-4-5-20250929", timeout: float = 60.0
    ) -> None:
        self.model = model
        self.client = None
        self._available = credential_ok(api_key, "sk-ant-")
        if self._available:
            import anthropic

            self.client = anthropic.AsyncAnthropic(api_key=api_key, timeout=timeout)

    def is_available(self) -> bool:
        return self._available

    def translate_tools(self, definitions: list[ToolDefinition]) -> list[dict[str, Any]]:
        return [
            {"name": d.name, "description": d.description, "input_schema": d.parameters}
            for d in definitions
        ]

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
            raise ProviderUnavailableError(self.name, "Anthropic API key is not configured")
        request: dict[str, Any] = {
            "model": self.model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "system": system_prompt(system_message, history),
            "messages": anthropic_messages(history, tool_round),
        }
        if tools:
            request["tools"] = self.translate_tools(tools)
        elif tool_round is not None and tool_round.executions:
            # tool_use blocks are rejected unless their tools are declared.
            request["tools"] = replayed_tools(tool_round)
        if tool_round is not None and "tools" in request:
            request["tool_choice"] = {"type": "none"}
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
            response = await self.client.messages.create(**request)
        except Exception as exc:
            raise provider_error(self.name, exc) from exc
        elapsed_ms = (time.monotonic() - start) * 1000

        text_parts: list[str] = []
        tool_calls: list[ToolCall] = []
        for block in response.content or []:
            if block.type == "text":
                text_parts.append(block.text)
            elif block.type == "tool_use":
                arguments = block.input if isinstance(block.input, dict) else {}
                tool_calls.append(ToolCall(id=block.id, name=block.name, arguments=arguments))

        return Completion(
            text="".join(text_parts),
            tool_calls=tool_calls,
            model=self.model,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
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
            async with await self.client.messages.create(**request, stream=True) as events:
                async for event in events:
                    if (
                        event.type == "content_block_start"
                        and event.content_block.type == "tool_use"
                    ):
                        yield StreamDelta(tool_fragments=[ToolCallFragment(
                            index=event.index,
                            id=event.content_block.id,
                            name=event.content_block.name,
                        )])
                    elif event.type == "content_block_delta":
                        if event.delta.type == "text_delta":
                            yield StreamDelta(text=event.delta.text)
                        elif event.delta.type == "input_json_delta":
                            yield StreamDelta(tool_fragments=[ToolCallFragment(
                                index=event.index,
                                arguments=event.delta.partial_json,
                            )])
                    elif event.type == "message_stop":
                        break
        except Exception as exc:
            raise provider_error(self.name, exc) from exc
        yield StreamDelta(done=True)
