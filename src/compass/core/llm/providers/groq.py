"""Groq provider: Llama models behind an OpenAI-compatible API."""

from __future__ import annotations

import logging
import time
from typing import Any, AsyncIterator

from compass.core.conversation.models import ConversationTurn
from compass.core.llm.provider import (
    Completion,
    ProviderUnavailableError,
    StreamDelta,
    ToolRound,
    provider_error,
)
from compass.core.llm.providers.openai import (
    chat_messages,
    credential_ok,
    function_tools,
    parse_tool_calls,
    stream_delta,
)
from compass.core.tools.registry import ToolDefinition

logger = logging.getLogger(__name__)

# Groq keys look like gsk_ followed by a long token.
_MIN_KEY_LENGTH = 20


class GroqProvider:
    """Groq provider using the Groq SDK."""

    name = "groq"

    def __init__(
        self, api_key: str, model: str = "llama-3.3-70b-versatile", timeout: float = 60.0
    ) -> None:
        self.model = model
        self.client = None
        self._available = credential_ok(api_key, "gsk_", _MIN_KEY_LENGTH)
        if self._available:
            import groq

            self.client = groq.AsyncGroq(api_key=api_key, timeout=timeout)

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
            raise ProviderUnavailableError(self.name, "Groq API key is not configured")
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
        logger.debug("Groq completion in %.0fms", elapsed_ms)
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
