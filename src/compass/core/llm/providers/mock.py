"""Mock LLM provider for testing: replays a script of completions."""

from __future__ import annotations

import json
from typing import Any, AsyncIterator, Union

from compass.core.conversation.models import ConversationTurn, ToolCall
from compass.core.llm.provider import (
    Completion,
    ProviderUnavailableError,
    StreamDelta,
    ToolCallFragment,
    ToolRound,
)
from compass.core.llm.providers.openai import function_tools
from compass.core.tools.registry import ToolDefinition

# A scripted step: a completion, an exception to raise, or (streaming only)
# an explicit list of deltas which may end with an exception.
ScriptStep = Union[Completion, BaseException, list]


def text_completion(text: str) -> Completion:
    return Completion(text=text, tool_calls=[], model="mock")


def tool_completion(*calls: tuple[str, dict[str, Any]], text: str = "") -> Completion:
    """Build a completion that requests the given ``(name, arguments)`` tool calls."""
    return Completion(
        text=text,
        tool_calls=[
            ToolCall(id=f"call_{i}", name=name, arguments=dict(arguments))
            for i, (name, arguments) in enumerate(calls)
        ],
        model="mock",
    )


def completion_deltas(completion: Completion) -> list[StreamDelta]:
    """Split a completion into word-sized text deltas and two-part tool fragments."""
    deltas = [StreamDelta(text=word) for word in completion.text.split(" ") if word]
    for i in range(1, len(deltas)):
        deltas[i].text = " " + deltas[i].text
    for index, call in enumerate(completion.tool_calls):
        raw = json.dumps(call.arguments)
        half = len(raw) // 2
        deltas.append(StreamDelta(tool_fragments=[
            ToolCallFragment(index=index, id=call.id, name=call.name, arguments=raw[:half])
        ]))
        deltas.append(StreamDelta(tool_fragments=[
            ToolCallFragment(index=index, arguments=raw[half:])
        ]))
    deltas.append(StreamDelta(done=True))
    return deltas


class MockProvider:
    """Mock provider for testing: returns scripted responses in order."""

    def __init__(
        self,
        script: list[ScriptStep] | None = None,
        name: str = "mock",
        model: str = "mock",
        available: bool = True,
        default_text: str = "Mock LLM response.",
    ) -> None:
        self.name = name
        self.model = model
        self.script: list[ScriptStep] = list(script or [])
        self.available = available
        self.default_text = default_text
        self.calls: list[dict[str, Any]] = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    @property
    def last_system_message(self) -> str:
        return self.calls[-1]["system_message"] if self.calls else ""

    def is_available(self) -> bool:
        return self.available

    def translate_tools(self, definitions: list[ToolDefinition]) -> list[dict[str, Any]]:
        return function_tools(definitions)

    def _next(
        self,
        system_message: str,
        history: list[ConversationTurn],
        tools: list[ToolDefinition] | None,
        tool_round: ToolRound | None,
    ) -> ScriptStep:
        if not self.available:
            raise ProviderUnavailableError(self.name, "mock provider disabled")
        self.calls.append({
            "system_message": system_message,
            "history": list(history),
            "tools": [t.name for t in tools or []],
            "tool_round": tool_round,
        })
        if self.script:
            return self.script.pop(0)
        return text_completion(self.default_text)

    async def complete(
        self,
        system_message: str,
        history: list[ConversationTurn],
        tools: list[ToolDefinition] | None = None,
        tool_round: ToolRound | None = None,
        max_tokens: int = 1500,
        temperature: float = 0.5,
    ) -> Completion:
        step = self._next(system_message, history, tools, tool_round)
        if isinstance(step, BaseException):
            raise step
        if isinstance(step, list):
            raise TypeError("delta scripts are only valid for streaming")
        return step

    async def stream(
        self,
        system_message: str,
        history: list[ConversationTurn],
        tools: list[ToolDefinition] | None = None,
        tool_round: ToolRound | None = None,
        max_tokens: int = 1500,
        temperature: float = 0.5,
    ) -> AsyncIterator[StreamDelta]:
        step = self._next(system_message, history, tools, tool_round)
        if isinstance(step, BaseException):
            raise step
        deltas = step if isinstance(step, list) else completion_deltas(step)
        for delta in deltas:
            if isinstance(delta, BaseException):
                raise delta
            yield delta
