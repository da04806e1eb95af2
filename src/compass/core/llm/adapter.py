"""Conversation adapter: runs one provider through a tool round and a synthesis round."""

from __future__ import annotations

import logging
from contextlib import aclosing
from typing import Any, Awaitable, Callable

from compass.core.conversation.models import (
    AdapterReply,
    ConversationTurn,
    ToolCall,
    ToolExecution,
    UserContext,
    last_user_message,
)
from compass.core.emotion.action_card import (
    create_action_card,
    emotion_follow_up,
    generate_micro_steps,
)
from compass.core.emotion.analyzer import EmotionalAnalysis, analyze_emotion
from compass.core.llm.provider import LLMProvider, ProviderError, ToolRound
from compass.core.llm.streaming import StreamChannel, ToolCallAccumulator
from compass.core.llm.system_prompt import build_system_instruction
from compass.core.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

# Supplied by the orchestrator: gates, executes and audits one tool call.
ToolRunner = Callable[[ToolCall], Awaitable[dict[str, Any]]]


def recommendation_count(executions: list[ToolExecution]) -> int:
    """Number of colleges surfaced by successful tool results."""
    count = 0
    for execution in executions:
        if execution.failed:
            continue
        result = execution.result
        if isinstance(result.get("totalFound"), int):
            count += result["totalFound"]
        elif isinstance(result.get("colleges"), list):
            count += len(result["colleges"])
    return count


class ConversationAdapter:
    """Drives an LLMProvider through the two-round tool protocol.

    The adapter owns prompt assembly and the emotional framing of a reply;
    the provider owns the wire format; the orchestrator owns tool gating.
    """

    def __init__(
        self,
        provider: LLMProvider,
        registry: ToolRegistry,
        persona_prompt: str,
        max_tokens: int = 1500,
        temperature: float = 0.5,
    ) -> None:
        self.provider = provider
        self.registry = registry
        self.persona_prompt = persona_prompt
        self.max_tokens = max_tokens
        self.temperature = temperature

    @property
    def name(self) -> str:
        return self.provider.name

    @property
    def model_id(self) -> str:
        return f"{self.provider.name}:{self.provider.model}"

    def is_available(self) -> bool:
        return self.provider.is_available()

    def _prepare(
        self, history: list[ConversationTurn], context: UserContext
    ) -> tuple[EmotionalAnalysis, str]:
        analysis = analyze_emotion(last_user_message(history))
        logger.info("%s: emotional state detected: %s", self.name, analysis.emotion)
        system = build_system_instruction(self.persona_prompt, context, analysis)
        return analysis, system

    def _finish(
        self,
        reply: str,
        executions: list[ToolExecution],
        analysis: EmotionalAnalysis,
        context: UserContext,
    ) -> AdapterReply:
        if not reply.strip():
            raise ProviderError(self.name, "Provider returned an empty reply")
        steps = generate_micro_steps(context, recommendation_count(executions))
        return AdapterReply(
            reply=reply,
            model=self.model_id,
            tool_executions=executions,
            follow_up=emotion_follow_up(analysis.emotion),
            action_card=create_action_card(analysis, steps),
            emotional_analysis=analysis,
        )

    async def converse(
        self,
        history: list[ConversationTurn],
        context: UserContext,
        run_tool: ToolRunner,
    ) -> AdapterReply:
        """Buffered reply. Provider failures propagate as ProviderError."""
        analysis, system = self._prepare(history, context)
        tools = self.registry.all()

        first = await self.provider.complete(
            system, history, tools=tools,
            max_tokens=self.max_tokens, temperature=self.temperature,
        )
        logger.info(
            "%s round 1: model=%s, tokens=%d+%d, latency=%.0fms, tool_calls=%d",
            self.name, first.model, first.input_tokens, first.output_tokens,
            first.latency_ms, len(first.tool_calls),
        )
        if not first.tool_calls:
            return self._finish(first.text, [], analysis, context)

        executions: list[ToolExecution] = []
        for call in first.tool_calls:
            executions.append(ToolExecution(call=call, result=await run_tool(call)))

        second = await self.provider.complete(
            system, history, tools=tools,
            tool_round=ToolRound(text=first.text, executions=executions),
            max_tokens=self.max_tokens, temperature=self.temperature,
        )
        logger.info(
            "%s round 2: tokens=%d+%d, latency=%.0fms",
            self.name, second.input_tokens, second.output_tokens, second.latency_ms,
        )
        return self._finish(second.text, executions, analysis, context)

    async def converse_stream(
        self,
        history: list[ConversationTurn],
        context: UserContext,
        run_tool: ToolRunner,
        channel: StreamChannel,
    ) -> AdapterReply | None:
        """Streamed reply. Returns None if the consumer went away mid-stream."""
        analysis, system = self._prepare(history, context)
        tools = self.registry.all()

        first_text: list[str] = []
        accumulator = ToolCallAccumulator()
        async with aclosing(self.provider.stream(
            system, history, tools=tools,
            max_tokens=self.max_tokens, temperature=self.temperature,
        )) as deltas:
            async for delta in deltas:
                if await channel.consumer_gone():
                    return None
                if delta.text:
                    first_text.append(delta.text)
                    await channel.chunk(delta.text, False)
                for fragment in delta.tool_fragments:
                    accumulator.add(fragment)
                if delta.done:
                    break

        calls = accumulator.finalize()
        if not calls:
            return self._finish("".join(first_text), [], analysis, context)

        logger.info("%s (stream): executing %d tool(s)", self.name, len(calls))
        executions: list[ToolExecution] = []
        for call in calls:
            executions.append(ToolExecution(call=call, result=await run_tool(call)))
        if await channel.consumer_gone():
            logger.info("%s (stream): consumer gone after tools; skipping synthesis", self.name)
            return None

        final_text: list[str] = []
        async with aclosing(self.provider.stream(
            system, history, tools=tools,
            tool_round=ToolRound(text="".join(first_text), executions=executions),
            max_tokens=self.max_tokens, temperature=self.temperature,
        )) as deltas:
            async for delta in deltas:
                if await channel.consumer_gone():
                    return None
                if delta.text:
                    final_text.append(delta.text)
                    await channel.chunk(delta.text, True)
                if delta.done:
                    break

        return self._finish("".join(final_text), executions, analysis, context)
