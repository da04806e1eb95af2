"""Orchestrator: provider selection, gated tool runs, cards and the fallback chain."""

from __future__ import annotations

import logging
import time
from typing import Any

from compass.core.audit.logger import AuditLogger
from compass.core.conversation.models import (
    AdapterReply,
    ConversationTurn,
    ReplyEnvelope,
    ToolCall,
    UserContext,
    last_user_message,
)
from compass.core.llm.adapter import ConversationAdapter, ToolRunner
from compass.core.llm.provider import ProviderError, provider_error
from compass.core.llm.streaming import StreamChannel
from compass.core.orchestrator.gate import ExamGate
from compass.core.tools.registry import ToolRegistry, tool_error
from compass.domains.admissions.domain_logic.exams import detect_exam_in_text, resolve_exam
from compass.domains.admissions.domain_logic.follow_up import derive_follow_up
from compass.domains.admissions.domain_logic.rule_based import RuleBasedResponder
from compass.domains.admissions.tools.cards import build_cards

logger = logging.getLogger(__name__)

AUTO = "auto"

# Names users and older clients send for a provider.
PREFERENCE_ALIASES = {
    "claude": "anthropic",
    "gpt-4o": "openai",
    "gpt": "openai",
    "llama": "groq",
}

FAILURE_MESSAGE = (
    "I'm really sorry, something went wrong while I was putting your answer together. "
    "Please try again in a moment."
)


def normalize_preference(preferred: str | None) -> str:
    value = (preferred or AUTO).strip().lower()
    return PREFERENCE_ALIASES.get(value, value) or AUTO


def stream_payload(envelope: ReplyEnvelope) -> dict[str, Any]:
    """The terminal ``complete`` event body for a streamed reply."""
    payload: dict[str, Any] = {
        "reply": envelope.reply,
        "cards": envelope.cards,
        "followUp": envelope.follow_up,
        "modelUsed": envelope.model_used,
    }
    if envelope.diagnostics:
        payload["diagnostics"] = list(envelope.diagnostics)
    return payload


class Orchestrator:
    """Routes one conversation turn through providers, tools and fallbacks.

    Adapters are held in priority order. The first available adapter that
    answers wins; any failure moves on to the next one, and the rule-based
    responder answers when nothing else can.

    Usage::

        orchestrator = Orchestrator(adapters, registry, audit=audit)
        envelope = await orchestrator.converse(history, context, "auto")
    """

    def __init__(
        self,
        adapters: list[ConversationAdapter],
        registry: ToolRegistry,
        *,
        responder: RuleBasedResponder | None = None,
        audit: AuditLogger | None = None,
        development_mode: bool = False,
    ) -> None:
        self.adapters = list(adapters)
        self.registry = registry
        self.gate = ExamGate(registry)
        self.responder = responder or RuleBasedResponder()
        self.audit = audit
        self.development_mode = development_mode

    # ---------------------------------------------------------------
    # Selection
    # ---------------------------------------------------------------

    def available(self) -> list[str]:
        return [adapter.name for adapter in self.adapters if adapter.is_available()]

    def candidates(self, preferred: str | None = None) -> list[ConversationAdapter]:
        """Available adapters to try, preferred first, then in priority order."""
        available = [adapter for adapter in self.adapters if adapter.is_available()]
        choice = normalize_preference(preferred)
        if choice != AUTO:
            first = [adapter for adapter in available if adapter.name == choice]
            if first:
                return first + [adapter for adapter in available if adapter.name != choice]
            logger.info("Preferred provider %r unavailable or unknown; using auto", preferred)
        return available

    @staticmethod
    def enrich_context(history: list[ConversationTurn], context: UserContext | None) -> UserContext:
        """Resolve the exam for prompt enrichment. Never feeds tool arguments."""
        context = context or UserContext()
        exam = resolve_exam(context.exam) if context.exam else None
        if exam is None:
            exam = detect_exam_in_text(last_user_message(history))
        if exam != context.exam:
            context = UserContext(
                rank=context.rank,
                category=context.category,
                home_state=context.home_state,
                branches=list(context.branches),
                exam=exam,
            )
        return context

    # ---------------------------------------------------------------
    # Tool mediation
    # ---------------------------------------------------------------

    def tool_runner(self, provider: str) -> ToolRunner:
        """Build the gated, audited tool runner handed to an adapter."""

        async def run(call: ToolCall) -> dict[str, Any]:
            if call.parse_error:
                logger.warning("Tool call %s has unusable arguments: %s", call.name, call.parse_error)
                self._audit_tool(call, provider, None, status="failure", error_type="parse_error")
                return tool_error(call.parse_error, tool=call.name)

            decision = self.gate.check(call)
            if not decision.allowed:
                if self.audit is not None:
                    self.audit.log_gate_block(
                        call.name, call.arguments, llm_provider=provider, reason=decision.reason,
                    )
                return decision.result

            call.arguments = decision.arguments
            start = time.monotonic()
            result = await self.registry.execute(call.name, call.arguments)
            elapsed_ms = (time.monotonic() - start) * 1000
            failed = bool(result.get("error"))
            self._audit_tool(
                call, provider, elapsed_ms,
                status="failure" if failed else "success",
                error_type="tool_error" if failed else None,
            )
            return result

        return run

    def _audit_tool(
        self,
        call: ToolCall,
        provider: str,
        duration_ms: float | None,
        *,
        status: str,
        error_type: str | None = None,
    ) -> None:
        if self.audit is None:
            return
        self.audit.log_tool_call(
            call.name, call.arguments, llm_provider=provider,
            duration_ms=duration_ms, status=status, error_type=error_type,
        )

    # ---------------------------------------------------------------
    # Buffered
    # ---------------------------------------------------------------

    async def converse(
        self,
        history: list[ConversationTurn],
        context: UserContext | None = None,
        preferred: str | None = None,
    ) -> ReplyEnvelope:
        """Produce a reply envelope. Never raises for provider or tool failures."""
        context = self.enrich_context(history, context)
        failures: list[ProviderError] = []

        for adapter in self.candidates(preferred):
            start = time.monotonic()
            logger.info("Trying provider %s", adapter.model_id)
            try:
                reply = await adapter.converse(history, context, self.tool_runner(adapter.name))
            except Exception as exc:
                failures.append(self._record_failure(adapter, exc, start))
                continue
            self._record_success(adapter, start)
            return self._envelope(reply, failures)

        return self._fallback(history, context, failures)

    def respond_rule_based(
        self, history: list[ConversationTurn], context: UserContext | None = None
    ) -> ReplyEnvelope:
        """Answer with the rule-based responder only, no provider involved."""
        context = self.enrich_context(history, context)
        return self._envelope(self.responder.respond(history, context), [])

    # ---------------------------------------------------------------
    # Streaming
    # ---------------------------------------------------------------

    async def converse_stream(
        self,
        history: list[ConversationTurn],
        context: UserContext | None,
        preferred: str | None,
        channel: StreamChannel,
    ) -> ReplyEnvelope | None:
        """Stream a reply through ``channel``.

        Exactly one terminal event reaches the channel unless the consumer
        goes away first. Returns None when the stream was abandoned.
        """
        try:
            return await self._stream(history, context, preferred, channel)
        except Exception:
            logger.exception("Streaming orchestration failed")
            await channel.error(FAILURE_MESSAGE)
            return None

    async def _stream(
        self,
        history: list[ConversationTurn],
        context: UserContext | None,
        preferred: str | None,
        channel: StreamChannel,
    ) -> ReplyEnvelope | None:
        context = self.enrich_context(history, context)
        failures: list[ProviderError] = []

        for adapter in self.candidates(preferred):
            if await channel.consumer_gone():
                logger.info("Stream consumer gone; not trying %s", adapter.name)
                return None
            start = time.monotonic()
            sent_before = channel.chunks_sent
            logger.info("Streaming from provider %s", adapter.model_id)
            try:
                reply = await adapter.converse_stream(
                    history, context, self.tool_runner(adapter.name), channel,
                )
            except Exception as exc:
                failures.append(self._record_failure(adapter, exc, start, streamed=True))
                if channel.chunks_sent > sent_before:
                    # The complete event carries the authoritative reply.
                    logger.info(
                        "Discarding %d partial chunk(s) from %s",
                        channel.chunks_sent - sent_before, adapter.name,
                    )
                continue
            if reply is None:
                logger.info("Stream consumer disconnected during %s", adapter.name)
                return None
            self._record_success(adapter, start, streamed=True)
            envelope = self._envelope(reply, failures, streamed=True)
            await channel.complete(stream_payload(envelope))
            return envelope

        if await channel.consumer_gone():
            return None
        envelope = self._fallback(history, context, failures, streamed=True)
        await channel.chunk(envelope.reply, True)
        await channel.complete(stream_payload(envelope))
        return envelope

    # ---------------------------------------------------------------
    # Shared
    # ---------------------------------------------------------------

    def _fallback(
        self,
        history: list[ConversationTurn],
        context: UserContext,
        failures: list[ProviderError],
        *,
        streamed: bool = False,
    ) -> ReplyEnvelope:
        if failures:
            logger.warning("All providers failed; using rule-based responder")
        else:
            logger.info("No provider available; using rule-based responder")
        reply = self.responder.respond(history, context, degraded=bool(failures))
        return self._envelope(reply, failures, streamed=streamed)

    def _envelope(
        self,
        reply: AdapterReply,
        failures: list[ProviderError],
        *,
        streamed: bool = False,
    ) -> ReplyEnvelope:
        if self.audit is not None:
            self.audit.log_responder(
                reply.model, streamed=streamed,
                failed_providers=[failure.provider for failure in failures],
            )
        return ReplyEnvelope(
            reply=reply.reply,
            model_used=reply.model,
            cards=build_cards(reply.tool_executions),
            follow_up=derive_follow_up(reply.reply, reply.follow_up),
            action_card=reply.action_card,
            emotional_analysis=reply.emotional_analysis,
            diagnostics=(
                [failure.describe() for failure in failures] if self.development_mode else []
            ),
        )

    def _record_failure(
        self,
        adapter: ConversationAdapter,
        exc: Exception,
        start: float,
        *,
        streamed: bool = False,
    ) -> ProviderError:
        error = provider_error(adapter.name, exc)
        if isinstance(exc, ProviderError):
            logger.warning(
                "Provider %s failed: %s (status=%s): %s",
                adapter.name, type(error).__name__, error.status_code, error.message,
            )
        else:
            logger.exception("Provider %s failed unexpectedly", adapter.name)
        if self.audit is not None:
            self.audit.log_provider_attempt(
                adapter.name, adapter.provider.model,
                status="failure", error_type=type(error).__name__,
                status_code=error.status_code,
                duration_ms=(time.monotonic() - start) * 1000,
                streamed=streamed,
            )
        return error

    def _record_success(
        self, adapter: ConversationAdapter, start: float, *, streamed: bool = False
    ) -> None:
        if self.audit is not None:
            self.audit.log_provider_attempt(
                adapter.name, adapter.provider.model,
                duration_ms=(time.monotonic() - start) * 1000,
                streamed=streamed,
            )
