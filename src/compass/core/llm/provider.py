"""LLM provider protocol: abstract interface for chat-completion providers."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, AsyncIterator, Protocol, runtime_checkable

from compass.core.conversation.models import ConversationTurn, ToolCall, ToolExecution

if TYPE_CHECKING:
    from compass.core.config.settings import Settings
    from compass.core.tools.registry import ToolDefinition

PLACEHOLDER_KEYS = frozenset({
    "your_api_key_here",
    "your-api-key",
    "sk-your-key-here",
    "sk-ant-your-key-here",
    "gsk_your_key_here",
    "changeme",
})


@dataclass
class ToolRound:
    """The assistant's tool calls plus their results, replayed for synthesis."""

    text: str
    executions: list[ToolExecution] = field(default_factory=list)


@dataclass
class Completion:
    """Response from one provider completion call."""

    text: str
    tool_calls: list[ToolCall]
    model: str
    input_tokens: int = 0
    output_tokens: int = 0
    latency_ms: float = 0.0


@dataclass
class ToolCallFragment:
    """A partial tool call from a streamed response, keyed by index."""

    index: int
    id: str | None = None
    name: str | None = None
    arguments: str = ""


@dataclass
class StreamDelta:
    """One increment of a streamed completion."""

    text: str = ""
    tool_fragments: list[ToolCallFragment] = field(default_factory=list)
    done: bool = False


@runtime_checkable
class LLMProvider(Protocol):
    """Abstract interface for chat completions with tool calling."""

    name: str
    model: str

    def is_available(self) -> bool: ...

    def translate_tools(self, definitions: list[ToolDefinition]) -> list[dict[str, Any]]: ...

    async def complete(
        self,
        system_message: str,
        history: list[ConversationTurn],
        tools: list[ToolDefinition] | None = None,
        tool_round: ToolRound | None = None,
        max_tokens: int = 1500,
        temperature: float = 0.5,
    ) -> Completion: ...

    def stream(
        self,
        system_message: str,
        history: list[ConversationTurn],
        tools: list[ToolDefinition] | None = None,
        tool_round: ToolRound | None = None,
        max_tokens: int = 1500,
        temperature: float = 0.5,
    ) -> AsyncIterator[StreamDelta]: ...


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class ProviderError(Exception):
    """A provider call failed. Always recoverable by falling back."""

    def __init__(self, provider: str, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.provider = provider
        self.message = message
        self.status_code = status_code

    def describe(self) -> str:
        status = f" ({self.status_code})" if self.status_code else ""
        return f"{self.provider}: {type(self).__name__}{status}: {self.message}"


class ProviderAuthError(ProviderError):
    """Credentials rejected (401/403)."""


class ProviderRateLimitError(ProviderError):
    """Quota or rate limit exceeded (429)."""


class ProviderTimeoutError(ProviderError):
    """The transport timed out."""


class ProviderUnavailableError(ProviderError):
    """The provider is not configured with a usable credential."""


def provider_error(provider: str, exc: BaseException) -> ProviderError:
    """Classify an SDK exception into the ProviderError hierarchy."""
    if isinstance(exc, ProviderError):
        return exc

    status = getattr(exc, "status_code", None)
    if not isinstance(status, int):
        status = None
    message = str(exc) or type(exc).__name__

    if status in (401, 403):
        return ProviderAuthError(provider, message, status)
    if status == 429:
        return ProviderRateLimitError(provider, message, status)
    if "Timeout" in type(exc).__name__ or isinstance(exc, TimeoutError):
        return ProviderTimeoutError(provider, message, status)
    return ProviderError(provider, message, status)


def parse_tool_arguments(raw: str | None) -> tuple[dict[str, Any], str | None]:
    """Decode a JSON argument string. Returns (arguments, parse_error)."""
    if not raw or not raw.strip():
        return {}, None
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as exc:
        return {}, f"Invalid tool arguments: {exc.msg}"
    if not isinstance(parsed, dict):
        return {}, "Tool arguments must be a JSON object"
    return parsed, None


def is_placeholder(api_key: str) -> bool:
    return api_key.strip().lower() in PLACEHOLDER_KEYS


def create_provider(provider_name: str, settings: Settings) -> LLMProvider:
    """Factory function to create an LLM provider by name.

    Args:
        provider_name: "groq", "anthropic", "openai", or "mock"
        settings: Application settings carrying keys, models and timeout.

    Returns:
        An LLMProvider instance (possibly unavailable if its key is missing).
    """
    if provider_name == "groq":
        from compass.core.llm.providers.groq import GroqProvider

        return GroqProvider(
            api_key=settings.groq_api_key,
            model=settings.groq_model,
            timeout=settings.llm_timeout_seconds,
        )
    elif provider_name == "anthropic":
        from compass.core.llm.providers.anthropic import AnthropicProvider

        return AnthropicProvider(
            api_key=settings.anthropic_api_key,
            model=settings.anthropic_model,
            timeout=settings.llm_timeout_seconds,
        )
    elif provider_name == "openai":
        from compass.core.llm.providers.openai import OpenAIProvider

        return OpenAIProvider(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            timeout=settings.llm_timeout_seconds,
        )
    elif provider_name == "mock":
        from compass.core.llm.providers.mock import MockProvider

        return MockProvider()
    else:
        raise ValueError(f"Unknown LLM provider: {provider_name}")
