"""LLM provider implementations."""

from compass.core.llm.providers.anthropic import AnthropicProvider
from compass.core.llm.providers.groq import GroqProvider
from compass.core.llm.providers.mock import MockProvider
from compass.core.llm.providers.openai import OpenAIProvider

__all__ = ["AnthropicProvider", "GroqProvider", "MockProvider", "OpenAIProvider"]
