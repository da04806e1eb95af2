"""Streaming plumbing: tool-call assembly and the consumer channel."""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Union

from compass.core.conversation.models import ToolCall
from compass.core.llm.provider import ToolCallFragment, parse_tool_arguments

logger = logging.getLogger(__name__)

ChunkSink = Callable[[str, bool], Union[Awaitable[None], None]]
CompleteSink = Callable[[dict[str, Any]], Union[Awaitable[None], None]]
ErrorSink = Callable[[str], Union[Awaitable[None], None]]
DisconnectProbe = Callable[[], Union[Awaitable[bool], bool]]


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


@dataclass
class _Slot:
    id: str | None = None
    name: str = ""
    arguments: list[str] = field(default_factory=list)


class ToolCallAccumulator:
    """Assembles streamed tool-call fragments keyed by index.

    Fragments may arrive interleaved across indices; nothing is parsed until
    :meth:`finalize` is called on the provider's terminating signal.
    """

    def __init__(self) -> None:
        self._slots: dict[int, _Slot] = {}

    def __len__(self) -> int:
        return len(self._slots)

    def add(self, fragment: ToolCallFragment) -> None:
        slot = self._slots.setdefault(fragment.index, _Slot())
        if fragment.id:
            slot.id = fragment.id
        if fragment.name:
            slot.name = fragment.name
        if fragment.arguments:
            slot.arguments.append(fragment.arguments)

    def finalize(self) -> list[ToolCall]:
        """Tool calls in index order. Unparseable arguments set ``parse_error``."""
        calls: list[ToolCall] = []
        for index in sorted(self._slots):
            slot = self._slots[index]
            arguments, error = parse_tool_arguments("".join(slot.arguments))
            if not slot.name:
                error = error or "Tool call is missing a function name"
            if error:
                logger.warning("Streamed tool call %d could not be assembled: %s", index, error)
            calls.append(ToolCall(
                id=slot.id or f"call_{index}",
                name=slot.name,
                arguments=arguments,
                parse_error=error,
            ))
        return calls


class StreamChannel:
    """Delivery channel for one streamed reply.

    Wraps the chunk, complete and error sinks plus an optional probe telling
    whether the consumer is still there. Once the consumer is gone every sink
    call is a no-op, and at most one terminal event (complete or error) is
    ever delivered.
    """

    def __init__(
        self,
        on_chunk: ChunkSink,
        on_complete: CompleteSink,
        on_error: ErrorSink,
        is_disconnected: DisconnectProbe | None = None,
    ) -> None:
        self._on_chunk = on_chunk
        self._on_complete = on_complete
        self._on_error = on_error
        self._is_disconnected = is_disconnected
        self._cancelled = False
        self._terminated = False
        self.chunks_sent = 0

    def cancel(self) -> None:
        """Mark the consumer as gone."""
        self._cancelled = True

    @property
    def terminated(self) -> bool:
        return self._terminated

    async def consumer_gone(self) -> bool:
        if self._cancelled:
            return True
        if self._is_disconnected is not None and await _maybe_await(self._is_disconnected()):
            logger.info("Stream consumer disconnected")
            self._cancelled = True
        return self._cancelled

    async def chunk(self, text: str, is_final: bool = False) -> None:
        if not text or self._terminated or await self.consumer_gone():
            return
        self.chunks_sent += 1
        await _maybe_await(self._on_chunk(text, is_final))

    async def complete(self, payload: dict[str, Any]) -> None:
        if self._terminated or await self.consumer_gone():
            return
        self._terminated = True
        await _maybe_await(self._on_complete(payload))

    async def error(self, message: str) -> None:
        if self._terminated or await self.consumer_gone():
            return
        self._terminated = True
        await _maybe_await(self._on_error(message))
