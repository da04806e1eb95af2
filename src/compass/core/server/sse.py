"""Server-sent event framing for the streaming chat route."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, AsyncIterator, Awaitable, Callable

from compass.core.llm.streaming import StreamChannel
from compass.core.orchestrator.orchestrator import Orchestrator
from compass.core.server.requests import ChatRequest

logger = logging.getLogger(__name__)

DONE_FRAME = "data: [DONE]\n\n"

# Keeps producer tasks alive until they finish on their own.
_background_tasks: set[asyncio.Task] = set()


def encode_sse_event(payload: dict[str, Any]) -> str:
    return f"data: {json.dumps(payload)}\n\n"


def chunk_event(text: str, is_final: bool) -> dict[str, Any]:
    return {"type": "chunk", "content": text, "isFinal": is_final}


def complete_event(payload: dict[str, Any]) -> dict[str, Any]:
    return {"type": "complete", **payload}


def error_event(message: str) -> dict[str, Any]:
    return {"type": "error", "message": message}


async def stream_chat(
    orchestrator: Orchestrator,
    request: ChatRequest,
    preferred: str | None,
    is_disconnected: Callable[[], Awaitable[bool]] | None = None,
) -> AsyncIterator[str]:
    """Yield SSE frames for one streamed reply, ending with ``[DONE]``.

    The orchestrator runs as a separate task feeding a queue. Closing this
    generator marks the channel cancelled so the producer stops at its next
    check instead of being torn down mid-tool-call.
    """
    queue: asyncio.Queue[str | None] = asyncio.Queue()
    channel = StreamChannel(
        on_chunk=lambda text, final: queue.put_nowait(encode_sse_event(chunk_event(text, final))),
        on_complete=lambda payload: queue.put_nowait(encode_sse_event(complete_event(payload))),
        on_error=lambda message: queue.put_nowait(encode_sse_event(error_event(message))),
        is_disconnected=is_disconnected,
    )

    async def produce() -> None:
        try:
            await orchestrator.converse_stream(request.history, request.context, preferred, channel)
        finally:
            queue.put_nowait(None)

    task = asyncio.create_task(produce())
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)

    try:
        while True:
            frame = await queue.get()
            if frame is None:
                break
            yield frame
        yield DONE_FRAME
    finally:
        if not task.done():
            logger.info("SSE consumer closed before the reply finished")
        channel.cancel()
