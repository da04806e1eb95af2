"""Tests for SSE framing of streamed replies."""

from __future__ import annotations

import asyncio
import json

from compass.core.conversation.models import ConversationTurn
from compass.core.llm.providers.mock import MockProvider, text_completion
from compass.core.server.requests import ChatRequest
from compass.core.server.sse import (
    DONE_FRAME,
    chunk_event,
    complete_event,
    encode_sse_event,
    error_event,
    stream_chat,
)

from conftest import make_orchestrator


def _run(coro):
    return asyncio.run(coro)


def _request(content: str = "hi") -> ChatRequest:
    return ChatRequest(history=[ConversationTurn("user", content)])


async def _collect(agen, limit: int | None = None) -> list[str]:
    frames: list[str] = []
    async for frame in agen:
        frames.append(frame)
        if limit is not None and len(frames) >= limit:
            await agen.aclose()
            break
    return frames


def _decode(frame: str) -> dict:
    assert frame.startswith("data: ") and frame.endswith("\n\n")
    return json.loads(frame[len("data: "):])


class TestEvents:
    def test_encode(self):
        assert encode_sse_event({"a": 1}) == 'data: {"a": 1}\n\n'

    def test_event_shapes(self):
        assert chunk_event("Hi", False) == {"type": "chunk", "content": "Hi", "isFinal": False}
        assert complete_event({"reply": "x"}) == {"type": "complete", "reply": "x"}
        assert error_event("oops") == {"type": "error", "message": "oops"}


class TestStreamChat:
    def test_frames_end_with_done(self, tool_registry):
        groq = MockProvider([text_completion("Hello student")], name="groq")
        orchestrator = make_orchestrator([groq], tool_registry)
        frames = _run(_collect(stream_chat(orchestrator, _request(), "auto")))

        assert frames[-1] == DONE_FRAME
        events = [_decode(frame) for frame in frames[:-1]]
        assert [e["type"] for e in events] == ["chunk", "chunk", "complete"]
        assert events[0] == {"type": "chunk", "content": "Hello", "isFinal": False}
        assert events[-1]["reply"] == "Hello student"
        assert events[-1]["modelUsed"] == "groq:mock"

    def test_rule_based_stream(self, tool_registry):
        orchestrator = make_orchestrator([], tool_registry)
        frames = _run(_collect(stream_chat(orchestrator, _request("hello"), None)))
        events = [_decode(frame) for frame in frames[:-1]]
        assert [e["type"] for e in events] == ["chunk", "complete"]
        assert events[0]["isFinal"] is True
        assert events[1]["modelUsed"] == "rule-based"

    def test_disconnected_client_gets_no_events(self, tool_registry):
        groq = MockProvider([text_completion("never sent")], name="groq")
        orchestrator = make_orchestrator([groq], tool_registry)

        async def gone() -> bool:
            return True

        frames = _run(_collect(stream_chat(orchestrator, _request(), None, gone)))
        assert frames == [DONE_FRAME]
        assert groq.call_count == 0

    def test_closing_generator_cancels_producer(self, tool_registry):
        groq = MockProvider([text_completion("one two three four five six")], name="groq")
        orchestrator = make_orchestrator([groq], tool_registry)

        async def scenario():
            frames = await _collect(stream_chat(orchestrator, _request(), None), limit=1)
            # Let the producer notice the cancelled channel and finish.
            for _ in range(20):
                await asyncio.sleep(0)
            return frames

        frames = _run(scenario())
        assert len(frames) == 1
        assert _decode(frames[0])["type"] == "chunk"
