"""Conversation data model shared by providers, the orchestrator and the server."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from compass.core.emotion.action_card import ActionCard
from compass.core.emotion.analyzer import EmotionalAnalysis

ROLES = ("user", "assistant", "system")
CATEGORIES = ("General", "EWS", "OBC", "SC", "ST", "PwD")

RULE_BASED_MODEL = "rule-based"


@dataclass(frozen=True)
class ConversationTurn:
    """One message of the dialogue history."""

    role: str
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class UserContext:
    """Optional student profile supplied with a request. Never persisted."""

    rank: int | None = None
    category: str | None = None
    home_state: str | None = None
    branches: list[str] = field(default_factory=list)
    exam: str | None = None

    def is_empty(self) -> bool:
        return not (self.rank or self.category or self.home_state or self.branches or self.exam)

    def summary(self) -> str:
        """Render only the fields that are present, e.g. ``Rank: 5000, Category: OBC``."""
        parts: list[str] = []
        if self.exam:
            parts.append(f"Exam: {self.exam}")
        if self.rank:
            parts.append(f"Rank: {self.rank}")
        if self.category:
            parts.append(f"Category: {self.category}")
        if self.home_state:
            parts.append(f"State: {self.home_state}")
        if self.branches:
            parts.append(f"Interested in: {', '.join(self.branches)}")
        return ", ".join(parts)


@dataclass
class ToolCall:
    """A tool invocation requested by a provider."""

    id: str
    name: str
    arguments: dict[str, Any] = field(default_factory=dict)
    # Set when streamed argument fragments did not assemble into valid JSON.
    parse_error: str | None = None


@dataclass
class ToolExecution:
    """A tool call paired with the result that was fed back to the provider."""

    call: ToolCall
    result: dict[str, Any]

    @property
    def failed(self) -> bool:
        return bool(self.result.get("error"))


@dataclass
class AdapterReply:
    """What a responder (provider adapter or rule-based) hands to the orchestrator."""

    reply: str
    model: str
    tool_executions: list[ToolExecution] = field(default_factory=list)
    follow_up: str | None = None
    action_card: ActionCard | None = None
    emotional_analysis: EmotionalAnalysis | None = None


@dataclass
class ReplyEnvelope:
    """The response contract surfaced to callers."""

    reply: str
    model_used: str
    cards: list[dict[str, Any]] = field(default_factory=list)
    follow_up: str | None = None
    action_card: ActionCard | None = None
    emotional_analysis: EmotionalAnalysis | None = None
    diagnostics: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "success": True,
            "reply": self.reply,
            "cards": self.cards,
            "followUp": self.follow_up,
            "actionCard": self.action_card.to_dict() if self.action_card else None,
            "emotionalAnalysis": (
                self.emotional_analysis.to_dict() if self.emotional_analysis else None
            ),
            "modelUsed": self.model_used,
        }
        if self.diagnostics:
            data["diagnostics"] = list(self.diagnostics)
        return data


def last_user_message(history: list[ConversationTurn]) -> str:
    """Content of the most recent ``user`` turn, or an empty string."""
    for turn in reversed(history):
        if turn.role == "user":
            return turn.content
    return ""
