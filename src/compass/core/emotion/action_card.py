"""Action card helpers: next steps, inspiration and emotion-keyed follow-ups."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from compass.core.emotion.analyzer import EmotionalAnalysis

MAX_NEXT_STEPS = 3

INSPIRATION: dict[str, str] = {
    "lowConfidence": (
        "Every expert was once a beginner. You're not behind - you're exactly where "
        "you need to be."
    ),
    "urgency": "Pressure creates diamonds. You've got this!",
    "confusion": "Confusion is the beginning of understanding. Keep asking questions!",
    "excitement": "Your enthusiasm will open doors that qualification alone can't.",
    "gratitude": "Gratitude is the foundation of growth. You're on the right path!",
    "determination": "With determination like yours, success is inevitable.",
    "neutral": "One step at a time, one choice at a time. You'll find your way.",
}

EMOTION_FOLLOW_UPS: dict[str, str] = {
    "lowConfidence": "Remember, I'm here for every question - no matter how small it seems!",
    "urgency": "What's the most urgent thing you need help with right now?",
    "confusion": "Does that make sense? Feel free to ask me to explain any part!",
    "excitement": "What else would you like to explore?",
    "gratitude": "Anytime! What else can I help you with?",
    "neutral": "What else would you like to know?",
}


@dataclass
class NextStep:
    number: int
    action: str
    detail: str

    def to_dict(self) -> dict[str, Any]:
        return {"number": self.number, "action": self.action, "detail": self.detail}


@dataclass
class ActionCard:
    """Validation, next steps and encouragement attached to a reply."""

    validation: str | None
    next_steps: list[NextStep]
    inspiration: str
    mood: str
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "action_card",
            "validation": self.validation,
            "nextSteps": [step.to_dict() for step in self.next_steps],
            "inspiration": self.inspiration,
            "mood": self.mood,
            "timestamp": self.timestamp,
        }


def generate_micro_steps(context: Any, recommendation_count: int = 0) -> list[NextStep]:
    """Build the "next 3 steps" for a reply.

    ``context`` only needs ``rank``, ``category`` and ``exam`` attributes.
    """
    steps: list[NextStep] = []

    has_profile = all(
        getattr(context, attr, None) for attr in ("rank", "category", "exam")
    )
    if not has_profile:
        steps.append(NextStep(
            number=1,
            action="Share your complete details",
            detail=(
                "I need your exam name, rank, category, and home state to give you "
                "accurate predictions."
            ),
        ))
    else:
        steps.append(NextStep(
            number=1,
            action="Review your matches",
            detail=(
                f"I found {recommendation_count} colleges that match your profile. "
                "Look at the Safe options first."
            ),
        ))

    if recommendation_count > 0:
        steps.append(NextStep(
            number=2,
            action="Deep-dive on top 3",
            detail=(
                "Pick 3 colleges from your Safe/Moderate list. Ask me to compare them "
                "or check their fees and placements."
            ),
        ))
    else:
        steps.append(NextStep(
            number=2,
            action="Get personalized recommendations",
            detail=(
                "Once I have your details, I'll show you Safe, Moderate, and Ambitious "
                "options with probabilities."
            ),
        ))

    steps.append(NextStep(
        number=3,
        action="Create your preference list",
        detail=(
            "Start filling your counseling preferences with Safe options first, then "
            "Moderate, then Ambitious."
        ),
    ))
    return steps


def create_action_card(analysis: EmotionalAnalysis, next_steps: list[NextStep]) -> ActionCard:
    """Combine an emotional analysis and next steps into an ActionCard."""
    return ActionCard(
        validation=analysis.suggested_validation if analysis.validation_needed else None,
        next_steps=next_steps[:MAX_NEXT_STEPS],
        inspiration=INSPIRATION.get(analysis.emotion, INSPIRATION["neutral"]),
        mood=analysis.emotion,
    )


def emotion_follow_up(emotion: str) -> str:
    return EMOTION_FOLLOW_UPS.get(emotion, EMOTION_FOLLOW_UPS["neutral"])
