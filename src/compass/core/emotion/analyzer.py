"""Emotion classifier: lexical scoring of a student's message.

Scores free text against weighted trigger-phrase categories and returns the
primary emotion, its intensity, and whether the reply should open with a
validation sentence. Pure and total: no I/O, never raises.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Any

# ---------------------------------------------------------------------------
# Lexicons (declaration order is the tie-break order)
# ---------------------------------------------------------------------------

EMOTIONAL_MARKERS: dict[str, tuple[str, ...]] = {
    "lowConfidence": (
        "confused", "lost", "don't know", "unsure", "worried", "scared",
        "overwhelmed", "stressed", "anxious", "nervous", "helpless",
        "stuck", "frustrated", "afraid", "hopeless", "nothing", "failure",
        "can't", "unable", "impossible", "too hard", "give up",
    ),
    "urgency": (
        "urgent", "asap", "quickly", "emergency", "deadline", "last chance",
        "running out", "running out of time", "too late", "missed",
    ),
    "confusion": (
        "confused", "don't understand", "unclear", "what does", "how does",
        "why", "explain", "not sure", "confusing", "complicated",
    ),
    "excitement": (
        "excited", "happy", "great", "awesome", "amazing", "fantastic",
        "wonderful", "excellent", "perfect", "love", "thrilled",
    ),
    "gratitude": (
        "thank", "thanks", "appreciate", "grateful", "helpful", "helped me",
    ),
    "determination": (
        "will", "going to", "determined", "committed", "motivated",
        "ready", "let's do this", "i can",
    ),
}

EMOTIONS: tuple[str, ...] = tuple(EMOTIONAL_MARKERS) + ("neutral",)

VALIDATION_EMOTIONS = frozenset({"lowConfidence", "urgency", "confusion"})

VALIDATION_TEMPLATES: dict[str, tuple[str, ...]] = {
    "lowConfidence": (
        "I completely understand feeling this way - choosing a college is one of the "
        "biggest decisions you'll make, and it's totally normal to feel overwhelmed.",
        "Hey, take a breath. What you're feeling right now? Completely valid. Every "
        "student I've helped has been exactly where you are.",
        "First, let me say this: feeling lost or confused doesn't mean you're behind. "
        "It means you're taking this seriously, which is actually a good sign.",
        "I hear you, and I want you to know something important: uncertainty at this "
        "stage is not weakness - it's wisdom. You're being thoughtful about your future.",
    ),
    "urgency": (
        "I can feel the time pressure, and I'm here to help you navigate this quickly "
        "but smartly.",
        "Okay, let's focus. When things feel urgent, having a clear next step is "
        "everything. I've got you.",
        "I understand you're working against the clock. Let's break this down into "
        "immediate action items.",
    ),
    "confusion": (
        "Great question! The fact that you're asking means you're thinking critically, "
        "which is exactly what you should be doing.",
        "I love that you're asking this - clarity beats confusion every time. Let me "
        "break this down for you.",
        "This is actually a very common point of confusion, and I'm glad you brought it "
        "up. Let's clear it up together.",
    ),
    "excitement": (
        "I love your energy! Let's channel that enthusiasm into finding the perfect "
        "college for you!",
        "Your excitement is contagious! This is exactly the attitude that will help you "
        "make the best choice.",
        "That's the spirit! When you're this motivated, great things happen. Let's find "
        "your ideal match!",
    ),
    "gratitude": (
        "You're so welcome! Helping students like you find their path is exactly why "
        "I'm here.",
        "I'm really happy I could help! Your success is what matters most to me.",
        "Thank you for trusting me with this decision. I'm here whenever you need guidance!",
    ),
    "neutral": (
        "Absolutely, I can help with that!",
        "Great question - let me guide you through this.",
        "I'm here to help you figure this out. Let's dive in!",
    ),
}

# Heuristic thresholds
_QUESTION_MARK_THRESHOLD = 1
_EXCLAMATION_THRESHOLD = 2
_LONG_MESSAGE_CHARS = 200


@dataclass
class EmotionalAnalysis:
    """Result of classifying a single user message."""

    emotion: str = "neutral"
    intensity: int = 0
    validation_needed: bool = False
    suggested_validation: str | None = None
    all_emotions: list[tuple[str, int]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Wire representation (camelCase keys)."""
        return {
            "emotion": self.emotion,
            "intensity": self.intensity,
            "validationNeeded": self.validation_needed,
            "suggestedValidation": self.suggested_validation,
            "allEmotions": [
                {"emotion": emotion, "score": score} for emotion, score in self.all_emotions
            ],
        }


def score_emotions(message: str) -> dict[str, int]:
    """Return the raw score of every category for ``message``."""
    lower = message.lower()
    scores = {emotion: 0 for emotion in EMOTIONAL_MARKERS}

    for emotion, phrases in EMOTIONAL_MARKERS.items():
        for phrase in phrases:
            scores[emotion] += lower.count(phrase)

    question_marks = message.count("?")
    if question_marks > _QUESTION_MARK_THRESHOLD:
        scores["confusion"] += question_marks

    exclamations = message.count("!")
    if exclamations > _EXCLAMATION_THRESHOLD:
        scores["excitement"] += exclamations

    # Long messages tend to carry anxiety.
    if len(message) > _LONG_MESSAGE_CHARS:
        scores["lowConfidence"] += 1

    return scores


def analyze_emotion(message: Any) -> EmotionalAnalysis:
    """Classify the emotional tone of ``message``.

    Empty or non-string input is neutral with zero intensity.
    """
    if not message or not isinstance(message, str):
        return EmotionalAnalysis()

    scores = score_emotions(message)
    # sorted() is stable, so equal scores keep declaration order.
    ranked = sorted(
        ((emotion, score) for emotion, score in scores.items() if score > 0),
        key=lambda item: item[1],
        reverse=True,
    )
    if not ranked:
        return EmotionalAnalysis()

    primary, intensity = ranked[0]
    validation_needed = primary in VALIDATION_EMOTIONS

    return EmotionalAnalysis(
        emotion=primary,
        intensity=intensity,
        validation_needed=validation_needed,
        suggested_validation=pick_validation(primary) if validation_needed else None,
        all_emotions=ranked,
    )


def pick_validation(emotion: str) -> str:
    """Pick a validation sentence from the emotion's template pool."""
    templates = VALIDATION_TEMPLATES.get(emotion) or VALIDATION_TEMPLATES["neutral"]
    return random.choice(templates)
