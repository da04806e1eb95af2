"""Keyword-driven follow-up suggestions derived from a reply."""

from __future__ import annotations

import re

DEFAULT_FOLLOW_UP = (
    "Any other questions? I'm here to help with colleges, cutoffs, fees, or career advice!"
)


def _has(text: str, *words: str) -> bool:
    """Whole-word match, plurals included ("fee" hits "fees" but not "feel")."""
    pattern = r"\b(?:" + "|".join(map(re.escape, words)) + r")(?:s|es)?\b"
    return re.search(pattern, text) is not None


def keyword_follow_up(reply: str) -> str | None:
    """First matching follow-up in priority order, or None when nothing matches."""
    text = (reply or "").lower()
    if not text:
        return None

    if _has(text, "rank") and _has(text, "category", "categories"):
        return "Share your rank and category, and I'll show you personalized college options!"
    if _has(text, "exam") and not _has(text, "rank"):
        return "Once you share your rank, I can show you exactly which colleges you can get!"
    if _has(text, "college") and _has(text, "found"):
        return "Want me to compare these colleges or check their fees and placements?"
    if _has(text, "safe", "moderate", "ambitious"):
        return (
            "Need help deciding between these options? I can compare them or explain "
            "more about any college!"
        )
    if _has(text, "fee", "affordable"):
        return "Want to see more affordable options or compare fee structures?"
    if _has(text, "cutoff"):
        return "Curious about your chances at specific colleges? Just ask!"
    if _has(text, "bits", "iit", "nit"):
        return "Want to know more about this college or compare it with others?"
    if _has(text, "branch", "cse", "ece"):
        return "Wondering about other branches or career prospects? I can help!"
    return None


def derive_follow_up(reply: str, emotion_follow_up: str | None = None) -> str:
    """Keyword follow-up, else the emotion-keyed one, else the generic default."""
    return keyword_follow_up(reply) or emotion_follow_up or DEFAULT_FOLLOW_UP
