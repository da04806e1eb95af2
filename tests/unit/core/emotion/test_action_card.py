"""Tests for action card construction."""

from __future__ import annotations

from compass.core.conversation.models import UserContext
from compass.core.emotion.action_card import (
    EMOTION_FOLLOW_UPS,
    INSPIRATION,
    create_action_card,
    emotion_follow_up,
    generate_micro_steps,
)
from compass.core.emotion.analyzer import EmotionalAnalysis, analyze_emotion


class TestMicroSteps:
    def test_incomplete_profile_asks_for_details(self):
        steps = generate_micro_steps(UserContext(rank=5000))
        assert [s.number for s in steps] == [1, 2, 3]
        assert steps[0].action == "Share your complete details"
        assert steps[1].action == "Get personalized recommendations"

    def test_complete_profile_with_matches(self):
        context = UserContext(exam="TS EAMCET", rank=5000, category="OBC")
        steps = generate_micro_steps(context, recommendation_count=10)
        assert steps[0].action == "Review your matches"
        assert "10 colleges" in steps[0].detail
        assert steps[1].action == "Deep-dive on top 3"
        assert steps[2].action == "Create your preference list"

    def test_none_context(self):
        steps = generate_micro_steps(None)
        assert steps[0].action == "Share your complete details"


class TestActionCard:
    def test_validation_only_when_needed(self):
        analysis = analyze_emotion("I feel so lost and stressed")
        card = create_action_card(analysis, generate_micro_steps(None))
        assert card.validation == analysis.suggested_validation
        assert card.mood == "lowConfidence"
        assert card.inspiration == INSPIRATION["lowConfidence"]

    def test_neutral_card(self):
        card = create_action_card(EmotionalAnalysis(), generate_micro_steps(None))
        assert card.validation is None
        assert card.inspiration == INSPIRATION["neutral"]

    def test_to_dict_shape(self):
        card = create_action_card(EmotionalAnalysis(), generate_micro_steps(None))
        payload = card.to_dict()
        assert payload["type"] == "action_card"
        assert len(payload["nextSteps"]) == 3
        assert payload["nextSteps"][0]["number"] == 1
        assert payload["timestamp"]


class TestFollowUps:
    def test_known_emotion(self):
        assert emotion_follow_up("urgency") == EMOTION_FOLLOW_UPS["urgency"]

    def test_unknown_emotion_falls_back_to_neutral(self):
        assert emotion_follow_up("determination") == EMOTION_FOLLOW_UPS["neutral"]
