"""Tests for the deterministic rule-based responder."""

from __future__ import annotations

import pytest

from compass.core.conversation.models import RULE_BASED_MODEL, ConversationTurn, UserContext
from compass.domains.admissions.domain_logic.rule_based import (
    DEGRADED_NOTE,
    RuleBasedResponder,
    detect_category,
    detect_rank,
    detect_state,
)

from conftest import SCENARIO_A, user


def _reply(message: str, context: UserContext | None = None, **kwargs) -> str:
    return RuleBasedResponder().respond(user(message), context, **kwargs).reply


class TestDetection:
    @pytest.mark.parametrize(
        "text, rank",
        [
            ("my rank is 100, general category", 100),
            ("rank: 12,500", 12500),
            ("i got 5,000 rank in eamcet", 5000),
            ("i got 45th rank", 45),
            ("my rank is 0", None),
            ("no numbers here", None),
        ],
    )
    def test_detect_rank(self, text, rank):
        assert detect_rank(text) == rank

    def test_detect_category(self):
        assert detect_category("i am from sc category") == "SC"
        assert detect_category("obc-ncl student") == "OBC"
        assert detect_category("i got 1st rank") is None

    def test_detect_state(self):
        assert detect_state("i live in tamil nadu") == "Tamil Nadu"
        assert detect_state("hyderabad") is None


class TestIntents:
    @pytest.mark.parametrize("message", ["hello", "Hi there!", "What can you do?"])
    def test_greeting(self, message):
        assert _reply(message).startswith("Hi! I'm your Compass admissions mentor")

    def test_scenario_a_asks_for_exam(self):
        reply = _reply(SCENARIO_A)
        assert "Which exam is this rank from?" in reply
        assert "100" in reply

    def test_greeting_with_rank_still_asks_for_exam(self):
        assert "Which exam is this rank from?" in _reply("Hi, my rank is 4000")

    def test_ambiguous_eamcet_asks_which_state(self):
        reply = _reply("My eamcet rank is 5000")
        assert "TS EAMCET (Telangana) or AP EAMCET (Andhra Pradesh)" in reply

    def test_exam_with_full_profile(self):
        reply = _reply("My TS EAMCET rank is 5000, OBC, from Telangana")
        assert reply.startswith("Great, TS EAMCET it is!")
        assert "rank of 5,000 in the OBC category" in reply

    def test_exam_asks_for_missing_details(self):
        reply = _reply("I wrote JEE Main")
        assert "your JEE Main rank" in reply
        assert "your category" in reply
        assert "your home state" in reply

    def test_exam_institution_mismatch(self):
        reply = _reply("Can I get IIT with TS EAMCET rank 3000?")
        assert reply.startswith("Quick heads-up: the IITs don't admit through TS EAMCET.")
        assert "state engineering colleges in Telangana" in reply

    def test_cross_exam_question(self):
        reply = _reply("Can I get into IIT with eamcet?")
        assert "the IITs goes through JEE Advanced, not EAMCET" in reply

    @pytest.mark.parametrize(
        "message, fragment",
        [
            ("What are the fees like?", "Fees vary a lot"),
            ("Which is better, CBIT or VNR?", "Happy to compare colleges"),
            ("What was the cutoff last year?", "Cutoffs depend on the exam"),
            ("ok", "I'm here to help you find the right college"),
        ],
    )
    def test_topic_intents(self, message, fragment):
        assert fragment in _reply(message)


class TestReply:
    def test_context_supplies_profile(self):
        context = UserContext(exam="NEET", rank=900, category="General", home_state="Delhi")
        reply = _reply("what now?", context)
        assert reply.startswith("Great, NEET it is! NEET is for medical colleges.")
        assert "rank of 900" in reply

    def test_degraded_prefix(self):
        assert _reply("hello", degraded=True).startswith(DEGRADED_NOTE)
        assert not _reply("hello").startswith(DEGRADED_NOTE)

    def test_reply_shape(self):
        reply = RuleBasedResponder().respond(
            [ConversationTurn("user", "I'm so confused and worried")]
        )
        assert reply.model == RULE_BASED_MODEL
        assert reply.tool_executions == []
        assert reply.emotional_analysis.emotion == "lowConfidence"
        assert reply.action_card.validation is not None
        assert reply.follow_up

    def test_uses_latest_user_turn(self):
        history = [
            ConversationTurn("user", "hello"),
            ConversationTurn("assistant", "Hi! Which exam?"),
            ConversationTurn("user", "My rank is 2500"),
        ]
        assert "2,500" in RuleBasedResponder().respond(history).reply

    def test_empty_history(self):
        assert RuleBasedResponder().respond([]).reply
