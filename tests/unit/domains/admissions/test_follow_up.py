"""Tests for keyword follow-up derivation."""

from __future__ import annotations

import pytest

from compass.domains.admissions.domain_logic.follow_up import (
    DEFAULT_FOLLOW_UP,
    derive_follow_up,
    keyword_follow_up,
)


@pytest.mark.parametrize(
    "reply, expected_start",
    [
        ("Please share your rank and category.", "Share your rank and category"),
        ("Which exam did you take?", "Once you share your rank"),
        ("I found 5 colleges for you.", "Want me to compare these colleges"),
        ("Here are your Safe options.", "Need help deciding"),
        ("The fees are about 1.4 lakh a year.", "Want to see more affordable options"),
        ("The cutoff was 4500 last year.", "Curious about your chances"),
        ("NIT Warangal is a great pick.", "Want to know more about this college"),
        ("The ECE program is strong.", "Wondering about other branches"),
    ],
)
def test_keyword_priority(reply, expected_start):
    assert keyword_follow_up(reply).startswith(expected_start)


def test_rank_and_category_beats_exam():
    reply = "Tell me your exam, rank and category."
    assert keyword_follow_up(reply).startswith("Share your rank and category")


def test_no_keyword():
    assert keyword_follow_up("Take a deep breath.") is None
    assert keyword_follow_up("") is None


def test_derive_falls_back_in_order():
    assert derive_follow_up("Take a deep breath.", "What else would you like to know?") == (
        "What else would you like to know?"
    )
    assert derive_follow_up("Take a deep breath.") == DEFAULT_FOLLOW_UP
    assert derive_follow_up("The cutoff is 900", "ignored").startswith("Curious")


@pytest.mark.parametrize(
    "reply",
    [
        "I feel you have great opportunities ahead.",
        "Take it one unit at a time, your community is proud of you.",
        "Keep feeding your curiosity.",
    ],
)
def test_keywords_match_whole_words_only(reply):
    assert keyword_follow_up(reply) is None


def test_plural_keywords_still_match():
    assert keyword_follow_up("Here are the IITs you asked about.").startswith("Want to know more")
    assert keyword_follow_up("Cutoffs moved a little this year.").startswith("Curious")
    assert keyword_follow_up("Share your ranks and categories.").startswith("Share your rank")
