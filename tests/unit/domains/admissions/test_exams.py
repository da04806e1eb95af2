"""Tests for exam resolution and the exam-college compatibility table."""

from __future__ import annotations

import pytest

from compass.domains.admissions.domain_logic.exams import (
    VALID_EXAMS,
    compatibility_table,
    detect_exam_in_text,
    is_compatible,
    mentions_ambiguous_exam,
    required_exams,
    resolve_exam,
)


class TestResolveExam:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("JEE Main", "JEE Main"),
            ("jee mains", "JEE Main"),
            ("JEE-Advanced", "JEE Advanced"),
            ("ts eamcet", "TS EAMCET"),
            ("TSEAMCET", "TS EAMCET"),
            ("tg eapcet", "TS EAMCET"),
            ("ap_eamcet", "AP EAMCET"),
            ("bitsat", "BITSAT"),
            ("NEET UG", "NEET"),
            ("mht-cet", "MHT CET"),
        ],
    )
    def test_aliases(self, value, expected):
        assert resolve_exam(value) == expected

    @pytest.mark.parametrize("value", [None, "", "  ", "eamcet", "CET", 42, "SAT"])
    def test_unresolvable(self, value):
        assert resolve_exam(value) is None

    def test_valid_exams_are_canonical(self):
        assert all(resolve_exam(name) == name for name in VALID_EXAMS)


class TestDetectExam:
    def test_detects_in_sentence(self):
        assert detect_exam_in_text("My TS EAMCET rank is 5000") == "TS EAMCET"
        assert detect_exam_in_text("got 1200 in jee advanced!") == "JEE Advanced"

    def test_longest_alias_wins(self):
        assert detect_exam_in_text("I wrote JEE Main and JEE Advanced") == "JEE Advanced"
        assert detect_exam_in_text("jee advanced rank 900") == "JEE Advanced"

    def test_bare_words_not_treated_as_exams(self):
        assert detect_exam_in_text("My advanced maths is weak") is None
        assert detect_exam_in_text("") is None

    def test_ambiguous_eamcet(self):
        assert mentions_ambiguous_exam("my eamcet rank is 5000")
        assert not mentions_ambiguous_exam("my ts eamcet rank is 5000")
        assert not mentions_ambiguous_exam("my rank is 5000")


class TestCompatibility:
    @pytest.mark.parametrize(
        "exam, institution_type, state, expected",
        [
            ("JEE Advanced", "IIT", "Maharashtra", True),
            ("JEE Main", "IIT", "Maharashtra", False),
            ("JEE Main", "NIT", "Telangana", True),
            ("JEE Main", "GFTI", "Jharkhand", True),
            ("BITSAT", "BITS", "Goa", True),
            ("TS EAMCET", "STATE", "Telangana", True),
            ("TS EAMCET", "STATE", "Andhra Pradesh", False),
            ("TS EAMCET", "NIT", "Telangana", False),
            ("AP EAMCET", "STATE", "Andhra Pradesh", True),
            ("NEET", "MEDICAL", "Delhi", True),
            ("NEET", "STATE", "Delhi", False),
            ("UNKNOWN", "STATE", "Delhi", False),
        ],
    )
    def test_is_compatible(self, exam, institution_type, state, expected):
        assert is_compatible(exam, institution_type, state) is expected

    def test_required_exams(self):
        assert required_exams("IIT") == ["JEE Advanced"]
        assert required_exams("STATE", "Karnataka") == ["KCET"]
        assert required_exams("STATE", "Goa") == []

    def test_compatibility_table(self):
        table = compatibility_table()
        assert [row["name"] for row in table] == VALID_EXAMS
        ts = next(row for row in table if row["name"] == "TS EAMCET")
        assert ts["state"] == "Telangana"
        assert ts["institutionTypes"] == ["STATE"]
