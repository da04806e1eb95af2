"""Tests for the admissions grounding tools, executed through the registry."""

from __future__ import annotations

import asyncio

from compass.core.tools.registry import ToolRegistry


def _run(coro):
    return asyncio.run(coro)


def _call(registry: ToolRegistry, name: str, **arguments):
    return _run(registry.execute(name, arguments))


class TestCatalogue:
    def test_all_tools_registered(self, tool_registry):
        assert tool_registry.names() == [
            "predict_admission",
            "check_college_eligibility",
            "compare_colleges",
            "get_college_details",
            "search_colleges_by_rank",
            "get_affordable_colleges",
            "get_cutoff_data",
        ]

    def test_prediction_tools_require_exam(self, tool_registry):
        assert tool_registry.prediction_tools() == {"predict_admission", "search_colleges_by_rank"}
        for name in tool_registry.prediction_tools():
            assert "exam" in tool_registry.get(name).required


class TestPredictAdmission:
    def test_resolves_alias(self, tool_registry):
        result = _call(tool_registry, "predict_admission", exam="tseamcet", rank=5000,
                       category="obc", targetCity="Hyderabad")
        assert result["inputSummary"]["exam"] == "TS EAMCET"
        assert result["inputSummary"]["category"] == "OBC"
        assert result["totalFound"] == 10

    def test_unknown_exam(self, tool_registry):
        result = _call(tool_registry, "predict_admission", exam="GATE", rank=10)
        assert result["error"] is True
        assert "TS EAMCET" in result["validExams"]

    def test_non_positive_rank(self, tool_registry):
        result = _call(tool_registry, "predict_admission", exam="NEET", rank=0)
        assert result["error"] is True

    def test_missing_rank_rejected_by_schema(self, tool_registry):
        result = _call(tool_registry, "predict_admission", exam="NEET")
        assert result["problems"] == ["missing required parameter 'rank'"]


class TestEligibility:
    def test_incompatible_exam(self, tool_registry):
        result = _call(tool_registry, "check_college_eligibility",
                       collegeName="IIT Bombay", exam="TS EAMCET")
        assert result["eligible"] is False
        assert result["requiredExam"] == "JEE Advanced"
        assert "does not accept TS EAMCET" in result["message"]
        assert result["suggestion"]

    def test_compatible_exam(self, tool_registry):
        result = _call(tool_registry, "check_college_eligibility",
                       collegeName="CBIT", exam="TS EAMCET")
        assert result["eligible"] is True
        assert result["suggestion"] is None

    def test_unknown_college(self, tool_registry):
        result = _call(tool_registry, "check_college_eligibility",
                       collegeName="Hogwarts", exam="NEET")
        assert result["error"] is True
        assert result["found"] is False


class TestCompareAndDetails:
    def test_compare(self, tool_registry):
        result = _call(tool_registry, "compare_colleges",
                       collegeNames=["NIT Warangal", "IIIT Allahabad", "Nowhere"])
        assert [c["acronym"] for c in result["comparison"]] == ["NIT Warangal", "IIIT Allahabad"]
        assert result["notFound"] == ["Nowhere"]
        assert result["comparison"][0]["acceptedExams"] == ["JEE Main"]

    def test_compare_needs_two(self, tool_registry):
        result = _call(tool_registry, "compare_colleges", collegeNames=["CBIT"])
        assert result["error"] is True

    def test_compare_none_found(self, tool_registry):
        result = _call(tool_registry, "compare_colleges", collegeNames=["Foo", "Bar"])
        assert result["error"] is True
        assert result["notFound"] == ["Foo", "Bar"]

    def test_details(self, tool_registry):
        result = _call(tool_registry, "get_college_details", collegeName="bits hyderabad")
        college = result["college"]
        assert college["location"] == "Hyderabad, Telangana"
        assert college["acceptedExams"] == ["BITSAT"]
        assert "Computer Science" in college["branches"]


class TestSearchAffordableCutoffs:
    def test_search_by_rank(self, tool_registry):
        result = _call(tool_registry, "search_colleges_by_rank",
                       exam="JEE Main", rank=5000, limit=2)
        assert result["count"] == 2
        assert result["exam"] == "JEE Main"

    def test_affordable_sorted_by_fees(self, tool_registry):
        result = _call(tool_registry, "get_affordable_colleges", maxBudget=50000,
                       state="Telangana")
        fees = [c["fees"] for c in result["colleges"]]
        assert fees == sorted(fees)
        assert all(fee <= 50000 for fee in fees)

    def test_affordable_filtered_by_exam(self, tool_registry):
        result = _call(tool_registry, "get_affordable_colleges", maxBudget=20000, exam="NEET")
        assert result["exam"] == "NEET"
        assert {c["institutionType"] for c in result["colleges"]} == {"MEDICAL"}

    def test_affordable_bad_budget(self, tool_registry):
        assert _call(tool_registry, "get_affordable_colleges", maxBudget=0)["error"] is True

    def test_cutoff_data(self, tool_registry):
        result = _call(tool_registry, "get_cutoff_data", collegeName="CBIT",
                       category="OBC", branch="Computer")
        assert result["cutoffs"] == [{
            "exam": "TS EAMCET",
            "branch": "Computer Science and Engineering",
            "category": "OBC",
            "closingRank": 4500,
            "year": 2024,
        }]

    def test_cutoff_data_unknown_exam(self, tool_registry):
        result = _call(tool_registry, "get_cutoff_data", collegeName="CBIT", exam="XYZ")
        assert result["error"] is True
