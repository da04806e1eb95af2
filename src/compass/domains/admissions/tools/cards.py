"""Card synthesis: display projections of executed tool results.

Cards mirror tool-call order; within a prediction they run safe, moderate,
ambitious. Failed or blocked tool results contribute nothing.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from compass.core.conversation.models import ToolExecution
from compass.domains.admissions.domain_logic.exams import is_compatible, resolve_exam

logger = logging.getLogger(__name__)

CHANCE_ORDER = ("safe", "moderate", "ambitious")

_CHANCE_TEXT = {
    "safe": "Strong Chance",
    "moderate": "Good Chance",
    "ambitious": "Reach Goal",
}

_PREDICTION_FIELDS = (
    "collegeName", "acronym", "branch", "cutoffRank", "yourRank", "margin",
    "probability", "chanceLabel", "reason", "location", "collegeType", "year",
    "categoryUsed", "categoryNote",
)


def _prediction_cards(result: dict[str, Any]) -> list[dict[str, Any]]:
    results = result.get("results")
    if not results:
        return []

    cards: list[dict[str, Any]] = []
    summary = result.get("inputSummary")
    if summary:
        cards.append({
            "type": "prediction_summary",
            "exam": summary.get("exam"),
            "rank": summary.get("rank"),
            "category": summary.get("category"),
            "homeState": summary.get("homeState"),
            "targetCity": summary.get("targetCity"),
            "totalFound": result.get("totalFound"),
            "examInfo": result.get("examInfo"),
            "meritFallbackInfo": result.get("meritFallbackInfo"),
        })

    exam = resolve_exam((summary or {}).get("exam"))
    for chance in CHANCE_ORDER:
        for college in results.get(chance) or []:
            # Last line of defence for the exam-college table.
            if exam and not _row_compatible(exam, college):
                logger.warning(
                    "Dropped incompatible prediction card: %s for %s",
                    college.get("collegeName"), exam,
                )
                continue
            card = {
                "type": "prediction",
                "chanceCategory": chance,
                "chanceText": _CHANCE_TEXT[chance],
            }
            card.update({key: college.get(key) for key in _PREDICTION_FIELDS})
            cards.append(card)
    return cards


def _row_compatible(exam: str, college: dict[str, Any]) -> bool:
    location = college.get("location") or ""
    state = location.rsplit(", ", 1)[-1] if location else None
    return is_compatible(exam, college.get("collegeType", ""), state)


def _eligibility_check_card(result: dict[str, Any]) -> list[dict[str, Any]]:
    return [{
        "type": "eligibility_check",
        "collegeName": result.get("collegeName"),
        "examProvided": result.get("examProvided"),
        "eligible": result.get("eligible"),
        "requiredExam": result.get("requiredExam"),
        "message": result.get("message"),
        "suggestion": result.get("suggestion"),
    }]


def _eligibility_cards(result: dict[str, Any]) -> list[dict[str, Any]]:
    return [
        {
            "type": "eligibility",
            "collegeName": college.get("collegeName"),
            "branch": college.get("branch"),
            "cutoffRank": college.get("cutoffRank"),
            "location": college.get("location"),
            "probability": college.get("admissionChance"),
            "margin": college.get("marginFromCutoff"),
        }
        for college in result.get("colleges") or []
    ]


def _college_card(result: dict[str, Any]) -> list[dict[str, Any]]:
    college = result.get("college")
    if not college:
        return []
    return [{
        "type": "college",
        "collegeName": college.get("name"),
        "location": college.get("location"),
        "nirfRank": college.get("nirfRank"),
        "fees": college.get("fees"),
        "branches": college.get("branches"),
    }]


def _comparison_cards(result: dict[str, Any]) -> list[dict[str, Any]]:
    return [
        {
            "type": "comparison",
            "collegeName": college.get("name"),
            "location": college.get("location"),
            "fees": college.get("generalFees"),
            "nirfRank": college.get("nirfRank"),
        }
        for college in result.get("comparison") or []
    ]


def _cutoff_cards(result: dict[str, Any]) -> list[dict[str, Any]]:
    return [
        {
            "type": "cutoff",
            "collegeName": result.get("collegeName"),
            "branch": cutoff.get("branch"),
            "closingRank": cutoff.get("closingRank"),
            "category": cutoff.get("category"),
            "year": cutoff.get("year"),
        }
        for cutoff in result.get("cutoffs") or []
    ]


def _fee_cards(result: dict[str, Any]) -> list[dict[str, Any]]:
    return [
        {
            "type": "fees",
            "collegeName": college.get("name"),
            "location": college.get("location"),
            "generalFee": college.get("fees"),
            "nirfRank": college.get("nirfRank"),
        }
        for college in result.get("colleges") or []
    ]


CARD_BUILDERS: dict[str, Callable[[dict[str, Any]], list[dict[str, Any]]]] = {
    "predict_admission": _prediction_cards,
    "check_college_eligibility": _eligibility_check_card,
    "search_colleges_by_rank": _eligibility_cards,
    "get_college_details": _college_card,
    "compare_colleges": _comparison_cards,
    "get_cutoff_data": _cutoff_cards,
    "get_affordable_colleges": _fee_cards,
}


def build_cards(executions: list[ToolExecution]) -> list[dict[str, Any]]:
    """Project executed tool results into cards, in call order."""
    cards: list[dict[str, Any]] = []
    for execution in executions:
        if execution.failed:
            continue
        builder = CARD_BUILDERS.get(execution.call.name)
        if builder is None:
            continue
        cards.extend(builder(execution.result))
    return cards
