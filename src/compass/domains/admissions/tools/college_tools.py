"""Grounding tools: read-only college queries offered to every provider.

These are the only legitimate source of cutoffs, fees and college facts in a
reply. Each executor takes the provider's argument dict and returns a JSON
record; problems come back as ``{"error": true, ...}`` sentinels.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from compass.core.conversation.models import CATEGORIES
from compass.core.tools.registry import ToolDefinition, ToolRegistry, tool_error
from compass.domains.admissions.domain_logic.exams import (
    EXAMS,
    VALID_EXAMS,
    is_compatible,
    required_exams,
    resolve_exam,
)
from compass.domains.admissions.domain_logic.prediction import predict_admission, search_by_rank

if TYPE_CHECKING:
    from compass.core.storage.repository import CollegeRepository

logger = logging.getLogger(__name__)

_EXAM_PROPERTY = {
    "type": "string",
    "description": (
        "The entrance exam the rank belongs to. REQUIRED: ask the student if they "
        f"have not said it. One of: {', '.join(VALID_EXAMS)}."
    ),
}
_CATEGORY_PROPERTY = {
    "type": "string",
    "description": f"Reservation category: {', '.join(CATEGORIES)}. Defaults to General.",
}


def _category(value: Any) -> str | None:
    if not isinstance(value, str) or not value.strip():
        return None
    for category in CATEGORIES:
        if category.lower() == value.strip().lower():
            return category
    return value.strip()


def _unknown_exam(value: Any) -> dict[str, Any]:
    return tool_error(
        f"Unrecognized exam: {value!r}.",
        validExams=VALID_EXAMS,
    )


def _college_not_found(name: str) -> dict[str, Any]:
    return tool_error(
        f"College {name!r} was not found in the database.",
        found=False,
        hint="Check the spelling or try the official name or acronym.",
    )


def register_college_tools(registry: ToolRegistry, repository: CollegeRepository) -> None:
    """Register the admissions grounding tools on the tool registry."""

    def predict(args: dict[str, Any]) -> dict[str, Any]:
        exam = resolve_exam(args.get("exam"))
        if exam is None:
            return _unknown_exam(args.get("exam"))
        rank = args["rank"]
        if rank <= 0:
            return tool_error("Rank must be a positive number.")
        return predict_admission(
            repository,
            exam,
            rank,
            category=_category(args.get("category")),
            home_state=args.get("homeState"),
            target_city=args.get("targetCity"),
            branch=args.get("branch"),
        )

    registry.register(ToolDefinition(
        name="predict_admission",
        description=(
            "Predict admission chances for a rank in a specific exam. Returns Safe, "
            "Moderate and Ambitious options using last year's closing ranks. Only call "
            "this once the student has named their exam; never guess it."
        ),
        parameters={
            "type": "object",
            "properties": {
                "exam": _EXAM_PROPERTY,
                "rank": {"type": "integer", "description": "The student's rank in that exam."},
                "category": _CATEGORY_PROPERTY,
                "homeState": {"type": "string", "description": "Student's home state."},
                "targetCity": {
                    "type": "string",
                    "description": "Only show colleges in this city (e.g. Hyderabad).",
                },
                "branch": {
                    "type": "string",
                    "description": "Preferred branch, e.g. Computer Science.",
                },
            },
            "required": ["exam", "rank"],
        },
        executor=predict,
        requires_exam=True,
    ))

    def check_eligibility(args: dict[str, Any]) -> dict[str, Any]:
        exam = resolve_exam(args.get("exam"))
        if exam is None:
            return _unknown_exam(args.get("exam"))
        college = repository.find_college(args["collegeName"])
        if college is None:
            return _college_not_found(args["collegeName"])

        eligible = is_compatible(exam, college.institution_type, college.state)
        accepted = required_exams(college.institution_type, college.state)
        if eligible:
            message = f"{college.name} admits students through {exam}."
            suggestion = None
        else:
            message = f"{college.name} does not accept {exam}."
            suggestion = (
                f"{college.name} admits through {', '.join(accepted)}. "
                f"With {exam} you can target {EXAMS[exam].description.lower()}."
            )
        return {
            "collegeName": college.name,
            "examProvided": exam,
            "eligible": eligible,
            "requiredExam": ", ".join(accepted) if accepted else None,
            "message": message,
            "suggestion": suggestion,
        }

    registry.register(ToolDefinition(
        name="check_college_eligibility",
        description=(
            "Check whether a college accepts a given exam (e.g. 'Can I get IIT Bombay "
            "with TS EAMCET?'). Use before discussing a specific college with a student "
            "whose exam is known."
        ),
        parameters={
            "type": "object",
            "properties": {
                "collegeName": {"type": "string", "description": "College name or acronym."},
                "exam": _EXAM_PROPERTY,
            },
            "required": ["collegeName", "exam"],
        },
        executor=check_eligibility,
    ))

    def compare(args: dict[str, Any]) -> dict[str, Any]:
        names = [n for n in args["collegeNames"] if isinstance(n, str) and n.strip()]
        if len(names) < 2:
            return tool_error("Provide at least two colleges to compare.")

        comparison: list[dict[str, Any]] = []
        not_found: list[str] = []
        for name in names[:4]:
            college = repository.find_college(name)
            if college is None:
                not_found.append(name)
                continue
            comparison.append({
                "name": college.name,
                "acronym": college.acronym,
                "location": college.location,
                "institutionType": college.institution_type,
                "nirfRank": college.nirf_rank,
                "generalFees": college.annual_fees,
                "branches": college.branches,
                "acceptedExams": required_exams(college.institution_type, college.state),
            })
        if not comparison:
            return tool_error("None of the requested colleges were found.", notFound=not_found)
        return {"found": True, "comparison": comparison, "notFound": not_found}

    registry.register(ToolDefinition(
        name="compare_colleges",
        description="Compare 2-4 colleges side by side: location, NIRF rank, fees, branches.",
        parameters={
            "type": "object",
            "properties": {
                "collegeNames": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Names or acronyms of the colleges to compare.",
                },
            },
            "required": ["collegeNames"],
        },
        executor=compare,
    ))

    def details(args: dict[str, Any]) -> dict[str, Any]:
        college = repository.find_college(args["collegeName"])
        if college is None:
            return _college_not_found(args["collegeName"])
        summary = college.summary()
        summary["acceptedExams"] = required_exams(college.institution_type, college.state)
        return {"found": True, "college": summary}

    registry.register(ToolDefinition(
        name="get_college_details",
        description="Get details of one college: location, type, NIRF rank, fees, branches.",
        parameters={
            "type": "object",
            "properties": {
                "collegeName": {"type": "string", "description": "College name or acronym."},
            },
            "required": ["collegeName"],
        },
        executor=details,
    ))

    def search(args: dict[str, Any]) -> dict[str, Any]:
        exam = resolve_exam(args.get("exam"))
        if exam is None:
            return _unknown_exam(args.get("exam"))
        rank = args["rank"]
        if rank <= 0:
            return tool_error("Rank must be a positive number.")
        return search_by_rank(
            repository,
            exam,
            rank,
            category=_category(args.get("category")),
            branch=args.get("branch"),
            limit=args.get("limit") or 10,
        )

    registry.register(ToolDefinition(
        name="search_colleges_by_rank",
        description=(
            "List colleges reachable with a rank in a specific exam, most competitive "
            "first. Requires the exam; never guess it."
        ),
        parameters={
            "type": "object",
            "properties": {
                "exam": _EXAM_PROPERTY,
                "rank": {"type": "integer", "description": "The student's rank in that exam."},
                "category": _CATEGORY_PROPERTY,
                "branch": {"type": "string", "description": "Preferred branch."},
                "limit": {"type": "integer", "description": "Maximum results (default 10)."},
            },
            "required": ["exam", "rank"],
        },
        executor=search,
        requires_exam=True,
    ))

    def affordable(args: dict[str, Any]) -> dict[str, Any]:
        budget = args["maxBudget"]
        if budget <= 0:
            return tool_error("maxBudget must be a positive amount in INR.")

        exam = None
        if args.get("exam"):
            exam = resolve_exam(args["exam"])
            if exam is None:
                return _unknown_exam(args["exam"])

        colleges = repository.list_colleges(state=args.get("state"), max_fees=int(budget))
        if exam is not None:
            colleges = [c for c in colleges if is_compatible(exam, c.institution_type, c.state)]
        colleges.sort(key=lambda c: (c.annual_fees or 0, c.name))
        colleges = colleges[: max(1, args.get("limit") or 10)]

        return {
            "found": bool(colleges),
            "maxBudget": budget,
            "exam": exam,
            "count": len(colleges),
            "colleges": [
                {
                    "name": c.name,
                    "location": c.location,
                    "fees": c.annual_fees,
                    "nirfRank": c.nirf_rank,
                    "institutionType": c.institution_type,
                }
                for c in colleges
            ],
        }

    registry.register(ToolDefinition(
        name="get_affordable_colleges",
        description=(
            "Find colleges whose annual fees fit a budget (INR), optionally limited to "
            "colleges that accept a given exam or sit in a given state."
        ),
        parameters={
            "type": "object",
            "properties": {
                "maxBudget": {"type": "number", "description": "Maximum annual fees in INR."},
                "exam": {"type": "string", "description": "Only colleges accepting this exam."},
                "state": {"type": "string", "description": "Only colleges in this state."},
                "limit": {"type": "integer", "description": "Maximum results (default 10)."},
            },
            "required": ["maxBudget"],
        },
        executor=affordable,
    ))

    def cutoff_data(args: dict[str, Any]) -> dict[str, Any]:
        college = repository.find_college(args["collegeName"])
        if college is None:
            return _college_not_found(args["collegeName"])

        exam = None
        if args.get("exam"):
            exam = resolve_exam(args["exam"])
            if exam is None:
                return _unknown_exam(args["exam"])

        cutoffs = repository.get_cutoffs(
            college.id,
            exam=exam,
            category=_category(args.get("category")),
            branch=args.get("branch"),
        )
        return {
            "found": bool(cutoffs),
            "collegeName": college.name,
            "cutoffs": [
                {
                    "exam": c.exam,
                    "branch": c.branch,
                    "category": c.category,
                    "closingRank": c.closing_rank,
                    "year": c.year,
                }
                for c in cutoffs
            ],
        }

    registry.register(ToolDefinition(
        name="get_cutoff_data",
        description="Get published closing ranks for a college, by exam, branch and category.",
        parameters={
            "type": "object",
            "properties": {
                "collegeName": {"type": "string", "description": "College name or acronym."},
                "exam": {"type": "string", "description": "Only cutoffs for this exam."},
                "category": _CATEGORY_PROPERTY,
                "branch": {"type": "string", "description": "Only cutoffs for this branch."},
            },
            "required": ["collegeName"],
        },
        executor=cutoff_data,
    ))

    logger.info("Registered %d college tools", len(registry))
