"""Admission prediction from last year's closing ranks.

A student's chance at a seat is read off the ratio between their rank and
the closing rank for the same exam, branch and category:

    ratio <= 0.80  -> safe       (80-95%)
    ratio <= 1.00  -> moderate   (50-80%)
    ratio <= 1.25  -> ambitious  (20-50%)
    otherwise      -> not shown

When a college publishes no cutoff for the student's category, the General
cutoff is used instead and the entry says so.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from compass.core.storage.models import College, Cutoff
from compass.core.storage.repository import CollegeRepository
from compass.domains.admissions.domain_logic.exams import EXAMS, is_compatible

logger = logging.getLogger(__name__)

SAFE_RATIO = 0.80
MODERATE_RATIO = 1.00
AMBITIOUS_RATIO = 1.25

MAX_PER_BUCKET = 5

GENERAL = "General"

CHANCE_LABELS = {
    "safe": "Strong Chance",
    "moderate": "Good Chance",
    "ambitious": "Reach Goal",
}


@dataclass
class Chance:
    """Classification of one rank against one closing rank."""

    bucket: str
    probability: int
    ratio: float


def classify(rank: int, closing_rank: int) -> Chance | None:
    """Bucket a rank against a closing rank, or None when out of reach."""
    if rank <= 0 or closing_rank <= 0:
        return None
    ratio = rank / closing_rank

    if ratio <= SAFE_RATIO:
        bucket, low, high, span = "safe", 80, 95, (SAFE_RATIO - ratio) / SAFE_RATIO
    elif ratio <= MODERATE_RATIO:
        bucket, low, high = "moderate", 50, 80
        span = (MODERATE_RATIO - ratio) / (MODERATE_RATIO - SAFE_RATIO)
    elif ratio <= AMBITIOUS_RATIO:
        bucket, low, high = "ambitious", 20, 50
        span = (AMBITIOUS_RATIO - ratio) / (AMBITIOUS_RATIO - MODERATE_RATIO)
    else:
        return None

    probability = round(low + (high - low) * span)
    return Chance(bucket=bucket, probability=max(5, min(95, probability)), ratio=ratio)


def _pick_cutoff(cutoffs: list[Cutoff], category: str) -> tuple[Cutoff | None, bool]:
    """Cutoff for ``category``, else General. Second value is True on fallback."""
    for cutoff in cutoffs:
        if cutoff.category.lower() == category.lower():
            return cutoff, False
    if category.lower() != GENERAL.lower():
        for cutoff in cutoffs:
            if cutoff.category.lower() == GENERAL.lower():
                return cutoff, True
    return None, False


def _latest_by_college_branch(
    rows: list[tuple[College, Cutoff]],
) -> list[tuple[College, str, list[Cutoff]]]:
    """Group joined rows by (college, branch), keeping only the newest year."""
    groups: dict[tuple[int, str], tuple[College, list[Cutoff]]] = {}
    for college, cutoff in rows:
        key = (college.id, cutoff.branch)
        if key not in groups:
            groups[key] = (college, [])
        groups[key][1].append(cutoff)

    latest: list[tuple[College, str, list[Cutoff]]] = []
    for (_, branch), (college, cutoffs) in groups.items():
        newest = max(c.year for c in cutoffs)
        latest.append((college, branch, [c for c in cutoffs if c.year == newest]))
    return latest


def evaluate(
    repository: CollegeRepository,
    exam: str,
    rank: int,
    *,
    category: str = GENERAL,
    target_city: str | None = None,
    branch: str | None = None,
) -> list[dict[str, Any]]:
    """Every reachable (college, branch) for the exam, most competitive first."""
    rows = repository.find_cutoffs(exam, branch=branch, city=target_city)
    entries: list[dict[str, Any]] = []

    for college, branch_name, cutoffs in _latest_by_college_branch(rows):
        if not is_compatible(exam, college.institution_type, college.state):
            logger.warning(
                "Skipping %s: %s does not admit through %s",
                college.name, college.institution_type, exam,
            )
            continue

        cutoff, fell_back = _pick_cutoff(cutoffs, category)
        if cutoff is None:
            continue
        chance = classify(rank, cutoff.closing_rank)
        if chance is None:
            continue

        entries.append({
            "collegeName": college.name,
            "acronym": college.acronym,
            "branch": branch_name,
            "cutoffRank": cutoff.closing_rank,
            "yourRank": rank,
            "margin": cutoff.closing_rank - rank,
            "probability": chance.probability,
            "chanceCategory": chance.bucket,
            "chanceLabel": CHANCE_LABELS[chance.bucket],
            "reason": _reason(chance, rank, cutoff),
            "location": college.location,
            "collegeType": college.institution_type,
            "year": cutoff.year,
            "categoryUsed": cutoff.category,
            "categoryNote": (
                f"No {category} cutoff published; General cutoff used"
                if fell_back else None
            ),
        })

    entries.sort(key=lambda e: (e["cutoffRank"], e["collegeName"], e["branch"]))
    return entries


def _reason(chance: Chance, rank: int, cutoff: Cutoff) -> str:
    if chance.bucket == "safe":
        return (
            f"Your rank {rank} is comfortably inside the {cutoff.year} closing rank "
            f"of {cutoff.closing_rank}."
        )
    if chance.bucket == "moderate":
        return (
            f"Your rank {rank} is just inside the {cutoff.year} closing rank "
            f"of {cutoff.closing_rank}; keep this high in your preferences."
        )
    return (
        f"Your rank {rank} is slightly beyond the {cutoff.year} closing rank "
        f"of {cutoff.closing_rank}; worth trying if cutoffs move."
    )


def predict_admission(
    repository: CollegeRepository,
    exam: str,
    rank: int,
    *,
    category: str | None = None,
    home_state: str | None = None,
    target_city: str | None = None,
    branch: str | None = None,
) -> dict[str, Any]:
    """Safe / moderate / ambitious options for a resolved exam and rank."""
    category = category or GENERAL
    profile = EXAMS[exam]
    entries = evaluate(
        repository, exam, rank, category=category, target_city=target_city, branch=branch
    )

    results: dict[str, list[dict[str, Any]]] = {"safe": [], "moderate": [], "ambitious": []}
    for entry in entries:
        bucket = results[entry["chanceCategory"]]
        if len(bucket) < MAX_PER_BUCKET:
            bucket.append(entry)

    total = sum(len(bucket) for bucket in results.values())
    fallback_count = sum(
        1 for bucket in results.values() for entry in bucket if entry["categoryNote"]
    )

    exam_info = profile.to_dict()
    if profile.state and home_state and home_state.lower() != profile.state.lower():
        exam_info["homeStateNote"] = (
            f"{exam} seats are mostly reserved for {profile.state} students; "
            f"candidates from {home_state} compete for a small unreserved share."
        )

    return {
        "found": total > 0,
        "inputSummary": {
            "exam": exam,
            "rank": rank,
            "category": category,
            "homeState": home_state,
            "targetCity": target_city,
        },
        "examInfo": exam_info,
        "totalFound": total,
        "results": results,
        "meritFallbackInfo": (
            {
                "count": fallback_count,
                "note": (
                    f"{fallback_count} option(s) have no published {category} cutoff, "
                    "so the General cutoff was used."
                ),
            }
            if fallback_count else None
        ),
        "message": (
            None if total else
            f"No colleges found for {exam} rank {rank} with the given filters."
        ),
    }


def search_by_rank(
    repository: CollegeRepository,
    exam: str,
    rank: int,
    *,
    category: str | None = None,
    branch: str | None = None,
    limit: int = 10,
) -> dict[str, Any]:
    """Flat list of reachable colleges, most competitive first."""
    category = category or GENERAL
    entries = evaluate(repository, exam, rank, category=category, branch=branch)[: max(1, limit)]
    return {
        "found": bool(entries),
        "exam": exam,
        "rank": rank,
        "category": category,
        "count": len(entries),
        "colleges": [
            {
                "collegeName": e["collegeName"],
                "branch": e["branch"],
                "cutoffRank": e["cutoffRank"],
                "location": e["location"],
                "collegeType": e["collegeType"],
                "admissionChance": e["probability"],
                "chanceCategory": e["chanceCategory"],
                "marginFromCutoff": e["margin"],
            }
            for e in entries
        ],
    }
