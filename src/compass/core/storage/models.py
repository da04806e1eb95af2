"""Data models for the college store."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class Cutoff:
    """Closing rank for one exam/branch/category combination."""

    exam: str
    branch: str
    category: str
    closing_rank: int
    year: int


@dataclass
class College:
    """An institution and its admission cutoffs."""

    name: str
    institution_type: str  # IIT, NIT, IIIT, GFTI, BITS, STATE, MEDICAL
    city: str
    state: str
    acronym: str | None = None
    nirf_rank: int | None = None
    annual_fees: int | None = None
    website: str | None = None
    cutoffs: list[Cutoff] = field(default_factory=list)
    id: int | None = None

    @property
    def location(self) -> str:
        return f"{self.city}, {self.state}"

    @property
    def branches(self) -> list[str]:
        seen: list[str] = []
        for cutoff in self.cutoffs:
            if cutoff.branch not in seen:
                seen.append(cutoff.branch)
        return seen

    def summary(self) -> dict[str, Any]:
        """Projection used by tool results."""
        return {
            "name": self.name,
            "acronym": self.acronym,
            "institutionType": self.institution_type,
            "location": self.location,
            "city": self.city,
            "state": self.state,
            "nirfRank": self.nirf_rank,
            "fees": self.annual_fees,
            "website": self.website,
            "branches": self.branches,
        }
