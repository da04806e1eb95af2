"""College catalogue loader: reads YAML seed data from disk."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from compass.core.storage.models import College, Cutoff
from compass.core.storage.repository import CollegeRepository

logger = logging.getLogger(__name__)

_REQUIRED_KEYS = ("name", "type", "city", "state")


class CatalogError(Exception):
    """Raised when a catalogue file is missing or malformed."""


def load_college_catalog(path: str | Path) -> list[College]:
    """Parse a YAML catalogue into College instances.

    Each cutoff entry lists closing ranks per category::

        cutoffs:
          - exam: TS EAMCET
            branch: Computer Science and Engineering
            ranks: {General: 1800, OBC: 3200}
    """
    path = Path(path)
    if not path.is_file():
        raise CatalogError(f"College catalogue does not exist: {path}")

    with open(path, encoding="utf-8") as f:
        try:
            data: dict[str, Any] = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise CatalogError(f"Invalid YAML in {path}: {exc}") from exc

    default_year = int(data.get("year", 0))
    colleges: list[College] = []
    for index, entry in enumerate(data.get("colleges", [])):
        missing = [key for key in _REQUIRED_KEYS if not entry.get(key)]
        if missing:
            raise CatalogError(f"College #{index} in {path} is missing {', '.join(missing)}")
        colleges.append(_parse_college(entry, default_year))
    return colleges


def _parse_college(entry: dict[str, Any], default_year: int) -> College:
    cutoffs: list[Cutoff] = []
    for item in entry.get("cutoffs", []):
        year = int(item.get("year", default_year))
        for category, closing_rank in (item.get("ranks") or {}).items():
            cutoffs.append(Cutoff(
                exam=item["exam"],
                branch=item["branch"],
                category=category,
                closing_rank=int(closing_rank),
                year=year,
            ))

    return College(
        name=entry["name"],
        acronym=entry.get("acronym"),
        institution_type=entry["type"],
        city=entry["city"],
        state=entry["state"],
        nirf_rank=entry.get("nirf_rank"),
        annual_fees=entry.get("fees"),
        website=entry.get("website"),
        cutoffs=cutoffs,
    )


def seed_repository(repository: CollegeRepository, path: str | Path) -> int:
    """Load a catalogue into an empty store. Returns the number of colleges present."""
    existing = repository.count_colleges()
    if existing:
        logger.info("College store already holds %d colleges; skipping seed", existing)
        return existing

    colleges = load_college_catalog(path)
    count = repository.save_colleges(colleges)
    logger.info("Seeded %d colleges from %s", count, path)
    return count
