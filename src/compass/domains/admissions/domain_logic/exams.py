"""Entrance exams and the exam-college compatibility table.

Every admissions decision starts here: a rank only means something relative
to one exam, and each exam feeds a fixed set of institutions. The table is
static and consulted by the prediction gate, the tool executors and card
synthesis alike.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

# Institution types stored in the college catalogue.
IIT = "IIT"
NIT = "NIT"
IIIT = "IIIT"
GFTI = "GFTI"
BITS = "BITS"
STATE = "STATE"
MEDICAL = "MEDICAL"

INSTITUTION_TYPES = (IIT, NIT, IIIT, GFTI, BITS, STATE, MEDICAL)


@dataclass(frozen=True)
class ExamProfile:
    """An entrance exam and the institutions that admit through it."""

    name: str
    level: str
    institution_types: frozenset[str]
    description: str
    state: str | None = None
    aliases: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "level": self.level,
            "institutionTypes": sorted(self.institution_types),
            "state": self.state,
            "description": self.description,
        }


EXAMS: dict[str, ExamProfile] = {
    "JEE Main": ExamProfile(
        name="JEE Main",
        level="national",
        institution_types=frozenset({NIT, IIIT, GFTI}),
        description="National exam for NITs, IIITs and other centrally funded institutes",
        aliases=("jee main", "jee mains", "jeemain", "jeemains", "mains"),
    ),
    "JEE Advanced": ExamProfile(
        name="JEE Advanced",
        level="national",
        institution_types=frozenset({IIT}),
        description="National exam for the Indian Institutes of Technology",
        aliases=("jee advanced", "jee adv", "jeeadvanced", "jee advance", "advanced"),
    ),
    "TS EAMCET": ExamProfile(
        name="TS EAMCET",
        level="state",
        institution_types=frozenset({STATE}),
        state="Telangana",
        description="Telangana state exam for engineering colleges in Telangana",
        aliases=("ts eamcet", "tseamcet", "ts eapcet", "tg eapcet", "telangana eamcet"),
    ),
    "AP EAMCET": ExamProfile(
        name="AP EAMCET",
        level="state",
        institution_types=frozenset({STATE}),
        state="Andhra Pradesh",
        description="Andhra Pradesh state exam for engineering colleges in Andhra Pradesh",
        aliases=("ap eamcet", "apeamcet", "ap eapcet", "andhra eamcet"),
    ),
    "BITSAT": ExamProfile(
        name="BITSAT",
        level="institute",
        institution_types=frozenset({BITS}),
        description="BITS admission test for the Pilani, Goa and Hyderabad campuses",
        aliases=("bitsat",),
    ),
    "NEET": ExamProfile(
        name="NEET",
        level="national",
        institution_types=frozenset({MEDICAL}),
        description="National exam for MBBS and BDS seats in medical colleges",
        aliases=("neet", "neet ug"),
    ),
    "KCET": ExamProfile(
        name="KCET",
        level="state",
        institution_types=frozenset({STATE}),
        state="Karnataka",
        description="Karnataka state exam for engineering colleges in Karnataka",
        aliases=("kcet", "karnataka cet"),
    ),
    "MHT CET": ExamProfile(
        name="MHT CET",
        level="state",
        institution_types=frozenset({STATE}),
        state="Maharashtra",
        description="Maharashtra state exam for engineering colleges in Maharashtra",
        aliases=("mht cet", "mhtcet", "maharashtra cet"),
    ),
    "WBJEE": ExamProfile(
        name="WBJEE",
        level="state",
        institution_types=frozenset({STATE}),
        state="West Bengal",
        description="West Bengal state exam for engineering colleges in West Bengal",
        aliases=("wbjee", "wb jee"),
    ),
}

VALID_EXAMS: list[str] = list(EXAMS)

# Unqualified "eamcet" could be either state; callers must ask which one.
AMBIGUOUS_EXAM_WORDS = ("eamcet", "eapcet")


def _normalize(value: str) -> str:
    value = re.sub(r"[-_/]+", " ", value.lower())
    return " ".join(value.split())


_ALIAS_INDEX: dict[str, str] = {}
for _profile in EXAMS.values():
    for _alias in (_profile.name, *_profile.aliases):
        _ALIAS_INDEX[_normalize(_alias)] = _profile.name
        _ALIAS_INDEX[_normalize(_alias).replace(" ", "")] = _profile.name

# Longest aliases first so "jee advanced" is tried before "advanced".
_DETECTION_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"\b" + re.escape(alias).replace(r"\ ", r"[\s\-_]*") + r"\b"), name)
    for alias, name in sorted(
        ((a, p.name) for p in EXAMS.values() for a in (_normalize(p.name), *p.aliases)),
        key=lambda item: len(item[0]),
        reverse=True,
    )
    if alias not in ("advanced", "mains")
]


def resolve_exam(value: Any) -> str | None:
    """Return the canonical exam name for ``value``, or None if unrecognized."""
    if not isinstance(value, str) or not value.strip():
        return None
    key = _normalize(value)
    return _ALIAS_INDEX.get(key) or _ALIAS_INDEX.get(key.replace(" ", ""))


def detect_exam_in_text(text: str) -> str | None:
    """Find an explicitly named exam in free text."""
    if not text:
        return None
    lower = text.lower()
    for pattern, name in _DETECTION_PATTERNS:
        if pattern.search(lower):
            return name
    return None


def mentions_ambiguous_exam(text: str) -> bool:
    lower = (text or "").lower()
    return any(word in lower for word in AMBIGUOUS_EXAM_WORDS) and detect_exam_in_text(lower) is None


def is_compatible(exam: str, institution_type: str, state: str | None = None) -> bool:
    """True when ``exam`` admits students to an institution of this type/state."""
    profile = EXAMS.get(exam)
    if profile is None:
        return False
    if institution_type not in profile.institution_types:
        return False
    if profile.state is not None and state != profile.state:
        return False
    return True


def required_exams(institution_type: str, state: str | None = None) -> list[str]:
    """Exams through which an institution admits students."""
    return [name for name in EXAMS if is_compatible(name, institution_type, state)]


def compatibility_table() -> list[dict[str, Any]]:
    return [profile.to_dict() for profile in EXAMS.values()]
