"""Rule-based counselor: the deterministic last resort.

Pure keyword and context matching over the latest user turn. It makes no
external calls, queries nothing and cannot fail, so every request gets an
answer even when every provider is down.
"""

from __future__ import annotations

import logging
import re
from dataclasses import replace

from compass.core.conversation.models import (
    RULE_BASED_MODEL,
    AdapterReply,
    ConversationTurn,
    UserContext,
    last_user_message,
)
from compass.core.emotion.action_card import (
    create_action_card,
    emotion_follow_up,
    generate_micro_steps,
)
from compass.core.emotion.analyzer import analyze_emotion
from compass.domains.admissions.domain_logic.exams import (
    EXAMS,
    detect_exam_in_text,
    is_compatible,
    mentions_ambiguous_exam,
)

logger = logging.getLogger(__name__)

DEGRADED_NOTE = (
    "I'm sorry, my full counseling engine is having trouble right now, so this is a "
    "simpler answer than usual. Please try again in a moment for detailed predictions."
)

_GREETING = re.compile(r"^\s*(hi|hii+|hello|hey|namaste|good (morning|afternoon|evening))\b")
_HELP = re.compile(r"\b(help|what can you do|how does this work|who are you)\b")
_RANK_PATTERNS = (
    re.compile(r"\brank\D{0,15}?(\d[\d,]*)"),
    re.compile(r"(\d[\d,]*)\s*(?:st|nd|rd|th)?\s+rank\b"),
)
_CATEGORY_WORDS = {
    "general": "General",
    "gen": "General",
    "ews": "EWS",
    "obc": "OBC",
    "sc": "SC",
    "st": "ST",
    "pwd": "PwD",
}
# Institution keywords and the catalogue type they stand for.
_INSTITUTION_WORDS = {
    "iit": "IIT",
    "nit": "NIT",
    "iiit": "IIIT",
    "bits": "BITS",
    "aiims": "MEDICAL",
    "mbbs": "MEDICAL",
}
_STATES = (
    "Andhra Pradesh", "Bihar", "Delhi", "Gujarat", "Karnataka", "Kerala",
    "Madhya Pradesh", "Maharashtra", "Odisha", "Punjab", "Rajasthan",
    "Tamil Nadu", "Telangana", "Uttar Pradesh", "West Bengal",
)

_INSTITUTION_LABELS = {
    "IIT": "the IITs",
    "NIT": "NITs",
    "IIIT": "IIITs",
    "GFTI": "other centrally funded institutes (GFTIs)",
    "BITS": "the BITS campuses",
    "STATE": "state engineering colleges",
    "MEDICAL": "medical colleges",
}


def _words(text: str) -> set[str]:
    return set(re.findall(r"\b[a-z]+\b", text))


def detect_rank(text: str) -> int | None:
    for pattern in _RANK_PATTERNS:
        match = pattern.search(text)
        if match:
            digits = match.group(1).replace(",", "")
            if digits.isdigit() and int(digits) > 0:
                return int(digits)
    return None


def detect_category(text: str) -> str | None:
    words = _words(text)
    for word, category in _CATEGORY_WORDS.items():
        if word in words:
            return category
    return None


def detect_state(text: str) -> str | None:
    for state in _STATES:
        if state.lower() in text:
            return state
    return None


def _mentioned_institutions(text: str) -> list[str]:
    words = _words(text)
    return [kind for word, kind in _INSTITUTION_WORDS.items() if word in words]


def _eligible_label(exam: str) -> str:
    profile = EXAMS[exam]
    labels = [_INSTITUTION_LABELS[kind] for kind in sorted(profile.institution_types)]
    target = " and ".join(labels)
    if profile.state:
        target += f" in {profile.state}"
    return target


class RuleBasedResponder:
    """Deterministic responder used when no provider can answer."""

    name = RULE_BASED_MODEL

    def respond(
        self,
        history: list[ConversationTurn],
        context: UserContext | None = None,
        *,
        degraded: bool = False,
    ) -> AdapterReply:
        context = context or UserContext()
        message = last_user_message(history)
        text = message.lower()

        # Facts the student typed count as much as the supplied profile.
        profile = replace(
            context,
            rank=context.rank or detect_rank(text),
            category=context.category or detect_category(text),
            home_state=context.home_state or detect_state(text),
            exam=context.exam or detect_exam_in_text(text),
        )

        intent, reply = self._match(text, profile)
        logger.info("Rule-based responder matched intent: %s", intent)
        if degraded:
            reply = f"{DEGRADED_NOTE}\n\n{reply}"

        analysis = analyze_emotion(message)
        steps = generate_micro_steps(profile, 0)
        return AdapterReply(
            reply=reply,
            model=RULE_BASED_MODEL,
            follow_up=emotion_follow_up(analysis.emotion),
            action_card=create_action_card(analysis, steps),
            emotional_analysis=analysis,
        )

    def _match(self, text: str, profile: UserContext) -> tuple[str, str]:
        if profile.rank is None and (_GREETING.search(text) or _HELP.search(text)):
            return "greeting", self._greeting()
        if profile.rank is not None and profile.exam is None:
            return "rank_without_exam", self._ask_for_exam(profile.rank, text)
        if profile.exam is not None:
            return "exam_guidance", self._exam_guidance(text, profile)
        institutions = _mentioned_institutions(text)
        if institutions and mentions_ambiguous_exam(text):
            return "cross_exam", self._cross_exam(institutions)
        words = _words(text)
        if words & {"fee", "fees", "budget", "affordable", "cost", "cheap"}:
            return "fees", self._fees()
        if words & {"compare", "vs", "versus", "better"}:
            return "comparison", self._comparison()
        if "cutoff" in text or "cut off" in text or "closing rank" in text:
            return "cutoffs", self._cutoffs()
        return "generic", self._invitation()

    @staticmethod
    def _greeting() -> str:
        return (
            "Hi! I'm your Compass admissions mentor. I can help you with:\n\n"
            "- Finding colleges based on your rank\n"
            "- Comparing different institutions\n"
            "- Understanding fee structures\n"
            "- Checking your eligibility\n\n"
            "To get started, tell me:\n"
            "1. Which exam you took (JEE Main, JEE Advanced, TS EAMCET, AP EAMCET, BITSAT, ...)\n"
            "2. Your rank in that exam\n"
            "3. Your category (General, EWS, OBC, SC, ST) and home state"
        )

    @staticmethod
    def _ask_for_exam(rank: int, text: str) -> str:
        if mentions_ambiguous_exam(text):
            return (
                f"Thanks for sharing your rank of {rank:,}! Just to be sure: is that TS "
                "EAMCET (Telangana) or AP EAMCET (Andhra Pradesh)? The two exams lead to "
                "completely different colleges."
            )
        return (
            f"Thanks for sharing your rank of {rank:,}! Which exam is this rank from? "
            "JEE Main, JEE Advanced, TS EAMCET, AP EAMCET, BITSAT, KCET, MHT CET, WBJEE "
            "or NEET? A rank only means something for the exam it belongs to, so I need "
            "the exam name before I can suggest colleges."
        )

    @staticmethod
    def _exam_guidance(text: str, profile: UserContext) -> str:
        exam = profile.exam
        parts: list[str] = []

        mismatched = [
            kind for kind in _mentioned_institutions(text)
            if not is_compatible(exam, kind, EXAMS[exam].state)
        ]
        if mismatched:
            kind = mismatched[0]
            parts.append(
                f"Quick heads-up: {_INSTITUTION_LABELS[kind]} don't admit through {exam}. "
                f"{exam} is for {_eligible_label(exam)}."
            )
        else:
            parts.append(f"Great, {exam} it is! {exam} is for {_eligible_label(exam)}.")

        missing: list[str] = []
        if profile.rank is None:
            missing.append(f"your {exam} rank")
        if profile.category is None:
            missing.append("your category (General, EWS, OBC, SC, ST or PwD)")
        if profile.home_state is None:
            missing.append("your home state")

        if missing:
            parts.append("To find the right colleges for you, please share " + ", ".join(missing) + ".")
        else:
            parts.append(
                f"With a rank of {profile.rank:,} in the {profile.category} category, I can "
                "sort colleges into Safe, Moderate and Ambitious options as soon as my "
                "prediction service is back. Ask me again in a moment!"
            )
        return " ".join(parts)

    @staticmethod
    def _cross_exam(institutions: list[str]) -> str:
        kind = institutions[0]
        exams = [name for name, profile in EXAMS.items() if kind in profile.institution_types]
        return (
            f"Good question! Admission to {_INSTITUTION_LABELS[kind]} goes through "
            f"{' or '.join(exams)}, not EAMCET. TS EAMCET and AP EAMCET ranks only count for "
            "state engineering colleges in Telangana and Andhra Pradesh. Which exams have "
            "you taken?"
        )

    @staticmethod
    def _fees() -> str:
        return (
            "Fees vary a lot: government colleges and NITs are usually the most "
            "affordable, while private and deemed universities cost more. Tell me your "
            "yearly budget and your exam, and I'll look for colleges that fit."
        )

    @staticmethod
    def _comparison() -> str:
        return (
            "Happy to compare colleges! Name two to four colleges (for example NIT "
            "Warangal vs IIIT Allahabad) and I'll put their rankings, fees and branches "
            "side by side."
        )

    @staticmethod
    def _cutoffs() -> str:
        return (
            "Cutoffs depend on the exam, the branch and your category. Tell me the "
            "college and your exam, and I'll pull up last year's closing ranks."
        )

    @staticmethod
    def _invitation() -> str:
        return (
            "I'm here to help you find the right college! Share your exam, rank, "
            "category and home state, or ask me about fees, cutoffs or comparing colleges."
        )
