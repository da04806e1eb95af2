"""Exam gate: no rank-based prediction runs without a recognized exam.

The gate sits between every provider and the tool registry, so a model that
skips the "which exam?" question cannot produce a prediction anyway. It never
guesses the exam on the model's behalf.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from compass.core.conversation.models import ToolCall
from compass.core.tools.registry import ToolRegistry
from compass.domains.admissions.domain_logic.exams import VALID_EXAMS, resolve_exam

logger = logging.getLogger(__name__)

BLOCKED_MESSAGE = (
    "EXAM PARAMETER IS REQUIRED. A rank has no meaning without knowing which exam "
    "it belongs to."
)
REQUIRED_ACTION = (
    "You MUST ask the user which exam their rank belongs to before making predictions."
)
HINT = (
    "Ask: 'Which exam does this rank belong to? "
    "(JEE Main, JEE Advanced, TS EAMCET, AP EAMCET, BITSAT, etc.)'"
)


def blocked_result(provided: Any = None) -> dict[str, Any]:
    """The result fed back to the provider in place of a prediction."""
    result: dict[str, Any] = {
        "error": True,
        "blocked": True,
        "message": BLOCKED_MESSAGE,
        "requiredAction": REQUIRED_ACTION,
        "validExams": list(VALID_EXAMS),
        "hint": HINT,
    }
    if provided:
        result["providedExam"] = provided
    return result


@dataclass
class GateDecision:
    allowed: bool
    arguments: dict[str, Any]
    result: dict[str, Any] | None = None
    reason: str | None = None


class ExamGate:
    """Checks prediction-class tool calls for a resolvable ``exam`` argument."""

    def __init__(self, registry: ToolRegistry) -> None:
        self._registry = registry

    def guards(self, tool_name: str) -> bool:
        definition = self._registry.get(tool_name)
        return definition is not None and definition.requires_exam

    def check(self, call: ToolCall) -> GateDecision:
        """Allow the call (with the canonical exam written back) or block it."""
        arguments = dict(call.arguments)
        if not self.guards(call.name):
            return GateDecision(allowed=True, arguments=arguments)

        raw = arguments.get("exam")
        if raw is None or (isinstance(raw, str) and not raw.strip()):
            logger.warning("Blocked %s: no exam provided", call.name)
            return GateDecision(
                allowed=False, arguments=arguments,
                result=blocked_result(), reason="missing_exam",
            )

        canonical = resolve_exam(raw)
        if canonical is None:
            logger.warning("Blocked %s: unrecognized exam %r", call.name, raw)
            return GateDecision(
                allowed=False, arguments=arguments,
                result=blocked_result(raw), reason="unknown_exam",
            )

        if canonical != raw:
            logger.debug("Normalized exam %r to %r for %s", raw, canonical, call.name)
        arguments["exam"] = canonical
        return GateDecision(allowed=True, arguments=arguments)
