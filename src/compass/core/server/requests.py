"""Chat request parsing shared by the HTTP routes and the MCP tools."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from compass.core.conversation.models import CATEGORIES, ROLES, ConversationTurn, UserContext


class RequestValidationError(ValueError):
    """The request body is malformed. No provider is contacted."""


@dataclass
class ChatRequest:
    history: list[ConversationTurn]
    context: UserContext = field(default_factory=UserContext)
    preferred: str | None = None


def _parse_history(raw: Any) -> list[ConversationTurn]:
    if not isinstance(raw, list):
        raise RequestValidationError("'history' must be an array of messages")
    turns: list[ConversationTurn] = []
    for index, entry in enumerate(raw):
        if not isinstance(entry, dict):
            raise RequestValidationError(f"history[{index}] must be an object")
        role, content = entry.get("role"), entry.get("content")
        if role not in ROLES:
            raise RequestValidationError(
                f"history[{index}].role must be one of {', '.join(ROLES)}"
            )
        if not isinstance(content, str) or not content.strip():
            raise RequestValidationError(f"history[{index}].content must be a non-empty string")
        turns.append(ConversationTurn(role=role, content=content))
    return turns


def _parse_rank(value: Any) -> int | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise RequestValidationError("context.rank must be a positive integer")
    if isinstance(value, str) and value.strip().replace(",", "").isdigit():
        value = int(value.strip().replace(",", ""))
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if not isinstance(value, int) or value <= 0:
        raise RequestValidationError("context.rank must be a positive integer")
    return value


def _parse_category(value: Any) -> str | None:
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise RequestValidationError("context.category must be a string")
    for category in CATEGORIES:
        if category.lower() == value.strip().lower():
            return category
    raise RequestValidationError(f"context.category must be one of {', '.join(CATEGORIES)}")


def _optional_str(context: dict[str, Any], key: str) -> str | None:
    value = context.get(key)
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise RequestValidationError(f"context.{key} must be a string")
    return value.strip()


def parse_context(raw: Any) -> UserContext:
    if raw is None:
        return UserContext()
    if not isinstance(raw, dict):
        raise RequestValidationError("'context' must be an object")

    branches = raw.get("branches") or []
    if isinstance(branches, str):
        branches = [branches]
    if not isinstance(branches, list) or not all(isinstance(b, str) for b in branches):
        raise RequestValidationError("context.branches must be an array of strings")

    return UserContext(
        rank=_parse_rank(raw.get("rank")),
        category=_parse_category(raw.get("category")),
        home_state=_optional_str(raw, "homeState"),
        branches=[b.strip() for b in branches if b.strip()],
        exam=_optional_str(raw, "exam"),
    )


def parse_chat_request(payload: Any) -> ChatRequest:
    """Validate a chat body: ``history`` or a legacy ``message``, plus context.

    Raises:
        RequestValidationError: On any malformed field.
    """
    if not isinstance(payload, dict):
        raise RequestValidationError("Request body must be a JSON object")

    history_raw = payload.get("history")
    message = payload.get("message")
    if history_raw:
        history = _parse_history(history_raw)
    elif isinstance(message, str) and message.strip():
        history = [ConversationTurn(role="user", content=message)]
    else:
        raise RequestValidationError("Either 'message' or 'history' array is required")

    preferred = payload.get("model") or payload.get("providerPreference")
    if preferred is not None and not isinstance(preferred, str):
        raise RequestValidationError("'model' must be a string")

    return ChatRequest(
        history=history,
        context=parse_context(payload.get("context")),
        preferred=preferred,
    )
