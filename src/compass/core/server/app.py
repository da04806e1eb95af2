"""Compass Admissions Mentor MCP Server: application factory.

This module provides:
- create_app() for testability (integration tests create fresh server instances)
- handle_chat_payload() shared by the HTTP route and tests
- Module-level `mcp` variable for FastMCP discovery
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from starlette.requests import Request
from starlette.responses import JSONResponse, Response, StreamingResponse

from compass.core.audit.logger import AuditLogger
from compass.core.config.settings import Settings, get_settings
from compass.core.llm.adapter import ConversationAdapter
from compass.core.llm.provider import LLMProvider, create_provider
from compass.core.llm.system_prompt import MENTOR_SYSTEM_PROMPT
from compass.core.orchestrator.orchestrator import FAILURE_MESSAGE, Orchestrator
from compass.core.server.requests import RequestValidationError, parse_chat_request
from compass.core.server.sse import stream_chat
from compass.core.storage.database import CollegeDatabase
from compass.core.storage.loader import seed_repository
from compass.core.storage.repository import CollegeRepository
from compass.core.tools.registry import ToolRegistry
from compass.domains.admissions.prompts.mentor_prompts import register_mentor_prompts
from compass.domains.admissions.resources.exams import register_exam_resources
from compass.domains.admissions.tools.college_tools import register_college_tools

logger = logging.getLogger(__name__)

SERVER_NAME = "Compass Admissions Mentor"
VERSION = "0.1.0"

# Bundled catalogue lives under src/compass/domains/admissions/data/
_CATALOG_PATH = (
    Path(__file__).resolve().parent.parent.parent / "domains" / "admissions" / "data" / "colleges.yaml"
)


async def handle_chat_payload(
    orchestrator: Orchestrator,
    payload: Any,
    default_preference: str = "auto",
) -> tuple[int, dict[str, Any]]:
    """Run one buffered chat request. Returns ``(status_code, body)``."""
    try:
        request = parse_chat_request(payload)
    except RequestValidationError as exc:
        logger.info("Rejected chat request: %s", exc)
        return 400, {"success": False, "message": str(exc)}

    try:
        envelope = await orchestrator.converse(
            request.history, request.context, request.preferred or default_preference,
        )
    except Exception:
        logger.exception("Chat request failed")
        return 500, {"success": False, "message": FAILURE_MESSAGE}
    return 200, envelope.to_dict()


def _build_repository(settings: Settings) -> CollegeRepository:
    database = CollegeDatabase(settings.db_path)
    database.initialize()
    repository = CollegeRepository(database)
    catalog = settings.college_catalog_path or _CATALOG_PATH
    count = seed_repository(repository, catalog)
    logger.info(
        "College store ready: %s (schema v%d, %d colleges)",
        settings.db_path, database.get_schema_version(), count,
    )
    return repository


def create_app(
    *,
    settings_override: Settings | None = None,
    providers_override: list[LLMProvider] | None = None,
    repository_override: CollegeRepository | None = None,
) -> FastMCP:
    """Create and configure the Compass MCP server.

    This is the main application factory. It:
    1. Creates the FastMCP server instance
    2. Opens and seeds the college store
    3. Builds the tool registry over the store
    4. Creates one provider adapter per configured provider, in priority order
    5. Wires the orchestrator with the audit log
    6. Registers MCP tools, resources, prompts and the HTTP chat routes
    """
    settings = settings_override or get_settings()

    # --- Server instance ---
    server = FastMCP(
        SERVER_NAME,
        instructions=(
            "Conversational admissions mentor for Indian engineering and medical "
            "colleges. Predicts admission chances from an exam rank, compares "
            "colleges and checks exam eligibility using a grounded college dataset."
        ),
    )

    # --- College store ---
    repository = repository_override or _build_repository(settings)
    audit = AuditLogger(repository.database) if settings.audit_enabled else None

    # --- Grounding tools ---
    registry = ToolRegistry()
    register_college_tools(registry, repository)
    logger.info("Registered %d grounding tools", len(registry))

    # --- Providers ---
    if providers_override is not None:
        providers = list(providers_override)
    else:
        providers = [create_provider(name, settings) for name in settings.provider_priority]
    for provider in providers:
        if not provider.is_available():
            logger.warning("Provider %s is not configured; it will be skipped", provider.name)

    adapters = [
        ConversationAdapter(
            provider,
            registry,
            MENTOR_SYSTEM_PROMPT,
            max_tokens=settings.llm_max_tokens,
            temperature=settings.llm_temperature,
        )
        for provider in providers
    ]
    orchestrator = Orchestrator(
        adapters,
        registry,
        audit=audit,
        development_mode=settings.development_mode,
    )
    if not orchestrator.available():
        logger.warning("No LLM provider available; every reply will be rule-based")

    # --- Register tools ---
    @server.tool
    def health_check() -> dict:
        """Check server health and return basic status information."""
        return {
            "status": "ok",
            "server": SERVER_NAME,
            "version": VERSION,
            "providers": {adapter.name: adapter.is_available() for adapter in adapters},
            "tools": registry.names(),
            "colleges": repository.count_colleges(),
            "audit_enabled": audit is not None,
        }

    @server.tool
    async def chat(
        message: str = "",
        history: list[dict[str, Any]] | None = None,
        context: dict[str, Any] | None = None,
        model: str = "",
    ) -> dict:
        """Talk to the admissions mentor.

        Args:
            message: A single student message (used when no history is given).
            history: Full conversation as [{role, content}], oldest first.
            context: Optional profile: rank, category, homeState, branches, exam.
            model: Provider preference: auto, groq, anthropic (claude) or openai.
        """
        status, body = await handle_chat_payload(
            orchestrator,
            {"message": message, "history": history, "context": context, "model": model or None},
            settings.preferred_model,
        )
        if status != 200:
            raise ToolError(body["message"])
        return body

    @server.tool
    def simple_chat(message: str, context: dict[str, Any] | None = None) -> dict:
        """Quick rule-based answer without calling any language model.

        Args:
            message: The student's message.
            context: Optional profile: rank, category, homeState, branches, exam.
        """
        try:
            request = parse_chat_request({"message": message, "context": context})
        except RequestValidationError as exc:
            raise ToolError(str(exc)) from exc
        return orchestrator.respond_rule_based(request.history, request.context).to_dict()

    # --- HTTP routes ---
    @server.custom_route("/api/chat", methods=["POST"])
    async def chat_route(request: Request) -> Response:
        try:
            payload = await request.json()
        except ValueError:
            return JSONResponse(
                {"success": False, "message": "Request body must be valid JSON"}, status_code=400,
            )
        status, body = await handle_chat_payload(orchestrator, payload, settings.preferred_model)
        return JSONResponse(body, status_code=status)

    @server.custom_route("/api/chat/stream", methods=["POST"])
    async def chat_stream_route(request: Request) -> Response:
        try:
            payload = await request.json()
        except ValueError:
            return JSONResponse(
                {"success": False, "message": "Request body must be valid JSON"}, status_code=400,
            )
        try:
            chat_request = parse_chat_request(payload)
        except RequestValidationError as exc:
            return JSONResponse({"success": False, "message": str(exc)}, status_code=400)

        return StreamingResponse(
            stream_chat(
                orchestrator,
                chat_request,
                chat_request.preferred or settings.preferred_model,
                request.is_disconnected,
            ),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
        )

    # --- Register resources ---
    register_exam_resources(server, registry)

    # --- Register prompts ---
    register_mentor_prompts(server)

    return server


# Module-level instance for FastMCP discovery ("...app.py:mcp").
# Lazy: only created when this module is loaded directly (not when tests import create_app).
def __getattr__(name: str):
    if name == "mcp":
        global mcp  # noqa: PLW0603
        mcp = create_app()
        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
