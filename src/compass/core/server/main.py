"""Compass server entry point: ``python -m compass.core.server.main``."""

from __future__ import annotations

import logging
from ipaddress import ip_address

from compass.core.config.settings import Settings, get_settings
from compass.core.server.app import create_app

logger = logging.getLogger(__name__)

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _is_loopback_host(host: str) -> bool:
    if host == "localhost":
        return True
    try:
        return ip_address(host).is_loopback
    except ValueError:
        return False


def _check_bind(settings: Settings) -> None:
    # The chat routes carry student profiles and have no auth layer.
    if settings.compass_allow_insecure_bind or _is_loopback_host(settings.compass_host):
        return
    raise RuntimeError(
        f"Refusing to bind the Compass server to non-loopback host {settings.compass_host!r} "
        "without an auth layer. Set COMPASS_ALLOW_INSECURE_BIND=true to override (unsafe)."
    )


def _log_startup(settings: Settings) -> None:
    logger.info(
        "Compass Admissions Mentor (%s) on http://%s:%d",
        settings.compass_env, settings.compass_host, settings.compass_port,
    )
    logger.info(
        "Provider order: %s (preferred: %s); rule-based responder is the last resort",
        " -> ".join(settings.provider_priority), settings.preferred_model,
    )
    logger.info(
        "College catalogue: %s; store: %s",
        settings.college_catalog_path or "bundled", settings.db_path,
    )
    logger.info("Chat routes: POST /api/chat, POST /api/chat/stream (SSE)")


def run() -> None:
    """Start the Compass MCP server with Streamable HTTP transport."""
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.compass_log_level.upper(), logging.INFO),
        format=_LOG_FORMAT,
    )
    _check_bind(settings)
    _log_startup(settings)

    mcp = create_app(settings_override=settings)
    mcp.run(
        transport="streamable-http",
        host=settings.compass_host,
        port=settings.compass_port,
    )


if __name__ == "__main__":
    run()
