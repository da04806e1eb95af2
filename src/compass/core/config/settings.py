"""Application settings loaded from environment variables."""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Compass admissions mentor configuration."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # Server
    # Loopback by default; there is no auth layer in front of the chat routes.
    compass_host: str = "127.0.0.1"
    compass_port: int = 8001
    compass_log_level: str = "info"
    compass_allow_insecure_bind: bool = False
    # "development" exposes provider diagnostics in chat responses.
    compass_env: Literal["production", "development"] = "production"

    # Provider selection
    preferred_model: str = "auto"
    provider_priority: list[str] = ["groq", "anthropic", "openai"]

    groq_api_key: str = ""
    groq_model: str = "llama-3.3-70b-versatile"
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-5-20250929"
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"

    llm_max_tokens: int = 1500
    llm_temperature: float = 0.5
    # Generous enough for a cold-start provider backend.
    llm_timeout_seconds: float = 60.0

    # College store
    db_path: str = ":memory:"
    college_catalog_path: str = ""

    # Audit
    audit_enabled: bool = True

    @property
    def development_mode(self) -> bool:
        return self.compass_env == "development"


def get_settings() -> Settings:
    """Create and return a Settings instance."""
    return Settings()
