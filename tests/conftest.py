"""Shared test fixtures for Compass tests."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

# ---------------------------------------------------------------------------
# Test hermeticity
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _force_hermetic_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GROQ_API_KEY", "")
    monkeypatch.setenv("ANTHROPIC_API_KEY", "")
    monkeypatch.setenv("OPENAI_API_KEY", "")
    monkeypatch.setenv("COMPASS_ENV", "production")
    monkeypatch.setenv("PREFERRED_MODEL", "auto")
    monkeypatch.setenv("DB_PATH", ":memory:")
    monkeypatch.setenv("COLLEGE_CATALOG_PATH", "")

# Allow running tests without `pip install -e .` by making `src/` importable.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_SRC_DIR = _PROJECT_ROOT / "src"
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))

from compass.core.audit.logger import AuditLogger  # noqa: E402
from compass.core.conversation.models import ConversationTurn  # noqa: E402
from compass.core.llm.adapter import ConversationAdapter  # noqa: E402
from compass.core.llm.providers.mock import MockProvider  # noqa: E402
from compass.core.llm.system_prompt import MENTOR_SYSTEM_PROMPT  # noqa: E402
from compass.core.orchestrator.orchestrator import Orchestrator  # noqa: E402
from compass.core.storage.database import CollegeDatabase  # noqa: E402
from compass.core.storage.loader import seed_repository  # noqa: E402
from compass.core.storage.repository import CollegeRepository  # noqa: E402
from compass.core.tools.registry import ToolRegistry  # noqa: E402
from compass.domains.admissions.tools.college_tools import register_college_tools  # noqa: E402

CATALOG_PATH = _SRC_DIR / "compass" / "domains" / "admissions" / "data" / "colleges.yaml"

SCENARIO_A = "My rank is 100, General category"
SCENARIO_B = (
    "My TS EAMCET rank is 5000, OBC, from Telangana, show Hyderabad colleges"
)


def user(content: str) -> list[ConversationTurn]:
    """One-turn user history."""
    return [ConversationTurn(role="user", content=content)]


def make_orchestrator(
    providers: list[MockProvider],
    registry: ToolRegistry,
    *,
    audit: AuditLogger | None = None,
    development_mode: bool = False,
) -> Orchestrator:
    """Orchestrator over mock providers, in the given priority order."""
    adapters = [
        ConversationAdapter(provider, registry, MENTOR_SYSTEM_PROMPT) for provider in providers
    ]
    return Orchestrator(
        adapters, registry, audit=audit, development_mode=development_mode
    )


# ---------------------------------------------------------------------------
# In-memory storage fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def college_db():
    """Create an in-memory CollegeDatabase for testing."""
    db = CollegeDatabase(":memory:")
    db.initialize()
    yield db
    db.close()


@pytest.fixture
def empty_repository(college_db) -> CollegeRepository:
    """A CollegeRepository with no colleges."""
    return CollegeRepository(college_db)


@pytest.fixture
def college_repository(college_db) -> CollegeRepository:
    """A CollegeRepository seeded with the bundled catalogue."""
    repository = CollegeRepository(college_db)
    seed_repository(repository, CATALOG_PATH)
    return repository


@pytest.fixture
def tool_registry(college_repository) -> ToolRegistry:
    """The admissions grounding tools over the seeded catalogue."""
    registry = ToolRegistry()
    register_college_tools(registry, college_repository)
    return registry


@pytest.fixture
def audit_logger(college_db) -> AuditLogger:
    """Create an AuditLogger backed by in-memory SQLite."""
    return AuditLogger(college_db)
