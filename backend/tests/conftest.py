"""
Shared test fixtures for the HomeBase AI backend test suite.
"""

import pytest
import structlog
from fastapi.testclient import TestClient

from fakes import FakePropertyLookup, FakeProviderMatcher, InMemoryDataStore
from homebase.agents.state import ToolContext
from homebase.models.chat import HomeDetails, MatchedProvider, PropertyRecord


@pytest.fixture(autouse=True)
def _set_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Set required environment variables for tests so Settings can be instantiated."""
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test-fake-key-for-testing")
    # Supabase stays unconfigured so the API answers 503 behind auth
    monkeypatch.setenv("SUPABASE_URL", "")
    monkeypatch.setenv("SUPABASE_SECRET_KEY", "")
    # Disable LangSmith tracing in tests
    monkeypatch.setenv("LANGCHAIN_TRACING_V2", "false")


@pytest.fixture(autouse=True)
def _configure_structlog_for_tests():
    """Configure structlog for tests using a simple, deterministic setup."""
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(0),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )
    yield
    structlog.contextvars.clear_contextvars()


@pytest.fixture
def client() -> TestClient:
    """FastAPI TestClient wrapping the main application."""
    # Clear the lru_cache so settings pick up test env vars
    from homebase.config import get_settings

    get_settings.cache_clear()

    from homebase.main import app

    return TestClient(app)


@pytest.fixture
def settings():
    from homebase.config import get_settings

    get_settings.cache_clear()
    return get_settings()


@pytest.fixture
def store() -> InMemoryDataStore:
    return InMemoryDataStore()


@pytest.fixture
def sample_property_record() -> PropertyRecord:
    return PropertyRecord(
        address_std="12 Oak St, Austin, TX 78701",
        zip="78701",
        home=HomeDetails(beds=3, baths=2, sqft=1850, year_built=1998),
    )


@pytest.fixture
def sample_matches() -> list[MatchedProvider]:
    return [
        MatchedProvider(org_id="org-1", name="Cool Air Co", trust_score=8.7, match_score=0.92),
        MatchedProvider(org_id="org-2", name="Polar HVAC", trust_score=None, match_score=0.81),
        MatchedProvider(org_id="org-3", name="Breeze Bros", trust_score=7.1, match_score=0.77),
        MatchedProvider(org_id="org-4", name="Duct Masters", trust_score=6.0, match_score=0.60),
    ]


@pytest.fixture
def make_tool_context(store, sample_property_record, sample_matches):
    """Factory for ToolContext dicts with in-memory collaborators."""

    def _make(**overrides) -> ToolContext:
        ctx: ToolContext = {
            "store": store,
            "property_lookup": FakePropertyLookup(sample_property_record),
            "provider_matcher": FakeProviderMatcher(sample_matches),
            "user_id": "user-1",
            "profile_id": "profile-1",
            "role": "homeowner",
            "session_id": "session-1",
            "context": {},
            "match_limit": 5,
        }
        ctx.update(overrides)
        return ctx

    return _make
