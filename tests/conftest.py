"""
Pytest fixtures for termbank tests.

Provides common fixtures for:
- In-memory term database
- Scripted mock AI provider
- Expansion engine wired to both
- FastAPI test client with the engine dependency overridden
- Analysis-record seeding helper
"""

import pytest
import os
from typing import Generator, List
from fastapi.testclient import TestClient

# Set test environment before imports
os.environ["AI_PROVIDER"] = "mock"
os.environ["TERM_STORE_BACKEND"] = "memory"
os.environ["LOG_LEVEL"] = "WARNING"

from termbank.lib.config import ExpansionSettings, reset_settings
from termbank.lib.mock_ai_provider import MockAIProvider
from termbank.lib.term_db import InMemoryTermDatabase
from termbank.lib.term_types import AnalysisRecord
from termbank.services.expansion_engine import ExpansionEngine, build_engine


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Settings are process-wide; never leak them between tests."""
    reset_settings()
    yield
    reset_settings()


# ============================================================================
# Storage and Provider Fixtures
# ============================================================================

@pytest.fixture
def db() -> InMemoryTermDatabase:
    """Fresh in-memory storage for each test."""
    return InMemoryTermDatabase()


@pytest.fixture
def mock_provider() -> MockAIProvider:
    """
    Mock provider with no scripted pairs (everything scores 0).

    Tests script pairs with ``mock_provider.set_similarity(a, b, value)``.
    """
    return MockAIProvider()


@pytest.fixture
def settings() -> ExpansionSettings:
    return ExpansionSettings(backend="memory", oracle_timeout=5.0)


@pytest.fixture
def engine(db, mock_provider, settings) -> ExpansionEngine:
    """Engine over the in-memory database and the mock provider."""
    return build_engine(db=db, ai_provider=mock_provider, settings=settings)


@pytest.fixture
def add_analysis(db):
    """
    Seed analysis records.

    Usage:
        record = add_analysis(scenarios=["追击", "悲伤"])
    """
    def _add(scenarios: List[str] = (), film_scenes: List[dict] = (), film_type: str = None) -> AnalysisRecord:
        return db.insert_analysis(AnalysisRecord(
            id=None,
            scenarios=list(scenarios),
            film_scenes=[dict(s) for s in film_scenes],
            film_type=film_type,
        ))
    return _add


# ============================================================================
# FastAPI Test Client Fixtures
# ============================================================================

@pytest.fixture
def api_client(engine) -> Generator[TestClient, None, None]:
    """
    Provide FastAPI test client bound to the test engine.

    Usage:
        def test_health(api_client):
            response = api_client.get("/health")
            assert response.status_code == 200
    """
    from termbank.main import app
    from termbank.routes.vocabulary import get_engine

    app.dependency_overrides[get_engine] = lambda: engine
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()
